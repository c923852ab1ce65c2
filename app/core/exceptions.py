"""
Custom exception classes and error codes
Provides consistent error responses across the application
"""

from fastapi import HTTPException, status
from typing import Any, Dict, Optional
import enum

class ErrorCode(str, enum.Enum):
    """Failure kinds carried on service results"""

    NOT_FOUND = "NOT_FOUND"
    ALREADY_IN_STATE = "ALREADY_IN_STATE"
    INELIGIBLE = "INELIGIBLE"
    EXTERNAL_UNAVAILABLE = "EXTERNAL_UNAVAILABLE"
    SELF_REFERRAL = "SELF_REFERRAL"
    NOT_A_MEMBER = "NOT_A_MEMBER"

class LedgerUnavailableError(Exception):
    """The ledger store could not be reached; nothing was written"""

    def __init__(self, detail: str = "Ledger store unavailable"):
        super().__init__(detail)
        self.detail = detail

class RewardsException(HTTPException):
    """Base exception class for the rewards API"""

    def __init__(
        self,
        status_code: int,
        detail: str,
        error_code: Optional[str] = None,
        headers: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(status_code=status_code, detail=detail, headers=headers)
        self.error_code = error_code

class UnauthorizedException(RewardsException):
    """401 Unauthorized"""

    def __init__(self, detail: str = "Unauthorized", error_code: str = "UNAUTHORIZED"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            error_code=error_code
        )

class ForbiddenException(RewardsException):
    """403 Forbidden"""

    def __init__(self, detail: str = "Forbidden", error_code: str = "FORBIDDEN"):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=detail,
            error_code=error_code
        )

class NotFoundException(RewardsException):
    """404 Not Found"""

    def __init__(self, detail: str = "Not found", error_code: str = "NOT_FOUND"):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=detail,
            error_code=error_code
        )

class ServiceUnavailableException(RewardsException):
    """503 Service Unavailable"""

    def __init__(
        self,
        detail: str = "Service temporarily unavailable",
        error_code: str = "SERVICE_UNAVAILABLE"
    ):
        super().__init__(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=detail,
            error_code=error_code
        )
