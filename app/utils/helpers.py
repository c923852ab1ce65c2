"""
Helper utilities
"""

import re
import secrets
import string
from typing import Optional
from datetime import datetime, timezone

_EVM_ADDRESS_RE = re.compile(r"^0x[a-fA-F0-9]{40}$")
_TRON_ADDRESS_RE = re.compile(r"^T[1-9A-HJ-NP-Za-km-z]{33}$")
_SOLANA_ADDRESS_RE = re.compile(r"^[1-9A-HJ-NP-Za-km-z]{32,44}$")

REFERRAL_CODE_ALPHABET = string.ascii_uppercase + string.digits

def normalize_wallet(wallet_address: Optional[str]) -> str:
    """
    Normalize a wallet address to its identity key

    Args:
        wallet_address: Address as supplied by the caller

    Returns:
        Trimmed, lower-cased address
    """
    return (wallet_address or "").strip().lower()

def detect_chain_type(wallet_address: str) -> str:
    """
    Guess the chain family from the address format

    Args:
        wallet_address: Raw (not lower-cased) address

    Returns:
        "evm", "tron" or "solana"; "evm" when the format is unknown
    """
    address = (wallet_address or "").strip()
    if _EVM_ADDRESS_RE.match(address):
        return "evm"
    if _TRON_ADDRESS_RE.match(address):
        return "tron"
    if _SOLANA_ADDRESS_RE.match(address):
        return "solana"
    return "evm"

def utc_date_string(now: Optional[datetime] = None) -> str:
    """Current UTC day as YYYY-MM-DD"""
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is not None:
        now = now.astimezone(timezone.utc)
    return now.strftime("%Y-%m-%d")

def generate_referral_code(length: int = 8) -> str:
    """Random uppercase alphanumeric referral code"""
    return "".join(secrets.choice(REFERRAL_CODE_ALPHABET) for _ in range(length))

def normalize_referral_code(code: Optional[str]) -> str:
    return (code or "").strip().upper()

def short_wallet(wallet_address: str, keep: int = 8) -> str:
    """Shortened address for descriptions and log lines"""
    if len(wallet_address) <= keep:
        return wallet_address
    return f"{wallet_address[:keep]}..."
