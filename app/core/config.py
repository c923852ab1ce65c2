"""
Application configuration management using Pydantic Settings
Handles all environment variables and application settings
"""

from pydantic_settings import BaseSettings
from typing import Optional, List
from functools import lru_cache

class Settings(BaseSettings):
    """Main application settings"""

    # Application Settings
    APP_NAME: str = "Wallet Rewards API"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # Server Settings
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    WORKERS: int = 4

    # Database Configuration
    DATABASE_URL: str = "sqlite:///./rewards.db"
    DATABASE_POOL_SIZE: int = 20
    DATABASE_MAX_OVERFLOW: int = 40
    DATABASE_POOL_TIMEOUT: int = 30
    DATABASE_ECHO: bool = False

    # Serve the in-memory ledger instead of the database (demo / local UI work)
    REWARDS_MOCK: bool = False

    # Admin access
    ADMIN_API_KEY: Optional[str] = None

    # CORS Configuration
    FRONTEND_URL: str = "http://localhost:3000"
    CORS_ORIGINS: List[str] = ["http://localhost:3000"]
    CORS_ALLOW_CREDENTIALS: bool = True
    CORS_ALLOW_METHODS: List[str] = ["*"]
    CORS_ALLOW_HEADERS: List[str] = ["*"]

    # Celery Configuration
    CELERY_BROKER_URL: str = "redis://localhost:6379/0"
    CELERY_RESULT_BACKEND: str = "redis://localhost:6379/0"
    CELERY_TIMEZONE: str = "UTC"

    # Discord server verification
    DISCORD_BOT_TOKEN: Optional[str] = None
    DISCORD_GUILD_ID: Optional[str] = None
    DISCORD_API_BASE_URL: str = "https://discord.com/api/v10"
    DISCORD_INVITE_URL: str = "https://discord.gg/5BUJrR3JnK"

    # Tweet existence checks (oEmbed)
    TWEET_OEMBED_URL: str = "https://publish.twitter.com/oembed"
    EXTERNAL_HTTP_TIMEOUT: float = 10.0

    # Reconciliation pacing
    MEMBERSHIP_SWEEP_BATCH_SIZE: int = 40
    MEMBERSHIP_SWEEP_PAUSE_SECONDS: float = 2.0
    TWEET_SWEEP_DELAY_SECONDS: float = 0.2
    TWEET_SWEEP_BATCH_SIZE: int = 50
    TWEET_SWEEP_BATCH_PAUSE_SECONDS: float = 2.0
    WALLET_TWEET_CHECK_BATCH_SIZE: int = 5
    WALLET_TWEET_CHECK_PAUSE_SECONDS: float = 0.5

    # Business Logic Settings
    CONNECT_BONUS_POINTS: int = 300
    X_CONNECT_POINTS: int = 100
    DISCORD_CONNECT_POINTS: int = 50
    DISCORD_VERIFY_POINTS: int = 50
    DAILY_POST_POINTS: int = 100
    REFERRER_BONUS_POINTS: int = 50
    REFERRED_BONUS_POINTS: int = 50
    REFERRAL_CODE_LENGTH: int = 8

    # Pagination
    DEFAULT_PAGE_SIZE: int = 20
    MAX_PAGE_SIZE: int = 100

    # Rate Limiting
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_DEFAULT: str = "300/hour"
    RATE_LIMIT_STORAGE_URI: str = "memory://"

    class Config:
        env_file = ".env"
        case_sensitive = True

    @property
    def database_url_async(self) -> str:
        """Convert sync database URL to async"""
        if self.DATABASE_URL.startswith("postgresql://"):
            return self.DATABASE_URL.replace("postgresql://", "postgresql+asyncpg://")
        elif self.DATABASE_URL.startswith("sqlite://"):
            return self.DATABASE_URL.replace("sqlite://", "sqlite+aiosqlite://")
        return self.DATABASE_URL

    @property
    def discord_verification_configured(self) -> bool:
        return bool(self.DISCORD_BOT_TOKEN and self.DISCORD_GUILD_ID)

@lru_cache()
def get_settings() -> Settings:
    """
    Create cached settings instance
    This ensures settings are loaded only once
    """
    return Settings()

# Global settings instance
settings = get_settings()
