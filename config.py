import os
from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict

CACHE_MAX_TTL_SECONDS = 604800  # one week


class Settings(BaseSettings):
    DATABASE_URL: str = ""
    DB_TABLE_PREFIX: str = "ph7_"

    # Connection pool (ignored for SQLite)
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20
    DB_POOL_TIMEOUT: int = 30
    DB_POOL_RECYCLE: int = 3600  # Recycle connections after 1 hour
    DB_STATEMENT_TIMEOUT: int = 30

    # Redis (cache + session store)
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_USERNAME: Optional[str] = None
    REDIS_PASSWORD: Optional[str] = None
    REDIS_DB: int = 0
    REDIS_RETRY_SECONDS: int = 30  # back-off after a failed connect
    CACHE_ENABLED: bool = True
    CACHE_TTL_SECONDS: int = CACHE_MAX_TTL_SECONDS
    SESSION_TTL_SECONDS: int = 86400

    # Reserved accounts
    GHOST_USERNAME: str = "ghost"
    ADMIN_PROFILE_ID: int = 0  # sender id of messages written by the site administration
    SITE_NAME: str = "pH7Builder"

    # Membership groups hidden from public listings
    VISITOR_GROUP_ID: int = 1
    PENDING_GROUP_ID: int = 9

    # Defaults for the system settings table
    DEFAULT_MEMBERSHIP_GROUP_ID: int = 2
    USER_TIMEOUT_MINUTES: int = 1
    PROFILE_WITH_AVATAR_SET: bool = False

    # When False, login failures do not reveal whether the email exists
    LOGIN_DISTINCT_FAILURE_REASONS: bool = True
    BCRYPT_ROUNDS: int = 12

    # Use absolute path to make sure .env is found
    model_config = SettingsConfigDict(
        env_file=os.path.join(os.path.dirname(__file__), ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )


# Create the settings instance
settings = Settings()
