"""
Configuration settings for the application
"""

import os
from typing import List
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    """Application settings"""

    # Database
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./guestlist.db")

    # Identity collaborator: "jwt" (hosted auth session tokens) or "firebase"
    AUTH_PROVIDER: str = os.getenv("AUTH_PROVIDER", "jwt")
    SESSION_JWT_SECRET: str = os.getenv("SESSION_JWT_SECRET", "dev-session-secret")
    SESSION_JWT_AUDIENCE: str = os.getenv("SESSION_JWT_AUDIENCE", "authenticated")
    FIREBASE_CREDENTIALS_JSON: str | None = os.getenv("FIREBASE_CREDENTIALS_JSON")
    FIREBASE_CREDENTIALS_FILE: str | None = os.getenv("FIREBASE_CREDENTIALS_FILE")
    FIREBASE_CREDENTIALS_B64: str | None = os.getenv("FIREBASE_CREDENTIALS_B64")

    # Application
    BASE_URL: str = os.getenv("BASE_URL", "http://localhost:3000")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Business day: hours before DAY_CHANGE_HOUR belong to the previous night
    TIMEZONE: str = os.getenv("TIMEZONE", "Asia/Seoul")
    DAY_CHANGE_HOUR: int = 6

    # Guest list
    LINK_TOKEN_LENGTH: int = 18
    MAX_LINK_GUESTS: int = 500
    DEFAULT_DJ_GUEST_LIMIT: int = 20
    DEFAULT_ADMIN_GUEST_LIMIT: int = 999
    MIN_PASSWORD_LENGTH: int = 6

    # Door console polling
    POLL_INTERVAL_SECONDS: float = 15.0

    # CORS
    ALLOW_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:8000",
    ]

    # Rate limiting (public link endpoints)
    RATE_LIMIT_PER_MINUTE: int = 30

    class Config:
        env_file = ".env"

settings = Settings()
