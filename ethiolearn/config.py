"""Configuration settings for the EthioLearn backend."""

from functools import lru_cache
from typing import Annotated

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    # Supabase
    supabase_url: str
    # New key system (preferred)
    supabase_secret_key: str | None = None  # Backend/admin access
    supabase_publishable_key: str | None = None  # Auth sign-in/sign-up
    # Legacy keys
    supabase_service_role_key: str | None = None
    supabase_anon_key: str | None = None

    # JWT
    jwt_secret_key: str  # Required - no default for security
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = 60 * 24  # 1 day

    # Storage buckets
    course_pdf_bucket: str = "course-pdfs"
    receipt_bucket: str = "payment-receipts"
    cv_bucket: str = "cvs"
    max_upload_bytes: int = 10 * 1024 * 1024  # 10 MB

    # Payments are made off-platform via mobile money
    currency: str = "ETB"

    # Rate limiting; X-Forwarded-For is only honoured from these networks
    rate_limit_enabled: bool = True
    trusted_proxy_cidrs: Annotated[list[str], NoDecode] = [
        "10.0.0.0/8",
        "172.16.0.0/12",
        "192.168.0.0/16",
        "127.0.0.0/8",
        "::1/128",
    ]

    # App
    debug: bool = False
    log_level: str = "INFO"
    cors_origins: list[str] = [
        "http://localhost:5173",
        "http://127.0.0.1:5173",
        "http://localhost:3000",
    ]

    @field_validator("trusted_proxy_cidrs", mode="before")
    @classmethod
    def split_cidrs(cls, v):
        # Comma-separated in the environment
        if isinstance(v, str):
            return [s.strip() for s in v.split(",") if s.strip()]
        return v

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
