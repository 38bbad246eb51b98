"""
Configuration management for the course marketplace checkout service.

Loads settings from .env via pydantic-settings.

Security notes:
    - The Razorpay key secret is only ever used server-side (order auth,
      signature verification). Only razorpay_key_id is safe to return.
    - validate_production_settings() enforces strict CORS and required
      secrets in production.
"""
import logging

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # ── Database ────────────────────────────────────────────────────
    database_url: str = "sqlite:///./data/marketplace.db"
    sqlite_busy_timeout_seconds: float = 30.0

    # ── Application ─────────────────────────────────────────────────
    environment: str = "development"

    # ── Razorpay ────────────────────────────────────────────────────
    razorpay_key_id: str = ""
    razorpay_key_secret: str = ""
    razorpay_api_base: str = "https://api.razorpay.com/v1"
    payment_currency: str = "INR"
    currency_exponent: int = 2           # paise per rupee = 10 ** 2
    gateway_timeout_seconds: float = 15.0
    checkout_name: str = "SkillSpring"

    # ── Auth (JWT sessions) ─────────────────────────────────────────
    jwt_secret: str = ""
    jwt_issuer: str = "skillspring-auth"
    jwt_access_ttl_minutes: int = 60
    session_cookie_name: str = "access_token"

    # ── CORS ────────────────────────────────────────────────────────
    cors_origins: str = "http://localhost:3000,http://127.0.0.1:3000"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # allow unknown .env keys without crashing
    )

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins from comma-separated string."""
        return [origin.strip() for origin in self.cors_origins.split(",")]

    def validate_production_settings(self):
        """
        Validate settings for production safety.

        Called during app startup. Raises in production, warns elsewhere.
        """
        if self.environment == "production":
            if "*" in self.cors_origins:
                raise ValueError(
                    "CORS_ORIGINS must not contain '*' in production. "
                    "Set explicit allowed origins."
                )
            if not self.jwt_secret:
                raise ValueError(
                    "JWT_SECRET must be set in production. "
                    "It is used to verify session access tokens."
                )
            if not self.razorpay_key_id or not self.razorpay_key_secret:
                raise ValueError(
                    "RAZORPAY_KEY_ID and RAZORPAY_KEY_SECRET must be set in production. "
                    "Checkout cannot create or verify orders without them."
                )
            logger.info("✅ Production settings validated")
        else:
            warnings = []
            if not self.razorpay_key_secret:
                warnings.append("RAZORPAY_KEY_SECRET not set (all payment signatures will be rejected)")
            if not self.jwt_secret:
                warnings.append("JWT_SECRET not set (no session can authenticate)")
            if "*" in self.cors_origins:
                warnings.append("CORS_ORIGINS contains '*' (open access)")
            for w in warnings:
                logger.warning(f"⚠️  {w}")


# Global settings instance
settings = Settings()
