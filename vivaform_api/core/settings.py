from __future__ import annotations

from functools import lru_cache
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """
    Application-level settings for the VivaForm API.

    Database configuration lives in vivaform_api.db.config.DatabaseSettings.
    """

    # FastAPI metadata
    APP_NAME: str = Field(default="VivaForm API")
    APP_DESCRIPTION: str = Field(
        default=(
            "Backend API for VivaForm: nutrition, water and weight tracking, "
            "onboarding quiz, recommendations, subscriptions and back-office."
        )
    )
    APP_VERSION: str = Field(default="0.1.0")
    ENABLE_DOCS: bool = Field(default=True, description="Expose /docs and /openapi.json")
    FRONTEND_URL: str = Field(default="http://localhost:5173")

    # Environment label
    ENVIRONMENT: str = Field(
        default="development", description="Environment label (development/test/production)"
    )
    LOG_LEVEL: str = Field(default="INFO")
    SENTRY_DSN: Optional[str] = Field(default=None)

    # CORS
    CORS_ORIGINS: List[str] = Field(
        default_factory=lambda: ["http://localhost:5173"],
        description="Comma-separated list or JSON array of allowed origins.",
    )
    CORS_ALLOW_CREDENTIALS: bool = Field(default=True)
    CORS_ALLOW_METHODS: List[str] = Field(default_factory=lambda: ["*"])
    CORS_ALLOW_HEADERS: List[str] = Field(default_factory=lambda: ["*"])

    # JWT
    JWT_SECRET: str = Field(default="super-secret")
    JWT_REFRESH_SECRET: str = Field(default="super-refresh-secret")
    JWT_ALGORITHM: str = Field(default="HS256")
    ACCESS_TOKEN_TTL_SECONDS: int = Field(default=900)
    REFRESH_TOKEN_TTL_SECONDS: int = Field(default=60 * 60 * 24 * 30)
    PASSWORD_RESET_TTL_SECONDS: int = Field(default=3600)

    # Stripe
    STRIPE_API_KEY: Optional[str] = Field(default=None)
    STRIPE_WEBHOOK_SECRET: Optional[str] = Field(default=None)
    STRIPE_PRICE_MONTHLY: Optional[str] = Field(default=None)
    STRIPE_PRICE_QUARTERLY: Optional[str] = Field(default=None)
    STRIPE_PRICE_ANNUAL: Optional[str] = Field(default=None)
    # Billing amount per plan period, used for MRR estimates in the back-office
    PLAN_AMOUNT_MONTHLY: float = Field(default=9.99)
    PLAN_AMOUNT_QUARTERLY: float = Field(default=24.99)
    PLAN_AMOUNT_ANNUAL: float = Field(default=79.99)

    # Email
    EMAIL_SERVICE: str = Field(default="console", description="console, smtp or sendgrid")
    EMAIL_FROM: str = Field(default="VivaForm <no-reply@vivaform.app>")
    SENDGRID_API_KEY: Optional[str] = Field(default=None)
    SMTP_HOST: Optional[str] = Field(default=None)
    SMTP_PORT: int = Field(default=587)
    SMTP_USER: Optional[str] = Field(default=None)
    SMTP_PASSWORD: Optional[str] = Field(default=None)

    # Startup behavior
    RUN_MIGRATIONS_ON_STARTUP: bool = Field(
        default=False,
        description="If true, run Alembic migrations (upgrade head) at app startup.",
    )
    AUTO_SEED: bool = Field(
        default=False,
        description="If true, seed reference data after migrations.",
    )
    RECOMMENDATIONS_SCHEDULE_ENABLED: bool = Field(default=False)
    RECOMMENDATIONS_SCHEDULE_HOUR: int = Field(default=6, ge=0, le=23)
    RECOMMENDATIONS_SCHEDULE_TZ: str = Field(default="Europe/Moscow")

    # Seed admin account
    SEED_ADMIN_EMAIL: Optional[str] = Field(default=None)
    SEED_ADMIN_PASSWORD: Optional[str] = Field(default=None)

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def _parse_cors_origins(cls, v):
        """
        Accept both JSON array format and comma-separated formats for CORS origins.
        """
        if v is None:
            return ["http://localhost:5173"]
        if isinstance(v, str):
            parts = [p.strip() for p in v.split(",") if p.strip()]
            return parts or ["http://localhost:5173"]
        if isinstance(v, list):
            return v or ["http://localhost:5173"]
        return ["http://localhost:5173"]

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() in ("production", "prod")

    @property
    def is_test(self) -> bool:
        return self.ENVIRONMENT.lower() == "test"

    def price_for_plan(self, plan: str) -> Optional[str]:
        """Return the configured Stripe price id for a subscription plan."""
        return {
            "monthly": self.STRIPE_PRICE_MONTHLY,
            "quarterly": self.STRIPE_PRICE_QUARTERLY,
            "annual": self.STRIPE_PRICE_ANNUAL,
        }.get(plan)

    def monthly_amount(self, plan: Optional[str]) -> float:
        """Plan price normalized to one month."""
        if plan == "monthly":
            return self.PLAN_AMOUNT_MONTHLY
        if plan == "quarterly":
            return round(self.PLAN_AMOUNT_QUARTERLY / 3, 2)
        if plan == "annual":
            return round(self.PLAN_AMOUNT_ANNUAL / 12, 2)
        return 0.0

    def plan_for_price(self, price_id: Optional[str]) -> Optional[str]:
        """Reverse lookup of price_for_plan."""
        for plan in ("monthly", "quarterly", "annual"):
            if price_id and self.price_for_plan(plan) == price_id:
                return plan
        return None


# PUBLIC_INTERFACE
@lru_cache
def get_app_settings() -> AppSettings:
    """
    Return the process-wide AppSettings populated from environment variables.

    Call get_app_settings.cache_clear() after changing the environment (tests).
    """
    return AppSettings()
