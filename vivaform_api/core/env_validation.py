from __future__ import annotations

import logging
from typing import List, Optional

from vivaform_api.core.settings import AppSettings, get_app_settings
from vivaform_api.db.config import DatabaseSettings, get_database_settings

logger = logging.getLogger(__name__)

MIN_SECRET_LENGTH = 32


class EnvironmentValidationError(RuntimeError):
    """Raised when required production configuration is missing or malformed."""

    def __init__(self, problems: List[str]) -> None:
        super().__init__("Invalid environment configuration: " + "; ".join(problems))
        self.problems = problems


def _collect_problems(app: AppSettings, db: DatabaseSettings) -> List[str]:
    problems: List[str] = []

    if not db.is_configured:
        problems.append("DATABASE_URL (or POSTGRES_USER, POSTGRES_PASSWORD and POSTGRES_DB) is required")
    elif not db.is_postgres:
        problems.append("DATABASE_URL must be a postgresql:// connection string")

    if len(app.JWT_SECRET) < MIN_SECRET_LENGTH:
        problems.append(f"JWT_SECRET must be at least {MIN_SECRET_LENGTH} characters")
    if len(app.JWT_REFRESH_SECRET) < MIN_SECRET_LENGTH:
        problems.append(f"JWT_REFRESH_SECRET must be at least {MIN_SECRET_LENGTH} characters")

    if not app.is_production:
        return problems

    if not (app.STRIPE_API_KEY or "").startswith(("sk_live_", "sk_test_")):
        problems.append("STRIPE_API_KEY must start with sk_live_ or sk_test_")
    if not (app.STRIPE_WEBHOOK_SECRET or "").startswith("whsec_"):
        problems.append("STRIPE_WEBHOOK_SECRET must start with whsec_")
    if not (app.SENTRY_DSN or "").startswith("https://"):
        problems.append("SENTRY_DSN must be an https:// URL")

    service = (app.EMAIL_SERVICE or "").lower()
    if service == "sendgrid":
        if not app.SENDGRID_API_KEY:
            problems.append("SENDGRID_API_KEY is required when EMAIL_SERVICE=sendgrid")
    elif service == "smtp":
        for name in ("SMTP_HOST", "SMTP_USER", "SMTP_PASSWORD"):
            if not getattr(app, name):
                problems.append(f"{name} is required when EMAIL_SERVICE=smtp")
    else:
        problems.append("EMAIL_SERVICE must be sendgrid or smtp in production")

    return problems


# PUBLIC_INTERFACE
def validate_environment(
    app: Optional[AppSettings] = None,
    db: Optional[DatabaseSettings] = None,
) -> List[str]:
    """
    Check the runtime configuration.

    Skipped entirely in the test environment. In production any problem raises
    EnvironmentValidationError; elsewhere problems are logged as warnings and
    returned.
    """
    app = app or get_app_settings()
    db = db or get_database_settings()
    if app.is_test:
        return []

    problems = _collect_problems(app, db)
    if not problems:
        logger.info("Environment configuration validated")
        return problems

    if app.is_production:
        for problem in problems:
            logger.error("Environment check failed: %s", problem)
        raise EnvironmentValidationError(problems)

    for problem in problems:
        logger.warning("Environment check: %s", problem)
    return problems
