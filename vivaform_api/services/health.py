from __future__ import annotations

import logging
import platform
import resource
import sys
import time
from datetime import timedelta

from sqlalchemy import text

from vivaform_api.core.dates import utcnow
from vivaform_api.core.settings import get_app_settings
from vivaform_api.db.models.billing import ACTIVE_STATUSES
from vivaform_api.repositories.billing import SubscriptionRepository
from vivaform_api.repositories.users import UserRepository
from vivaform_api.schemas.health import DatabaseHealth, HealthMetrics, HealthStatus, MemoryHealth, RuntimeInfo
from vivaform_api.services.base import BaseService

logger = logging.getLogger(__name__)

_STARTED_AT = time.monotonic()


def _rss_mb() -> float:
    usage = resource.getrusage(resource.RUSAGE_SELF).ru_maxrss
    # ru_maxrss is bytes on macOS, kilobytes on Linux
    divisor = 1024 * 1024 if sys.platform == "darwin" else 1024
    return round(usage / divisor, 1)


class HealthService(BaseService):
    """Liveness probe and a couple of business gauges."""

    # PUBLIC_INTERFACE
    async def check(self) -> HealthStatus:
        """Ping the database with SELECT 1 and report process details."""
        settings = get_app_settings()
        started = time.perf_counter()
        try:
            await self.session.execute(text("SELECT 1"))
            database = DatabaseHealth(status="up", latency_ms=round((time.perf_counter() - started) * 1000, 2))
        except Exception:
            logger.warning("Health check: database unreachable", exc_info=True)
            database = DatabaseHealth(status="down")
        return HealthStatus(
            status="ok" if database.status == "up" else "degraded",
            timestamp=utcnow(),
            uptime=round(time.monotonic() - _STARTED_AT, 1),
            version=settings.APP_VERSION,
            database=database,
            memory=MemoryHealth(rss_mb=_rss_mb()),
            runtime=RuntimeInfo(python=platform.python_version(), env=settings.ENVIRONMENT),
        )

    async def metrics(self) -> HealthMetrics:
        now = utcnow()
        subs = SubscriptionRepository(self.session)
        active_subs = 0
        for value in ACTIVE_STATUSES:
            active_subs += await subs.count_by_status(value)
        return HealthMetrics(
            active_users_24h=await UserRepository(self.session).count_active_since(now - timedelta(hours=24)),
            subscriptions_active=active_subs,
            timestamp=now,
        )
