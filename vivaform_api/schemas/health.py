from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field


class DatabaseHealth(BaseModel):
    status: Literal["up", "down"]
    latency_ms: Optional[float] = None


class MemoryHealth(BaseModel):
    rss_mb: float = Field(..., description="Peak resident set size of the process in MB")


class RuntimeInfo(BaseModel):
    python: str
    env: str


class HealthStatus(BaseModel):
    """Liveness report; `degraded` when the database does not answer."""
    status: Literal["ok", "degraded"]
    timestamp: datetime
    uptime: float = Field(..., description="Seconds since process start")
    version: str
    database: DatabaseHealth
    memory: MemoryHealth
    runtime: RuntimeInfo


class HealthMetrics(BaseModel):
    active_users_24h: int
    subscriptions_active: int
    timestamp: datetime
