from __future__ import annotations

import logging
import zlib
from typing import List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from vivaform_api.db.models.admin import FeatureToggle
from vivaform_api.db.models.users import User
from vivaform_api.repositories.admin import FeatureToggleRepository
from vivaform_api.schemas.admin import FeatureToggleUpsert
from vivaform_api.services.audit import AuditAction, AuditService
from vivaform_api.services.base import BaseService

logger = logging.getLogger(__name__)


# PUBLIC_INTERFACE
def rollout_bucket(key: str, user_id: UUID | str) -> int:
    """Stable 0..99 bucket of a user for a given toggle key."""
    return zlib.crc32(f"{key}:{user_id}".encode("utf-8")) % 100


# PUBLIC_INTERFACE
def is_enabled_for(toggle: Optional[FeatureToggle], user_id: UUID | str) -> bool:
    """A missing or disabled toggle is off; otherwise the user's bucket must fall under the rollout percentage."""
    if toggle is None or not toggle.enabled:
        return False
    if toggle.rollout_percent >= 100:
        return True
    return rollout_bucket(toggle.key, user_id) < toggle.rollout_percent


class FeatureToggleService(BaseService):
    """Feature toggle administration and per-user evaluation."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.repo = FeatureToggleRepository(session)
        self.audit = AuditService(session)

    async def list(self) -> List[FeatureToggle]:
        return await self.repo.list_all()

    async def get(self, key: str) -> FeatureToggle:
        return self.require(await self.repo.get(key), f"Feature toggle {key}")

    # PUBLIC_INTERFACE
    async def upsert(self, key: str, payload: FeatureToggleUpsert, actor: User) -> FeatureToggle:
        """Create or replace the toggle stored under `key`."""
        toggle = await self.repo.get(key) or FeatureToggle(key=key)
        toggle.enabled = payload.enabled
        toggle.rollout_percent = payload.rollout_percent
        toggle.description = payload.description
        toggle.metadata_ = payload.metadata
        toggle = await self.repo.save(toggle)
        logger.info("Feature toggle %s set enabled=%s rollout=%s", key, toggle.enabled, toggle.rollout_percent)
        await self.audit.log(
            AuditAction.FEATURE_TOGGLE_UPDATED,
            user_id=actor.id,
            actor_email=actor.email,
            entity="feature_toggle",
            entity_id=key,
            metadata={"enabled": toggle.enabled, "rollout_percent": toggle.rollout_percent},
        )
        return toggle

    async def delete(self, key: str, actor: User) -> None:
        toggle = await self.get(key)
        await self.repo.remove(toggle)
        await self.audit.log(
            AuditAction.FEATURE_TOGGLE_UPDATED,
            user_id=actor.id,
            actor_email=actor.email,
            entity="feature_toggle",
            entity_id=key,
            metadata={"deleted": True},
        )

    async def evaluate(self, key: str, user_id: UUID) -> bool:
        return is_enabled_for(await self.repo.get(key), user_id)
