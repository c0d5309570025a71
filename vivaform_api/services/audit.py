from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Dict, Optional
from uuid import UUID

from vivaform_api.db.models.admin import AuditLog
from vivaform_api.repositories.admin import AuditLogRepository
from vivaform_api.services.base import BaseService

logger = logging.getLogger(__name__)


class AuditAction(str, Enum):
    """Security, billing and back-office actions recorded in the audit log."""

    USER_REGISTERED = "USER_REGISTERED"
    USER_LOGIN = "USER_LOGIN"
    USER_LOGOUT = "USER_LOGOUT"
    EMAIL_VERIFIED = "EMAIL_VERIFIED"
    PASSWORD_CHANGED = "PASSWORD_CHANGED"
    PASSWORD_RESET_REQUESTED = "PASSWORD_RESET_REQUESTED"
    PASSWORD_RESET = "PASSWORD_RESET"
    TEMP_PASSWORD_REQUESTED = "TEMP_PASSWORD_REQUESTED"

    SUBSCRIPTION_CREATED = "SUBSCRIPTION_CREATED"
    SUBSCRIPTION_CANCELLED = "SUBSCRIPTION_CANCELLED"
    SUBSCRIPTION_UPGRADED = "SUBSCRIPTION_UPGRADED"
    SUBSCRIPTION_DOWNGRADED = "SUBSCRIPTION_DOWNGRADED"

    PAYMENT_SUCCEEDED = "PAYMENT_SUCCEEDED"
    PAYMENT_FAILED = "PAYMENT_FAILED"

    DATA_EXPORTED = "DATA_EXPORTED"
    ACCOUNT_DELETED = "ACCOUNT_DELETED"
    PREMIUM_PAGE_VIEW = "PREMIUM_PAGE_VIEW"

    # back-office
    USER_ROLE_CHANGED = "user.role_changed"
    FEATURE_TOGGLE_UPDATED = "feature_toggle.updated"
    SETTINGS_UPDATED = "settings.updated"
    FOOD_VERIFIED = "food.verified"
    FOOD_DELETED = "food.deleted"
    TICKET_UPDATED = "ticket.updated"


class AuditService(BaseService):
    """
    Writes audit entries to the structured log and the audit_logs table.

    Audit failures never propagate to the caller; they are logged at error level.
    """

    # PUBLIC_INTERFACE
    async def log(
        self,
        action: AuditAction | str,
        *,
        user_id: Optional[UUID] = None,
        actor_email: Optional[str] = None,
        entity: Optional[str] = None,
        entity_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
        ip_address: Optional[str] = None,
    ) -> None:
        """Record an audit entry."""
        name = action.value if isinstance(action, AuditAction) else str(action)
        logger.info(
            "Audit: %s user=%s entity=%s:%s metadata=%s",
            name,
            user_id,
            entity,
            entity_id,
            metadata,
        )
        try:
            await AuditLogRepository(self.session).append(
                AuditLog(
                    action=name,
                    user_id=user_id,
                    actor_email=actor_email,
                    entity=entity,
                    entity_id=str(entity_id) if entity_id is not None else None,
                    metadata_=metadata,
                    ip_address=ip_address,
                )
            )
        except Exception:
            logger.error("Failed to write audit log: %s", name, exc_info=True)

    async def log_login(self, user_id: UUID, ip_address: Optional[str] = None) -> None:
        await self.log(AuditAction.USER_LOGIN, user_id=user_id, ip_address=ip_address)

    async def log_registration(self, user_id: UUID, email: str, ip_address: Optional[str] = None) -> None:
        await self.log(AuditAction.USER_REGISTERED, user_id=user_id, metadata={"email": email}, ip_address=ip_address)

    async def log_password_change(self, user_id: UUID, action: AuditAction = AuditAction.PASSWORD_CHANGED) -> None:
        await self.log(action, user_id=user_id)

    async def log_subscription_change(self, user_id: UUID, action: AuditAction, metadata: Dict[str, Any]) -> None:
        await self.log(action, user_id=user_id, entity="subscription", metadata=metadata)

    async def log_payment(self, user_id: Optional[UUID], success: bool, metadata: Dict[str, Any]) -> None:
        action = AuditAction.PAYMENT_SUCCEEDED if success else AuditAction.PAYMENT_FAILED
        await self.log(action, user_id=user_id, entity="invoice", metadata=metadata)

    async def log_data_export(self, user_id: UUID, metadata: Optional[Dict[str, Any]] = None) -> None:
        await self.log(AuditAction.DATA_EXPORTED, user_id=user_id, metadata=metadata)
