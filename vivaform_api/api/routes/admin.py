from __future__ import annotations

from typing import Any, Dict, List, Optional
from uuid import UUID

from fastapi import APIRouter, Body, Depends, Path, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from vivaform_api.api.exports import export_dataframe
from vivaform_api.core.deps import require_admin
from vivaform_api.db.models.users import User
from vivaform_api.db.session import get_async_session
from vivaform_api.schemas.admin import (
    AdminSubscriptionList,
    AdminUserDetail,
    AdminUserList,
    AdminUserRow,
    AuditLogList,
    FeatureToggleRead,
    FeatureToggleUpsert,
    FoodList,
    FoodVerifyRequest,
    NewUsersTrend,
    OverviewKpis,
    RoleUpdate,
    SettingsPatchResult,
    SubscriptionsDistribution,
    SystemStats,
    TicketList,
    TicketRead,
    TicketReplyCreate,
    TicketUpdate,
    TrendPoint,
    UserStats,
)
from vivaform_api.schemas.foods import FoodItemRead
from vivaform_api.services.admin import AdminService
from vivaform_api.services.features import FeatureToggleService
from vivaform_api.services.support import TicketService

router = APIRouter(prefix="/admin", tags=["Admin"], dependencies=[Depends(require_admin)])


# Users

# PUBLIC_INTERFACE
@router.get(
    "/users",
    response_model=AdminUserList,
    summary="List users",
    description="Filter by text, role, tier and registration range; sortable; includes per-user entry counts.",
)
async def list_users(
    q: Optional[str] = Query(None, description="Matches email or name"),
    role: Optional[str] = Query(None),
    tier: Optional[str] = Query(None),
    reg_from: Optional[str] = Query(None),
    reg_to: Optional[str] = Query(None),
    sort_by: str = Query("created_at"),
    sort_dir: str = Query("desc", pattern="^(asc|desc)$"),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    session: AsyncSession = Depends(get_async_session),
) -> AdminUserList:
    return await AdminService(session).list_users(
        q=q,
        role=role,
        tier=tier,
        reg_from=reg_from,
        reg_to=reg_to,
        sort_by=sort_by,
        sort_dir=sort_dir,
        page=page,
        limit=limit,
    )


# PUBLIC_INTERFACE
@router.get(
    "/users/export",
    summary="Export users",
    description="Same filters as the user list, streamed as CSV, XLSX or PDF.",
    response_description="File stream (CSV/XLSX/PDF)",
)
async def export_users(
    format: str = Query("csv", pattern="^(csv|xlsx|pdf)$", description="Export format: csv | xlsx | pdf"),
    q: Optional[str] = Query(None),
    role: Optional[str] = Query(None),
    tier: Optional[str] = Query(None),
    reg_from: Optional[str] = Query(None),
    reg_to: Optional[str] = Query(None),
    sort_by: str = Query("created_at"),
    sort_dir: str = Query("desc", pattern="^(asc|desc)$"),
    admin: User = Depends(require_admin),
    session: AsyncSession = Depends(get_async_session),
):
    df = await AdminService(session).users_frame(
        actor=admin,
        export_format=format,
        q=q,
        role=role,
        tier=tier,
        reg_from=reg_from,
        reg_to=reg_to,
        sort_by=sort_by,
        sort_dir=sort_dir,
    )
    return export_dataframe(df, "users", format)


# PUBLIC_INTERFACE
@router.get("/users/{user_id}", response_model=AdminUserDetail, summary="User details")
async def user_details(user_id: UUID = Path(...), session: AsyncSession = Depends(get_async_session)) -> AdminUserDetail:
    return await AdminService(session).user_details(user_id)


# PUBLIC_INTERFACE
@router.patch("/users/{user_id}/role", response_model=AdminUserRow, summary="Change user role")
async def update_role(
    payload: RoleUpdate,
    user_id: UUID = Path(...),
    admin: User = Depends(require_admin),
    session: AsyncSession = Depends(get_async_session),
) -> AdminUserRow:
    return await AdminService(session).update_role(user_id, payload.role, admin)


# Stats and overview

# PUBLIC_INTERFACE
@router.get("/stats/users", response_model=UserStats, summary="User statistics")
async def user_stats(session: AsyncSession = Depends(get_async_session)) -> UserStats:
    return await AdminService(session).user_stats()


# PUBLIC_INTERFACE
@router.get("/stats/system", response_model=SystemStats, summary="Row counts")
async def system_stats(session: AsyncSession = Depends(get_async_session)) -> SystemStats:
    return await AdminService(session).system_stats()


# PUBLIC_INTERFACE
@router.get("/overview/kpis", response_model=OverviewKpis, summary="Headline KPIs for a period")
async def overview_kpis(
    date_from: Optional[str] = Query(None, alias="from"),
    date_to: Optional[str] = Query(None, alias="to"),
    session: AsyncSession = Depends(get_async_session),
) -> OverviewKpis:
    return await AdminService(session).overview_kpis(date_from, date_to)


# PUBLIC_INTERFACE
@router.get("/overview/revenue-trend", response_model=List[TrendPoint], summary="Daily MRR estimate")
async def revenue_trend(
    date_from: Optional[str] = Query(None, alias="from"),
    date_to: Optional[str] = Query(None, alias="to"),
    session: AsyncSession = Depends(get_async_session),
) -> List[TrendPoint]:
    return await AdminService(session).revenue_trend(date_from, date_to)


# PUBLIC_INTERFACE
@router.get(
    "/overview/new-users",
    response_model=NewUsersTrend,
    summary="Daily registrations",
    description="With `compare=true` each point also carries the matching day of the previous period.",
)
async def new_users(
    date_from: Optional[str] = Query(None, alias="from"),
    date_to: Optional[str] = Query(None, alias="to"),
    compare: bool = Query(False),
    session: AsyncSession = Depends(get_async_session),
) -> NewUsersTrend:
    return await AdminService(session).new_users(date_from, date_to, compare)


# PUBLIC_INTERFACE
@router.get(
    "/overview/subscriptions-distribution",
    response_model=SubscriptionsDistribution,
    summary="Subscriptions by status and plan",
)
async def subscriptions_distribution(session: AsyncSession = Depends(get_async_session)) -> SubscriptionsDistribution:
    return await AdminService(session).subscriptions_distribution()


# Food moderation

# PUBLIC_INTERFACE
@router.get("/food-items", response_model=FoodList, summary="Food items for moderation")
async def list_food_items(
    verified: Optional[bool] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    session: AsyncSession = Depends(get_async_session),
) -> FoodList:
    return await AdminService(session).list_foods(verified, page, limit)


# PUBLIC_INTERFACE
@router.patch("/food-items/{food_id}/verify", response_model=FoodItemRead, summary="Verify or unverify a food item")
async def verify_food_item(
    payload: FoodVerifyRequest,
    food_id: UUID = Path(...),
    admin: User = Depends(require_admin),
    session: AsyncSession = Depends(get_async_session),
) -> FoodItemRead:
    return FoodItemRead.model_validate(await AdminService(session).verify_food(food_id, payload.verified, admin))


# PUBLIC_INTERFACE
@router.delete("/food-items/{food_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete a food item")
async def delete_food_item(
    food_id: UUID = Path(...),
    admin: User = Depends(require_admin),
    session: AsyncSession = Depends(get_async_session),
) -> Response:
    await AdminService(session).delete_food(food_id, admin)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# Support tickets

# PUBLIC_INTERFACE
@router.get("/tickets", response_model=TicketList, summary="List support tickets")
async def list_tickets(
    status_filter: Optional[str] = Query(None, alias="status"),
    priority: Optional[str] = Query(None),
    assignee: Optional[UUID] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    session: AsyncSession = Depends(get_async_session),
) -> TicketList:
    return await TicketService(session).list(
        status_filter=status_filter, priority=priority, assignee=assignee, page=page, limit=limit
    )


# PUBLIC_INTERFACE
@router.get("/tickets/{ticket_id}", response_model=TicketRead, summary="Ticket with replies")
async def get_ticket(ticket_id: UUID = Path(...), session: AsyncSession = Depends(get_async_session)) -> TicketRead:
    return TicketRead.model_validate(await TicketService(session).get(ticket_id))


# PUBLIC_INTERFACE
@router.patch("/tickets/{ticket_id}", response_model=TicketRead, summary="Update ticket status, priority or assignee")
async def update_ticket(
    payload: TicketUpdate,
    ticket_id: UUID = Path(...),
    admin: User = Depends(require_admin),
    session: AsyncSession = Depends(get_async_session),
) -> TicketRead:
    return TicketRead.model_validate(await TicketService(session).update(ticket_id, payload, admin))


# PUBLIC_INTERFACE
@router.patch(
    "/tickets/{ticket_id}/reply",
    response_model=TicketRead,
    summary="Reply to a ticket",
    description="Appends a staff reply; open tickets move to pending.",
)
async def reply_ticket(
    payload: TicketReplyCreate,
    ticket_id: UUID = Path(...),
    admin: User = Depends(require_admin),
    session: AsyncSession = Depends(get_async_session),
) -> TicketRead:
    return TicketRead.model_validate(await TicketService(session).reply(ticket_id, payload.body, admin))


# Subscriptions

# PUBLIC_INTERFACE
@router.get("/subs", response_model=AdminSubscriptionList, summary="List subscriptions")
async def list_subscriptions(
    status_filter: Optional[str] = Query(None, alias="status"),
    plan: Optional[str] = Query(None, pattern="^(monthly|quarterly|annual)$"),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    session: AsyncSession = Depends(get_async_session),
) -> AdminSubscriptionList:
    return await AdminService(session).list_subscriptions(status_filter, plan, page, limit)


# Settings

# PUBLIC_INTERFACE
@router.get("/settings", response_model=Dict[str, Any], summary="Application settings")
async def get_settings(session: AsyncSession = Depends(get_async_session)) -> Dict[str, Any]:
    return await AdminService(session).get_settings()


# PUBLIC_INTERFACE
@router.patch(
    "/settings",
    response_model=SettingsPatchResult,
    summary="Patch whitelisted settings",
    description="Only whitelisted keys are stored; other keys are returned under `ignored`.",
)
async def patch_settings(
    values: Dict[str, Any] = Body(...),
    admin: User = Depends(require_admin),
    session: AsyncSession = Depends(get_async_session),
) -> SettingsPatchResult:
    return await AdminService(session).patch_settings(values, admin)


# Feature toggles

# PUBLIC_INTERFACE
@router.get("/feature-toggles", response_model=List[FeatureToggleRead], summary="List feature toggles")
async def list_toggles(session: AsyncSession = Depends(get_async_session)) -> List[FeatureToggleRead]:
    return [FeatureToggleRead.model_validate(t) for t in await FeatureToggleService(session).list()]


# PUBLIC_INTERFACE
@router.get("/feature-toggles/{key}", response_model=FeatureToggleRead, summary="Get a feature toggle")
async def get_toggle(key: str = Path(...), session: AsyncSession = Depends(get_async_session)) -> FeatureToggleRead:
    return FeatureToggleRead.model_validate(await FeatureToggleService(session).get(key))


# PUBLIC_INTERFACE
@router.put("/feature-toggles/{key}", response_model=FeatureToggleRead, summary="Create or replace a feature toggle")
async def put_toggle(
    payload: FeatureToggleUpsert,
    key: str = Path(..., min_length=1, max_length=128),
    admin: User = Depends(require_admin),
    session: AsyncSession = Depends(get_async_session),
) -> FeatureToggleRead:
    return FeatureToggleRead.model_validate(await FeatureToggleService(session).upsert(key, payload, admin))


# PUBLIC_INTERFACE
@router.delete("/feature-toggles/{key}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete a feature toggle")
async def delete_toggle(
    key: str = Path(...),
    admin: User = Depends(require_admin),
    session: AsyncSession = Depends(get_async_session),
) -> Response:
    await FeatureToggleService(session).delete(key, admin)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# Audit

# PUBLIC_INTERFACE
@router.get("/audit-logs", response_model=AuditLogList, summary="Browse audit logs")
async def audit_logs(
    action: Optional[str] = Query(None),
    entity: Optional[str] = Query(None),
    user_id: Optional[UUID] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    session: AsyncSession = Depends(get_async_session),
) -> AuditLogList:
    return await AdminService(session).audit_logs(
        action=action, entity=entity, user_id=user_id, page=page, limit=limit
    )
