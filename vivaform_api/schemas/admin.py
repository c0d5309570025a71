from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from vivaform_api.schemas.common import PageInfo
from vivaform_api.schemas.foods import FoodItemRead
from vivaform_api.schemas.subscriptions import SubscriptionRead
from vivaform_api.schemas.users import ProfileRead

Role = Literal["USER", "ADMIN", "MANAGER", "SUPPORT"]
TicketStatus = Literal["open", "pending", "resolved", "closed"]
TicketPriority = Literal["low", "normal", "high", "urgent"]


# Users
class EntryCounts(BaseModel):
    nutrition: int = 0
    water: int = 0
    weight: int = 0
    recommendations: int = 0


class AdminUserRow(BaseModel):
    id: UUID
    email: str
    name: Optional[str] = None
    role: str
    tier: str
    email_verified: bool
    created_at: datetime
    updated_at: datetime
    counts: EntryCounts = Field(default_factory=EntryCounts)

    class Config:
        from_attributes = True


class AdminUserList(BaseModel):
    users: List[AdminUserRow]
    pagination: PageInfo


class AdminUserDetail(BaseModel):
    user: AdminUserRow
    profile: Optional[ProfileRead] = None
    subscription: Optional[SubscriptionRead] = None


class RoleUpdate(BaseModel):
    role: Role


# Stats
class UserStats(BaseModel):
    total_users: int
    free_users: int
    premium_users: int
    active_today: int
    new_this_week: int


class SystemStats(BaseModel):
    nutrition_entries: int
    water_entries: int
    weight_entries: int
    recommendations: int
    food_items: int
    meal_templates: int


# Overview
class OverviewKpis(BaseModel):
    period_from: date
    period_to: date
    total_users: int
    new_users: int
    premium_users: int
    active_subscriptions: int
    mrr_estimate: float
    conversion_rate: float = Field(..., description="Premium users as a percentage of all users")


class TrendPoint(BaseModel):
    date: date
    value: float


class NewUsersPoint(BaseModel):
    date: date
    count: int
    previous: Optional[int] = None


class NewUsersTrend(BaseModel):
    points: List[NewUsersPoint]
    total: int
    previous_total: Optional[int] = None


class SubscriptionsDistribution(BaseModel):
    by_status: Dict[str, int]
    by_plan: Dict[str, int]


# Foods
class FoodList(BaseModel):
    foods: List[FoodItemRead]
    pagination: PageInfo


class FoodVerifyRequest(BaseModel):
    verified: bool = True


# Tickets
class TicketCreate(BaseModel):
    subject: str = Field(..., min_length=3, max_length=255)
    body: str = Field(..., min_length=1)
    priority: TicketPriority = "normal"


class TicketUpdate(BaseModel):
    status: Optional[TicketStatus] = None
    priority: Optional[TicketPriority] = None
    assigned_to: Optional[UUID] = None


class TicketReplyCreate(BaseModel):
    body: str = Field(..., min_length=1)


class TicketReplyRead(BaseModel):
    id: UUID
    author_id: Optional[UUID] = None
    body: str
    is_staff: bool
    created_at: datetime

    class Config:
        from_attributes = True


class TicketRead(BaseModel):
    id: UUID
    user_id: UUID
    subject: str
    body: str
    status: str
    priority: str
    assigned_to: Optional[UUID] = None
    replies: List[TicketReplyRead] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class TicketList(BaseModel):
    tickets: List[TicketRead]
    pagination: PageInfo


# Subscriptions
class AdminSubscriptionRow(SubscriptionRead):
    plan: Optional[str] = None


class AdminSubscriptionList(BaseModel):
    subscriptions: List[AdminSubscriptionRow]
    pagination: PageInfo


# Settings
class SettingsPatchResult(BaseModel):
    updated: List[str]
    ignored: List[str]
    settings: Dict[str, Any]


# Feature toggles
class FeatureToggleUpsert(BaseModel):
    enabled: bool
    rollout_percent: int = Field(100, ge=0, le=100)
    description: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None


class FeatureToggleRead(BaseModel):
    key: str
    enabled: bool
    rollout_percent: int
    description: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = Field(None, validation_alias="metadata_")
    updated_at: datetime

    class Config:
        from_attributes = True


class FeatureEvaluation(BaseModel):
    key: str
    enabled: bool


# Audit
class AuditLogRead(BaseModel):
    id: UUID
    action: str
    user_id: Optional[UUID] = None
    actor_email: Optional[str] = None
    entity: Optional[str] = None
    entity_id: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = Field(None, validation_alias="metadata_")
    ip_address: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class AuditLogList(BaseModel):
    logs: List[AuditLogRead]
    total: int
    page: int
    limit: int
    pages: int
