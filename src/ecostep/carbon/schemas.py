"""Pydantic request/response models for carbon endpoints."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field


# --- Requests ---


class ActivityCreateRequest(BaseModel):
    """Body of POST /activities (camelCase keys as sent by the dashboard)."""

    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(alias="userId", min_length=1)
    category: str = Field(min_length=1)
    activity_type: str = Field(alias="activityType", min_length=1)
    value: Decimal
    carbon_impact: Decimal = Field(alias="carbonImpact")


class ImpactEstimateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    category: str = Field(min_length=1)
    activity_type: str = Field(alias="activityType", min_length=1)
    value: Decimal


# --- Activities ---


class ActivityResponse(BaseModel):
    id: int
    user_id: str
    category: str
    activity_type: str
    value: float
    carbon_impact: float
    created_at: datetime


class AchievementResponse(BaseModel):
    id: int
    slug: str
    name: str
    description: str
    icon: str = ""
    carbon_required: float


class RecordActivityResponse(ActivityResponse):
    total_carbon_saved: float
    level: int
    unlocked_achievements: list[AchievementResponse] = []
    achievements_pending: bool = False


class ActivityListResponse(BaseModel):
    activities: list[ActivityResponse]


class ImpactEstimateResponse(BaseModel):
    category: str
    activity_type: str
    value: float
    carbon_impact: float
    baseline_impact: float
    is_saving: bool


# --- Profile / Summary ---


class ProfileResponse(BaseModel):
    user_id: str
    total_carbon_saved: float
    level: int
    created_at: datetime | None = None


class LevelProgressResponse(BaseModel):
    level: int
    carbon_into_level: float
    carbon_for_level: float
    next_level: int


class EquivalentsResponse(BaseModel):
    trees_planted: int
    car_miles_avoided: int
    energy_days: int


class UnlockedAchievementResponse(AchievementResponse):
    unlocked_at: datetime


class SummaryStatsResponse(BaseModel):
    total_activities: int
    total_carbon_saved: float
    carbon_by_category: dict[str, float]
    recent_activities: list[ActivityResponse]


class SummaryResponse(BaseModel):
    profile: ProfileResponse
    stats: SummaryStatsResponse
    achievements_count: int
    next_achievement: AchievementResponse | None = None
    achievements: list[UnlockedAchievementResponse] = []
    level_progress: LevelProgressResponse
    equivalents: EquivalentsResponse


# --- Achievement catalogue ---


class AchievementStatusResponse(AchievementResponse):
    unlocked: bool = False
    unlocked_at: datetime | None = None
    progress: int = 0  # percent toward this threshold


class AchievementListResponse(BaseModel):
    achievements: list[AchievementStatusResponse]
    total_carbon_saved: float = 0.0
