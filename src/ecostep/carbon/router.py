"""Carbon accounting endpoints: activities, summary, achievements, profiles."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from ecostep.carbon.achievements import achievement_progress, unlocked_map
from ecostep.carbon.factors import baseline_impact, estimate_impact, is_substitute, resolve_activity
from ecostep.carbon.recorder import ActivityRecorder, to_decimal
from ecostep.carbon.schemas import (
    AchievementListResponse,
    AchievementResponse,
    AchievementStatusResponse,
    ActivityCreateRequest,
    ActivityListResponse,
    ActivityResponse,
    EquivalentsResponse,
    ImpactEstimateRequest,
    ImpactEstimateResponse,
    LevelProgressResponse,
    ProfileResponse,
    RecordActivityResponse,
    SummaryResponse,
    SummaryStatsResponse,
    UnlockedAchievementResponse,
)
from ecostep.carbon.summary import build_summary
from ecostep.config import Settings
from ecostep.dependencies import get_app_settings, get_recorder, get_store
from ecostep.errors import InvalidInputError
from ecostep.storage.base import Achievement, Activity, CarbonStore, Profile

router = APIRouter(prefix="/api", tags=["Carbon"])


def _activity(a: Activity) -> ActivityResponse:
    return ActivityResponse(
        id=a.id,
        user_id=a.user_id,
        category=a.category,
        activity_type=a.activity_type,
        value=float(a.quantity),
        carbon_impact=float(a.carbon_impact),
        created_at=a.created_at,
    )


def _achievement(a: Achievement) -> AchievementResponse:
    return AchievementResponse(
        id=a.id,
        slug=a.slug,
        name=a.name,
        description=a.description,
        icon=a.icon,
        carbon_required=float(a.carbon_required),
    )


def _profile(p: Profile) -> ProfileResponse:
    return ProfileResponse(
        user_id=p.user_id,
        total_carbon_saved=float(p.carbon_saved),
        level=p.level,
        created_at=p.created_at,
    )


# ── Activities ──


@router.post("/activities", response_model=RecordActivityResponse, status_code=201)
async def create_activity(
    body: ActivityCreateRequest,
    recorder: ActivityRecorder = Depends(get_recorder),
):
    """Record an activity; savings feed the accumulator and achievements."""
    result = await recorder.record(
        user_id=body.user_id,
        category=body.category,
        activity_type=body.activity_type,
        quantity=body.value,
        carbon_impact=body.carbon_impact,
    )
    return RecordActivityResponse(
        **_activity(result.activity).model_dump(),
        total_carbon_saved=float(result.profile.carbon_saved),
        level=result.profile.level,
        unlocked_achievements=[_achievement(a) for a in result.unlocked],
        achievements_pending=result.achievements_pending,
    )


@router.post("/activities/estimate", response_model=ImpactEstimateResponse)
async def estimate_activity(body: ImpactEstimateRequest):
    """Preview the reported impact of an activity without recording it."""
    quantity = to_decimal(body.value, "value")
    if quantity <= 0:
        raise InvalidInputError("value must be greater than zero")
    cat, kind = resolve_activity(body.category, body.activity_type)
    impact = estimate_impact(cat, kind, quantity)

    return ImpactEstimateResponse(
        category=cat.value,
        activity_type=kind.value,
        value=float(quantity),
        carbon_impact=float(impact),
        baseline_impact=float(baseline_impact(cat, quantity)),
        is_saving=is_substitute(cat, kind) and impact < 0,
    )


@router.get("/users/{user_id}/activities", response_model=ActivityListResponse)
async def list_user_activities(
    user_id: str,
    limit: int = Query(5, ge=1, le=100),
    store: CarbonStore = Depends(get_store),
):
    """Most recent activities for a user, newest first."""
    activities = await store.list_activities(user_id, limit=limit, newest_first=True)
    return ActivityListResponse(activities=[_activity(a) for a in activities])


# ── Profiles ──


@router.put("/profiles/{user_id}", response_model=ProfileResponse)
async def ensure_profile(user_id: str, store: CarbonStore = Depends(get_store)):
    """Get-or-create the profile for a newly registered user."""
    if not user_id.strip():
        raise InvalidInputError("user_id is required")
    return _profile(await store.ensure_profile(user_id))


# ── Summary ──


@router.get("/summary/{user_id}", response_model=SummaryResponse)
async def get_summary(
    user_id: str,
    store: CarbonStore = Depends(get_store),
    settings: Settings = Depends(get_app_settings),
):
    """Dashboard summary: profile, stats, recent activity, achievements."""
    summary = await build_summary(store, user_id, recent_limit=settings.recent_activities_limit)
    stats = summary.stats

    return SummaryResponse(
        profile=_profile(summary.profile),
        stats=SummaryStatsResponse(
            total_activities=stats.total_activities,
            total_carbon_saved=float(stats.total_carbon_saved),
            carbon_by_category={k: float(v) for k, v in stats.carbon_by_category.items()},
            recent_activities=[_activity(a) for a in stats.recent_activities],
        ),
        achievements_count=summary.achievements_count,
        next_achievement=_achievement(summary.next_achievement) if summary.next_achievement else None,
        achievements=[
            UnlockedAchievementResponse(
                **_achievement(ua.achievement).model_dump(),
                unlocked_at=ua.unlocked_at,
            )
            for ua in summary.achievements
        ],
        level_progress=LevelProgressResponse(
            level=summary.level_progress["level"],
            carbon_into_level=float(summary.level_progress["carbon_into_level"]),
            carbon_for_level=float(summary.level_progress["carbon_for_level"]),
            next_level=summary.level_progress["next_level"],
        ),
        equivalents=EquivalentsResponse(**summary.equivalents),
    )


# ── Achievements ──


@router.get("/achievements", response_model=AchievementListResponse)
async def list_achievements(
    user_id: str | None = Query(None),
    store: CarbonStore = Depends(get_store),
):
    """Achievement catalogue, with unlock status and progress when user_id is given."""
    catalogue = await store.list_achievements()
    if user_id is None:
        return AchievementListResponse(
            achievements=[
                AchievementStatusResponse(**_achievement(a).model_dump()) for a in catalogue
            ]
        )

    profile = await store.get_profile(user_id) or Profile(user_id=user_id)
    unlocked = unlocked_map(await store.list_user_achievements(user_id))

    items = []
    for a in catalogue:
        row = unlocked.get(a.id)
        items.append(AchievementStatusResponse(
            **_achievement(a).model_dump(),
            unlocked=row is not None,
            unlocked_at=row.unlocked_at if row else None,
            progress=achievement_progress(a, catalogue, profile.carbon_saved, row is not None),
        ))

    return AchievementListResponse(
        achievements=items,
        total_carbon_saved=float(profile.carbon_saved),
    )
