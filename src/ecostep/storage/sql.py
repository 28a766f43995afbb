"""SQLAlchemy-backed CarbonStore.

One store wraps one request-scoped AsyncSession. Every write commits its own
transaction, so an activity row stays durable even when a later accounting
step fails.

Transient errors are retried, and a commit can succeed even though its
acknowledgement is lost. Non-idempotent writes therefore tag their row with a
per-call write id, and a retry first checks whether that id already landed.
"""

from __future__ import annotations

import uuid
from collections.abc import Awaitable, Callable, Iterable
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, TypeVar

import structlog
from sqlalchemy import select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ecostep.db.models import AchievementRow, ActivityRow, ProfileRow, UserAchievementRow
from ecostep.errors import StorageFailureError
from ecostep.storage.base import (
    Achievement,
    AchievementDefinition,
    Activity,
    Profile,
    UserAchievement,
)
from ecostep.storage.retry import RetryPolicy, retry_transient

logger = structlog.get_logger()

T = TypeVar("T")


def _utc(dt: datetime | None) -> datetime | None:
    """SQLite drops tzinfo on read; all stored timestamps are UTC."""
    if dt is not None and dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def _to_profile(row: ProfileRow) -> Profile:
    return Profile(
        user_id=row.user_id,
        carbon_saved=Decimal(row.carbon_saved),
        level=row.level,
        version=row.version,
        created_at=_utc(row.created_at),
    )


def _to_activity(row: ActivityRow) -> Activity:
    return Activity(
        id=row.id,
        user_id=row.user_id,
        category=row.category,
        activity_type=row.activity_type,
        quantity=Decimal(row.quantity),
        carbon_impact=Decimal(row.carbon_impact),
        created_at=_utc(row.created_at),
    )


def _to_achievement(row: AchievementRow) -> Achievement:
    return Achievement(
        id=row.id,
        slug=row.slug,
        name=row.name,
        description=row.description,
        carbon_required=Decimal(row.carbon_required),
        icon=row.icon,
    )


class SqlCarbonStore:
    """CarbonStore over an AsyncSession (PostgreSQL or SQLite)."""

    def __init__(self, db: AsyncSession, retry: RetryPolicy | None = None) -> None:
        self.db = db
        self.retry = retry or RetryPolicy()

    def _insert(self, model: type) -> Any:
        """Dialect insert supporting ON CONFLICT clauses."""
        dialect = self.db.get_bind().dialect.name
        if dialect == "postgresql":
            return pg_insert(model)
        if dialect == "sqlite":
            return sqlite_insert(model)
        msg = f"Unsupported database dialect: {dialect}"
        raise RuntimeError(msg)

    async def _run(self, name: str, operation: Callable[[], Awaitable[T]]) -> T:
        """Retry transient errors, then translate any store error to STORAGE_FAILURE."""
        try:
            return await retry_transient(
                operation, self.retry, name=name, on_failure=self.db.rollback
            )
        except SQLAlchemyError as exc:
            logger.error("storage_failure", operation=name, error=str(exc))
            raise StorageFailureError from exc

    # --- Profiles ---

    async def _fetch_profile(self, user_id: str) -> Profile | None:
        result = await self.db.execute(
            select(ProfileRow)
            .where(ProfileRow.user_id == user_id)
            .execution_options(populate_existing=True)
        )
        row = result.scalar_one_or_none()
        return _to_profile(row) if row is not None else None

    async def get_profile(self, user_id: str) -> Profile | None:
        return await self._run("get_profile", lambda: self._fetch_profile(user_id))

    async def ensure_profile(self, user_id: str) -> Profile:
        async def _op() -> Profile:
            stmt = self._insert(ProfileRow).values(
                user_id=user_id,
                carbon_saved=Decimal(0),
                level=1,
                version=0,
                created_at=datetime.now(timezone.utc),
            )
            # a concurrent or retried creator leaves the existing row untouched
            await self.db.execute(stmt.on_conflict_do_nothing(index_elements=["user_id"]))
            await self.db.commit()
            profile = await self._fetch_profile(user_id)
            if profile is None:
                msg = f"profile {user_id} missing after insert"
                raise StorageFailureError(msg)
            return profile

        return await self._run("ensure_profile", _op)

    async def compare_and_set_saving(
        self,
        user_id: str,
        expected_version: int,
        carbon_saved: Decimal,
        level: int,
    ) -> bool:
        write_id = str(uuid.uuid4())
        attempted = False

        async def _op() -> bool:
            nonlocal attempted
            if attempted:
                # the previous attempt may have committed before its error surfaced
                landed = await self.db.scalar(
                    select(ProfileRow.last_write_id).where(ProfileRow.user_id == user_id)
                )
                if landed == write_id:
                    return True
            attempted = True

            result = await self.db.execute(
                update(ProfileRow)
                .where(
                    ProfileRow.user_id == user_id,
                    ProfileRow.version == expected_version,
                )
                .values(
                    carbon_saved=carbon_saved,
                    level=level,
                    version=expected_version + 1,
                    last_write_id=write_id,
                )
                .execution_options(synchronize_session=False)
            )
            await self.db.commit()
            return result.rowcount == 1

        return await self._run("compare_and_set_saving", _op)

    # --- Activities ---

    async def _fetch_activity(self, write_id: str) -> Activity | None:
        result = await self.db.execute(
            select(ActivityRow)
            .where(ActivityRow.write_id == write_id)
            .execution_options(populate_existing=True)
        )
        row = result.scalar_one_or_none()
        return _to_activity(row) if row is not None else None

    async def insert_activity(
        self,
        user_id: str,
        category: str,
        activity_type: str,
        quantity: Decimal,
        carbon_impact: Decimal,
    ) -> Activity:
        write_id = str(uuid.uuid4())
        attempted = False

        async def _op() -> Activity:
            nonlocal attempted
            if attempted:
                existing = await self._fetch_activity(write_id)
                if existing is not None:
                    return existing
            attempted = True

            row = ActivityRow(
                user_id=user_id,
                category=category,
                activity_type=activity_type,
                quantity=quantity,
                carbon_impact=carbon_impact,
                created_at=datetime.now(timezone.utc),
                write_id=write_id,
            )
            self.db.add(row)
            await self.db.flush()
            await self.db.commit()
            return _to_activity(row)

        return await self._run("insert_activity", _op)

    async def list_activities(
        self,
        user_id: str,
        limit: int | None = None,
        newest_first: bool = True,
    ) -> list[Activity]:
        async def _op() -> list[Activity]:
            if newest_first:
                order = (ActivityRow.created_at.desc(), ActivityRow.id.desc())
            else:
                order = (ActivityRow.created_at.asc(), ActivityRow.id.asc())
            stmt = select(ActivityRow).where(ActivityRow.user_id == user_id).order_by(*order)
            if limit is not None:
                stmt = stmt.limit(limit)
            result = await self.db.execute(stmt)
            return [_to_activity(row) for row in result.scalars()]

        return await self._run("list_activities", _op)

    # --- Achievements ---

    async def list_achievements(self, max_required: Decimal | None = None) -> list[Achievement]:
        async def _op() -> list[Achievement]:
            stmt = select(AchievementRow).order_by(
                AchievementRow.carbon_required.asc(), AchievementRow.id.asc()
            )
            if max_required is not None:
                stmt = stmt.where(AchievementRow.carbon_required <= max_required)
            result = await self.db.execute(stmt)
            return [_to_achievement(row) for row in result.scalars()]

        return await self._run("list_achievements", _op)

    async def upsert_achievements(self, definitions: Iterable[AchievementDefinition]) -> int:
        items = list(definitions)

        async def _op() -> int:
            for d in items:
                stmt = self._insert(AchievementRow).values(
                    slug=d.slug,
                    name=d.name,
                    description=d.description,
                    icon=d.icon,
                    carbon_required=d.carbon_required,
                )
                stmt = stmt.on_conflict_do_update(
                    index_elements=["slug"],
                    set_={
                        "name": stmt.excluded.name,
                        "description": stmt.excluded.description,
                        "icon": stmt.excluded.icon,
                        "carbon_required": stmt.excluded.carbon_required,
                    },
                )
                await self.db.execute(stmt)
            await self.db.commit()
            return len(items)

        return await self._run("upsert_achievements", _op)

    # --- User achievements ---

    async def insert_user_achievement(self, user_id: str, achievement_id: int) -> bool:
        async def _op() -> bool:
            stmt = self._insert(UserAchievementRow).values(
                user_id=user_id,
                achievement_id=achievement_id,
                unlocked_at=datetime.now(timezone.utc),
            )
            stmt = stmt.on_conflict_do_nothing(index_elements=["user_id", "achievement_id"])
            result = await self.db.execute(stmt)
            await self.db.commit()
            # 0 rows: already unlocked (the unique pair absorbed the insert)
            return result.rowcount == 1

        return await self._run("insert_user_achievement", _op)

    async def list_user_achievements(self, user_id: str) -> list[UserAchievement]:
        async def _op() -> list[UserAchievement]:
            result = await self.db.execute(
                select(UserAchievementRow)
                .where(UserAchievementRow.user_id == user_id)
                .order_by(UserAchievementRow.unlocked_at.asc(), UserAchievementRow.id.asc())
            )
            return [
                UserAchievement(
                    user_id=row.user_id,
                    achievement=_to_achievement(row.achievement),
                    unlocked_at=_utc(row.unlocked_at),
                )
                for row in result.scalars()
            ]

        return await self._run("list_user_achievements", _op)
