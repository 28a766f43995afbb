"""Carbon-saved accumulator with optimistic-concurrency level updates."""

from __future__ import annotations

import asyncio
from dataclasses import replace
from decimal import Decimal

import structlog

from ecostep.carbon.levels import compute_level
from ecostep.errors import ConflictError, InvalidInputError, NotFoundError
from ecostep.storage.base import CarbonStore, Profile

logger = structlog.get_logger()


class Accumulator:
    """Adds carbon savings to a user's profile without lost updates.

    Each attempt reads the profile version, computes the new total and level,
    and writes only if the version is unchanged. A losing writer re-reads and
    tries again, up to max_attempts.
    """

    def __init__(
        self,
        store: CarbonStore,
        max_attempts: int = 5,
        backoff_seconds: float = 0.01,
    ) -> None:
        self.store = store
        self.max_attempts = max(1, max_attempts)
        self.backoff_seconds = backoff_seconds

    async def apply_saving(self, user_id: str, amount: Decimal) -> Profile:
        """Add amount (> 0) to the accumulator and return the updated profile."""
        amount = Decimal(amount)
        if not amount.is_finite() or amount <= 0:
            raise InvalidInputError("Saving amount must be a positive number")

        for attempt in range(1, self.max_attempts + 1):
            profile = await self.store.get_profile(user_id)
            if profile is None:
                raise NotFoundError(f"No profile for user {user_id}")

            new_total = profile.carbon_saved + amount
            new_level = compute_level(new_total)

            if await self.store.compare_and_set_saving(
                user_id, profile.version, new_total, new_level
            ):
                if new_level > profile.level:
                    logger.info(
                        "level_up",
                        user_id=user_id,
                        old_level=profile.level,
                        new_level=new_level,
                    )
                logger.info(
                    "carbon_saving_applied",
                    user_id=user_id,
                    amount=str(amount),
                    total=str(new_total),
                    attempt=attempt,
                )
                return replace(
                    profile,
                    carbon_saved=new_total,
                    level=new_level,
                    version=profile.version + 1,
                )

            logger.debug("accumulator_conflict", user_id=user_id, attempt=attempt)
            if attempt < self.max_attempts and self.backoff_seconds > 0:
                await asyncio.sleep(self.backoff_seconds * attempt)

        logger.warning("accumulator_conflict_exhausted", user_id=user_id, attempts=self.max_attempts)
        raise ConflictError(f"Could not apply saving for user {user_id} after {self.max_attempts} attempts")
