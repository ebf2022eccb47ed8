"""
Onboarding progress persistence.

One onboarding_progress row per (org, user), upserted after every
transition so an interrupted wizard resumes at the saved phase with its
completion flags intact.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Awaitable, Callable

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from compliance.errors import PhaseTransitionError
from core.identity import IdentityContext
from db.models import OnboardingProgressRow
from onboarding.phases import PHASES, OnboardingProgress, OnboardingTracker, PhaseConfig, PhaseState

logger = structlog.get_logger()


async def _get_row(db: AsyncSession, org_id: uuid.UUID, user_id: str) -> OnboardingProgressRow | None:
    result = await db.execute(
        select(OnboardingProgressRow).where(
            OnboardingProgressRow.org_id == org_id,
            OnboardingProgressRow.user_id == user_id,
        )
    )
    return result.scalar_one_or_none()


async def load_progress(db: AsyncSession, org_id: uuid.UUID, user_id: str) -> OnboardingProgress:
    """Saved progress, or a fresh start when the user has none."""
    row = await _get_row(db, org_id, user_id)
    if row is None:
        return OnboardingProgress()
    return OnboardingProgress(
        current_phase=row.current_phase,
        phase_data={key: PhaseState.from_payload(value) for key, value in (row.phase_data or {}).items()},
        finished=row.completed_at is not None,
    )


async def save_progress(
    db: AsyncSession,
    org_id: uuid.UUID,
    user_id: str,
    progress: OnboardingProgress,
) -> OnboardingProgressRow:
    row = await _get_row(db, org_id, user_id)
    if row is None:
        row = OnboardingProgressRow(org_id=org_id, user_id=user_id)
        db.add(row)
    row.current_phase = progress.current_phase
    row.phase_data = progress.payload()
    if progress.finished and row.completed_at is None:
        row.completed_at = datetime.now(timezone.utc).replace(tzinfo=None)
    await db.commit()
    return row


class OnboardingFlow:
    """Tracker transitions with a save after each one."""

    def __init__(
        self,
        db: AsyncSession,
        identity: IdentityContext,
        tracker: OnboardingTracker,
        on_finish: Callable[[OnboardingProgress], Awaitable[None]] | None = None,
    ):
        self.db = db
        self.identity = identity
        self.tracker = tracker
        self._on_finish = on_finish

    @classmethod
    async def resume(
        cls,
        db: AsyncSession,
        identity: IdentityContext,
        phases: tuple[PhaseConfig, ...] = PHASES,
        on_finish: Callable[[OnboardingProgress], Awaitable[None]] | None = None,
    ) -> OnboardingFlow:
        progress = await load_progress(db, identity.org_id, identity.user_id)
        return cls(db, identity, OnboardingTracker(phases, progress), on_finish=on_finish)

    async def _save(self, action: str, from_phase: str) -> None:
        await save_progress(self.db, self.identity.org_id, self.identity.user_id, self.tracker.progress)
        logger.info(
            "onboarding.transition",
            org_id=str(self.identity.org_id),
            user_id=self.identity.user_id,
            action=action,
            from_phase=from_phase,
            to_phase=self.tracker.phase.key,
        )

    async def next(self) -> None:
        from_phase = self.tracker.phase.key
        self.tracker.next()
        await self._save("next", from_phase)

    async def back(self) -> None:
        from_phase = self.tracker.phase.key
        self.tracker.back()
        await self._save("back", from_phase)

    async def skip(self) -> None:
        from_phase = self.tracker.phase.key
        self.tracker.skip()
        await self._save("skip", from_phase)

    async def finish(self) -> None:
        self.tracker.finish()
        await save_progress(self.db, self.identity.org_id, self.identity.user_id, self.tracker.progress)
        logger.info("onboarding.finished", org_id=str(self.identity.org_id), user_id=self.identity.user_id)
        if self._on_finish is not None:
            await self._on_finish(self.tracker.progress)

    async def complete_interstitial(self, effect: Callable[[], Awaitable[object]]) -> None:
        """
        Run the phase's one-time side effect, then move on.

        If the effect raises, nothing advances and nothing is saved. A phase
        already completed (reached again via back) advances without running
        the effect. The last phase finishes the wizard instead of advancing.
        """
        if self.tracker.finished:
            raise PhaseTransitionError("Onboarding is already finished")
        if not self.tracker.phase.interstitial:
            raise PhaseTransitionError(f"{self.tracker.phase.title} is not an interstitial phase")
        if not self.tracker.progress.state(self.tracker.phase.key).completed:
            await effect()
        if self.tracker.is_last:
            await self.finish()
        else:
            await self.next()
