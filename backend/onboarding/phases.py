"""
Onboarding phase tracker — ordered setup wizard state machine.

Phase kinds:
  - self-navigating: the phase's own content moves the wizard on; no
    generic Back/Next controls
  - skippable:       Skip is offered and records {completed, skipped}
  - interstitial:    runs a one-time side effect, then auto-advances

Transitions: next, back, skip, finish. The index is clamped to
[0, N-1]; only finish (at the last phase) ends the wizard. Going back
never un-completes a phase.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Mapping

from compliance.errors import ConfigurationError, PhaseTransitionError


@dataclass(frozen=True)
class PhaseConfig:
    key: str
    title: str
    skippable: bool = False
    self_navigating: bool = False
    interstitial: bool = False


PHASES: tuple[PhaseConfig, ...] = (
    PhaseConfig("self_audit", "Self-Audit", self_navigating=True),
    PhaseConfig("compliance", "Compliance Sections", self_navigating=True),
    PhaseConfig("green_shield", "Green Shield", interstitial=True),
    PhaseConfig("temp_setup", "Temperature Equipment", skippable=True),
    PhaseConfig("suppliers", "Suppliers", skippable=True),
    PhaseConfig("receiving", "Receiving", interstitial=True),
    PhaseConfig("team_training", "Team Training", skippable=True),
    PhaseConfig("folder_preview", "Your Compliance Folder", interstitial=True),
)


def validate_phases(phases: tuple[PhaseConfig, ...]) -> None:
    if not phases:
        raise ConfigurationError("Onboarding needs at least one phase")
    keys = [p.key for p in phases]
    if len(set(keys)) != len(keys):
        raise ConfigurationError("Duplicate onboarding phase key")


@dataclass
class PhaseState:
    completed: bool = False
    skipped: bool = False

    def to_payload(self) -> dict[str, bool]:
        payload = {"completed": self.completed}
        if self.skipped:
            payload["skipped"] = True
        return payload

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any] | None) -> PhaseState:
        payload = payload or {}
        return cls(completed=bool(payload.get("completed")), skipped=bool(payload.get("skipped")))


@dataclass
class OnboardingProgress:
    current_phase: int = 0
    phase_data: dict[str, PhaseState] = field(default_factory=dict)
    finished: bool = False

    def state(self, key: str) -> PhaseState:
        return self.phase_data.setdefault(key, PhaseState())

    def payload(self) -> dict[str, dict[str, bool]]:
        return {key: state.to_payload() for key, state in self.phase_data.items()}


class OnboardingTracker:
    """Pure in-memory transitions; persistence lives in onboarding.progress."""

    def __init__(
        self,
        phases: tuple[PhaseConfig, ...] = PHASES,
        progress: OnboardingProgress | None = None,
        on_finish: Callable[[OnboardingProgress], None] | None = None,
    ):
        validate_phases(phases)
        self.phases = phases
        self.progress = progress or OnboardingProgress()
        self._on_finish = on_finish

        # Resume: drop unknown phases, clamp a stale index
        known = {p.key for p in phases}
        self.progress.phase_data = {k: v for k, v in self.progress.phase_data.items() if k in known}
        self.progress.current_phase = min(max(self.progress.current_phase, 0), len(phases) - 1)

    @property
    def index(self) -> int:
        return self.progress.current_phase

    @property
    def phase(self) -> PhaseConfig:
        return self.phases[self.index]

    @property
    def is_first(self) -> bool:
        return self.index == 0

    @property
    def is_last(self) -> bool:
        return self.index == len(self.phases) - 1

    @property
    def finished(self) -> bool:
        return self.progress.finished

    @property
    def show_navigation_controls(self) -> bool:
        return not self.phase.self_navigating

    def completed_keys(self) -> list[str]:
        return [p.key for p in self.phases if self.progress.phase_data.get(p.key, PhaseState()).completed]

    def _ensure_active(self, action: str) -> None:
        if self.progress.finished:
            raise PhaseTransitionError(f"Onboarding is already finished; cannot {action}")

    def next(self) -> None:
        self._ensure_active("go next")
        if self.is_last:
            return
        self.progress.state(self.phase.key).completed = True
        self.progress.current_phase += 1

    def back(self) -> None:
        self._ensure_active("go back")
        if self.is_first:
            return
        self.progress.current_phase -= 1

    def skip(self) -> None:
        self._ensure_active("skip")
        if not self.phase.skippable:
            raise PhaseTransitionError(f"{self.phase.title} cannot be skipped")
        state = self.progress.state(self.phase.key)
        state.completed = True
        state.skipped = True
        if not self.is_last:
            self.progress.current_phase += 1

    def finish(self) -> None:
        self._ensure_active("finish")
        if not self.is_last:
            raise PhaseTransitionError(f"Finish is only available on {self.phases[-1].title}")
        self.progress.state(self.phase.key).completed = True
        self.progress.finished = True
        if self._on_finish is not None:
            self._on_finish(self.progress)
