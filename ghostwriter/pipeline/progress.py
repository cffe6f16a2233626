"""
Weighted progress model.

Each phase owns a fixed fraction of the run. A phase's base progress is the
sum of the fractions of every phase before it, so progress reported inside a
phase is base + sub_progress * weight and never moves backwards across
phases.
"""

from __future__ import annotations

import asyncio
import time
import uuid
from dataclasses import dataclass, field
from datetime import timedelta
from types import MappingProxyType
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

from ghostwriter.models.enums import ProgressPhase
from ghostwriter.utils.logging_config import get_logger

logger = get_logger(__name__)

PHASE_ORDER: Tuple[ProgressPhase, ...] = (
    ProgressPhase.INITIALIZING,
    ProgressPhase.RESEARCHING,
    ProgressPhase.PLANNING,
    ProgressPhase.WRITING,
    ProgressPhase.EDITING,
    ProgressPhase.ATTRIBUTING,
    ProgressPhase.COMPLETED,
)

PLANNING_WEIGHT = 0.20
WRITING_WEIGHT = 0.60
EDITING_WEIGHT = 0.20

PROGRESS_CHANNEL_SIZE = 10


class PhaseWeights:
    """Immutable table of phase weights over the canonical phase order."""

    def __init__(self, weights: Mapping[ProgressPhase, float]):
        unknown = set(weights) - set(PHASE_ORDER)
        if unknown:
            raise ValueError(f"unknown phases in weight table: {unknown}")
        if any(w < 0 for w in weights.values()):
            raise ValueError("phase weights must be non-negative")
        total = sum(weights.values())
        if abs(total - 1.0) > 1e-9:
            raise ValueError(f"phase weights must sum to 1.0, got {total}")
        self._weights = {phase: float(weights.get(phase, 0.0)) for phase in PHASE_ORDER}

    def weight(self, phase: ProgressPhase) -> float:
        return self._weights[phase]

    def base(self, phase: ProgressPhase) -> float:
        """Cumulative weight of every phase strictly before phase."""
        if phase == ProgressPhase.COMPLETED:
            return 1.0
        total = 0.0
        for candidate in PHASE_ORDER:
            if candidate == phase:
                return total
            total += self._weights[candidate]
        raise ValueError(f"unknown phase: {phase}")


DEFAULT_PHASE_WEIGHTS = PhaseWeights(
    {
        ProgressPhase.PLANNING: PLANNING_WEIGHT,
        ProgressPhase.WRITING: WRITING_WEIGHT,
        ProgressPhase.EDITING: EDITING_WEIGHT,
    }
)

RESEARCH_PHASE_WEIGHTS = PhaseWeights(
    {
        ProgressPhase.RESEARCHING: 0.15,
        ProgressPhase.PLANNING: 0.15,
        ProgressPhase.WRITING: 0.50,
        ProgressPhase.EDITING: 0.20,
    }
)


def get_phase_base_progress(phase: ProgressPhase) -> float:
    """Base progress of a phase under the default weights."""
    return DEFAULT_PHASE_WEIGHTS.base(phase)


@dataclass(frozen=True)
class ProgressEvent:
    phase: ProgressPhase
    step: str
    progress: float
    elapsed_time: timedelta
    estimated_time_remaining: timedelta
    details: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    id: str = field(default_factory=lambda: uuid.uuid4().hex)


ProgressCallback = Callable[[ProgressEvent], None]


def estimate_remaining(elapsed: float, progress: float) -> float:
    """Linear extrapolation; zero when nothing or everything is done."""
    if 0.0 < progress < 1.0:
        return elapsed / progress - elapsed
    return 0.0


class ProgressTracker:
    """Turns (phase, step, fraction) reports into ProgressEvents for one run."""

    def __init__(
        self,
        callback: Optional[ProgressCallback] = None,
        weights: PhaseWeights = DEFAULT_PHASE_WEIGHTS,
        start_time: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._callback = callback
        self.weights = weights
        self._clock = clock
        self.start_time = clock() if start_time is None else start_time

    def base_progress(self, phase: ProgressPhase) -> float:
        return self.weights.base(phase)

    def phase_weight(self, phase: ProgressPhase) -> float:
        return self.weights.weight(phase)

    def emit_progress(
        self,
        phase: ProgressPhase,
        step: str,
        progress: float,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        if self._callback is None:
            return
        if phase == ProgressPhase.COMPLETED:
            progress = 1.0
        progress = min(max(progress, 0.0), 1.0)
        elapsed = max(self._clock() - self.start_time, 0.0)
        event = ProgressEvent(
            phase=phase,
            step=step,
            progress=progress,
            elapsed_time=timedelta(seconds=elapsed),
            estimated_time_remaining=timedelta(seconds=estimate_remaining(elapsed, progress)),
            details=MappingProxyType(dict(details or {})),
        )
        try:
            self._callback(event)
        except Exception as e:
            logger.warning(f"Progress callback failed on {phase.value}/{step}: {e}")

    def emit_sub_progress(
        self,
        phase: ProgressPhase,
        step: str,
        base: float,
        sub_progress: float,
        weight: float,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        merged = dict(details or {})
        merged["sub_progress"] = sub_progress
        merged["phase_weight"] = weight
        self.emit_progress(phase, step, base + sub_progress * weight, merged)

    def emit_phase_progress(
        self,
        phase: ProgressPhase,
        step: str,
        sub_progress: float,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Sub progress within phase using this tracker's weight table."""
        self.emit_sub_progress(
            phase, step, self.base_progress(phase), sub_progress, self.phase_weight(phase), details
        )

    def emit_phase_start(self, phase: ProgressPhase, step: str, details: Optional[Dict[str, Any]] = None) -> None:
        merged = {"phase_start": True, **(details or {})}
        self.emit_progress(phase, step, self.base_progress(phase), merged)

    def emit_phase_complete(self, phase: ProgressPhase, step: str, details: Optional[Dict[str, Any]] = None) -> None:
        merged = {"phase_complete": True, **(details or {})}
        self.emit_progress(phase, step, self.base_progress(phase) + self.phase_weight(phase), merged)


def progress_event_channel(maxsize: int = PROGRESS_CHANNEL_SIZE) -> Tuple[asyncio.Queue, ProgressCallback]:
    """
    Bounded queue of progress events plus a callback feeding it.

    The callback never blocks: when the queue is full the event is dropped.
    """
    queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)

    def publish(event: ProgressEvent) -> None:
        try:
            queue.put_nowait(event)
        except asyncio.QueueFull:
            logger.debug(f"Progress queue full; dropped {event.phase.value}/{event.step}")

    return queue, publish
