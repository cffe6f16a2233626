"""Shared enumerations."""

from __future__ import annotations

from enum import Enum
from typing import Tuple


class ProgressPhase(str, Enum):
    INITIALIZING = "initializing"
    RESEARCHING = "researching"
    PLANNING = "planning"
    WRITING = "writing"
    EDITING = "editing"
    ATTRIBUTING = "attributing"
    COMPLETED = "completed"


class ResearchDepth(str, Enum):
    BASIC = "basic"
    DEEP = "deep"
    DEEP_WEB = "deep_web"
    ACADEMIC = "academic"

    @property
    def iteration_bounds(self) -> Tuple[int, int]:
        """(min, max) tool-loop iterations for a research-backed task."""
        return _DEPTH_ITERATIONS[self]


_DEPTH_ITERATIONS = {
    ResearchDepth.BASIC: (2, 4),
    ResearchDepth.DEEP: (3, 6),
    ResearchDepth.DEEP_WEB: (4, 8),
    ResearchDepth.ACADEMIC: (5, 10),
}


class RoleKind(str, Enum):
    PLANNER = "planner"
    WRITER = "writer"
    EDITOR = "editor"
    RESEARCHER = "researcher"


class SourceType(str, Enum):
    WEB = "web"
    ACADEMIC = "academic"
    NEWS = "news"
    DOCUMENTATION = "documentation"
    BOOK = "book"
    OTHER = "other"
