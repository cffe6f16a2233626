"""Pipeline orchestration: events, progress, role runtime and the orchestrator."""

from .events import (
    DocumentPlanEvent,
    EditRequestEvent,
    FinalArticleEvent,
    MessageEvent,
    PipelineEvent,
    ResearchCompleteEvent,
    ResearchRequestEvent,
    RunConfig,
    SectionAssignmentEvent,
    SectionContentEvent,
)
from .orchestrator import Orchestrator
from .progress import (
    DEFAULT_PHASE_WEIGHTS,
    RESEARCH_PHASE_WEIGHTS,
    PhaseWeights,
    ProgressEvent,
    ProgressTracker,
    get_phase_base_progress,
    progress_event_channel,
)
from .role import Role, RoleClient
from .writer_pool import WriterPool

__all__ = [
    "DEFAULT_PHASE_WEIGHTS",
    "RESEARCH_PHASE_WEIGHTS",
    "DocumentPlanEvent",
    "EditRequestEvent",
    "FinalArticleEvent",
    "MessageEvent",
    "Orchestrator",
    "PhaseWeights",
    "PipelineEvent",
    "ProgressEvent",
    "ProgressTracker",
    "ResearchCompleteEvent",
    "ResearchRequestEvent",
    "Role",
    "RoleClient",
    "RunConfig",
    "SectionAssignmentEvent",
    "SectionContentEvent",
    "WriterPool",
    "get_phase_base_progress",
    "progress_event_channel",
]
