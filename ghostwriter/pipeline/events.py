"""
Pipeline event protocol.

Every message between the orchestrator and a role is an immutable event with
a unique id, the request it answers (origin), and the run configuration the
role should work under. Responses are matched to requests by origin id.
"""

from __future__ import annotations

import dataclasses
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict

from ghostwriter.knowledge.store import KnowledgeBase
from ghostwriter.models.document import Document, DocumentPlan, DocumentSection, SectionContent
from ghostwriter.models.enums import ResearchDepth, RoleKind
from ghostwriter.pipeline.progress import ProgressTracker
from ghostwriter.tools.tool_registry import Tool


def new_event_id() -> str:
    return uuid.uuid4().hex


class RunConfig(BaseModel):
    """Configuration a role receives with every event it handles."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    subject: str = ""
    target_word_count: int = 0
    research_depth: ResearchDepth = ResearchDepth.DEEP
    writer_id: str = ""
    style_guidelines: str = ""
    additional_context: str = ""
    role: Optional[RoleKind] = None
    knowledge_base: Optional[KnowledgeBase] = None
    tools: Tuple[Tool, ...] = ()
    progress: Optional[ProgressTracker] = None

    def for_role(self, role: RoleKind, **updates: Any) -> RunConfig:
        return self.model_copy(update={"role": role, **updates})


@dataclass(frozen=True)
class PipelineEvent:
    config: RunConfig = field(default_factory=RunConfig)
    origin: Optional[PipelineEvent] = field(default=None, repr=False, compare=False)
    id: str = field(default_factory=new_event_id)

    @property
    def origin_id(self) -> Optional[str]:
        return self.origin.id if self.origin is not None else None

    def with_config(self, config: RunConfig) -> PipelineEvent:
        """Same event (same id) carrying a different configuration."""
        return dataclasses.replace(self, config=config)


@dataclass(frozen=True)
class MessageEvent(PipelineEvent):
    """Initiating message; for the planner it carries the subject."""

    message: str = ""


@dataclass(frozen=True)
class DocumentPlanEvent(PipelineEvent):
    plan: Optional[DocumentPlan] = None
    subject: str = ""


@dataclass(frozen=True)
class SectionAssignmentEvent(PipelineEvent):
    section: Optional[DocumentSection] = None
    subject: str = ""
    index: int = 0
    plan_title: str = ""


@dataclass(frozen=True)
class SectionContentEvent(PipelineEvent):
    content: Optional[SectionContent] = None


@dataclass(frozen=True)
class EditRequestEvent(PipelineEvent):
    title: str = ""
    subject: str = ""
    sections: Tuple[SectionContent, ...] = ()
    plan: Optional[DocumentPlan] = None


@dataclass(frozen=True)
class FinalArticleEvent(PipelineEvent):
    article: Optional[Document] = None


@dataclass(frozen=True)
class ResearchRequestEvent(PipelineEvent):
    subject: str = ""
    depth: ResearchDepth = ResearchDepth.DEEP


@dataclass(frozen=True)
class ResearchCompleteEvent(PipelineEvent):
    stats: Dict[str, Any] = field(default_factory=dict, compare=False)
