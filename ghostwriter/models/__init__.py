"""Data models for ghostwriter."""

from ghostwriter.models.config import (
    LLMSettings,
    LoggingSettings,
    OrchestratorOptions,
    OrchestratorSettings,
    RoleSettings,
    SettingsConfig,
)
from ghostwriter.models.document import (
    Document,
    DocumentPlan,
    DocumentSection,
    SectionContent,
    Source,
)
from ghostwriter.models.enums import ProgressPhase, ResearchDepth, RoleKind, SourceType
from ghostwriter.models.research import ResearchDocument

__all__ = [
    "Document",
    "DocumentPlan",
    "DocumentSection",
    "LLMSettings",
    "LoggingSettings",
    "OrchestratorOptions",
    "OrchestratorSettings",
    "ProgressPhase",
    "ResearchDepth",
    "ResearchDocument",
    "RoleKind",
    "RoleSettings",
    "SectionContent",
    "SettingsConfig",
    "Source",
    "SourceType",
]
