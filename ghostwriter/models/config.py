"""Configuration models loaded from YAML, plus per-run orchestrator options."""

from __future__ import annotations

from typing import Any, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from ghostwriter.models.enums import ResearchDepth
from ghostwriter.tools.tool_registry import Tool


class LLMSettings(BaseModel):
    base_url: str = "https://api.openai.com/v1"
    model: str = "gpt-4o-mini"
    api_key_env: str = Field(
        default="OPENAI_API_KEY",
        description="Name of the environment variable holding the API key.",
    )
    requests_per_minute: int = Field(ge=1, default=60)
    request_timeout: float = Field(gt=0, default=120.0)
    max_retries: int = Field(ge=1, default=3)
    circuit_failure_threshold: int = Field(ge=1, default=5)
    circuit_reset_timeout: float = Field(gt=0, default=5.0)


class RoleSettings(BaseModel):
    planner_temperature: float = Field(ge=0.0, le=2.0, default=0.7)
    writer_temperature: float = Field(ge=0.0, le=2.0, default=0.7)
    editor_temperature: float = Field(ge=0.0, le=2.0, default=0.2)
    researcher_temperature: float = Field(ge=0.0, le=2.0, default=0.3)
    max_tool_iterations: int = Field(ge=1, default=6)


class OrchestratorSettings(BaseModel):
    writer_count: int = Field(ge=1, default=3)
    max_concurrent_writers: int = Field(ge=1, default=3)
    timeout_seconds: float = Field(gt=0, default=1800.0)
    target_word_count: int = Field(gt=0, default=1500)
    research_depth: ResearchDepth = ResearchDepth.DEEP
    enable_research: bool = False
    use_knowledge_base: bool = True


class LoggingSettings(BaseModel):
    level: str = "normal"
    log_to_file: bool = False
    log_file: Optional[str] = None
    log_dir: Optional[str] = Field(
        default=None, description="Directory for the JSON-lines run log; disabled when unset."
    )


class SettingsConfig(BaseModel):
    llm: LLMSettings = Field(default_factory=LLMSettings)
    roles: RoleSettings = Field(default_factory=RoleSettings)
    orchestrator: OrchestratorSettings = Field(default_factory=OrchestratorSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


class OrchestratorOptions(BaseModel):
    """Options for a single document generation run."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    max_concurrent_writers: int = Field(ge=1, default=3)
    timeout: float = Field(gt=0, default=1800.0, description="Whole-run deadline in seconds.")
    target_word_count: int = Field(gt=0, default=1500)
    research_depth: ResearchDepth = ResearchDepth.DEEP
    style_guidelines: str = ""
    additional_context: str = ""
    tools: Tuple[Tool, ...] = ()
    use_knowledge_base: bool = True

    @classmethod
    def from_settings(cls, settings: OrchestratorSettings, **overrides: Any) -> OrchestratorOptions:
        values = {
            "max_concurrent_writers": settings.max_concurrent_writers,
            "timeout": settings.timeout_seconds,
            "target_word_count": settings.target_word_count,
            "research_depth": settings.research_depth,
            "use_knowledge_base": settings.use_knowledge_base,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)
