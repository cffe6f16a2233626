"""LLM-backed role handlers and factories for the roles the orchestrator runs."""

from typing import Optional

from ghostwriter.llm.base_client import CompletionClient
from ghostwriter.models.config import RoleSettings
from ghostwriter.pipeline.role import Role

from .editor import EditorHandler
from .planner import PlannerHandler
from .researcher import ResearcherHandler
from .writer import WriterHandler


def create_planner(client: CompletionClient, settings: Optional[RoleSettings] = None) -> Role:
    settings = settings or RoleSettings()
    handler = PlannerHandler(client, settings.planner_temperature, settings.max_tool_iterations)
    return Role("planner", handler)


def create_writer(
    client: CompletionClient,
    settings: Optional[RoleSettings] = None,
    name: str = "writer",
    concurrency: int = 4,
) -> Role:
    """A writer can hold several section assignments at once, up to concurrency."""
    settings = settings or RoleSettings()
    handler = WriterHandler(client, settings.writer_temperature, settings.max_tool_iterations)
    return Role(name, handler, concurrency=concurrency)


def create_editor(client: CompletionClient, settings: Optional[RoleSettings] = None) -> Role:
    settings = settings or RoleSettings()
    return Role("editor", EditorHandler(client, settings.editor_temperature, settings.max_tool_iterations))


def create_researcher(client: CompletionClient, settings: Optional[RoleSettings] = None) -> Role:
    settings = settings or RoleSettings()
    handler = ResearcherHandler(client, settings.researcher_temperature, settings.max_tool_iterations)
    return Role("researcher", handler)


__all__ = [
    "EditorHandler",
    "PlannerHandler",
    "ResearcherHandler",
    "WriterHandler",
    "create_editor",
    "create_planner",
    "create_researcher",
    "create_writer",
]
