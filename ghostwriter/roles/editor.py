"""Editor role: merges the written sections into the final document."""

from __future__ import annotations

from typing import List

from ghostwriter.llm.base_client import ChatMessage, CompletionClient
from ghostwriter.models.document import Document, Source, utcnow
from ghostwriter.models.enums import ProgressPhase
from ghostwriter.pipeline.events import EditRequestEvent, FinalArticleEvent, PipelineEvent
from ghostwriter.roles import prompts
from ghostwriter.roles.base import BaseRoleHandler
from ghostwriter.roles.sources import SourceExtractor, format_sources_section
from ghostwriter.utils.text import count_words


def extract_title(content: str, fallback: str) -> str:
    """First markdown level-one heading, or fallback."""
    for line in content.splitlines():
        line = line.strip()
        if line.startswith("# "):
            return line[2:].strip()
    return fallback


class EditorHandler(BaseRoleHandler):
    name = "editor"

    def __init__(self, client: CompletionClient, temperature: float = 0.2, max_tool_iterations: int = 6):
        super().__init__(client, temperature, max_tool_iterations)
        self.sources = SourceExtractor(client)

    async def handle(self, event: PipelineEvent) -> PipelineEvent:
        if not isinstance(event, EditRequestEvent) or event.plan is None:
            raise self.unsupported(event)

        progress = event.config.progress
        response = await self.client.complete(
            [ChatMessage.system(prompts.EDITOR_SYSTEM), ChatMessage.user(prompts.editor_prompt(event))],
            temperature=self.temperature,
        )
        if progress is not None:
            progress.emit_phase_progress(ProgressPhase.EDITING, "Consolidating sources", 0.6)

        content, sources = await self.sources.extract_content_and_sources(response.content)
        if not sources:
            sources = await self.sources.consolidate_sources(
                [section.sources for section in event.sections if section.sources]
            )

        title = extract_title(content, event.title)
        content += format_sources_section(sources)

        plan = event.plan
        article = Document(
            title=title,
            summary=plan.summary,
            content=content,
            sections=list(event.sections),
            sources=_to_sources(sources),
            word_count=count_words(content),
            keywords=list(plan.keywords),
            created_at=plan.created_at,
            completed_at=utcnow(),
        )
        return FinalArticleEvent(article=article, origin=event, config=event.config)


def _to_sources(references: List[str]) -> List[Source]:
    seen = set()
    sources = []
    for reference in references:
        source = Source.from_reference(reference)
        if source.id in seen:
            continue
        seen.add(source.id)
        sources.append(source)
    return sources
