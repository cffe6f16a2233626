"""Writer role: drafts one section per assignment."""

from __future__ import annotations

from ghostwriter.llm.base_client import ChatMessage, CompletionClient
from ghostwriter.models.document import SectionContent, utcnow
from ghostwriter.pipeline.events import PipelineEvent, SectionAssignmentEvent, SectionContentEvent
from ghostwriter.roles import prompts
from ghostwriter.roles.base import BaseRoleHandler
from ghostwriter.roles.sources import SourceExtractor
from ghostwriter.utils.logging_config import get_logger
from ghostwriter.utils.text import count_words

logger = get_logger(__name__)


class WriterHandler(BaseRoleHandler):
    name = "writer"

    def __init__(self, client: CompletionClient, temperature: float = 0.7, max_tool_iterations: int = 6):
        super().__init__(client, temperature, max_tool_iterations)
        self.sources = SourceExtractor(client)

    async def handle(self, event: PipelineEvent) -> PipelineEvent:
        if not isinstance(event, SectionAssignmentEvent) or event.section is None:
            raise self.unsupported(event)

        config = event.config
        section = event.section
        _, max_iterations = config.research_depth.iteration_bounds

        draft = await self.run_task(
            [
                ChatMessage.system(prompts.WRITER_SYSTEM),
                ChatMessage.user(prompts.writer_prompt(section, event.subject, event.plan_title, config)),
            ],
            config.tools,
            max_iterations=max_iterations,
        )
        body, sources = await self.sources.extract_content_and_sources(draft)

        logger.debug(
            f"[{config.writer_id or self.name}] drafted {section.id!r} with {len(sources)} sources"
        )
        content = SectionContent(
            section_id=section.id,
            title=section.title,
            content=body,
            sources=sources,
            word_count=count_words(body),
            written_by=config.writer_id,
            completed_at=utcnow(),
        )
        return SectionContentEvent(content=content, origin=event, config=config)
