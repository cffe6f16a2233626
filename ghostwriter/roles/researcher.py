"""
Researcher role

Fills the run's knowledge base before planning. The model first proposes a
set of search queries; one collector task per query then researches it with
the run's tools and records sources in the knowledge base. Every collector
is joined before the research-complete response is sent.
"""

from __future__ import annotations

import asyncio
from typing import List

from pydantic import BaseModel, Field

from ghostwriter.llm.base_client import ChatMessage
from ghostwriter.models.enums import ProgressPhase, ResearchDepth
from ghostwriter.pipeline.events import (
    PipelineEvent,
    ResearchCompleteEvent,
    ResearchRequestEvent,
    RunConfig,
)
from ghostwriter.roles import prompts
from ghostwriter.roles.base import BaseRoleHandler
from ghostwriter.utils.logging_config import get_logger

logger = get_logger(__name__)


class ResearchQueries(BaseModel):
    queries: List[str] = Field(default_factory=list)


class ResearcherHandler(BaseRoleHandler):
    name = "researcher"

    async def handle(self, event: PipelineEvent) -> PipelineEvent:
        if not isinstance(event, ResearchRequestEvent):
            raise self.unsupported(event)

        config = event.config
        kb = config.knowledge_base
        if kb is None:
            raise RuntimeError("researcher needs a knowledge base in its run configuration")

        subject = event.subject or config.subject
        depth = event.depth
        progress = config.progress
        if progress is not None:
            progress.emit_phase_progress(
                ProgressPhase.RESEARCHING, "Planning research", 0.1, {"depth": depth.value}
            )

        queries = await self._queries(subject, depth)
        if progress is not None:
            progress.emit_phase_progress(
                ProgressPhase.RESEARCHING,
                "Gathering sources",
                0.2,
                {"queries": len(queries)},
            )

        await self._collect(subject, queries, depth, config)

        stats = await kb.get_stats()
        if progress is not None:
            progress.emit_phase_progress(
                ProgressPhase.RESEARCHING,
                f"Research completed: {stats['total_documents']} documents indexed",
                1.0,
                {"stats": stats},
            )
        return ResearchCompleteEvent(stats=stats, origin=event, config=config)

    async def _queries(self, subject: str, depth: ResearchDepth) -> List[str]:
        count, _ = depth.iteration_bounds
        result = await self.complete_structured(
            [
                ChatMessage.system(prompts.RESEARCHER_SYSTEM),
                ChatMessage.user(prompts.research_queries_prompt(subject, depth, count)),
            ],
            ResearchQueries,
            schema_name="research_queries",
        )
        queries = list(dict.fromkeys(q.strip() for q in result.queries if q.strip()))
        return queries[:count] or [subject]

    async def _collect(self, subject: str, queries: List[str], depth: ResearchDepth, config: RunConfig) -> None:
        _, max_iterations = depth.iteration_bounds

        async def collect(query: str) -> None:
            summary = await self.run_task(
                [
                    ChatMessage.system(prompts.RESEARCHER_SYSTEM),
                    ChatMessage.user(prompts.research_collector_prompt(subject, query, depth)),
                ],
                config.tools,
                max_iterations=max_iterations,
            )
            logger.debug(f"[researcher] {query!r}: {summary[:120]}")

        collectors = [
            asyncio.create_task(collect(query), name=f"research-{index}")
            for index, query in enumerate(queries)
        ]
        try:
            await asyncio.gather(*collectors)
        finally:
            for collector in collectors:
                collector.cancel()
            await asyncio.gather(*collectors, return_exceptions=True)
