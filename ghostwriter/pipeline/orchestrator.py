"""
Orchestrator

Runs one document generation: (research), plan, write every section
concurrently, edit. The whole run shares one deadline; every round trip to a
role resolves with the role's response, the role's error, or the deadline,
whichever comes first. Any failure aborts the run and no partial document is
returned. Roles are always stopped on the way out.
"""

from __future__ import annotations

import asyncio
import uuid
from dataclasses import dataclass
from typing import List, Optional, Sequence, Type, TypeVar

from ghostwriter.errors import ProtocolError, ScopeError, TeardownError, ValidationError
from ghostwriter.knowledge.store import KnowledgeBase
from ghostwriter.knowledge.tools import create_knowledge_tools
from ghostwriter.models.config import OrchestratorOptions
from ghostwriter.models.document import Document, DocumentPlan, DocumentSection, SectionContent
from ghostwriter.models.enums import ProgressPhase, RoleKind
from ghostwriter.pipeline.events import (
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
from ghostwriter.pipeline.progress import (
    DEFAULT_PHASE_WEIGHTS,
    RESEARCH_PHASE_WEIGHTS,
    ProgressCallback,
    ProgressTracker,
)
from ghostwriter.pipeline.role import Role, RoleClient
from ghostwriter.pipeline.writer_pool import WriterPool
from ghostwriter.utils.log_context import workflow_phase_context
from ghostwriter.utils.logging_config import get_logger
from ghostwriter.utils.structured_log import bind_run, log_phase

logger = get_logger(__name__)

E = TypeVar("E", bound=PipelineEvent)


@dataclass
class _WriteState:
    completed: int = 0
    error: Optional[BaseException] = None


class Orchestrator:
    """Coordinates the planner, the writer pool, the editor and an optional researcher."""

    def __init__(
        self,
        planner: Role,
        writers: Sequence[Role],
        editor: Role,
        researcher: Optional[Role] = None,
        progress_callback: Optional[ProgressCallback] = None,
        show_phase_rules: bool = False,
    ):
        self._planner = RoleClient(planner)
        self._pool = WriterPool([RoleClient(writer) for writer in writers])
        self._editor = RoleClient(editor)
        self._researcher = RoleClient(researcher) if researcher is not None else None
        self._progress_callback = progress_callback
        self._show_phase_rules = show_phase_rules

    @classmethod
    def from_client(
        cls,
        client,
        *,
        role_settings=None,
        writer_count: int = 3,
        with_researcher: bool = False,
        progress_callback: Optional[ProgressCallback] = None,
        show_phase_rules: bool = False,
    ) -> Orchestrator:
        """Build an orchestrator whose roles are backed by a completion client."""
        from ghostwriter.roles import create_editor, create_planner, create_researcher, create_writer

        return cls(
            planner=create_planner(client, role_settings),
            writers=[create_writer(client, role_settings, name=f"writer-{i}") for i in range(writer_count)],
            editor=create_editor(client, role_settings),
            researcher=create_researcher(client, role_settings) if with_researcher else None,
            progress_callback=progress_callback,
            show_phase_rules=show_phase_rules,
        )

    @property
    def writer_pool(self) -> WriterPool:
        return self._pool

    def _clients(self) -> List[RoleClient]:
        clients = [self._planner, *self._pool.writers, self._editor]
        if self._researcher is not None:
            clients.insert(0, self._researcher)
        return clients

    async def write_document(self, subject: str, options: Optional[OrchestratorOptions] = None) -> Document:
        """
        Generate a document about subject.

        Args:
            subject: What the document is about
            options: Run options (defaults if None)

        Returns:
            The edited document

        Raises:
            ValidationError: If the subject is empty or the plan is invalid
            ProtocolError: If a role answers the wrong request or with the wrong event
            RoleError: If a role fails while handling a request
            ScopeError: If the run exceeds options.timeout
            TeardownError: If stopping roles failed on an otherwise successful run
        """
        options = options or OrchestratorOptions()
        if not subject.strip():
            raise ValidationError("subject must not be empty")

        run_id = uuid.uuid4().hex[:12]
        bind_run(run_id, subject)
        weights = RESEARCH_PHASE_WEIGHTS if self._researcher is not None else DEFAULT_PHASE_WEIGHTS
        tracker = ProgressTracker(self._progress_callback, weights=weights)
        tracker.emit_progress(
            ProgressPhase.INITIALIZING,
            "Initializing document generation",
            0.0,
            {"subject": subject, "run_id": run_id},
        )
        logger.info(f"Starting document generation {run_id} for {subject!r}")

        started: List[RoleClient] = []
        kb: Optional[KnowledgeBase] = None
        error: Optional[BaseException] = None
        deadline = asyncio.timeout(options.timeout)
        try:
            async with deadline:
                if options.use_knowledge_base:
                    kb = await KnowledgeBase.create(subject)
                config = self._run_config(subject, options, tracker, kb)
                for client in self._clients():
                    await client.start()
                    started.append(client)
                return await self._run_phases(subject, config, options, tracker)
        except TimeoutError as exc:
            if not deadline.expired():
                error = exc
                raise
            error = ScopeError(f"document generation exceeded its {options.timeout:g}s deadline")
            raise error from exc
        except BaseException as exc:
            error = exc
            raise
        finally:
            stop_errors = await self._teardown(started, kb)
            if stop_errors:
                if error is None:
                    raise TeardownError(stop_errors)
                for stop_error in stop_errors:
                    error.add_note(f"teardown: {stop_error}")

    def _run_config(
        self,
        subject: str,
        options: OrchestratorOptions,
        tracker: ProgressTracker,
        kb: Optional[KnowledgeBase],
    ) -> RunConfig:
        tools = tuple(options.tools)
        if kb is not None:
            tools += tuple(create_knowledge_tools(kb))
        return RunConfig(
            subject=subject,
            target_word_count=options.target_word_count,
            research_depth=options.research_depth,
            style_guidelines=options.style_guidelines,
            additional_context=options.additional_context,
            knowledge_base=kb,
            tools=tools,
            progress=tracker,
        )

    async def _run_phases(
        self,
        subject: str,
        config: RunConfig,
        options: OrchestratorOptions,
        tracker: ProgressTracker,
    ) -> Document:
        if self._researcher is not None:
            await self._research(subject, config, options, tracker)
        plan = await self._plan(subject, config, tracker)
        sections = await self._write(plan, subject, config, options, tracker)
        document = await self._edit(plan, subject, sections, config, tracker)

        tracker.emit_progress(
            ProgressPhase.COMPLETED,
            "Document generation completed",
            1.0,
            {
                "title": document.title,
                "word_count": document.word_count,
                "section_count": len(document.sections),
            },
        )
        logger.info(f"Document {document.title!r} completed ({document.word_count} words)")
        return document

    async def _round_trip(self, client: RoleClient, request: PipelineEvent, expected: Type[E]) -> E:
        future = await client.submit(request)
        response = await future
        if not isinstance(response, expected):
            raise ProtocolError(
                f"{client.name} answered with {type(response).__name__}, expected {expected.__name__}"
            )
        if response.origin_id != request.id:
            raise ProtocolError(
                f"{client.name} response origin {response.origin_id!r} does not match request {request.id!r}"
            )
        return response

    async def _research(
        self,
        subject: str,
        config: RunConfig,
        options: OrchestratorOptions,
        tracker: ProgressTracker,
    ) -> None:
        if config.knowledge_base is None:
            logger.warning("Researcher configured without a knowledge base; skipping research")
            return
        with workflow_phase_context("researching", self._show_phase_rules):
            log_phase("researching", "start")
            tracker.emit_phase_start(ProgressPhase.RESEARCHING, "Researching subject")
            request = ResearchRequestEvent(
                subject=subject,
                depth=options.research_depth,
                config=config.for_role(RoleKind.RESEARCHER),
            )
            response = await self._round_trip(self._researcher, request, ResearchCompleteEvent)
            stats = dict(response.stats)
            tracker.emit_phase_complete(ProgressPhase.RESEARCHING, "Research completed", stats)
            log_phase("researching", "done", **stats)

    async def _plan(self, subject: str, config: RunConfig, tracker: ProgressTracker) -> DocumentPlan:
        with workflow_phase_context("planning", self._show_phase_rules):
            log_phase("planning", "start")
            tracker.emit_phase_start(ProgressPhase.PLANNING, "Creating document plan")
            request = MessageEvent(message=subject, config=config.for_role(RoleKind.PLANNER))
            response = await self._round_trip(self._planner, request, DocumentPlanEvent)
            if response.plan is None:
                raise ProtocolError("planner response carried no plan")
            plan = response.plan.normalized()
            tracker.emit_phase_complete(
                ProgressPhase.PLANNING,
                "Document plan created",
                {"title": plan.title, "sections": len(plan.sections), "total_words": plan.total_words},
            )
            log_phase("planning", "done", sections=len(plan.sections), total_words=plan.total_words)
            return plan

    async def _write(
        self,
        plan: DocumentPlan,
        subject: str,
        config: RunConfig,
        options: OrchestratorOptions,
        tracker: ProgressTracker,
    ) -> List[SectionContent]:
        total = len(plan.sections)
        results: List[Optional[SectionContent]] = [None] * total
        state = _WriteState()
        lock = asyncio.Lock()
        self._pool.configure(options.max_concurrent_writers)

        async def write_one(index: int, section: DocumentSection) -> None:
            async with self._pool.slot(index) as (writer, writer_id):
                async with lock:
                    if state.error is not None:
                        return
                    completed = state.completed
                details = {
                    "section_id": section.id,
                    "section_title": section.title,
                    "writer_id": writer_id,
                    "total": total,
                }
                tracker.emit_phase_progress(
                    ProgressPhase.WRITING,
                    f"Writing section: {section.title}",
                    completed / total,
                    {**details, "completed": completed},
                )
                request = SectionAssignmentEvent(
                    section=section,
                    subject=subject,
                    index=index,
                    plan_title=plan.title,
                    config=config.for_role(RoleKind.WRITER, writer_id=writer_id),
                )
                try:
                    response = await self._round_trip(writer, request, SectionContentEvent)
                    content = _checked_section(response, section, writer.name)
                except Exception as exc:
                    logger.error(f"Section {section.id!r} failed: {exc}")
                    async with lock:
                        if state.error is None:
                            state.error = exc
                    return

                results[index] = content
                async with lock:
                    state.completed += 1
                    completed = state.completed
                tracker.emit_phase_progress(
                    ProgressPhase.WRITING,
                    f"Completed section: {section.title}",
                    completed / total,
                    {**details, "completed": completed, "word_count": content.word_count},
                )

        with workflow_phase_context("writing", self._show_phase_rules):
            log_phase("writing", "start", total=total)
            tracker.emit_phase_start(
                ProgressPhase.WRITING,
                "Writing sections",
                {"total": total, "max_concurrent_writers": options.max_concurrent_writers},
            )
            tasks = [
                asyncio.create_task(write_one(index, section), name=f"write-section-{section.id}")
                for index, section in enumerate(plan.sections)
            ]
            await asyncio.gather(*tasks)
            if state.error is not None:
                raise state.error
            tracker.emit_phase_complete(ProgressPhase.WRITING, "All sections written", {"total": total})
            log_phase("writing", "done", total=total, completed=state.completed)
        return [content for content in results if content is not None]

    async def _edit(
        self,
        plan: DocumentPlan,
        subject: str,
        sections: List[SectionContent],
        config: RunConfig,
        tracker: ProgressTracker,
    ) -> Document:
        with workflow_phase_context("editing", self._show_phase_rules):
            log_phase("editing", "start")
            tracker.emit_phase_start(ProgressPhase.EDITING, "Editing document")
            request = EditRequestEvent(
                title=plan.title,
                subject=subject,
                sections=tuple(sections),
                plan=plan,
                config=config.for_role(RoleKind.EDITOR),
            )
            response = await self._round_trip(self._editor, request, FinalArticleEvent)
            if response.article is None:
                raise ProtocolError("editor response carried no article")
            tracker.emit_phase_complete(ProgressPhase.EDITING, "Document edited")
            log_phase("editing", "done", word_count=response.article.word_count)
            return response.article

    async def _teardown(self, started: List[RoleClient], kb: Optional[KnowledgeBase]) -> List[BaseException]:
        errors: List[BaseException] = []
        for client in reversed(started):
            try:
                await client.stop()
            except Exception as exc:
                logger.error(f"Failed to stop role {client.name}: {exc}")
                errors.append(exc)
        if kb is not None:
            try:
                await kb.close()
            except Exception as exc:
                logger.error(f"Failed to close knowledge base: {exc}")
                errors.append(exc)
        return errors


def _checked_section(response: SectionContentEvent, section: DocumentSection, writer: str) -> SectionContent:
    content = response.content
    if content is None:
        raise ProtocolError(f"{writer} response carried no section content")
    if content.section_id != section.id:
        raise ProtocolError(
            f"{writer} returned section {content.section_id!r} for assignment {section.id!r}"
        )
    return content
