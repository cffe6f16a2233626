"""
Planner role

Turns the subject into a DocumentPlan. The model is asked for the plan's own
JSON shape; answers in the introduction/sections/conclusion outline shape
some models prefer are converted.
"""

from __future__ import annotations

import json
from typing import List, Optional

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from ghostwriter.llm.base_client import ChatMessage
from ghostwriter.models.document import DocumentPlan, DocumentSection
from ghostwriter.models.enums import ProgressPhase
from ghostwriter.pipeline.events import DocumentPlanEvent, MessageEvent, PipelineEvent
from ghostwriter.roles import prompts
from ghostwriter.roles.base import BaseRoleHandler, StructuredOutputError, response_schema_for
from ghostwriter.utils.text import strip_markdown_json


class PlannedSection(BaseModel):
    id: str = Field(default="", description="short snake_case identifier")
    title: str
    description: str = ""
    key_points: List[str] = Field(default_factory=list)
    word_count: int = Field(description="target number of words for this section")


class PlanResponse(BaseModel):
    title: str
    summary: str = ""
    keywords: List[str] = Field(default_factory=list)
    sections: List[PlannedSection]


class OutlinePart(BaseModel):
    title: str = ""
    word_count_target: int = 0
    key_points: List[str] = Field(default_factory=list)
    guidance_for_writers: str = ""


class OutlineResponse(BaseModel):
    article_title: str
    target_word_count: int = 0
    introduction: Optional[OutlinePart] = None
    sections: List[OutlinePart] = Field(default_factory=list)
    conclusion: Optional[OutlinePart] = None
    keywords: List[str] = Field(default_factory=list)
    summary: str = ""


def _from_outline(outline: OutlineResponse) -> DocumentPlan:
    parts = [
        part
        for part in (outline.introduction, *outline.sections, outline.conclusion)
        if part is not None and part.title
    ]
    return DocumentPlan(
        title=outline.article_title,
        summary=outline.summary,
        keywords=outline.keywords,
        sections=[
            DocumentSection(
                title=part.title,
                description=part.guidance_for_writers,
                key_points=part.key_points,
                word_count=part.word_count_target,
            )
            for part in parts
        ],
    )


def parse_plan(text: str) -> DocumentPlan:
    """
    Parse a planner answer into an unvalidated DocumentPlan.

    Raises:
        StructuredOutputError: If the answer matches neither known shape
    """
    cleaned = strip_markdown_json(text)
    try:
        payload = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        raise StructuredOutputError(f"planner answer is not JSON: {text[:200]!r}") from exc

    if isinstance(payload, dict) and "article_title" in payload:
        try:
            return _from_outline(OutlineResponse.model_validate(payload))
        except PydanticValidationError as exc:
            raise StructuredOutputError("planner outline answer is malformed") from exc

    try:
        planned = PlanResponse.model_validate(payload)
    except PydanticValidationError as exc:
        raise StructuredOutputError("planner answer does not describe a document plan") from exc
    return DocumentPlan(
        title=planned.title,
        summary=planned.summary,
        keywords=planned.keywords,
        sections=[DocumentSection(**section.model_dump()) for section in planned.sections],
    )


class PlannerHandler(BaseRoleHandler):
    name = "planner"

    async def handle(self, event: PipelineEvent) -> PipelineEvent:
        if not isinstance(event, MessageEvent):
            raise self.unsupported(event)

        config = event.config
        subject = event.message or config.subject
        progress = config.progress
        if progress is not None:
            progress.emit_phase_progress(ProgressPhase.PLANNING, "Analyzing subject", 0.1, {"subject": subject})

        answer = await self.run_task(
            [
                ChatMessage.system(prompts.PLANNER_SYSTEM),
                ChatMessage.user(prompts.planner_prompt(subject, config)),
            ],
            config.tools,
            response_schema=response_schema_for("document_plan", PlanResponse),
        )
        if progress is not None:
            progress.emit_phase_progress(ProgressPhase.PLANNING, "Parsing document plan", 0.8)

        # Validated and normalized by the orchestrator
        plan = parse_plan(answer)
        return DocumentPlanEvent(plan=plan, subject=subject, origin=event, config=config)
