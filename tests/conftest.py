"""
Pytest configuration and fixtures.
"""

import asyncio
import json
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence

import pytest

from ghostwriter.llm.base_client import ChatMessage, CompletionResponse, ResponseSchema, ToolCall
from ghostwriter.models.document import Document, DocumentPlan, DocumentSection, SectionContent
from ghostwriter.pipeline.events import (
    DocumentPlanEvent,
    FinalArticleEvent,
    SectionContentEvent,
)
from ghostwriter.roles import prompts
from ghostwriter.tools.tool_registry import Tool, ToolParameter
from ghostwriter.utils.circuit_breaker import CircuitBreakerConfig
from ghostwriter.utils.retry_strategies import RetryConfig
from ghostwriter.utils.text import slugify


@dataclass
class CompletionCall:
    messages: List[ChatMessage]
    temperature: float
    schema: Optional[str]
    tools: tuple


class FakeCompletionClient:
    """
    Completion client answering from per-schema scripts.

    A script is keyed by response schema name (None for free text) and is
    either one answer or a list of answers; the last answer of a list repeats.
    An answer may be a string, a dict/list (sent as JSON), a
    CompletionResponse, an exception to raise, or a callable taking the
    messages and returning any of those.
    """

    def __init__(self, scripts: Optional[Dict[Optional[str], Any]] = None):
        self.scripts = {
            name: list(script) if isinstance(script, list) else script
            for name, script in (scripts or {}).items()
        }
        self.calls: List[CompletionCall] = []

    def calls_for(self, schema: Optional[str]) -> List[CompletionCall]:
        return [call for call in self.calls if call.schema == schema]

    async def complete(
        self,
        messages: Sequence[ChatMessage],
        *,
        temperature: float = 0.7,
        response_schema: Optional[ResponseSchema] = None,
        tools: Sequence[Tool] = (),
    ) -> CompletionResponse:
        name = response_schema.name if response_schema is not None else None
        self.calls.append(CompletionCall(list(messages), temperature, name, tuple(tools)))
        await asyncio.sleep(0)

        if name not in self.scripts:
            raise AssertionError(f"no scripted answer for schema {name!r}")
        script = self.scripts[name]
        if isinstance(script, list):
            answer = script.pop(0) if len(script) > 1 else script[0]
        else:
            answer = script

        if callable(answer):
            answer = answer(list(messages))
        if isinstance(answer, BaseException):
            raise answer
        if isinstance(answer, CompletionResponse):
            return answer
        if isinstance(answer, (dict, list)):
            answer = json.dumps(answer)
        return CompletionResponse(content=answer)


class ConcurrencyProbe:
    """Counts calls and the peak number running at once."""

    def __init__(self) -> None:
        self.calls = 0
        self.in_flight = 0
        self.peak = 0

    def enter(self) -> None:
        self.calls += 1
        self.in_flight += 1
        self.peak = max(self.peak, self.in_flight)

    def exit(self) -> None:
        self.in_flight -= 1


def planner_handler(plan: DocumentPlan, seen: Optional[list] = None):
    async def handle(event, outputs):
        if seen is not None:
            seen.append(event)
        await outputs.put(DocumentPlanEvent(plan=plan, subject=event.message, origin=event, config=event.config))

    return handle


def writer_handler(
    delays: Optional[Dict[str, float]] = None,
    fail: Sequence[str] = (),
    probe: Optional[ConcurrencyProbe] = None,
):
    delays = delays or {}

    async def handle(event, outputs):
        section = event.section
        if probe is not None:
            probe.enter()
        try:
            await asyncio.sleep(delays.get(section.id, 0))
            if section.id in fail:
                raise RuntimeError(f"cannot write {section.id}")
        finally:
            if probe is not None:
                probe.exit()
        body = f"Body of {section.title}."
        content = SectionContent(
            section_id=section.id,
            title=section.title,
            content=body,
            sources=[f"[{section.title} source](https://example.com/{section.id})"],
            word_count=len(body.split()),
            written_by=event.config.writer_id,
        )
        await outputs.put(SectionContentEvent(content=content, origin=event, config=event.config))

    return handle


def editor_handler():
    async def handle(event, outputs):
        content = "\n\n".join(f"## {s.title}\n\n{s.content}" for s in event.sections)
        article = Document(
            title=event.title,
            content=f"# {event.title}\n\n{content}",
            sections=list(event.sections),
            word_count=sum(s.word_count for s in event.sections),
            keywords=list(event.plan.keywords),
        )
        await outputs.put(FinalArticleEvent(article=article, origin=event, config=event.config))

    return handle


@pytest.fixture
def sample_plan() -> DocumentPlan:
    """Three-section plan with ids left for normalization to fill in."""
    return DocumentPlan(
        title="Rust Async Runtimes",
        keywords=["rust", "async"],
        summary="How async runtimes schedule work.",
        sections=[
            DocumentSection(title="Introduction", description="Why async", word_count=100),
            DocumentSection(title="Executors and Wakers", description="Core machinery", word_count=300),
            DocumentSection(title="Conclusion", description="Wrap up", word_count=100),
        ],
    )


@pytest.fixture
def plan_factory() -> Callable[[int], DocumentPlan]:
    def make(count: int) -> DocumentPlan:
        return DocumentPlan(
            title="Generated Plan",
            sections=[
                DocumentSection(id=f"s{i}", title=f"Section {i}", word_count=100) for i in range(count)
            ],
        )

    return make


@pytest.fixture
def sample_tool() -> Tool:
    """Create a sample tool for testing."""

    def execute_test(query: str) -> str:
        return f"Result for: {query}"

    return Tool(
        name="test_tool",
        description="A test tool",
        parameters=[ToolParameter(name="query", type="string", description="Test query", required=True)],
        execute_fn=execute_test,
    )


@pytest.fixture
def retry_config() -> RetryConfig:
    """Create retry configuration for testing."""
    return RetryConfig(
        max_attempts=3,
        initial_delay=0.01,
        max_delay=0.05,
        jitter=False,  # Disable jitter for deterministic tests
    )


@pytest.fixture
def circuit_breaker_config() -> CircuitBreakerConfig:
    """Create circuit breaker configuration for testing."""
    return CircuitBreakerConfig(failure_threshold=3, success_threshold=2, timeout=1.0)


@pytest.fixture
def fake_client_factory() -> Callable[..., FakeCompletionClient]:
    return FakeCompletionClient


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    """Keep tests away from real credentials and the caller's working directory."""
    monkeypatch.delenv("TAVILY_API_KEY", raising=False)
    for name in (
        "GHOSTWRITER_LLM_MODEL",
        "GHOSTWRITER_WRITERS",
        "GHOSTWRITER_TIMEOUT",
        "GHOSTWRITER_TARGET_WORDS",
        "GHOSTWRITER_RESEARCH_DEPTH",
        "GHOSTWRITER_LOG_LEVEL",
        "GHOSTWRITER_LOG_DIR",
        "GHOSTWRITER_MAX_CONCURRENT_WRITERS",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    yield


SECTION_MARKER = "**Section to write:** "


def scripted_llm(plan: Dict[str, Any], research_queries: Sequence[str] = ()) -> FakeCompletionClient:
    """
    Completion client that plays every role of a run.

    Writers answer with one sentence and one source per section, the
    editor answers with a titled body, and researchers record one
    knowledge base entry per query before summarising.
    """
    recorded = []

    def free_text(messages):
        system = messages[0].content
        if system == prompts.EDITOR_SYSTEM:
            return f"# {plan['title']}\n\nEdited body."
        if system == prompts.RESEARCHER_SYSTEM:
            if any(message.role == "tool" for message in messages):
                return "Recorded."
            recorded.append(messages[1].content)
            number = len(recorded)
            return CompletionResponse(
                content="",
                tool_calls=[
                    ToolCall(
                        id=f"research-{number}",
                        name="add_to_knowledge_base",
                        arguments={
                            "title": f"Finding {number}",
                            "content": f"Background finding {number} about the subject.",
                            "source_type": "web",
                            "url": f"https://research.example/{number}",
                        },
                    )
                ],
            )
        title = messages[1].content.split(SECTION_MARKER, 1)[1].splitlines()[0].strip()
        return f"Text for {title}.\n\nSources:\n- https://example.com/{slugify(title)}"

    def separate(messages):
        text = messages[1].content.split("\n\n", 1)[1]
        body, _, listing = text.partition("\n\nSources:\n")
        return {"content": body, "sources": [line.lstrip("- ") for line in listing.splitlines()]}

    def consolidate(messages):
        listing = [line[2:] for line in messages[1].content.splitlines() if line.startswith("- ")]
        return {"consolidated_sources": list(dict.fromkeys(listing))}

    return FakeCompletionClient(
        {
            None: free_text,
            "document_plan": plan,
            "content_separation": separate,
            "source_consolidation": consolidate,
            "research_queries": {"queries": list(research_queries)},
        }
    )
