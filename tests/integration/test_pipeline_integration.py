"""
Integration tests running the real roles end to end against a scripted
completion client.
"""

import pytest

from conftest import scripted_llm
from ghostwriter.models import OrchestratorOptions, ProgressPhase, ResearchDepth
from ghostwriter.pipeline.orchestrator import Orchestrator

PLAN = {
    "title": "Async Rust in Practice",
    "summary": "How async runtimes schedule work.",
    "keywords": ["rust", "async"],
    "sections": [
        {"title": "Introduction", "description": "Why async", "word_count": 150},
        {"title": "Executors", "description": "Polling futures", "word_count": 400},
        {"title": "Wakers", "description": "Waking tasks", "word_count": 300},
        {"title": "Conclusion", "description": "Wrap up", "word_count": 150},
    ],
}


@pytest.mark.asyncio
async def test_full_pipeline_produces_edited_document():
    events = []
    client = scripted_llm(PLAN)
    orchestrator = Orchestrator.from_client(client, writer_count=2, progress_callback=events.append)

    document = await orchestrator.write_document(
        "async rust",
        OrchestratorOptions(max_concurrent_writers=2, target_word_count=1000, research_depth=ResearchDepth.BASIC),
    )

    assert document.title == "Async Rust in Practice"
    assert document.content.startswith("# Async Rust in Practice\n\nEdited body.")
    assert "## Sources" in document.content
    assert [s.section_id for s in document.sections] == ["introduction", "executors", "wakers", "conclusion"]
    assert [s.content for s in document.sections] == [
        "Text for Introduction.",
        "Text for Executors.",
        "Text for Wakers.",
        "Text for Conclusion.",
    ]
    assert [s.written_by for s in document.sections] == ["writer_0", "writer_1", "writer_2", "writer_3"]
    assert [s.url for s in document.sources] == [
        "https://example.com/introduction",
        "https://example.com/executors",
        "https://example.com/wakers",
        "https://example.com/conclusion",
    ]
    assert document.keywords == ["rust", "async"]

    planner_call = client.calls_for("document_plan")[0]
    assert "**Target Word Count:** 1000" in planner_call.messages[1].content
    tool_names = [tool.name for tool in planner_call.tools]
    assert tool_names == ["add_to_knowledge_base", "search_knowledge_base"]

    progress = [e.progress for e in events]
    assert progress == sorted(progress)
    assert events[-1].phase == ProgressPhase.COMPLETED
    assert events[-1].progress == 1.0
    assert orchestrator.writer_pool.peak_in_flight <= 2


@pytest.mark.asyncio
async def test_pipeline_with_research_phase_fills_knowledge_base():
    events = []
    client = scripted_llm(PLAN, research_queries=["tokio internals", "waker api", "pinning"])
    orchestrator = Orchestrator.from_client(
        client, writer_count=1, with_researcher=True, progress_callback=events.append
    )

    document = await orchestrator.write_document(
        "async rust", OrchestratorOptions(research_depth=ResearchDepth.BASIC)
    )

    assert document.title == "Async Rust in Practice"
    research_done = [
        e for e in events if e.phase == ProgressPhase.RESEARCHING and e.step == "Research completed"
    ]
    assert research_done[0].details["total_documents"] == 2
    assert len(client.calls_for("research_queries")) == 1
    phases = list(dict.fromkeys(e.phase for e in events))
    assert phases == [
        ProgressPhase.INITIALIZING,
        ProgressPhase.RESEARCHING,
        ProgressPhase.PLANNING,
        ProgressPhase.WRITING,
        ProgressPhase.EDITING,
        ProgressPhase.COMPLETED,
    ]


@pytest.mark.asyncio
async def test_pipeline_without_knowledge_base_passes_only_run_tools(sample_tool):
    client = scripted_llm(PLAN)
    orchestrator = Orchestrator.from_client(client, writer_count=1)

    await orchestrator.write_document(
        "async rust", OrchestratorOptions(use_knowledge_base=False, tools=(sample_tool,))
    )

    assert all(call.tools in ((), (sample_tool,)) for call in client.calls)
    writer_calls = [call for call in client.calls_for(None) if call.tools]
    assert writer_calls
    assert {tool.name for call in writer_calls for tool in call.tools} == {"test_tool"}
