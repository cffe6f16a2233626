"""
Unit tests for plan normalization and document models.
"""

import pytest

from ghostwriter.errors import ValidationError
from ghostwriter.models import (
    Document,
    DocumentPlan,
    DocumentSection,
    OrchestratorOptions,
    OrchestratorSettings,
    ResearchDepth,
    Source,
)


def test_normalized_sums_section_word_counts(sample_plan):
    plan = sample_plan.model_copy(update={"total_words": 42})

    normalized = plan.normalized()

    assert normalized.total_words == 500
    assert [s.word_count for s in normalized.sections] == [100, 300, 100]


def test_normalized_generates_ids_from_titles(sample_plan):
    normalized = sample_plan.normalized()

    assert [s.id for s in normalized.sections] == ["introduction", "executors_and_wakers", "conclusion"]


def test_normalized_keeps_explicit_ids_and_avoids_collisions():
    plan = DocumentPlan(
        title="Plan",
        sections=[
            DocumentSection(id="overview", title="Overview", word_count=10),
            DocumentSection(title="Overview", word_count=10),
            DocumentSection(title="Overview!", word_count=10),
        ],
    )

    ids = [s.id for s in plan.normalized().sections]

    assert ids == ["overview", "overview_2", "overview_3"]
    assert len(set(ids)) == 3


def test_normalized_does_not_mutate_original(sample_plan):
    sample_plan.normalized()
    assert all(s.id == "" for s in sample_plan.sections)


@pytest.mark.parametrize(
    "plan,message",
    [
        (DocumentPlan(title="", sections=[DocumentSection(title="A", word_count=1)]), "title"),
        (DocumentPlan(title="No sections"), "at least one section"),
        (DocumentPlan(title="T", sections=[DocumentSection(title="A", word_count=0)]), "positive word count"),
        (DocumentPlan(title="T", sections=[DocumentSection(title="  ", word_count=5)]), "must have a title"),
        (
            DocumentPlan(
                title="T",
                sections=[
                    DocumentSection(id="dup", title="A", word_count=5),
                    DocumentSection(id="dup", title="B", word_count=5),
                ],
            ),
            "duplicate section ids",
        ),
    ],
)
def test_normalized_rejects_invalid_plans(plan, message):
    with pytest.raises(ValidationError, match=message):
        plan.normalized()


def test_source_from_markdown_link():
    source = Source.from_reference("- [Tokio docs](https://tokio.rs/tokio/tutorial)")

    assert source.title == "Tokio docs"
    assert source.url == "https://tokio.rs/tokio/tutorial"
    assert source.id == source.url


def test_source_from_bare_url_with_label():
    source = Source.from_reference("Async book: https://rust-lang.github.io/async-book/")

    assert source.url == "https://rust-lang.github.io/async-book/"
    assert source.title == "Async book"


def test_source_from_free_text():
    source = Source.from_reference("Klabnik and Nichols, The Rust Programming Language")

    assert source.url == ""
    assert source.title == "Klabnik and Nichols, The Rust Programming Language"


def test_document_metadata_lists_source_urls_or_titles():
    document = Document(
        title="T",
        word_count=12,
        keywords=["k"],
        sources=[Source(id="a", url="https://a.example", title="A"), Source(id="b", title="Book B")],
    )

    assert document.metadata() == {
        "title": "T",
        "word_count": 12,
        "keywords": ["k"],
        "sources": ["https://a.example", "Book B"],
    }


def test_orchestrator_options_defaults_and_validation():
    options = OrchestratorOptions()

    assert options.max_concurrent_writers == 3
    assert options.timeout == 1800
    assert options.target_word_count == 1500
    assert options.research_depth == ResearchDepth.DEEP

    with pytest.raises(ValueError):
        OrchestratorOptions(max_concurrent_writers=0)
    with pytest.raises(ValueError):
        OrchestratorOptions(timeout=0)


def test_orchestrator_options_from_settings_ignores_unset_overrides():
    settings = OrchestratorSettings(max_concurrent_writers=5, timeout_seconds=60, target_word_count=800)

    options = OrchestratorOptions.from_settings(settings, timeout=None, target_word_count=1200)

    assert options.max_concurrent_writers == 5
    assert options.timeout == 60
    assert options.target_word_count == 1200


def test_research_depth_iteration_bounds():
    assert ResearchDepth.BASIC.iteration_bounds == (2, 4)
    assert ResearchDepth.DEEP.iteration_bounds == (3, 6)
    assert ResearchDepth.DEEP_WEB.iteration_bounds == (4, 8)
    assert ResearchDepth.ACADEMIC.iteration_bounds == (5, 10)
