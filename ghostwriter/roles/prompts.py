"""Prompt builders for the planner, writer, editor, researcher and source extractor."""

from __future__ import annotations

from typing import List

from ghostwriter.models.document import DocumentPlan, DocumentSection
from ghostwriter.models.enums import ResearchDepth
from ghostwriter.pipeline.events import EditRequestEvent, RunConfig

RESEARCH_SCOPE = {
    ResearchDepth.BASIC: "Basic overview with 5-10 key sources",
    ResearchDepth.DEEP: "Comprehensive research with 15-25 diverse sources",
    ResearchDepth.DEEP_WEB: "Extensive web research with 25-40 sources including specialized sites",
    ResearchDepth.ACADEMIC: "Academic-level research with 30-50 sources including scholarly content",
}

PLANNER_SYSTEM = (
    "You are an expert content strategist. You design the structure of long-form "
    "documents: a clear title, a short summary, relevant keywords and an ordered list "
    "of sections, each with a description, key points and a word budget. "
    "Use the available tools to check what research is already known before planning. "
    "Answer with JSON only."
)

WRITER_SYSTEM = (
    "You are a skilled writer producing one section of a larger document. "
    "Write well-structured markdown for your section only, without repeating the document title. "
    "Ground claims in research: search the knowledge base first and use other tools when needed. "
    "End your answer with the list of sources you relied on."
)

EDITOR_SYSTEM = (
    "You are a senior editor. You receive the sections of a document written by different "
    "writers and return the complete, polished document in markdown, starting with a "
    "'# ' title line. Keep every fact and citation; smooth transitions, unify tone and remove repetition."
)

RESEARCHER_SYSTEM = (
    "You are a meticulous researcher. Use the search and scraping tools to find credible, "
    "current sources and record every useful one with the 'add_to_knowledge_base' tool, "
    "including a short summary and comma-separated keywords."
)

SOURCE_SEPARATOR_SYSTEM = (
    "You split a piece of writing into its body and its list of cited sources. "
    "Return JSON with 'content' (the body without any sources list) and 'sources' "
    "(one string per source, as markdown links when a URL is known)."
)

SOURCE_CONSOLIDATOR_SYSTEM = (
    "You merge lists of sources: remove duplicates, keep the most complete form of each "
    "source and format them consistently as markdown links when a URL is known. "
    "Return JSON with 'consolidated_sources'."
)


def _context_block(config: RunConfig) -> List[str]:
    lines = []
    if config.style_guidelines:
        lines += ["**Style Guidelines:**", config.style_guidelines, ""]
    if config.additional_context:
        lines += ["**Additional Context:**", config.additional_context, ""]
    return lines


def planner_prompt(subject: str, config: RunConfig) -> str:
    lines = [
        "Create a detailed plan for a document on the following subject.",
        "",
        f"**Subject:** {subject}",
        f"**Target Word Count:** {config.target_word_count}",
        "",
        *_context_block(config),
        "Each section needs a short snake_case id, a title, a description, key points and a "
        "word_count. Section word counts should add up to roughly the target word count.",
    ]
    return "\n".join(lines)


def writer_prompt(
    section: DocumentSection,
    subject: str,
    plan_title: str,
    config: RunConfig,
) -> str:
    lines = [
        f"**Document:** {plan_title}",
        f"**Subject:** {subject}",
        "",
        f"**Section to write:** {section.title}",
        f"**Description:** {section.description}",
        f"**Target length:** about {section.word_count} words",
    ]
    if section.key_points:
        lines += ["", "**Key points to cover:**", *[f"- {point}" for point in section.key_points]]
    lines += ["", *_context_block(config)]
    lines.append("Write the section now.")
    return "\n".join(lines)


def editor_prompt(request: EditRequestEvent) -> str:
    plan: DocumentPlan = request.plan
    lines = [
        f"**Document Subject:** {request.subject}",
        f"**Planned Title:** {request.title}",
        "",
        "**Original Plan Summary:**",
        plan.summary if plan is not None else "",
        "",
        "**Section Content to Edit:**",
        "",
    ]
    for index, section in enumerate(request.sections, start=1):
        lines += [f"### Section {index}: {section.title}", "", section.content, ""]
        if section.sources:
            lines += ["**Section Sources:**", *[f"- {source}" for source in section.sources], ""]
    lines += [
        "**Editing Instructions:**",
        "1. Review the entire document for consistency and flow",
        "2. Create smooth transitions between sections",
        "3. Strengthen the introduction and conclusion",
        "4. Keep a consistent tone and style",
        "5. Consolidate and format all sources",
        "6. Keep all factual content and research",
        "",
        "Provide the complete, edited document.",
    ]
    return "\n".join(lines)


def research_queries_prompt(subject: str, depth: ResearchDepth, count: int) -> str:
    return "\n".join(
        [
            f"List {count} distinct web search queries that together cover the subject below.",
            "",
            f"**Subject:** {subject}",
            f"**Research Scope:** {RESEARCH_SCOPE[depth]}",
            "",
            "Cover background, recent developments, data and statistics, and differing viewpoints.",
        ]
    )


def research_collector_prompt(subject: str, query: str, depth: ResearchDepth) -> str:
    return "\n".join(
        [
            f"Research this aspect of '{subject}': {query}",
            "",
            f"**Research Scope:** {RESEARCH_SCOPE[depth]}",
            "",
            "Search, read the most promising pages, and add each credible source to the knowledge base.",
            "Finish with a short summary of what you found.",
        ]
    )


def source_separation_prompt(text: str) -> str:
    return f"Separate the body from the sources in the following text:\n\n{text}"


def source_consolidation_prompt(sources: List[str]) -> str:
    listing = "\n".join(f"- {source}" for source in sources)
    return f"Consolidate these sources:\n\n{listing}"
