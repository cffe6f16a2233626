"""Tools that let roles read from and write to the shared knowledge base."""

from __future__ import annotations

from typing import List, Sequence

from ghostwriter.knowledge.store import KnowledgeBase
from ghostwriter.models.research import ResearchDocument
from ghostwriter.tools.tool_registry import Tool, ToolParameter
from ghostwriter.utils.logging_config import get_logger
from ghostwriter.utils.text import document_id_from_title

logger = get_logger(__name__)

SEARCH_RESULT_LIMIT = 15


def format_search_results(results: Sequence[ResearchDocument]) -> str:
    """Render knowledge base hits as markdown for the model."""
    if not results:
        return "No research data found for the specified query."

    parts: List[str] = ["# Research Results", ""]
    for index, doc in enumerate(results, start=1):
        parts.append(f"## {index}. {doc.title}")
        parts.append("")
        if doc.url:
            parts.append(f"**Source:** {doc.url}")
        parts.append(f"**Type:** {doc.source_type}")
        parts.append(f"**Relevance:** {doc.relevance:.2f}")
        parts.append("")
        if doc.summary:
            parts.extend(["**Summary:**", doc.summary, ""])
        if doc.content:
            parts.extend(["**Content:**", doc.content, ""])
        if doc.keywords:
            parts.extend([f"**Keywords:** {', '.join(doc.keywords)}", ""])
        parts.extend(["---", ""])
    return "\n".join(parts)


def _split_keywords(raw: str) -> List[str]:
    return [k.strip() for k in raw.split(",") if k.strip()]


def create_knowledge_tools(kb: KnowledgeBase) -> List[Tool]:
    """
    Create the add and search tools bound to one knowledge base.

    Args:
        kb: Knowledge base the tools operate on

    Returns:
        The add_to_knowledge_base and search_knowledge_base tools
    """

    async def add_to_knowledge_base(
        title: str,
        content: str,
        source_type: str,
        url: str = "",
        keywords: str = "",
        summary: str = "",
    ) -> str:
        doc = ResearchDocument(
            id=document_id_from_title(title),
            url=url,
            title=title,
            content=content,
            summary=summary,
            keywords=_split_keywords(keywords),
            source_type=source_type,
        )
        logger.debug(f"Adding {doc.id} to knowledge base (url={url!r})")
        await kb.add_document(doc)
        return f"Successfully added research document '{title}' to knowledge base (type: {source_type})"

    async def search_knowledge_base(query: str) -> str:
        results = await kb.search(query, SEARCH_RESULT_LIMIT)
        logger.debug(f"Knowledge base search {query!r} returned {len(results)} documents")
        return format_search_results(results)

    return [
        Tool(
            name="add_to_knowledge_base",
            description="Add a research document to the knowledge base for later use by other roles",
            parameters=[
                ToolParameter(name="title", type="string", description="title of the research document or source"),
                ToolParameter(name="content", type="string", description="main content or key excerpts from the source"),
                ToolParameter(
                    name="source_type",
                    type="string",
                    description="type of source (web, academic, news, documentation, book, other)",
                ),
                ToolParameter(
                    name="url",
                    type="string",
                    description="source URL if available, empty string if not",
                    required=False,
                ),
                ToolParameter(
                    name="keywords",
                    type="string",
                    description="comma-separated list of relevant keywords",
                    required=False,
                ),
                ToolParameter(
                    name="summary",
                    type="string",
                    description="one or two sentence summary of the source",
                    required=False,
                ),
            ],
            execute_fn=add_to_knowledge_base,
        ),
        Tool(
            name="search_knowledge_base",
            description="Perform full-text search across all research documents",
            parameters=[
                ToolParameter(name="query", type="string", description="search terms or keywords"),
            ],
            execute_fn=search_knowledge_base,
        ),
    ]
