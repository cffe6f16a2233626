"""
Tavily Web Tools

Web search and page extraction backed by the Tavily API. The Tavily client is
synchronous, so calls run in a worker thread.
"""

import asyncio
import logging
import os
from typing import Any, Dict, List, Optional

from tavily import TavilyClient

from .tool_registry import Tool, ToolParameter

logger = logging.getLogger(__name__)


class TavilySearchTool:
    """Thin async facade over the Tavily client."""

    def __init__(self, api_key: Optional[str] = None):
        """
        Initialize Tavily search tool.

        Args:
            api_key: Tavily API key (defaults to TAVILY_API_KEY env var)
        """
        self.client = TavilyClient(api_key=api_key or os.getenv("TAVILY_API_KEY"))

    async def search(self, query: str, max_results: int = 10) -> Dict[str, Any]:
        return await asyncio.to_thread(self.client.search, query, max_results=max_results)

    async def extract(self, urls: List[str]) -> Dict[str, Any]:
        return await asyncio.to_thread(self.client.extract, urls=urls)


def format_search_results(query: str, results: List[Dict[str, Any]]) -> str:
    """Render search hits as markdown for the model."""
    if not results:
        return f"No web results found for '{query}'."
    lines = [f"Found {len(results)} web results for '{query}':", ""]
    for index, hit in enumerate(results, start=1):
        lines.append(f"## {index}. {hit.get('title') or 'Untitled'}")
        lines.append(f"**URL:** {hit.get('url', '')}")
        snippet = (hit.get("content") or "").strip()
        if snippet:
            lines.append(snippet[:500])
        lines.append("")
    return "\n".join(lines)


def create_web_search_tool(client: TavilySearchTool) -> Tool:
    """
    Create the web search tool.

    Args:
        client: Tavily facade

    Returns:
        Tool instance
    """

    async def execute_search(query: str, max_results: int = 10) -> str:
        response = await client.search(query, max_results=int(max_results))
        results = response.get("results", []) if isinstance(response, dict) else []
        logger.debug(f"Web search for {query!r} returned {len(results)} results")
        return format_search_results(query, results)

    return Tool(
        name="web_search",
        description="Search the web. Returns titles, URLs and snippets of matching pages.",
        parameters=[
            ToolParameter(name="query", type="string", description="Search query string"),
            ToolParameter(
                name="max_results",
                type="integer",
                description="Maximum number of results to return (default: 10)",
                required=False,
            ),
        ],
        execute_fn=execute_search,
    )


def create_scrape_webpage_tool(client: TavilySearchTool) -> Tool:
    """
    Create the webpage scraping tool.

    Args:
        client: Tavily facade

    Returns:
        Tool instance
    """

    async def execute_extract(url: str) -> str:
        response = await client.extract([url])
        pages = response.get("results", []) if isinstance(response, dict) else []
        if not pages:
            return f"Could not extract content from {url}"
        return pages[0].get("raw_content") or ""

    return Tool(
        name="scrape_webpage",
        description="Fetch the readable text content of a web page.",
        parameters=[
            ToolParameter(name="url", type="string", description="URL of the page to fetch"),
        ],
        execute_fn=execute_extract,
    )


def create_web_tools(api_key: Optional[str] = None) -> List[Tool]:
    """Web tools, or an empty list when no Tavily key is configured."""
    key = api_key or os.getenv("TAVILY_API_KEY")
    if not key:
        logger.info("TAVILY_API_KEY not set; web tools disabled")
        return []
    client = TavilySearchTool(api_key=key)
    return [create_web_search_tool(client), create_scrape_webpage_tool(client)]
