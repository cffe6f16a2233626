"""LLM-assisted separation, consolidation and formatting of cited sources."""

from __future__ import annotations

from typing import List, Sequence, Tuple

from pydantic import BaseModel, Field

from ghostwriter.llm.base_client import ChatMessage, CompletionClient
from ghostwriter.roles import prompts
from ghostwriter.roles.base import parse_structured, response_schema_for

EXTRACTION_TEMPERATURE = 0.1


class ContentSeparation(BaseModel):
    content: str
    sources: List[str] = Field(default_factory=list)


class SourceConsolidation(BaseModel):
    consolidated_sources: List[str] = Field(default_factory=list)


class SourceExtractor:
    def __init__(self, client: CompletionClient):
        self.client = client

    async def extract_content_and_sources(self, text: str) -> Tuple[str, List[str]]:
        """Split text into its body and the sources it cites."""
        response = await self.client.complete(
            [
                ChatMessage.system(prompts.SOURCE_SEPARATOR_SYSTEM),
                ChatMessage.user(prompts.source_separation_prompt(text)),
            ],
            temperature=EXTRACTION_TEMPERATURE,
            response_schema=response_schema_for("content_separation", ContentSeparation),
        )
        result = parse_structured(response.content, ContentSeparation)
        return result.content, [s.strip() for s in result.sources if s.strip()]

    async def consolidate_sources(self, section_sources: Sequence[Sequence[str]]) -> List[str]:
        """Merge and de-duplicate the sources of several sections."""
        flattened = [source for sources in section_sources for source in sources if source.strip()]
        if not flattened:
            return []
        response = await self.client.complete(
            [
                ChatMessage.system(prompts.SOURCE_CONSOLIDATOR_SYSTEM),
                ChatMessage.user(prompts.source_consolidation_prompt(flattened)),
            ],
            temperature=EXTRACTION_TEMPERATURE,
            response_schema=response_schema_for("source_consolidation", SourceConsolidation),
        )
        return parse_structured(response.content, SourceConsolidation).consolidated_sources


def format_sources_section(sources: Sequence[str]) -> str:
    """Numbered '## Sources' block appended to the edited document."""
    if not sources:
        return ""
    numbered = "\n".join(f"{index}. {source.strip()}" for index, source in enumerate(sources, start=1))
    return f"\n\n## Sources\n\n{numbered}"
