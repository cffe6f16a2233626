"""Research material stored in the knowledge base."""

from __future__ import annotations

from typing import List

from pydantic import BaseModel, Field


class ResearchDocument(BaseModel):
    id: str
    url: str = ""
    title: str
    content: str = ""
    summary: str = ""
    keywords: List[str] = Field(default_factory=list)
    source_type: str = "web"
    # Populated on query results only
    relevance: float = 0.0
