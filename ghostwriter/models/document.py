"""Plan, section and article models."""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from ghostwriter.errors import ValidationError
from ghostwriter.utils.text import section_id_from_title

_MARKDOWN_LINK = re.compile(r"\[([^\]]+)\]\(\s*(\S+?)\s*\)")
_BARE_URL = re.compile(r"https?://[^\s)>\]]+")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DocumentSection(BaseModel):
    id: str = ""
    title: str
    description: str = ""
    key_points: List[str] = Field(default_factory=list)
    word_count: int = 0


class DocumentPlan(BaseModel):
    title: str = ""
    sections: List[DocumentSection] = Field(default_factory=list)
    total_words: int = 0
    keywords: List[str] = Field(default_factory=list)
    summary: str = ""
    created_at: datetime = Field(default_factory=utcnow)

    def normalized(self) -> DocumentPlan:
        """
        Validate the plan and return a copy with derived fields filled in.

        Missing section ids are generated from the section title, and
        total_words is recomputed as the sum of section word counts.

        Raises:
            ValidationError: If the plan is structurally unusable
        """
        if not self.title.strip():
            raise ValidationError("document plan must have a title")
        if not self.sections:
            raise ValidationError("document plan must have at least one section")

        explicit_ids = [s.id for s in self.sections if s.id]
        duplicates = {i for i in explicit_ids if explicit_ids.count(i) > 1}
        if duplicates:
            raise ValidationError(f"duplicate section ids in plan: {sorted(duplicates)}")

        taken = set(explicit_ids)
        sections: List[DocumentSection] = []
        for index, section in enumerate(self.sections):
            if not section.title.strip():
                raise ValidationError(f"section {index} must have a title")
            if section.word_count <= 0:
                raise ValidationError(
                    f"section {index} ({section.title!r}) must have a positive word count"
                )
            section_id = section.id
            if not section_id:
                section_id = _unique_id(section_id_from_title(section.title) or f"section_{index + 1}", taken)
                taken.add(section_id)
            sections.append(section.model_copy(update={"id": section_id}))

        return self.model_copy(
            update={
                "sections": sections,
                "total_words": sum(s.word_count for s in sections),
            }
        )


def _unique_id(candidate: str, taken: set) -> str:
    if candidate not in taken:
        return candidate
    suffix = 2
    while f"{candidate}_{suffix}" in taken:
        suffix += 1
    return f"{candidate}_{suffix}"


class SectionContent(BaseModel):
    section_id: str
    title: str
    content: str
    sources: List[str] = Field(default_factory=list)
    word_count: int = 0
    written_by: str = ""
    completed_at: datetime = Field(default_factory=utcnow)


class Source(BaseModel):
    id: str = ""
    url: str = ""
    title: str = ""
    keywords: List[str] = Field(default_factory=list)
    source_type: str = ""
    relevance: float = 0.0

    @classmethod
    def from_reference(cls, reference: str) -> Source:
        """Parse a source reference: a markdown link, a bare URL, or free text."""
        text = reference.strip().lstrip("-*").strip()
        link = _MARKDOWN_LINK.search(text)
        if link:
            return cls(id=link.group(2), title=link.group(1).strip(), url=link.group(2))
        url = _BARE_URL.search(text)
        if url:
            title = text.replace(url.group(0), "").strip(" -:") or url.group(0)
            return cls(id=url.group(0), title=title, url=url.group(0))
        return cls(id=text, title=text)


class Document(BaseModel):
    title: str
    word_count: int = 0
    keywords: List[str] = Field(default_factory=list)
    sources: List[Source] = Field(default_factory=list)
    summary: str = ""
    content: str = ""
    sections: List[SectionContent] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utcnow)
    completed_at: Optional[datetime] = None

    def metadata(self) -> Dict[str, Any]:
        """Front-matter subset of the document."""
        return {
            "title": self.title,
            "word_count": self.word_count,
            "keywords": list(self.keywords),
            "sources": [s.url or s.title for s in self.sources],
        }
