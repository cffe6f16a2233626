"""
Shared research knowledge base.

An in-memory full-text index (SQLite FTS5 through aiosqlite) paired with a
document map keyed by id. Title, content, summary and keywords are
full-text searchable; source type is matched exactly. Both structures are
mutated together under the exclusive side of one reader/writer lock, so a
document is either in both or in neither.
"""

from __future__ import annotations

import re
from collections import Counter
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import aiosqlite

from ghostwriter.errors import (
    DocumentNotFoundError,
    KnowledgeBaseClosedError,
    KnowledgeBaseError,
    KnowledgeBaseIndexError,
)
from ghostwriter.knowledge.rwlock import ReadWriteLock
from ghostwriter.models.research import ResearchDocument
from ghostwriter.utils.logging_config import get_logger

logger = get_logger(__name__)

KEYWORD_RESULT_LIMIT = 50
SOURCE_TYPE_RESULT_LIMIT = 100

_CREATE_INDEX = """
CREATE VIRTUAL TABLE research_index USING fts5(
    doc_id UNINDEXED,
    title,
    content,
    summary,
    keywords,
    source_type UNINDEXED,
    tokenize = 'unicode61'
)
"""

_WORD = re.compile(r"\w+", re.UNICODE)


def _phrase(text: str) -> Optional[str]:
    """Quote the word tokens of text as one FTS5 phrase, or None if it has none."""
    tokens = _WORD.findall(text.lower())
    if not tokens:
        return None
    return '"' + " ".join(tokens) + '"'


def build_text_query(query: str) -> Optional[str]:
    """OR together every distinct word of a free-text query."""
    tokens = list(dict.fromkeys(_WORD.findall(query.lower())))
    if not tokens:
        return None
    return " OR ".join(f'"{token}"' for token in tokens)


def build_keyword_query(keywords: Iterable[str]) -> Optional[str]:
    """Match any of the keywords, each as a phrase, in the keywords column only."""
    phrases = [p for p in (_phrase(k) for k in keywords) if p]
    if not phrases:
        return None
    return " OR ".join(f"keywords : {p}" for p in dict.fromkeys(phrases))


class KnowledgeBase:
    """Searchable store of research documents shared by every role in a run."""

    def __init__(self, db: aiosqlite.Connection, subject: str = "") -> None:
        self._db = db
        self.subject = subject
        self._documents: Dict[str, ResearchDocument] = {}
        self._lock = ReadWriteLock()
        self._closed = False

    @classmethod
    async def create(cls, subject: str = "") -> KnowledgeBase:
        """Open an empty knowledge base for the given subject."""
        db = await aiosqlite.connect(":memory:")
        try:
            await db.execute(_CREATE_INDEX)
            await db.commit()
        except aiosqlite.Error as exc:
            await db.close()
            raise KnowledgeBaseError("failed to create the search index") from exc
        logger.debug(f"Knowledge base created for subject {subject!r}")
        return cls(db, subject)

    async def __aenter__(self) -> KnowledgeBase:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    @property
    def closed(self) -> bool:
        return self._closed

    def _ensure_open(self) -> None:
        if self._closed:
            raise KnowledgeBaseClosedError("knowledge base is closed")

    async def add_document(self, doc: ResearchDocument) -> None:
        """
        Index a document and store it, replacing any document with the same id.

        Raises:
            KnowledgeBaseIndexError: If indexing fails; the store is left unchanged
        """
        if not doc.id:
            raise KnowledgeBaseIndexError("document id is required")
        async with self._lock.write():
            self._ensure_open()
            try:
                await self._db.execute("DELETE FROM research_index WHERE doc_id = ?", (doc.id,))
                await self._db.execute(
                    "INSERT INTO research_index (doc_id, title, content, summary, keywords, source_type) "
                    "VALUES (?, ?, ?, ?, ?, ?)",
                    (
                        doc.id,
                        doc.title,
                        doc.content,
                        doc.summary,
                        ", ".join(doc.keywords),
                        doc.source_type,
                    ),
                )
                await self._db.commit()
            except aiosqlite.Error as exc:
                await self._db.rollback()
                raise KnowledgeBaseIndexError(f"failed to index document {doc.id}") from exc
            self._documents[doc.id] = doc.model_copy(update={"relevance": 0.0})
        logger.debug(f"Indexed research document {doc.id} ({doc.source_type})")

    async def get_by_id(self, doc_id: str) -> ResearchDocument:
        async with self._lock.read():
            self._ensure_open()
            try:
                return self._documents[doc_id]
            except KeyError:
                raise DocumentNotFoundError(f"document {doc_id} not found") from None

    async def _ranked(self, match: str, limit: int) -> List[Tuple[str, float]]:
        try:
            async with self._db.execute(
                "SELECT doc_id, bm25(research_index) AS score FROM research_index "
                "WHERE research_index MATCH ? ORDER BY score LIMIT ?",
                (match, limit),
            ) as cursor:
                # bm25() is lower-is-better
                return [(row[0], -float(row[1])) async for row in cursor]
        except aiosqlite.Error as exc:
            raise KnowledgeBaseError(f"search failed for {match!r}") from exc

    def _materialize(self, hits: Sequence[Tuple[str, float]]) -> List[ResearchDocument]:
        results = []
        for doc_id, relevance in hits:
            doc = self._documents.get(doc_id)
            if doc is None:
                continue
            results.append(doc.model_copy(update={"relevance": relevance}))
        return results

    async def search(self, query: str, limit: int = 10) -> List[ResearchDocument]:
        """Free-text search over title, content, summary and keywords, best match first."""
        if limit <= 0:
            return []
        match = build_text_query(query)
        if match is None:
            return []
        async with self._lock.read():
            self._ensure_open()
            return self._materialize(await self._ranked(match, limit))

    async def find_by_keywords(self, keywords: Sequence[str]) -> List[ResearchDocument]:
        """Documents tagged with any of the keywords, best match first."""
        match = build_keyword_query(keywords)
        if match is None:
            return []
        async with self._lock.read():
            self._ensure_open()
            return self._materialize(await self._ranked(match, KEYWORD_RESULT_LIMIT))

    async def find_by_source_type(self, source_type: str) -> List[ResearchDocument]:
        """Documents whose source type equals source_type exactly."""
        async with self._lock.read():
            self._ensure_open()
            try:
                async with self._db.execute(
                    "SELECT doc_id FROM research_index WHERE source_type = ? ORDER BY rowid LIMIT ?",
                    (source_type, SOURCE_TYPE_RESULT_LIMIT),
                ) as cursor:
                    hits = [(row[0], 1.0) async for row in cursor]
            except aiosqlite.Error as exc:
                raise KnowledgeBaseError(f"source type lookup failed for {source_type!r}") from exc
            return self._materialize(hits)

    async def get_all_documents(self) -> List[ResearchDocument]:
        async with self._lock.read():
            self._ensure_open()
            return list(self._documents.values())

    async def get_stats(self) -> Dict[str, Any]:
        async with self._lock.read():
            self._ensure_open()
            counts = Counter(doc.source_type for doc in self._documents.values())
            return {
                "total_documents": len(self._documents),
                "subject": self.subject,
                "source_type_counts": dict(counts),
            }

    async def close(self) -> None:
        """Release the index. Closing twice is a no-op."""
        async with self._lock.write():
            if self._closed:
                return
            self._closed = True
            self._documents.clear()
            await self._db.close()
        logger.debug("Knowledge base closed")
