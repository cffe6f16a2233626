"""Shared research knowledge base."""

from .rwlock import ReadWriteLock
from .store import KnowledgeBase
from .tools import create_knowledge_tools, format_search_results

__all__ = ["KnowledgeBase", "ReadWriteLock", "create_knowledge_tools", "format_search_results"]
