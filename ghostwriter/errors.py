"""
Error taxonomy

Every failure the pipeline can surface is one of these types. Phase failures
abort the run; knowledge-base failures are fatal only to the operation that
raised them.
"""

from __future__ import annotations

from typing import List, Optional, Sequence


class PipelineError(Exception):
    """Base exception for pipeline errors"""
    pass


class ValidationError(PipelineError):
    """Raised when a document plan fails validation"""
    pass


class ProtocolError(PipelineError):
    """Raised when a role answers with the wrong origin or the wrong event type"""
    pass


class RoleError(PipelineError):
    """Raised when a role's handler fails while processing an event."""

    def __init__(self, role: str, cause: BaseException, event_id: Optional[str] = None):
        self.role = role
        self.cause = cause
        self.event_id = event_id
        super().__init__(f"role {role} failed: {cause}")
        self.__cause__ = cause


class RoleNotRunningError(PipelineError):
    """Raised when an event is submitted to a role that is not started"""
    pass


class ScopeError(PipelineError, TimeoutError):
    """Raised when the run scope expires before a phase finishes"""
    pass


class TeardownError(PipelineError):
    """Raised when stopping roles fails on an otherwise successful run."""

    def __init__(self, errors: Sequence[BaseException]):
        self.errors: List[BaseException] = list(errors)
        details = "; ".join(str(err) for err in self.errors)
        super().__init__(f"{len(self.errors)} role(s) failed to stop: {details}")


class KnowledgeBaseError(Exception):
    """Base exception for knowledge base errors"""
    pass


class KnowledgeBaseIndexError(KnowledgeBaseError):
    """Raised when a document cannot be written to the search index"""
    pass


class KnowledgeBaseClosedError(KnowledgeBaseError):
    """Raised when a closed knowledge base is used"""
    pass


class DocumentNotFoundError(KnowledgeBaseError, KeyError):
    """Raised when a document id is not in the knowledge base"""

    def __str__(self) -> str:
        return Exception.__str__(self)
