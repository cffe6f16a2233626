"""
Log context helpers for pipeline phases and role operations.
"""

import time
from contextlib import contextmanager

from rich.console import Console
from rich.rule import Rule

from ghostwriter.utils.logging_config import get_logger

logger = get_logger(__name__)
console = Console(stderr=True)


@contextmanager
def role_log_context(role: str, operation: str):
    """
    Log the start, completion and failure of a role operation.

    Args:
        role: Role name
        operation: Operation name
    """
    started = time.monotonic()
    logger.debug(f"[{role}] Starting {operation}")
    try:
        yield
    except Exception as e:
        logger.error(f"[{role}] Failed {operation}: {e}")
        raise
    logger.debug(f"[{role}] Completed {operation} in {time.monotonic() - started:.2f}s")


@contextmanager
def workflow_phase_context(phase: str, show_rules: bool = False):
    """
    Context manager for pipeline phases.

    Args:
        phase: Phase name
        show_rules: Print a rich rule around the phase
    """
    started = time.monotonic()
    if show_rules:
        console.print(Rule(f"[dim]Phase: {phase}[/dim]", style="dim"))
    logger.info(f"=== Phase: {phase} ===")
    try:
        yield
    except Exception as e:
        logger.error(f"=== Phase {phase} failed: {e} ===", exc_info=True)
        raise
    duration = time.monotonic() - started
    if show_rules:
        console.print(Rule(f"[dim]Phase {phase} completed[/dim]", style="dim"))
    logger.info(f"=== Phase {phase} completed in {duration:.2f}s ===")
