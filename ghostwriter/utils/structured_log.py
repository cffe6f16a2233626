"""Structured JSON-lines run log for progress, phases and completion calls."""

from __future__ import annotations

from pathlib import Path
from typing import IO, Any

import structlog
from structlog.processors import JSONRenderer
from structlog.typing import Processor

_configured = False
_logger: structlog.BoundLogger | None = None
_file_handle: IO[str] | None = None


def configure_run_logging(log_dir: str) -> Path:
    """One-time setup at run start. Writes JSON lines to {log_dir}/run.jsonl."""
    global _configured, _logger, _file_handle
    run_log_path = Path(log_dir) / "run.jsonl"
    if _configured:
        return run_log_path
    run_log_path.parent.mkdir(parents=True, exist_ok=True)
    _file_handle = open(run_log_path, "a", encoding="utf-8")
    file_handle = _file_handle

    def _file_logger_factory(*args: Any, **kwargs: Any) -> structlog.PrintLogger:
        return structlog.PrintLogger(file_handle)

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        JSONRenderer(default=str),
    ]
    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=_file_logger_factory,
        cache_logger_on_first_use=False,
    )
    _configured = True
    _logger = structlog.get_logger()
    return run_log_path


def shutdown_run_logging() -> None:
    """Flush and close the run log; later calls to the log_* helpers are no-ops."""
    global _configured, _logger, _file_handle
    if _file_handle is not None:
        _file_handle.close()
    structlog.contextvars.clear_contextvars()
    _configured = False
    _logger = None
    _file_handle = None


def bind_run(run_id: str, subject: str) -> None:
    """Bind run context so every log line includes run_id and subject."""
    structlog.contextvars.bind_contextvars(run_id=run_id, subject=subject)


def log_phase(phase: str, action: str, **summary: Any) -> None:
    """Log phase transition (action: start|done|failed)."""
    if _logger is not None:
        _logger.info("phase", phase=phase, action=action, **summary)


def log_progress(
    phase: str,
    step: str,
    progress: float,
    elapsed_seconds: float,
    remaining_seconds: float,
) -> None:
    """Log one progress event."""
    if _logger is not None:
        _logger.info(
            "progress",
            phase=phase,
            step=step,
            progress=round(progress, 4),
            elapsed_s=round(elapsed_seconds, 2),
            eta_s=round(remaining_seconds, 2),
        )


def log_api_call(
    model: str,
    status: str,
    *,
    latency_ms: int | None = None,
    tokens_in: int | None = None,
    tokens_out: int | None = None,
    error: str | None = None,
) -> None:
    """Log a completion API call."""
    payload: dict[str, Any] = {"model": model, "status": status}
    if latency_ms is not None:
        payload["latency_ms"] = latency_ms
    if tokens_in is not None:
        payload["tokens_in"] = tokens_in
    if tokens_out is not None:
        payload["tokens_out"] = tokens_out
    if error is not None:
        payload["error"] = error
    if _logger is not None:
        _logger.info("api_call", **payload)


def log_rate_limit_wait(slots_used: int, limit: int) -> None:
    """Log rate limit wait event."""
    if _logger is not None:
        _logger.info("rate_limit_wait", slots_used=slots_used, limit=limit)
