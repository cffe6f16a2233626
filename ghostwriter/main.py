"""CLI entry point."""

from __future__ import annotations

# Set certifi CA bundle for SSL before any HTTP libs load
import os

import certifi

os.environ.setdefault("SSL_CERT_FILE", certifi.where())
os.environ.setdefault("REQUESTS_CA_BUNDLE", certifi.where())

import argparse
import asyncio
from pathlib import Path
from typing import List, Optional, Sequence

import yaml
from rich.console import Console
from rich.markup import escape
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeRemainingColumn,
)

from ghostwriter.config.loader import load_settings, resolve_api_key
from ghostwriter.errors import KnowledgeBaseError, PipelineError
from ghostwriter.llm.openai_client import OpenAICompatibleClient
from ghostwriter.llm.rate_limiter import RateLimiter
from ghostwriter.llm.resilient_client import ResilientCompletionClient
from ghostwriter.models import Document, OrchestratorOptions, ResearchDepth, SettingsConfig
from ghostwriter.pipeline.orchestrator import Orchestrator
from ghostwriter.pipeline.progress import ProgressEvent, progress_event_channel
from ghostwriter.tools.filesystem import WorkspaceFS, create_filesystem_tools
from ghostwriter.tools.tavily_tool import create_web_tools
from ghostwriter.tools.tool_registry import Tool
from ghostwriter.utils.circuit_breaker import CircuitBreaker, CircuitBreakerConfig
from ghostwriter.utils.logging_config import LogLevel, get_logger, setup_logging
from ghostwriter.utils.retry_strategies import RetryConfig
from ghostwriter.utils.structured_log import (
    configure_run_logging,
    log_progress,
    log_rate_limit_wait,
    shutdown_run_logging,
)
from ghostwriter.utils.text import slugify

logger = get_logger(__name__)

DEFAULT_SETTINGS_PATH = "config/settings.yaml"


def _env(name: str, default: Optional[str] = None) -> Optional[str]:
    return os.getenv(f"GHOSTWRITER_{name}", default)


def _env_flag(name: str) -> bool:
    return (_env(name) or "").strip().lower() in ("1", "true", "yes", "on")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ghostwriter",
        description="Generate long-form markdown documents with cooperating LLM roles",
    )
    sub = parser.add_subparsers(dest="command")

    write = sub.add_parser("write", help="Generate a document about a subject")
    write.add_argument("--subject", "-s", default=_env("SUBJECT"), help="What the document is about")
    write.add_argument(
        "--target-words",
        "-t",
        type=int,
        default=_env("TARGET_WORDS"),
        help="Target word count (default: from settings)",
    )
    write.add_argument("--style-guide", "-g", default=_env("STYLE_GUIDE", ""), help="File with style guidelines for the writers")
    write.add_argument(
        "--workspace",
        "-w",
        default=_env("WORKSPACE"),
        help="Directory the roles may read; its tree is added to the context",
    )
    write.add_argument(
        "--additional-context",
        "-c",
        default=_env("ADDITIONAL_CONTEXT", ""),
        help="File with extra context handed to every role",
    )
    write.add_argument("--output", "-o", default=_env("OUTPUT"), help="Output file (default: <title slug>.md)")
    write.add_argument(
        "--settings",
        default=_env("SETTINGS"),
        help=f"Settings YAML (default: {DEFAULT_SETTINGS_PATH} when present)",
    )
    write.add_argument(
        "--max-writers",
        type=int,
        default=_env("MAX_CONCURRENT_WRITERS"),
        help="Maximum sections written at once",
    )
    write.add_argument(
        "--research-depth",
        choices=[depth.value for depth in ResearchDepth],
        default=_env("RESEARCH_DEPTH"),
        help="How much research backs each task",
    )
    write.add_argument(
        "--research",
        action="store_true",
        default=_env_flag("RESEARCH"),
        help="Run a research phase that fills the knowledge base before planning",
    )
    write.add_argument("--timeout", type=float, default=_env("TIMEOUT"), help="Whole-run deadline in seconds")
    write.add_argument("--log-dir", default=_env("LOG_DIR"), help="Directory for the JSON-lines run log")
    write.add_argument(
        "--verbose", "-v", action="store_true", default=_env_flag("VERBOSE"), help="Per-phase status and rules"
    )
    write.add_argument(
        "--debug", "-d", action="store_true", default=_env_flag("DEBUG"), help="Verbose plus debug logging"
    )
    return parser


def render_document(document: Document, subject: str) -> str:
    """Markdown file contents: YAML front matter, the body, then linked sources."""
    metadata = {**document.metadata(), "subject": subject}
    front_matter = yaml.safe_dump(metadata, sort_keys=False, allow_unicode=True)
    parts = [f"---\n{front_matter}---\n\n", document.content.strip()]

    linked = [source for source in document.sources if source.url]
    if linked:
        parts.append("\n\n---\n\n**Sources**\n\n")
        parts.append("\n".join(f"- [{source.title or source.url}]({source.url})" for source in linked))
    return "".join(parts) + "\n"


def default_output_path(document: Document) -> Path:
    return Path(f"{slugify(document.title) or 'document'}.md")


def build_client(settings: SettingsConfig, api_key: Optional[str]) -> ResilientCompletionClient:
    llm = settings.llm
    return ResilientCompletionClient(
        OpenAICompatibleClient(llm.base_url, llm.model, api_key=api_key, timeout_seconds=llm.request_timeout),
        rate_limiter=RateLimiter(llm.requests_per_minute, on_waiting=log_rate_limit_wait),
        retry_config=RetryConfig(max_attempts=llm.max_retries),
        circuit_breaker=CircuitBreaker(
            CircuitBreakerConfig(
                failure_threshold=llm.circuit_failure_threshold,
                timeout=llm.circuit_reset_timeout,
            )
        ),
    )


def build_tools(workspace: Optional[WorkspaceFS]) -> List[Tool]:
    tools = create_web_tools()
    if workspace is not None:
        tools.extend(create_filesystem_tools(workspace))
    return tools


def read_text_file(path: Optional[str]) -> str:
    if not path:
        return ""
    return Path(path).read_text(encoding="utf-8").strip()


def build_options(args: argparse.Namespace, settings: SettingsConfig, workspace: Optional[WorkspaceFS]) -> OrchestratorOptions:
    style_guidelines = read_text_file(args.style_guide)
    context = read_text_file(args.additional_context)
    if workspace is not None:
        tree = workspace.directory_tree()
        context = f"{context}\n\nWorkspace directory tree:\n\n{tree}".strip()
    return OrchestratorOptions.from_settings(
        settings.orchestrator,
        max_concurrent_writers=args.max_writers,
        timeout=args.timeout,
        target_word_count=args.target_words,
        research_depth=args.research_depth,
        style_guidelines=style_guidelines,
        additional_context=context,
        tools=tuple(build_tools(workspace)),
    )


def create_progress(console: Console) -> Progress:
    """Create a Rich Progress instance for the generation phases."""
    return Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TextColumn("{task.percentage:>3.0f}%"),
        TimeRemainingColumn(),
        console=console,
    )


def _show(event: ProgressEvent, progress: Progress, task_id: TaskID) -> None:
    progress.update(
        task_id,
        completed=event.progress * 100,
        description=f"{event.phase.value}: {escape(event.step)}",
    )
    log_progress(
        event.phase.value,
        event.step,
        event.progress,
        event.elapsed_time.total_seconds(),
        event.estimated_time_remaining.total_seconds(),
    )


async def _follow_progress(queue: asyncio.Queue, progress: Progress, task_id: TaskID) -> None:
    while True:
        _show(await queue.get(), progress, task_id)


async def generate(
    subject: str,
    orchestrator_factory,
    options: OrchestratorOptions,
    console: Console,
) -> Document:
    """Run one generation while rendering its progress events."""
    queue, publish = progress_event_channel()
    orchestrator: Orchestrator = orchestrator_factory(publish)
    with create_progress(console) as progress:
        task_id = progress.add_task("Starting", total=100)
        follower = asyncio.create_task(_follow_progress(queue, progress, task_id))
        try:
            return await orchestrator.write_document(subject, options)
        finally:
            follower.cancel()
            try:
                await follower
            except asyncio.CancelledError:
                pass
            while not queue.empty():
                _show(queue.get_nowait(), progress, task_id)


def _load(args: argparse.Namespace) -> SettingsConfig:
    path = args.settings
    if path is None and Path(DEFAULT_SETTINGS_PATH).exists():
        path = DEFAULT_SETTINGS_PATH
    return load_settings(path)


def run_write(args: argparse.Namespace, console: Console) -> int:
    if not args.subject or not args.subject.strip():
        console.print("[red]Error:[/] --subject is required (or set GHOSTWRITER_SUBJECT).")
        return 1

    try:
        settings = _load(args)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error loading settings:[/] {e}")
        return 1

    setup_logging(
        level=LogLevel(settings.logging.level),
        log_to_file=settings.logging.log_to_file,
        log_file=settings.logging.log_file,
        verbose=args.verbose,
        debug=args.debug,
    )
    log_dir = args.log_dir or settings.logging.log_dir
    if log_dir:
        run_log = configure_run_logging(log_dir)
        logger.info(f"Run log: {run_log}")

    try:
        api_key = resolve_api_key(settings)
        if api_key is None:
            logger.warning(f"{settings.llm.api_key_env} is not set; sending requests without credentials")

        try:
            workspace = WorkspaceFS(args.workspace) if args.workspace else None
            options = build_options(args, settings, workspace)
        except (OSError, ValueError) as e:
            console.print(f"[red]Error:[/] {e}")
            return 1

        client = build_client(settings, api_key)
        with_researcher = args.research or settings.orchestrator.enable_research

        def factory(publish):
            return Orchestrator.from_client(
                client,
                role_settings=settings.roles,
                writer_count=settings.orchestrator.writer_count,
                with_researcher=with_researcher,
                progress_callback=publish,
                show_phase_rules=args.verbose or args.debug,
            )

        try:
            document = asyncio.run(generate(args.subject, factory, options, console))
        except (PipelineError, KnowledgeBaseError) as e:
            logger.error(f"Document generation failed: {e}")
            console.print(f"[red]Error:[/] {e}")
            return 1

        output = Path(args.output) if args.output else default_output_path(document)
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(render_document(document, args.subject), encoding="utf-8")
        console.print(
            f"[green]Wrote[/] {output} ({document.word_count} words, {len(document.sections)} sections)"
        )
        return 0
    finally:
        shutdown_run_logging()


def main(argv: Sequence[str] | None = None) -> int:
    console = Console()
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command is None:
        parser.print_help()
        return 0

    if args.command == "write":
        return run_write(args, console)

    console.print(f"Unknown command '{args.command}'")
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
