"""
Unit tests for the command line interface.
"""

import logging

import pytest
import yaml
from rich.console import Console

from conftest import scripted_llm
from ghostwriter import main as cli
from ghostwriter.errors import KnowledgeBaseError
from ghostwriter.models import Document, ResearchDepth, SettingsConfig
from ghostwriter.models.document import Source
from ghostwriter.tools.filesystem import WorkspaceFS

PLAN = {
    "title": "Pinning Explained",
    "keywords": ["rust"],
    "sections": [
        {"title": "What Pin Guarantees", "word_count": 200},
        {"title": "Unpin", "word_count": 200},
    ],
}


@pytest.fixture
def console():
    return Console(record=True, width=400)


@pytest.fixture(autouse=True)
def restore_package_logger():
    logger = logging.getLogger("ghostwriter")
    handlers, level = list(logger.handlers), logger.level
    yield
    logger.handlers[:] = handlers
    logger.setLevel(level)


def parse(*argv):
    return cli.build_parser().parse_args(["write", *argv])


def test_parser_defaults():
    args = parse("--subject", "pinning")

    assert args.subject == "pinning"
    assert args.target_words is None
    assert args.max_writers is None
    assert args.research is False
    assert args.style_guide == ""


def test_parser_reads_environment_defaults(monkeypatch):
    monkeypatch.setenv("GHOSTWRITER_SUBJECT", "from env")
    monkeypatch.setenv("GHOSTWRITER_TARGET_WORDS", "800")
    monkeypatch.setenv("GHOSTWRITER_RESEARCH", "yes")

    args = parse()

    assert args.subject == "from env"
    assert args.target_words == 800
    assert args.research is True


def test_parser_rejects_unknown_depth():
    with pytest.raises(SystemExit):
        parse("--research-depth", "shallow")


def test_render_document_front_matter_and_sources():
    document = Document(
        title="Pinning Explained",
        word_count=42,
        keywords=["rust"],
        content="\n# Pinning Explained\n\nBody.\n\n",
        sources=[
            Source(url="https://doc.rust-lang.org/pin", title="Pin docs"),
            Source(title="A book without a link"),
        ],
    )

    rendered = cli.render_document(document, "pinning")

    front, body = rendered.split("---\n\n", 1)
    metadata = yaml.safe_load(front.strip("-\n"))
    assert metadata == {
        "title": "Pinning Explained",
        "word_count": 42,
        "keywords": ["rust"],
        "sources": ["https://doc.rust-lang.org/pin", "A book without a link"],
        "subject": "pinning",
    }
    assert body == (
        "# Pinning Explained\n\nBody.\n\n---\n\n**Sources**\n\n"
        "- [Pin docs](https://doc.rust-lang.org/pin)\n"
    )


def test_render_document_without_linked_sources():
    rendered = cli.render_document(Document(title="T", content="Body"), "s")

    assert rendered.endswith("---\n\nBody\n")
    assert "**Sources**" not in rendered


def test_default_output_path():
    assert str(cli.default_output_path(Document(title="Pinning: Explained!"))) == "pinning-explained.md"
    assert str(cli.default_output_path(Document(title="???"))) == "document.md"


def test_build_options_merges_settings_and_workspace(tmp_path):
    root = tmp_path / "ws"
    root.mkdir()
    (root / "notes.md").write_text("notes", encoding="utf-8")
    context = tmp_path / "context.txt"
    context.write_text("Audience: experts\n", encoding="utf-8")
    args = parse("--subject", "x", "--max-writers", "2", "--research-depth", "basic", "-c", str(context))

    options = cli.build_options(args, SettingsConfig(), WorkspaceFS(root))

    assert options.max_concurrent_writers == 2
    assert options.research_depth == ResearchDepth.BASIC
    assert options.target_word_count == 1500
    assert options.additional_context == (
        "Audience: experts\n\nWorkspace directory tree:\n\n|- notes.md (file)"
    )
    assert [tool.name for tool in options.tools] == ["list_directory", "read_file"]


def test_build_options_reads_style_guide_file(tmp_path):
    style = tmp_path / "style.md"
    style.write_text("Use British spelling.\nNo bullet lists.\n", encoding="utf-8")

    options = cli.build_options(parse("--subject", "x", "-g", str(style)), SettingsConfig(), None)

    assert options.style_guidelines == "Use British spelling.\nNo bullet lists."
    assert options.additional_context == ""


@pytest.mark.parametrize("flag", ["--style-guide", "--additional-context"])
def test_run_write_reports_missing_input_file(console, tmp_path, monkeypatch, flag):
    missing = tmp_path / "absent.md"
    monkeypatch.setattr(cli, "build_client", lambda settings, api_key: pytest.fail("client built"))

    assert cli.run_write(parse("--subject", "x", flag, str(missing)), console) == 1
    text = console.export_text()
    assert "Error:" in text
    assert "absent.md" in text


def test_run_write_requires_subject(console):
    assert cli.run_write(parse(), console) == 1
    assert "--subject is required" in console.export_text()


def test_run_write_reports_missing_settings(console, tmp_path):
    args = parse("--subject", "x", "--settings", str(tmp_path / "missing.yaml"))

    assert cli.run_write(args, console) == 1
    assert "Error loading settings" in console.export_text()


def test_run_write_reports_bad_workspace(console, tmp_path):
    args = parse("--subject", "x", "--workspace", str(tmp_path / "nowhere"))

    assert cli.run_write(args, console) == 1
    assert "Workspace is not a directory" in console.export_text()


def test_run_write_generates_markdown_file(console, tmp_path, monkeypatch):
    monkeypatch.setattr(cli, "build_client", lambda settings, api_key: scripted_llm(PLAN))
    output = tmp_path / "out" / "pin.md"
    args = parse(
        "--subject", "pinning",
        "--output", str(output),
        "--target-words", "400",
        "--log-dir", str(tmp_path / "logs"),
    )

    assert cli.run_write(args, console) == 0

    text = output.read_text(encoding="utf-8")
    assert text.startswith("---\ntitle: Pinning Explained\n")
    assert "subject: pinning" in text
    assert "# Pinning Explained" in text
    assert "- [https://example.com/unpin](https://example.com/unpin)" in text
    assert (tmp_path / "logs" / "run.jsonl").exists()
    assert f"Wrote {output}" in console.export_text()


def test_main_without_command_prints_help(capsys):
    assert cli.main([]) == 0
    assert "ghostwriter" in capsys.readouterr().out


def test_run_write_reports_knowledge_base_failure(console, tmp_path, monkeypatch):
    async def broken_create(subject):
        raise KnowledgeBaseError("failed to create the search index")

    monkeypatch.setattr(cli, "build_client", lambda settings, api_key: scripted_llm(PLAN))
    monkeypatch.setattr("ghostwriter.pipeline.orchestrator.KnowledgeBase.create", broken_create)
    output = tmp_path / "pin.md"

    assert cli.run_write(parse("--subject", "pinning", "--output", str(output)), console) == 1
    assert "Error: failed to create the search index" in console.export_text()
    assert not output.exists()
