"""
Workspace Filesystem Tools

Read-only access to a workspace directory. Every path is resolved against the
workspace root and rejected if it escapes it.
"""

from __future__ import annotations

import fnmatch
import logging
from pathlib import Path
from typing import List, Sequence, Union

from .tool_registry import Tool, ToolParameter

logger = logging.getLogger(__name__)

DEFAULT_IGNORED = (".git",)


class WorkspaceFS:
    """Confines file access to a single root directory."""

    def __init__(self, root: Union[str, Path], ignored: Sequence[str] = DEFAULT_IGNORED):
        self.root = Path(root).resolve()
        if not self.root.is_dir():
            raise NotADirectoryError(f"Workspace is not a directory: {root}")
        self.ignored = tuple(ignored)

    def resolve(self, relative: str) -> Path:
        candidate = (self.root / relative).resolve()
        if candidate != self.root and self.root not in candidate.parents:
            raise PermissionError(f"Path escapes workspace: {relative}")
        return candidate

    def _is_ignored(self, relative: str) -> bool:
        return any(
            fnmatch.fnmatch(relative, pattern) or fnmatch.fnmatch(Path(relative).name, pattern)
            for pattern in self.ignored
        )

    def read_file(self, path: str) -> str:
        return self.resolve(path).read_text(encoding="utf-8", errors="replace")

    def directory_tree(self, path: str = ".") -> str:
        """Indented listing of everything under path, skipping ignored entries."""
        start = self.resolve(path)
        lines: List[str] = []

        def walk(directory: Path, depth: int) -> None:
            for entry in sorted(directory.iterdir(), key=lambda p: p.name):
                relative = entry.relative_to(self.root).as_posix()
                if self._is_ignored(relative):
                    continue
                kind = "directory" if entry.is_dir() else "file"
                lines.append(f"{'  ' * depth}|- {entry.name} ({kind})")
                if entry.is_dir():
                    walk(entry, depth + 1)

        walk(start, 0)
        return "\n".join(lines) + ("\n" if lines else "")


def create_filesystem_tools(workspace: WorkspaceFS) -> List[Tool]:
    """
    Create the read-only workspace tools.

    Args:
        workspace: Workspace the tools are confined to

    Returns:
        The list directory and read file tools
    """

    def list_directory(path: str) -> str:
        return "**Directory Tree**:\n\n" + workspace.directory_tree(path)

    def read_file(path: str) -> str:
        return workspace.read_file(path)

    return [
        Tool(
            name="list_directory",
            description="List files in the given workspace directory",
            parameters=[
                ToolParameter(name="path", type="string", description="The path to the directory"),
            ],
            execute_fn=list_directory,
        ),
        Tool(
            name="read_file",
            description="Read a file from the workspace",
            parameters=[
                ToolParameter(name="path", type="string", description="The path to the file"),
            ],
            execute_fn=read_file,
        ),
    ]
