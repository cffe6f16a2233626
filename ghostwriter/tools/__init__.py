"""Tool capabilities available to roles."""

from .filesystem import WorkspaceFS, create_filesystem_tools
from .tool_registry import Tool, ToolParameter, ToolRegistry, ToolResult, ToolResultStatus

__all__ = [
    "Tool",
    "ToolParameter",
    "ToolRegistry",
    "ToolResult",
    "ToolResultStatus",
    "WorkspaceFS",
    "create_filesystem_tools",
]
