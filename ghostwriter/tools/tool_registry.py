"""
Tool Registry for Role Tool Calling

Tools are capabilities a role can invoke while it works: searching the web,
reading the workspace, or reading and writing the shared knowledge base.
"""

from __future__ import annotations

import inspect
import json
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class ToolResultStatus(str, Enum):
    """Tool execution result status."""

    SUCCESS = "success"
    ERROR = "error"


@dataclass
class ToolResult:
    """Result of tool execution."""

    status: ToolResultStatus
    result: Any
    error: Optional[str] = None
    execution_time: Optional[float] = None

    def as_text(self) -> str:
        """Render the result as the text handed back to the model."""
        if self.status == ToolResultStatus.ERROR:
            return f"Error: {self.error}"
        if isinstance(self.result, str):
            return self.result
        return json.dumps(self.result, default=str, ensure_ascii=False)


class ToolParameter(BaseModel):
    """Parameter definition for a tool."""

    name: str
    type: str  # "string", "number", "integer", "boolean", "array", "object"
    description: str
    required: bool = True
    enum: Optional[List[str]] = None
    items_type: Optional[str] = None


class Tool(BaseModel):
    """Tool definition for function calling."""

    name: str = Field(description="Tool name")
    description: str = Field(description="Tool description")
    parameters: List[ToolParameter] = Field(default_factory=list, description="Tool parameters")
    execute_fn: Optional[Callable[..., Any]] = Field(
        default=None, exclude=True, description="Execution function, sync or async"
    )

    def json_schema(self) -> Dict[str, Any]:
        """JSON schema of the tool's arguments."""
        properties: Dict[str, Any] = {}
        required = []

        for param in self.parameters:
            prop_def: Dict[str, Any] = {"type": param.type, "description": param.description}
            if param.enum:
                prop_def["enum"] = param.enum
            if param.type == "array":
                prop_def["items"] = {"type": param.items_type or "string"}

            properties[param.name] = prop_def

            if param.required:
                required.append(param.name)

        return {"type": "object", "properties": properties, "required": required}

    def to_openai_format(self) -> Dict[str, Any]:
        """Convert tool to OpenAI function calling format."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.json_schema(),
            },
        }

    def validate_arguments(self, arguments: Dict[str, Any]) -> Optional[str]:
        """
        Validate tool arguments against parameter definitions.

        Args:
            arguments: Arguments to validate

        Returns:
            An error message, or None if the arguments are valid
        """
        known = {param.name for param in self.parameters}
        for name in arguments:
            if name not in known:
                return f"Unknown parameter: {name}"

        for param in self.parameters:
            if param.name not in arguments:
                if param.required:
                    return f"Missing required parameter: {param.name}"
                continue

            value = arguments[param.name]
            if param.type == "string" and not isinstance(value, str):
                return f"Parameter {param.name} must be string"
            if param.type in ("number", "integer") and (
                isinstance(value, bool) or not isinstance(value, (int, float))
            ):
                return f"Parameter {param.name} must be number"
            if param.type == "boolean" and not isinstance(value, bool):
                return f"Parameter {param.name} must be boolean"
            if param.type == "array" and not isinstance(value, list):
                return f"Parameter {param.name} must be array"
            if param.enum and value not in param.enum:
                return f"Parameter {param.name} must be one of {param.enum}"

        return None

    async def execute(self, arguments: Dict[str, Any]) -> ToolResult:
        """
        Execute tool with given arguments.

        Failures are reported through the returned ToolResult so the model
        can see them and recover.

        Args:
            arguments: Tool arguments

        Returns:
            ToolResult
        """
        if not self.execute_fn:
            return ToolResult(
                status=ToolResultStatus.ERROR,
                result=None,
                error="Tool execution function not defined",
            )

        problem = self.validate_arguments(arguments)
        if problem:
            logger.warning(f"Tool {self.name} called with invalid arguments: {problem}")
            return ToolResult(status=ToolResultStatus.ERROR, result=None, error=problem)

        try:
            start_time = time.monotonic()
            result = self.execute_fn(**arguments)
            if inspect.isawaitable(result):
                result = await result
            execution_time = time.monotonic() - start_time

            return ToolResult(
                status=ToolResultStatus.SUCCESS,
                result=result,
                execution_time=execution_time,
            )
        except Exception as e:
            logger.error(f"Tool {self.name} execution failed: {e}", exc_info=True)
            return ToolResult(status=ToolResultStatus.ERROR, result=None, error=str(e))


class ToolRegistry:
    """Registry for managing tools."""

    def __init__(self, tools: Iterable[Tool] = ()):
        self.tools: Dict[str, Tool] = {}
        for tool in tools:
            self.register(tool)

    def register(self, tool: Tool):
        """
        Register a tool.

        Args:
            tool: Tool to register
        """
        if tool.name in self.tools:
            logger.warning(f"Tool {tool.name} already registered, overwriting")

        self.tools[tool.name] = tool
        logger.debug(f"Registered tool: {tool.name}")

    def get_tool(self, name: str) -> Optional[Tool]:
        return self.tools.get(name)

    def list_tools(self) -> List[str]:
        """List all registered tool names."""
        return list(self.tools.keys())

    def get_tools_for_llm(self) -> List[Dict[str, Any]]:
        """Get tool definitions in the chat-completions function calling format."""
        return [tool.to_openai_format() for tool in self.tools.values()]

    async def execute_tool(self, name: str, arguments: Dict[str, Any]) -> ToolResult:
        """
        Execute a tool by name.

        Args:
            name: Tool name
            arguments: Tool arguments

        Returns:
            ToolResult
        """
        tool = self.get_tool(name)
        if not tool:
            return ToolResult(
                status=ToolResultStatus.ERROR,
                result=None,
                error=f"Tool {name} not found",
            )

        return await tool.execute(arguments)
