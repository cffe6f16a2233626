"""
Unit tests for tool registry.
"""

import pytest

from ghostwriter.tools.tool_registry import (
    Tool,
    ToolParameter,
    ToolRegistry,
    ToolResult,
    ToolResultStatus,
)


class TestTool:
    """Test Tool class."""

    def test_to_openai_format(self, sample_tool):
        formatted = sample_tool.to_openai_format()

        assert formatted["type"] == "function"
        assert formatted["function"]["name"] == "test_tool"
        assert formatted["function"]["parameters"] == {
            "type": "object",
            "properties": {"query": {"type": "string", "description": "Test query"}},
            "required": ["query"],
        }

    def test_array_parameters_declare_items(self):
        tool = Tool(
            name="tags",
            description="Takes tags",
            parameters=[
                ToolParameter(name="tags", type="array", description="Tags", items_type="string"),
                ToolParameter(name="mode", type="string", description="Mode", enum=["a", "b"], required=False),
            ],
        )

        schema = tool.json_schema()

        assert schema["properties"]["tags"]["items"] == {"type": "string"}
        assert schema["properties"]["mode"]["enum"] == ["a", "b"]
        assert schema["required"] == ["tags"]

    @pytest.mark.parametrize(
        "arguments,problem",
        [
            ({}, "Missing required parameter: query"),
            ({"query": 3}, "Parameter query must be string"),
            ({"query": "x", "extra": 1}, "Unknown parameter: extra"),
        ],
    )
    def test_validate_arguments(self, sample_tool, arguments, problem):
        assert sample_tool.validate_arguments(arguments) == problem

    def test_validate_number_rejects_bool(self):
        tool = Tool(
            name="n",
            description="n",
            parameters=[ToolParameter(name="count", type="integer", description="count")],
        )
        assert tool.validate_arguments({"count": True}) == "Parameter count must be number"
        assert tool.validate_arguments({"count": 4}) is None

    @pytest.mark.asyncio
    async def test_execute_sync_function(self, sample_tool):
        result = await sample_tool.execute({"query": "rust"})

        assert result.status == ToolResultStatus.SUCCESS
        assert result.result == "Result for: rust"
        assert result.execution_time is not None

    @pytest.mark.asyncio
    async def test_execute_async_function(self):
        async def lookup(term: str) -> dict:
            return {"term": term, "hits": 2}

        tool = Tool(
            name="lookup",
            description="Async lookup",
            parameters=[ToolParameter(name="term", type="string", description="Term")],
            execute_fn=lookup,
        )

        result = await tool.execute({"term": "waker"})

        assert result.result == {"term": "waker", "hits": 2}
        assert result.as_text() == '{"term": "waker", "hits": 2}'

    @pytest.mark.asyncio
    async def test_execute_reports_failures_instead_of_raising(self):
        def broken(query: str) -> str:
            raise OSError("disk on fire")

        tool = Tool(
            name="broken",
            description="Always fails",
            parameters=[ToolParameter(name="query", type="string", description="q")],
            execute_fn=broken,
        )

        result = await tool.execute({"query": "x"})

        assert result.status == ToolResultStatus.ERROR
        assert result.error == "disk on fire"
        assert result.as_text() == "Error: disk on fire"

    @pytest.mark.asyncio
    async def test_execute_without_function(self):
        result = await Tool(name="empty", description="No fn").execute({})

        assert result.status == ToolResultStatus.ERROR
        assert "not defined" in result.error


class TestToolRegistry:
    """Test ToolRegistry class."""

    def test_register_and_list(self, sample_tool):
        registry = ToolRegistry()
        registry.register(sample_tool)

        assert registry.list_tools() == ["test_tool"]
        assert registry.get_tool("test_tool") is sample_tool
        assert registry.get_tool("missing") is None
        assert registry.get_tools_for_llm()[0]["function"]["name"] == "test_tool"

    def test_register_overwrites_by_name(self, sample_tool):
        replacement = sample_tool.model_copy(update={"description": "newer"})
        registry = ToolRegistry([sample_tool, replacement])

        assert registry.get_tool("test_tool").description == "newer"

    @pytest.mark.asyncio
    async def test_execute_unknown_tool(self):
        result = await ToolRegistry().execute_tool("nope", {})

        assert result.status == ToolResultStatus.ERROR
        assert result.error == "Tool nope not found"

    @pytest.mark.asyncio
    async def test_execute_tool_by_name(self, sample_tool):
        result = await ToolRegistry([sample_tool]).execute_tool("test_tool", {"query": "q"})

        assert isinstance(result, ToolResult)
        assert result.as_text() == "Result for: q"
