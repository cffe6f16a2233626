"""
Base role handler

Common plumbing for handlers backed by a completion client: answering an
event with a response whose origin is that event, a bounded tool-calling
loop, and JSON parsing of structured answers.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from typing import Optional, Sequence, Type, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from ghostwriter.llm.base_client import ChatMessage, CompletionClient, ResponseSchema
from ghostwriter.pipeline.events import PipelineEvent
from ghostwriter.tools.tool_registry import Tool, ToolRegistry
from ghostwriter.utils.log_context import role_log_context
from ghostwriter.utils.logging_config import get_logger
from ghostwriter.utils.text import strip_markdown_json

T = TypeVar("T", bound=BaseModel)

logger = get_logger(__name__)

FINAL_ANSWER_NUDGE = "Stop using tools now and give your final answer."


class StructuredOutputError(ValueError):
    """The model's answer did not match the expected JSON structure."""


def response_schema_for(name: str, model: Type[BaseModel], description: str = "") -> ResponseSchema:
    return ResponseSchema(name=name, schema=model.model_json_schema(), description=description)


def parse_structured(text: str, model: Type[T]) -> T:
    try:
        return model.model_validate_json(strip_markdown_json(text))
    except PydanticValidationError as exc:
        raise StructuredOutputError(
            f"could not parse {model.__name__} from response: {text[:200]!r}"
        ) from exc


class BaseRoleHandler(ABC):
    """
    Base class for LLM-backed role handlers.

    Instances are the handler callables given to a Role: each call handles one
    event and puts exactly one response on the output queue.
    """

    name = "role"

    def __init__(self, client: CompletionClient, temperature: float = 0.7, max_tool_iterations: int = 6):
        self.client = client
        self.temperature = temperature
        self.max_tool_iterations = max_tool_iterations

    async def __call__(self, event: PipelineEvent, outputs: asyncio.Queue) -> None:
        with role_log_context(self.name, type(event).__name__):
            response = await self.handle(event)
        await outputs.put(response)

    @abstractmethod
    async def handle(self, event: PipelineEvent) -> PipelineEvent:
        """Return the response to event; its origin must be event."""

    def unsupported(self, event: PipelineEvent) -> TypeError:
        return TypeError(f"event type {type(event).__name__} not supported by {self.name}")

    async def run_task(
        self,
        messages: Sequence[ChatMessage],
        tools: Sequence[Tool] = (),
        *,
        max_iterations: Optional[int] = None,
        temperature: Optional[float] = None,
        response_schema: Optional[ResponseSchema] = None,
    ) -> str:
        """
        Converse with the model, executing its tool calls, until it answers.

        Args:
            messages: Opening conversation
            tools: Tools the model may call
            max_iterations: Completion rounds allowed before forcing an answer
            temperature: Sampling temperature override
            response_schema: Schema the final answer must follow

        Returns:
            The model's final answer
        """
        registry = ToolRegistry(tools)
        conversation = list(messages)
        temperature = self.temperature if temperature is None else temperature
        rounds = max_iterations or self.max_tool_iterations

        for _ in range(rounds):
            response = await self.client.complete(
                conversation,
                temperature=temperature,
                response_schema=response_schema,
                tools=tuple(tools),
            )
            if not response.tool_calls:
                return response.content

            conversation.append(
                ChatMessage(role="assistant", content=response.content, tool_calls=response.tool_calls)
            )
            for call in response.tool_calls:
                result = await registry.execute_tool(call.name, call.arguments)
                logger.debug(f"[{self.name}] tool {call.name} -> {result.status.value}")
                conversation.append(ChatMessage.tool(call.id, result.as_text()))

        logger.debug(f"[{self.name}] tool budget of {rounds} rounds spent; forcing final answer")
        conversation.append(ChatMessage.user(FINAL_ANSWER_NUDGE))
        final = await self.client.complete(
            conversation,
            temperature=temperature,
            response_schema=response_schema,
        )
        return final.content

    async def complete_structured(
        self,
        messages: Sequence[ChatMessage],
        model: Type[T],
        *,
        schema_name: str,
        temperature: Optional[float] = None,
    ) -> T:
        """Single completion constrained to model's JSON schema."""
        response = await self.client.complete(
            messages,
            temperature=self.temperature if temperature is None else temperature,
            response_schema=response_schema_for(schema_name, model),
        )
        return parse_structured(response.content, model)
