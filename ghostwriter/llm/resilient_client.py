"""
Resilient completion client

Wraps any CompletionClient with rate limiting, retry with exponential
backoff, and a circuit breaker. This is the only place the pipeline retries.
"""

from __future__ import annotations

from typing import Optional, Sequence

from ghostwriter.llm.base_client import (
    ChatMessage,
    CompletionClient,
    CompletionResponse,
    ResponseSchema,
)
from ghostwriter.llm.rate_limiter import RateLimiter
from ghostwriter.tools.tool_registry import Tool
from ghostwriter.utils.circuit_breaker import CircuitBreaker
from ghostwriter.utils.retry_strategies import RetryConfig, create_async_retrying


class ResilientCompletionClient:
    def __init__(
        self,
        client: CompletionClient,
        *,
        rate_limiter: Optional[RateLimiter] = None,
        retry_config: Optional[RetryConfig] = None,
        circuit_breaker: Optional[CircuitBreaker] = None,
    ):
        self._client = client
        self._rate_limiter = rate_limiter
        self._retry_config = retry_config or RetryConfig()
        self._circuit_breaker = circuit_breaker or CircuitBreaker()

    async def _attempt(
        self,
        messages: Sequence[ChatMessage],
        temperature: float,
        response_schema: Optional[ResponseSchema],
        tools: Sequence[Tool],
    ) -> CompletionResponse:
        if self._rate_limiter is not None:
            await self._rate_limiter.acquire()
        return await self._client.complete(
            messages,
            temperature=temperature,
            response_schema=response_schema,
            tools=tools,
        )

    async def complete(
        self,
        messages: Sequence[ChatMessage],
        *,
        temperature: float = 0.7,
        response_schema: Optional[ResponseSchema] = None,
        tools: Sequence[Tool] = (),
    ) -> CompletionResponse:
        async for attempt in create_async_retrying(self._retry_config):
            with attempt:
                return await self._circuit_breaker.call(
                    self._attempt, messages, temperature, response_schema, tools
                )
        raise AssertionError("unreachable: tenacity reraises on the last attempt")
