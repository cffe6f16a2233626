"""Chat completions over HTTP against any OpenAI-compatible endpoint."""

from __future__ import annotations

import json
import time
from typing import Any, Dict, List, Optional, Sequence

import aiohttp

from ghostwriter.llm.base_client import (
    ChatMessage,
    CompletionError,
    CompletionResponse,
    ResponseSchema,
    ToolCall,
)
from ghostwriter.tools.tool_registry import Tool
from ghostwriter.utils.logging_config import get_logger
from ghostwriter.utils.retry_strategies import TransientCompletionError
from ghostwriter.utils.structured_log import log_api_call

logger = get_logger(__name__)


def _message_payload(message: ChatMessage) -> Dict[str, Any]:
    payload: Dict[str, Any] = {"role": message.role, "content": message.content}
    if message.tool_calls:
        payload["tool_calls"] = [
            {
                "id": call.id,
                "type": "function",
                "function": {"name": call.name, "arguments": json.dumps(call.arguments)},
            }
            for call in message.tool_calls
        ]
    if message.tool_call_id:
        payload["tool_call_id"] = message.tool_call_id
    return payload


def _parse_tool_calls(raw_calls: List[Dict[str, Any]]) -> List[ToolCall]:
    calls = []
    for raw in raw_calls or []:
        function = raw.get("function") or {}
        arguments = function.get("arguments") or "{}"
        try:
            parsed = json.loads(arguments) if isinstance(arguments, str) else dict(arguments)
        except json.JSONDecodeError as exc:
            raise CompletionError(
                f"Tool call {function.get('name')} had malformed arguments: {arguments[:200]}"
            ) from exc
        calls.append(ToolCall(id=raw.get("id", ""), name=function.get("name", ""), arguments=parsed))
    return calls


class OpenAICompatibleClient:
    """Completion client for the /chat/completions API."""

    timeout_seconds = 120.0

    def __init__(
        self,
        base_url: str,
        model: str,
        api_key: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.api_key = api_key
        if timeout_seconds is not None:
            self.timeout_seconds = timeout_seconds

    def _build_payload(
        self,
        messages: Sequence[ChatMessage],
        temperature: float,
        response_schema: Optional[ResponseSchema],
        tools: Sequence[Tool],
    ) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "model": self.model,
            "messages": [_message_payload(m) for m in messages],
            "temperature": temperature,
        }
        if tools:
            payload["tools"] = [tool.to_openai_format() for tool in tools]
        if response_schema is not None:
            payload["response_format"] = {
                "type": "json_schema",
                "json_schema": {
                    "name": response_schema.name,
                    "description": response_schema.description,
                    "schema": response_schema.schema,
                },
            }
        return payload

    async def complete(
        self,
        messages: Sequence[ChatMessage],
        *,
        temperature: float = 0.7,
        response_schema: Optional[ResponseSchema] = None,
        tools: Sequence[Tool] = (),
    ) -> CompletionResponse:
        payload = self._build_payload(messages, temperature, response_schema, tools)
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        start = time.perf_counter()
        async with aiohttp.ClientSession(
            timeout=aiohttp.ClientTimeout(total=self.timeout_seconds)
        ) as session:
            async with session.post(
                f"{self.base_url}/chat/completions", json=payload, headers=headers
            ) as response:
                if response.status != 200:
                    body = await response.text()
                    log_api_call(self.model, "error", error=f"status={response.status}")
                    message = f"Completion failed: status={response.status}, body={body[:250]}"
                    if response.status == 429 or response.status >= 500:
                        raise TransientCompletionError(message)
                    raise CompletionError(message)
                data = await response.json()
        elapsed_ms = int((time.perf_counter() - start) * 1000)

        choices = data.get("choices") or []
        if not choices:
            raise CompletionError("Completion response had no choices.")
        message = choices[0].get("message") or {}
        usage = data.get("usage") or {}
        result = CompletionResponse(
            content=(message.get("content") or "").strip(),
            tool_calls=_parse_tool_calls(message.get("tool_calls") or []),
            tokens_in=usage.get("prompt_tokens") or 0,
            tokens_out=usage.get("completion_tokens") or 0,
        )
        log_api_call(
            self.model,
            "success",
            latency_ms=elapsed_ms,
            tokens_in=result.tokens_in,
            tokens_out=result.tokens_out,
        )
        logger.debug(
            f"Completion from {self.model} in {elapsed_ms}ms "
            f"({result.tokens_in} in / {result.tokens_out} out, {len(result.tool_calls)} tool calls)"
        )
        return result
