"""
LLM Client - Adapter over OpenAI-compatible chat-completion APIs.

This client works with any backend that speaks the /chat/completions
protocol (OpenAI itself, vLLM, Ollama, ...). It is a pure translation
boundary: it turns a request into a provider payload and the provider's
reply into ChatResponse / ChatChunk values. There is no
retry or caching here; failures surface as LLMError.
"""

import json
import logging
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any

import httpx

from agentswarm.config import LLMConfig
from agentswarm.errors import NetworkError
from agentswarm.types import ToolCall

logger = logging.getLogger(__name__)

# Default timeout configuration (in seconds)
DEFAULT_CONNECT_TIMEOUT = 10.0
DEFAULT_READ_TIMEOUT = 180.0  # LLM responses can take a while
DEFAULT_WRITE_TIMEOUT = 10.0
DEFAULT_POOL_TIMEOUT = 10.0

SSE_DATA_PREFIX = "data:"
SSE_DONE = "[DONE]"


class LLMClient:
    """
    Synchronous client for OpenAI-compatible chat-completion APIs.

    The model is chosen per request (each agent carries its own); the
    configured model is only the fallback when none is given.
    """

    def __init__(
        self,
        config: LLMConfig | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Initialize the client with configuration.

        Args:
            config: LLM configuration (base URL, API key, default model)
            transport: Optional httpx transport, mainly for tests
        """
        self.config = config or LLMConfig.from_env()

        # Use layered timeouts for better control
        timeout = httpx.Timeout(
            connect=DEFAULT_CONNECT_TIMEOUT,
            read=DEFAULT_READ_TIMEOUT,
            write=DEFAULT_WRITE_TIMEOUT,
            pool=DEFAULT_POOL_TIMEOUT,
        )

        self._client = httpx.Client(
            base_url=self.config.base_url,
            headers={
                "Authorization": f"Bearer {self.config.api_key}",
                "Content-Type": "application/json",
            },
            timeout=timeout,
            transport=transport,
        )

    def build_payload(
        self,
        messages: list[dict[str, Any]],
        model: str | None = None,
        tools: list[dict[str, Any]] | None = None,
        tool_choice: str | dict[str, Any] | None = None,
        parallel_tool_calls: bool | None = None,
        stream: bool = False,
    ) -> dict[str, Any]:
        """Translate a request into the provider payload."""
        payload: dict[str, Any] = {
            "model": model or self.config.model,
            "messages": messages,
            "stream": stream,
        }
        if self.config.temperature is not None:
            payload["temperature"] = self.config.temperature
        if self.config.max_tokens is not None:
            payload["max_tokens"] = self.config.max_tokens

        if tools:
            payload["tools"] = tools
            if tool_choice:
                payload["tool_choice"] = tool_choice
            if parallel_tool_calls is not None:
                payload["parallel_tool_calls"] = parallel_tool_calls

        return payload

    def chat(
        self,
        messages: list[dict[str, Any]],
        model: str | None = None,
        tools: list[dict[str, Any]] | None = None,
        tool_choice: str | dict[str, Any] | None = None,
        parallel_tool_calls: bool | None = None,
    ) -> "ChatResponse":
        """
        Send a single-shot chat completion request.

        Args:
            messages: The conversation in OpenAI format
            model: Model identifier (defaults to the configured model)
            tools: Optional list of tool definitions
            tool_choice: Optional tool choice constraint
            parallel_tool_calls: Whether the model may emit several tool calls

        Returns:
            ChatResponse with the assistant's message

        Raises:
            LLMError: On any transport or HTTP error
        """
        payload = self.build_payload(
            messages, model, tools, tool_choice, parallel_tool_calls, stream=False,
        )
        logger.debug(f"Sending chat request with {len(messages)} messages to {payload['model']}")

        try:
            response = self._client.post("/chat/completions", json=payload)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            logger.error(f"HTTP error: {e.response.status_code} - {e.response.text}")
            raise LLMError(f"HTTP {e.response.status_code}: {e.response.text}") from e
        except httpx.RequestError as e:
            logger.error(f"Request error: {e}")
            raise LLMError(f"Request failed: {e}") from e

        return ChatResponse.from_api_response(data)

    def chat_stream(
        self,
        messages: list[dict[str, Any]],
        model: str | None = None,
        tools: list[dict[str, Any]] | None = None,
        tool_choice: str | dict[str, Any] | None = None,
        parallel_tool_calls: bool | None = None,
    ) -> Iterator["ChatChunk"]:
        """
        Send a streamed chat completion request.

        Yields one ChatChunk per server-sent event until the provider sends
        [DONE] or closes the stream. Accumulating the chunks into a message
        is the caller's job.

        Raises:
            LLMError: On any transport or HTTP error
        """
        payload = self.build_payload(
            messages, model, tools, tool_choice, parallel_tool_calls, stream=True,
        )
        logger.debug(f"Sending streamed chat request with {len(messages)} messages to {payload['model']}")

        try:
            with self._client.stream("POST", "/chat/completions", json=payload) as response:
                if response.is_error:
                    response.read()
                    response.raise_for_status()
                for line in response.iter_lines():
                    data = parse_sse_line(line)
                    if data is None:
                        continue
                    if data == SSE_DONE:
                        return
                    chunk = ChatChunk.from_api_chunk(json.loads(data))
                    if chunk is not None:
                        yield chunk
        except httpx.HTTPStatusError as e:
            logger.error(f"HTTP error: {e.response.status_code} - {e.response.text}")
            raise LLMError(f"HTTP {e.response.status_code}: {e.response.text}") from e
        except httpx.RequestError as e:
            logger.error(f"Request error: {e}")
            raise LLMError(f"Request failed: {e}") from e

    def close(self) -> None:
        """Close the HTTP client."""
        self._client.close()

    def __enter__(self) -> "LLMClient":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()


def parse_sse_line(line: str) -> str | None:
    """Return the payload of an SSE data line, or None for anything else."""
    line = line.strip()
    if not line.startswith(SSE_DATA_PREFIX):
        return None
    return line[len(SSE_DATA_PREFIX):].strip()


class ChatResponse:
    """
    Response from a single-shot chat completion request.

    Tool call arguments are kept as the raw JSON string the provider sent.
    """

    def __init__(
        self,
        content: str | None,
        tool_calls: list[ToolCall] | None,
        finish_reason: str,
        raw_response: dict[str, Any],
        role: str = "assistant",
    ) -> None:
        self.content = content or ""
        self.tool_calls = tool_calls or []
        self.finish_reason = finish_reason
        self.raw_response = raw_response
        self.role = role

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> "ChatResponse":
        """Parse an API response into a ChatResponse."""
        try:
            choice = data["choices"][0]
        except (KeyError, IndexError, TypeError) as e:
            raise LLMError(f"Malformed completion response: {data!r}") from e
        message = choice.get("message") or {}

        tool_calls = [ToolCall.from_dict(tc) for tc in message.get("tool_calls") or []]

        return cls(
            content=message.get("content"),
            tool_calls=tool_calls,
            finish_reason=choice.get("finish_reason") or "stop",
            raw_response=data,
            role=message.get("role") or "assistant",
        )

    @property
    def has_tool_calls(self) -> bool:
        """Check if the response includes tool calls."""
        return len(self.tool_calls) > 0


@dataclass
class ToolCallDelta:
    """A fragment of a tool call from one stream chunk, keyed by index."""
    index: int
    id: str | None = None
    name: str | None = None
    arguments: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ToolCallDelta":
        function = data.get("function") or {}
        return cls(
            index=data.get("index", 0),
            id=data.get("id"),
            name=function.get("name"),
            arguments=function.get("arguments") or "",
        )


@dataclass
class ChatChunk:
    """One streamed delta: a content fragment and/or tool call fragments."""
    content: str = ""
    tool_calls: list[ToolCallDelta] = field(default_factory=list)
    finish_reason: str | None = None

    @classmethod
    def from_api_chunk(cls, data: dict[str, Any]) -> "ChatChunk | None":
        """Parse a chat.completion.chunk; None for chunks without choices."""
        choices = data.get("choices") or []
        if not choices:
            return None
        choice = choices[0]
        delta = choice.get("delta") or {}
        return cls(
            content=delta.get("content") or "",
            tool_calls=[ToolCallDelta.from_dict(tc) for tc in delta.get("tool_calls") or []],
            finish_reason=choice.get("finish_reason"),
        )


class LLMError(NetworkError):
    """Error from the LLM client."""
    pass
