"""
Core types for the swarm.

These are the values that flow through a run: the agent configuration,
the conversation messages, the tool calls the model emits and the
results tools hand back. They are plain dataclasses; behaviour lives in
the executor and the run loop.
"""

import json
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class Role(str, Enum):
    """Message roles in the conversation."""
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


class OpenAIModel(str, Enum):
    """Known OpenAI model identifiers."""
    GPT_4O = "gpt-4o"
    GPT_4O_MINI = "gpt-4o-mini"
    GPT_4O_REALTIME_PREVIEW = "gpt-4o-realtime-preview"
    GPT_4O_AUDIO_PREVIEW = "gpt-4o-audio-preview"
    O1_PREVIEW = "o1-preview"
    O1_MINI = "o1-mini"
    DALL_E_3 = "dall-e-3"
    TEXT_EMBEDDING_3_LARGE = "text-embedding-3-large"
    TEXT_EMBEDDING_3_SMALL = "text-embedding-3-small"
    TTS_1 = "tts-1"
    TTS_1_HD = "tts-1-hd"
    OMNI_MODERATION_LATEST = "omni-moderation-latest"


@dataclass(frozen=True)
class StaticInstructions:
    """A fixed system prompt."""
    text: str

    def render(self, context_variables: dict[str, Any]) -> str:
        return self.text


@dataclass(frozen=True)
class ComputedInstructions:
    """A system prompt computed from the current context variables."""
    fn: Callable[[dict[str, Any]], str]

    def render(self, context_variables: dict[str, Any]) -> str:
        return str(self.fn(context_variables))


Instructions = StaticInstructions | ComputedInstructions


def to_instructions(value: Any) -> Instructions:
    """Convert a string or callable into an Instructions variant."""
    if isinstance(value, (StaticInstructions, ComputedInstructions)):
        return value
    if isinstance(value, str):
        return StaticInstructions(value)
    if callable(value):
        return ComputedInstructions(value)
    raise TypeError(
        f"Instructions must be a string or callable, got {type(value).__name__}"
    )


@dataclass
class Agent:
    """
    A named model + prompt + toolset configuration.

    functions lists the tools this agent may call, in the order they are
    offered to the model. A string names a tool in the swarm's registry;
    a plain callable is described from its signature when the request is
    built.

    Agents are not mutated during a run. A tool can hand the conversation
    to another agent by returning it, in which case the run loop adopts
    the new agent for the remaining turns.
    """
    name: str = "Agent"
    model: str = OpenAIModel.GPT_4O_MINI.value
    instructions: Any = "You are a helpful assistant."
    functions: list[Any] = field(default_factory=list)
    tool_choice: str | None = None
    parallel_tool_calls: bool = True

    def __post_init__(self) -> None:
        self.instructions = to_instructions(self.instructions)
        if isinstance(self.model, OpenAIModel):
            self.model = self.model.value

    def get_instructions(self, context_variables: dict[str, Any]) -> str:
        """Resolve the system prompt for the given context variables."""
        return self.instructions.render(context_variables)


@dataclass
class ToolCall:
    """
    A request from the model to invoke a named tool.

    arguments is kept exactly as the provider emitted it: a JSON-encoded
    object. Parsing happens at dispatch time so a malformed payload only
    affects its own tool message.
    """
    id: str
    name: str
    arguments: str = "{}"
    type: str = "function"

    def to_dict(self) -> dict[str, Any]:
        """Convert to OpenAI API format."""
        return {
            "id": self.id,
            "type": self.type,
            "function": {
                "name": self.name,
                "arguments": self.arguments,
            },
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ToolCall":
        """Create from OpenAI API format."""
        function = data.get("function") or {}
        arguments = function.get("arguments")
        if arguments is None:
            arguments = "{}"
        elif not isinstance(arguments, str):
            arguments = json.dumps(arguments)
        return cls(
            id=data.get("id", ""),
            name=function.get("name", ""),
            arguments=arguments,
            type=data.get("type", "function"),
        )


@dataclass
class Message:
    """A single message in the conversation history."""
    role: Role
    content: str = ""
    tool_calls: list[ToolCall] = field(default_factory=list)
    tool_call_id: str | None = None
    name: str | None = None
    sender: str | None = None

    def __post_init__(self) -> None:
        self.role = Role(self.role)
        if self.content is None:
            self.content = ""

    def to_dict(self, include_sender: bool = False) -> dict[str, Any]:
        """Convert to OpenAI API format."""
        result: dict[str, Any] = {
            "role": self.role.value,
            "content": self.content,
        }
        if self.tool_calls:
            result["tool_calls"] = [tc.to_dict() for tc in self.tool_calls]
        if self.tool_call_id is not None:
            result["tool_call_id"] = self.tool_call_id
        if self.name is not None:
            result["name"] = self.name
        if include_sender and self.sender is not None:
            result["sender"] = self.sender
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Message":
        """Create from OpenAI API format."""
        return cls(
            role=Role(data["role"]),
            content=data.get("content") or "",
            tool_calls=[ToolCall.from_dict(tc) for tc in data.get("tool_calls") or []],
            tool_call_id=data.get("tool_call_id"),
            name=data.get("name"),
            sender=data.get("sender"),
        )

    @classmethod
    def coerce(cls, value: "Message | dict[str, Any]") -> "Message":
        """Accept either a Message or an OpenAI-format dict."""
        if isinstance(value, Message):
            return value
        return cls.from_dict(value)


@dataclass
class ToolResult:
    """
    The normalized outcome of one tool invocation.

    value is what the model sees as the tool message. agent, when set,
    replaces the active agent after the turn. context_variables are merged
    into the run's context (later results overwrite earlier keys).
    """
    value: str = ""
    agent: Agent | None = None
    context_variables: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_value(cls, value: str) -> "ToolResult":
        """A plain textual result."""
        return cls(value=value)

    @classmethod
    def handoff(cls, agent: Agent) -> "ToolResult":
        """A result that transfers the conversation to another agent."""
        return cls(value=json.dumps({"assistant": agent.name}), agent=agent)


@dataclass
class Response:
    """Final output of a run: only the messages produced during the run."""
    messages: list[Message] = field(default_factory=list)
    agent: Agent | None = None
    context_variables: dict[str, Any] = field(default_factory=dict)
