"""
Capability registry - the tools an agent can ask for.

A Tool is an explicit descriptor: a name, a description, an ordered list
of typed parameters and the handler that runs it. Descriptors are built
once (usually from a function signature) and registered under their wire
name. The executor only ever calls what the registry resolves, so an
unknown name fails at dispatch time, never while describing.
"""

import inspect
import logging
import types
import typing
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from agentswarm.errors import ToolArgumentError

if typing.TYPE_CHECKING:
    from agentswarm.types import Agent

logger = logging.getLogger(__name__)

# Parameter the executor fills in itself; never shown to the model.
CONTEXT_VARIABLES_PARAM = "context_variables"

_TYPE_NAMES = {
    "int": "number",
    "float": "number",
    "bool": "boolean",
    "list": "array",
    "tuple": "array",
}


def _unwrap_optional(annotation: Any) -> Any:
    """X | None and Optional[X] describe X; other unions are left alone."""
    if isinstance(annotation, str):
        text = annotation.strip()
        if text.startswith("Optional[") and text.endswith("]"):
            return text[len("Optional["):-1]
        parts = [p.strip() for p in text.split("|") if p.strip() != "None"]
        return parts[0] if len(parts) == 1 else text
    if typing.get_origin(annotation) in (typing.Union, types.UnionType):
        args = [a for a in typing.get_args(annotation) if a is not type(None)]
        if len(args) == 1:
            return args[0]
    return annotation


def json_type(annotation: Any) -> str:
    """Map a Python annotation to the JSON schema type offered to the model."""
    if annotation is inspect.Parameter.empty or annotation is None:
        return "string"
    annotation = _unwrap_optional(annotation)
    if isinstance(annotation, str):
        base = annotation.split("[", 1)[0].strip()
        return _TYPE_NAMES.get(base, "string")
    # bool is a subclass of int, so it must be checked first
    if annotation is bool:
        return "boolean"
    if annotation in (int, float):
        return "number"
    if annotation in (list, tuple) or typing.get_origin(annotation) in (list, tuple):
        return "array"
    return "string"


@dataclass(frozen=True)
class ToolParameter:
    """One declared parameter of a tool."""
    name: str
    type: str = "string"
    required: bool = True
    description: str = ""

    def to_schema(self) -> dict[str, Any]:
        schema: dict[str, Any] = {"type": self.type}
        if self.description:
            schema["description"] = self.description
        return schema


@dataclass
class Tool:
    """
    Definition of a tool that an agent can use.

    parameters is ordered as in the handler's signature. The handler is
    always invoked with keyword arguments after bind_arguments has checked
    them against the declared parameters.
    """
    name: str
    description: str
    parameters: list[ToolParameter]
    handler: Callable[..., Any]
    accepts_context_variables: bool = False
    accepts_extra_arguments: bool = False

    @classmethod
    def from_function(cls, func: Callable[..., Any], name: str | None = None) -> "Tool":
        """Build a descriptor by inspecting a function's signature and docstring."""
        signature = inspect.signature(func)
        try:
            hints = typing.get_type_hints(func)
        except Exception:
            hints = {}

        parameters: list[ToolParameter] = []
        accepts_context_variables = False
        accepts_extra_arguments = False
        for param in signature.parameters.values():
            if param.name == CONTEXT_VARIABLES_PARAM:
                accepts_context_variables = True
                continue
            if param.kind is inspect.Parameter.VAR_KEYWORD:
                accepts_extra_arguments = True
                continue
            if param.kind is inspect.Parameter.VAR_POSITIONAL:
                continue
            annotation = hints.get(param.name, param.annotation)
            parameters.append(ToolParameter(
                name=param.name,
                type=json_type(annotation),
                required=param.default is inspect.Parameter.empty,
            ))

        return cls(
            name=name or func.__name__,
            description=inspect.getdoc(func) or "",
            parameters=parameters,
            handler=func,
            accepts_context_variables=accepts_context_variables,
            accepts_extra_arguments=accepts_extra_arguments,
        )

    def to_function_spec(self) -> dict[str, Any]:
        """The function description the model uses to select and call this tool."""
        return {
            "name": self.name,
            "description": self.description,
            "parameters": {
                "type": "object",
                "properties": {p.name: p.to_schema() for p in self.parameters},
                "required": [p.name for p in self.parameters if p.required],
            },
        }

    def to_openai_schema(self) -> dict[str, Any]:
        """Convert to OpenAI tool format."""
        return {
            "type": "function",
            "function": self.to_function_spec(),
        }

    def bind_arguments(self, arguments: dict[str, Any]) -> dict[str, Any]:
        """
        Check model-supplied arguments against the declared parameters.

        Returns the keyword arguments to call the handler with. Raises
        ToolArgumentError for unknown or missing arguments and for values
        whose JSON type does not match the declared one.
        """
        declared = {p.name for p in self.parameters}
        unknown = sorted(set(arguments) - declared)
        if unknown and not self.accepts_extra_arguments:
            raise ToolArgumentError(
                f"Unexpected argument(s) for {self.name}: {', '.join(unknown)}"
            )
        missing = [p.name for p in self.parameters if p.required and p.name not in arguments]
        if missing:
            raise ToolArgumentError(
                f"Missing required argument(s) for {self.name}: {', '.join(missing)}"
            )
        for param in self.parameters:
            if param.name in arguments:
                _check_type(self.name, param, arguments[param.name])
        return dict(arguments)


def _check_type(tool_name: str, param: ToolParameter, value: Any) -> None:
    """Reject a value whose JSON type differs from the declared one; "string" accepts anything."""
    if value is None and not param.required:
        return
    if param.type == "boolean":
        ok = isinstance(value, bool)
    elif param.type == "number":
        ok = isinstance(value, (int, float)) and not isinstance(value, bool)
    elif param.type == "array":
        ok = isinstance(value, list)
    else:
        ok = True
    if not ok:
        raise ToolArgumentError(
            f"Argument {param.name} for {tool_name} must be a {param.type}, "
            f"got {type(value).__name__}: {value!r}"
        )


@dataclass
class ToolRegistry:
    """
    Registry of available tools, keyed by wire name.

    Agents refer to registered tools by name. Callables listed directly on
    an agent are described on the fly and do not need registering.
    """

    _tools: dict[str, Tool] = field(default_factory=dict)

    def register(self, tool: Tool) -> None:
        """Register a tool."""
        if tool.name in self._tools:
            logger.warning(f"Overwriting existing tool: {tool.name}")
        self._tools[tool.name] = tool
        logger.debug(f"Registered tool: {tool.name}")

    def register_function(
        self,
        func: Callable[..., Any],
        name: str | None = None,
    ) -> Tool:
        """Convenience method to register a function as a tool."""
        tool = Tool.from_function(func, name=name)
        self.register(tool)
        return tool

    def get(self, name: str) -> Tool | None:
        """Get a tool by name."""
        return self._tools.get(name)

    def resolve(self, capability: Any) -> Tool | None:
        """
        Turn one entry of an agent's function list into a Tool.

        Strings are looked up by name (None if unknown), Tool instances are
        returned as-is and callables are described from their signature.
        """
        if isinstance(capability, Tool):
            return capability
        if isinstance(capability, str):
            return self._tools.get(capability)
        if callable(capability):
            return Tool.from_function(capability)
        raise TypeError(f"Cannot use {capability!r} as a tool")

    def describe(self, capability: Any) -> dict[str, Any]:
        """Return the function spec for a tool, tool name or callable."""
        tool = self.resolve(capability)
        if tool is None:
            raise KeyError(f"Unknown tool: {capability}")
        return tool.to_function_spec()

    def tools_for(self, agent: "Agent") -> dict[str, Tool]:
        """The tools an agent may call, by name, in the agent's declared order."""
        tools: dict[str, Tool] = {}
        for capability in agent.functions:
            tool = self.resolve(capability)
            if tool is None:
                logger.debug(f"Agent {agent.name} lists unregistered tool: {capability}")
                continue
            if tool.name in tools:
                logger.warning(f"Agent {agent.name} lists tool {tool.name} more than once")
            tools[tool.name] = tool
        return tools

    def get_schemas(self, agent: "Agent | None" = None) -> list[dict[str, Any]]:
        """OpenAI-format schemas for an agent's tools, or for every registered tool."""
        tools = self.tools_for(agent).values() if agent is not None else self._tools.values()
        return [tool.to_openai_schema() for tool in tools]

    @property
    def tool_names(self) -> list[str]:
        """List of registered tool names."""
        return list(self._tools.keys())

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: str) -> bool:
        return name in self._tools
