"""
Tool Executor - runs the tool calls of one model turn.

Each call is resolved against the active agent's tools, its JSON
arguments are bound to the tool's declared parameters, the handler runs
and whatever it returns is normalized into a ToolResult. Every call
produces exactly one tool message.

Recoverable problems (unknown tool, malformed arguments, a handler
raising an ordinary exception) become "Error: ..." tool messages so the
model can react. Infrastructure faults (file, network, command errors)
and tools returning values that cannot be turned into text abort the run.

When the agent allows parallel tool calls and a turn has more than one
call, the calls run on a thread pool. Results are collected by submission
index and merged only after every worker has finished, so the parallel
and sequential paths produce identical output.
"""

import json
import logging
from concurrent.futures import Executor, ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any

from agentswarm.errors import (
    CommandExecutionError,
    FileOperationError,
    NetworkError,
    ToolArgumentError,
    ToolResultCoercionError,
)
from agentswarm.tools import Tool, ToolRegistry
from agentswarm.types import Agent, Message, Role, ToolCall, ToolResult
from agentswarm.utils import debug_print

logger = logging.getLogger(__name__)

# Raised by tools for faults outside the conversation; these end the run.
INFRASTRUCTURE_ERRORS = (FileOperationError, NetworkError, CommandExecutionError)


@dataclass
class ToolCallOutcome:
    """The tool message and result produced by a single call."""
    message: Message
    result: ToolResult


@dataclass
class ToolBatchResult:
    """Aggregated outcome of all tool calls in one turn."""
    messages: list[Message] = field(default_factory=list)
    context_variables: dict[str, Any] = field(default_factory=dict)
    agent: Agent | None = None


def normalize_result(value: Any) -> ToolResult:
    """
    Turn whatever a tool returned into a ToolResult.

    ToolResult passes through, an Agent becomes a hand-off, anything else
    is converted with str(). A value whose str() raises is a defect in the
    tool and raises ToolResultCoercionError.
    """
    if isinstance(value, ToolResult):
        return value
    if isinstance(value, Agent):
        return ToolResult.handoff(value)
    try:
        return ToolResult.from_value(str(value))
    except Exception as e:
        raise ToolResultCoercionError(
            f"Failed to cast response to string: {type(value).__name__}. "
            f"Make sure agent functions return a string or ToolResult object. Error: {e}"
        ) from e


def parse_arguments(raw: str) -> dict[str, Any]:
    """Decode a tool call's JSON arguments; an empty payload means no arguments."""
    if not raw or not raw.strip():
        return {}
    try:
        arguments = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ToolArgumentError(f"Invalid JSON arguments: {e}") from e
    if not isinstance(arguments, dict):
        raise ToolArgumentError(
            f"Arguments must be a JSON object, got {type(arguments).__name__}"
        )
    return arguments


class ToolExecutor:
    """
    Executes tool calls for the active agent.

    An external pool may be supplied for the fan-out; it must not be the
    pool the run itself executes on. Without one, a short-lived
    ThreadPoolExecutor bounded by max_workers is created per batch.
    """

    def __init__(
        self,
        registry: ToolRegistry,
        max_workers: int = 4,
        pool: Executor | None = None,
    ) -> None:
        self.registry = registry
        self.max_workers = max_workers
        self.pool = pool

    def execute_all(
        self,
        tool_calls: list[ToolCall],
        agent: Agent,
        context_variables: dict[str, Any],
        debug: bool = False,
    ) -> ToolBatchResult:
        """
        Execute every tool call of a turn and merge the outcomes.

        Messages keep the order of tool_calls. Context variables are merged
        left to right on top of the given snapshot. If several calls hand
        off, the last one in submission order wins. If calls raise, every
        call still runs and the first error in submission order is re-raised,
        on both the parallel and the sequential path.
        """
        tools = self.registry.tools_for(agent)

        if agent.parallel_tool_calls and len(tool_calls) > 1:
            outcomes = self._execute_parallel(tool_calls, tools, context_variables, debug)
        else:
            outcomes = self._execute_sequential(tool_calls, tools, context_variables, debug)

        return self._aggregate(outcomes, context_variables)

    def execute_one(
        self,
        tool_call: ToolCall,
        tools: dict[str, Tool],
        context_variables: dict[str, Any],
        debug: bool = False,
    ) -> ToolCallOutcome:
        """Execute a single tool call against the given tools."""
        tool = tools.get(tool_call.name)
        if tool is None:
            debug_print(debug, f"Tool {tool_call.name} not found in function map.")
            return self._error_outcome(tool_call, f"Error: Tool {tool_call.name} not found.")

        try:
            arguments = tool.bind_arguments(parse_arguments(tool_call.arguments))
        except ToolArgumentError as e:
            logger.warning(f"Bad arguments for tool {tool_call.name}: {e}")
            return self._error_outcome(tool_call, f"Error: {e}")

        debug_print(debug, f"Processing tool call: {tool_call.name} with arguments", arguments)
        if tool.accepts_context_variables:
            arguments["context_variables"] = context_variables

        logger.info(f"Executing tool: {tool_call.name}")
        try:
            raw = tool.handler(**arguments)
        except INFRASTRUCTURE_ERRORS:
            raise
        except Exception as e:
            logger.error(f"Tool {tool_call.name} failed: {e}")
            return self._error_outcome(tool_call, f"Error: {e}")

        try:
            result = normalize_result(raw)
        except ToolResultCoercionError as e:
            debug_print(debug, str(e))
            raise

        return ToolCallOutcome(
            message=Message(
                role=Role.TOOL,
                content=result.value,
                tool_call_id=tool_call.id,
            ),
            result=result,
        )

    def _execute_sequential(
        self,
        tool_calls: list[ToolCall],
        tools: dict[str, Tool],
        context_variables: dict[str, Any],
        debug: bool,
    ) -> list[ToolCallOutcome]:
        """Run the calls one by one; every call runs even if an earlier one raised."""
        outcomes: list[ToolCallOutcome] = []
        errors: list[Exception] = []
        for call in tool_calls:
            try:
                outcomes.append(self.execute_one(call, tools, dict(context_variables), debug))
            except Exception as e:
                errors.append(e)
        if errors:
            raise errors[0]
        return outcomes

    def _execute_parallel(
        self,
        tool_calls: list[ToolCall],
        tools: dict[str, Tool],
        context_variables: dict[str, Any],
        debug: bool,
    ) -> list[ToolCallOutcome]:
        """Fan the calls out to worker threads; return outcomes in submission order."""
        if self.pool is not None:
            return self._gather(self.pool, tool_calls, tools, context_variables, debug)

        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(tool_calls))) as pool:
            return self._gather(pool, tool_calls, tools, context_variables, debug)

    def _gather(
        self,
        pool: Executor,
        tool_calls: list[ToolCall],
        tools: dict[str, Tool],
        context_variables: dict[str, Any],
        debug: bool,
    ) -> list[ToolCallOutcome]:
        futures = [
            pool.submit(self.execute_one, call, tools, dict(context_variables), debug)
            for call in tool_calls
        ]
        # result() re-raises a worker's exception; wait for all before raising
        errors = [f.exception() for f in futures]
        for error in errors:
            if error is not None:
                raise error
        return [f.result() for f in futures]

    def _aggregate(
        self,
        outcomes: list[ToolCallOutcome],
        context_variables: dict[str, Any],
    ) -> ToolBatchResult:
        batch = ToolBatchResult(context_variables=dict(context_variables))
        handoffs: list[Agent] = []

        for outcome in outcomes:
            batch.messages.append(outcome.message)
            batch.context_variables.update(outcome.result.context_variables)
            if outcome.result.agent is not None:
                handoffs.append(outcome.result.agent)

        if handoffs:
            batch.agent = handoffs[-1]
            if len({id(a) for a in handoffs}) > 1:
                logger.warning(
                    f"{len(handoffs)} tool calls handed off in one turn; "
                    f"using the last one ({batch.agent.name})"
                )
        return batch

    @staticmethod
    def _error_outcome(tool_call: ToolCall, content: str) -> ToolCallOutcome:
        return ToolCallOutcome(
            message=Message(
                role=Role.TOOL,
                content=content,
                tool_call_id=tool_call.id,
            ),
            result=ToolResult(value=content),
        )
