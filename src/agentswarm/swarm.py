"""
Swarm - the conversation driver.

A run alternates between two steps until the model stops asking for
tools or the turn limit is reached:

1. Ask the model for the next assistant message, using the active
   agent's instructions, model and tools
2. Execute the tool calls in that message, append the tool messages,
   merge context variables and, if a tool handed off, switch the active
   agent

The run context (active agent, history, context variables, turn count)
belongs to one run only. Tool workers receive copies of the context
variables; their results are merged back after the whole batch is done.
"""

import logging
from collections.abc import Iterable
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from typing import Any

import httpx

from agentswarm.capabilities import create_builtin_tools
from agentswarm.capabilities.fetch import DEFAULT_FETCH_TIMEOUT
from agentswarm.config import SwarmConfig
from agentswarm.errors import FileOperationError, NetworkError, RunError
from agentswarm.executor import ToolExecutor
from agentswarm.llm import ChatChunk, LLMClient
from agentswarm.tools import ToolRegistry
from agentswarm.types import Agent, Message, Response, Role, ToolCall
from agentswarm.utils import debug_print

logger = logging.getLogger(__name__)

# Errors that reach the caller unchanged; anything else becomes RunError.
PROPAGATED_ERRORS = (NetworkError, FileOperationError)


class RunState(str, Enum):
    """Where a run is in its loop."""
    RUNNING = "running"
    AWAITING_COMPLETION = "awaiting_completion"
    TERMINATED = "terminated"


@dataclass
class RunContext:
    """State owned by a single run."""
    active_agent: Agent | None
    history: list[Message]
    context_variables: dict[str, Any]
    init_len: int
    turns: int = 0
    state: RunState = RunState.RUNNING

    def new_messages(self) -> list[Message]:
        """Messages produced during this run (the tail beyond the input history)."""
        return self.history[self.init_len:]


def accumulate_stream(chunks: Iterable[ChatChunk], sender: str) -> Message:
    """
    Fold streamed chunks into one assistant message.

    Content fragments are concatenated in arrival order. Tool call
    fragments are merged by their index: id and name come from the first
    fragment that carries them, argument fragments are concatenated.
    """
    content_parts: list[str] = []
    partial: dict[int, dict[str, Any]] = {}

    for chunk in chunks:
        if chunk.content:
            content_parts.append(chunk.content)
        for delta in chunk.tool_calls:
            entry = partial.setdefault(delta.index, {"id": None, "name": None, "arguments": []})
            if delta.id and not entry["id"]:
                entry["id"] = delta.id
            if delta.name and not entry["name"]:
                entry["name"] = delta.name
            if delta.arguments:
                entry["arguments"].append(delta.arguments)

    tool_calls = [
        ToolCall(
            id=entry["id"] or "",
            name=entry["name"] or "",
            arguments="".join(entry["arguments"]) or "{}",
        )
        for _, entry in sorted(partial.items())
    ]

    return Message(
        role=Role.ASSISTANT,
        content="".join(content_parts),
        tool_calls=tool_calls,
        sender=sender,
    )


class Swarm:
    """
    Runs conversations between a user and a (possibly changing) agent.

    The swarm owns the completion client, the tool registry, the tool
    executor and a worker pool for run_async. Without an explicit registry
    the built-in file, fetch and shell tools are registered from the
    tools configuration.
    """

    def __init__(
        self,
        client: LLMClient | None = None,
        registry: ToolRegistry | None = None,
        config: SwarmConfig | None = None,
        executor: ToolExecutor | None = None,
        pool: ThreadPoolExecutor | None = None,
    ) -> None:
        self.config = config or SwarmConfig.from_env()
        self.client = client or LLMClient(self.config.llm)
        # HTTP client for the built-in fetch tool; owned and closed by the swarm
        self._http_client: httpx.Client | None = None
        if registry is None:
            self._http_client = httpx.Client(timeout=DEFAULT_FETCH_TIMEOUT, follow_redirects=True)
            registry = create_builtin_tools(self.config.tools, http_client=self._http_client)
        self.registry = registry
        self.executor = executor or ToolExecutor(
            self.registry, max_workers=self.config.run.max_workers,
        )
        self._pool = pool
        self._owns_pool = pool is None

    def run(
        self,
        agent: Agent,
        messages: list[Message | dict[str, Any]],
        context_variables: dict[str, Any] | None = None,
        model_override: str | None = None,
        stream: bool = False,
        debug: bool = False,
        max_turns: int | None = None,
        execute_tools: bool = True,
    ) -> Response:
        """
        Run a conversation until the model stops calling tools.

        Args:
            agent: The agent that starts the conversation
            messages: Conversation so far, as Message objects or OpenAI-format dicts
            context_variables: Initial context variables (copied, never mutated)
            model_override: Use this model instead of the active agent's
            stream: Request streamed completions and accumulate them
            debug: Log each step at INFO instead of DEBUG
            max_turns: Maximum completion calls; None uses the configured limit
            execute_tools: If False, stop after the first assistant message

        Returns:
            Response with the messages produced by this run, the agent active
            at the end and the final context variables

        Raises:
            NetworkError: The provider or a fetch tool failed
            FileOperationError: A file tool failed
            RunError: Any other failure, with the original as __cause__
        """
        if max_turns is None:
            max_turns = self.config.run.max_turns

        ctx = RunContext(
            active_agent=agent,
            history=[Message.coerce(m) for m in messages],
            context_variables=dict(context_variables or {}),
            init_len=len(messages),
        )

        try:
            self._loop(ctx, model_override, stream, debug, max_turns, execute_tools)
        except PROPAGATED_ERRORS:
            ctx.state = RunState.TERMINATED
            raise
        except Exception as e:
            ctx.state = RunState.TERMINATED
            logger.error(f"Run failed after {ctx.turns} turn(s): {e}")
            raise RunError(f"An error occurred during the conversation: {e}") from e

        ctx.state = RunState.TERMINATED
        return Response(
            messages=ctx.new_messages(),
            agent=ctx.active_agent,
            context_variables=ctx.context_variables,
        )

    def run_async(
        self,
        agent: Agent,
        messages: list[Message | dict[str, Any]],
        context_variables: dict[str, Any] | None = None,
        model_override: str | None = None,
        stream: bool = False,
        debug: bool = False,
        max_turns: int | None = None,
        execute_tools: bool = True,
    ) -> "Future[Response]":
        """
        Run a conversation on the worker pool.

        Same arguments and semantics as run(). Errors are not raised here;
        they surface through the returned future.
        """
        return self._get_pool().submit(
            self.run,
            agent,
            list(messages),
            dict(context_variables or {}),
            model_override,
            stream,
            debug,
            max_turns,
            execute_tools,
        )

    def _loop(
        self,
        ctx: RunContext,
        model_override: str | None,
        stream: bool,
        debug: bool,
        max_turns: int | None,
        execute_tools: bool,
    ) -> None:
        while ctx.active_agent is not None and (max_turns is None or ctx.turns < max_turns):
            agent = ctx.active_agent
            logger.info(f"Turn {ctx.turns + 1} with agent {agent.name}")

            ctx.state = RunState.AWAITING_COMPLETION
            message = self._get_completion(ctx, agent, model_override, stream, debug)
            ctx.state = RunState.RUNNING

            ctx.history.append(message)
            ctx.turns += 1

            if not message.tool_calls or not execute_tools:
                debug_print(debug, "Ending conversation.")
                return

            batch = self.executor.execute_all(
                message.tool_calls, agent, ctx.context_variables, debug,
            )
            ctx.history.extend(batch.messages)
            ctx.context_variables.update(batch.context_variables)
            if batch.agent is not None:
                logger.info(f"Handing off from {agent.name} to {batch.agent.name}")
                ctx.active_agent = batch.agent

        if ctx.active_agent is not None:
            logger.info(f"Turn limit reached ({max_turns})")

    def build_request(
        self,
        agent: Agent,
        history: list[Message],
        context_variables: dict[str, Any],
        model_override: str | None = None,
    ) -> dict[str, Any]:
        """The completion request for the next turn of the given agent."""
        instructions = agent.get_instructions(dict(context_variables))
        messages = [{"role": Role.SYSTEM.value, "content": instructions}]
        messages.extend(m.to_dict() for m in history)

        request: dict[str, Any] = {
            "model": model_override or agent.model,
            "messages": messages,
        }
        tools = self.registry.get_schemas(agent) if agent.functions else []
        if tools:
            request["tools"] = tools
            request["tool_choice"] = agent.tool_choice
            request["parallel_tool_calls"] = agent.parallel_tool_calls
        return request

    def _get_completion(
        self,
        ctx: RunContext,
        agent: Agent,
        model_override: str | None,
        stream: bool,
        debug: bool,
    ) -> Message:
        request = self.build_request(agent, ctx.history, ctx.context_variables, model_override)
        debug_print(debug, "Getting chat completion for:", request["messages"])

        if stream:
            chunks = self.client.chat_stream(**request)
            message = accumulate_stream(chunks, sender=agent.name)
            debug_print(debug, "Received streamed completion:", message.to_dict(include_sender=True))
            return message

        response = self.client.chat(**request)
        message = Message(
            role=Role(response.role),
            content=response.content,
            tool_calls=list(response.tool_calls),
            sender=agent.name,
        )
        debug_print(debug, "Received completion:", message.to_dict(include_sender=True))
        return message

    def _get_pool(self) -> ThreadPoolExecutor:
        if self._pool is None:
            self._pool = ThreadPoolExecutor(
                max_workers=self.config.run.max_workers,
                thread_name_prefix="agentswarm-run",
            )
        return self._pool

    def close(self) -> None:
        """Shut down the worker pool (if owned), the fetch client and the completion client."""
        if self._pool is not None and self._owns_pool:
            self._pool.shutdown(wait=True)
            self._pool = None
        if self._http_client is not None:
            self._http_client.close()
        close = getattr(self.client, "close", None)
        if close is not None:
            close()

    def __enter__(self) -> "Swarm":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()
