"""
Tests for the ToolExecutor.

These tests verify that every tool call yields exactly one tool message,
that recoverable failures stay inside the conversation, and that the
parallel and sequential paths aggregate identically.
"""

import json
import threading
import time

import pytest

from agentswarm.capabilities import create_builtin_tools
from agentswarm.config import ToolsConfig
from agentswarm.errors import (
    CommandExecutionError,
    FileOperationError,
    NetworkError,
    ToolArgumentError,
    ToolResultCoercionError,
)
from agentswarm.executor import ToolExecutor, normalize_result, parse_arguments
from agentswarm.tools import ToolRegistry
from agentswarm.types import Agent, Role, ToolCall, ToolResult


class Unprintable:
    def __str__(self) -> str:
        raise ValueError("no text form")


def call(call_id: str, name: str, /, **arguments) -> ToolCall:
    return ToolCall(id=call_id, name=name, arguments=json.dumps(arguments))


def make_executor(*functions) -> ToolExecutor:
    registry = ToolRegistry()
    for func in functions:
        registry.register_function(func)
    return ToolExecutor(registry, max_workers=4)


class TestNormalizeResult:
    """Tests for return value normalization."""

    def test_tool_result_passes_through(self):
        result = ToolResult(value="x", context_variables={"a": 1})
        assert normalize_result(result) is result

    def test_agent_becomes_handoff(self):
        agent = Agent(name="Sales")
        result = normalize_result(agent)

        assert result.agent is agent
        assert json.loads(result.value) == {"assistant": "Sales"}

    def test_other_values_are_stringified(self):
        assert normalize_result(42).value == "42"
        assert normalize_result(None).value == "None"
        assert normalize_result(["a"]).value == "['a']"

    def test_uncoercible_value_is_fatal(self):
        with pytest.raises(ToolResultCoercionError):
            normalize_result(Unprintable())

    def test_coercion_error_is_a_type_error(self):
        with pytest.raises(TypeError):
            normalize_result(Unprintable())


class TestParseArguments:
    """Tests for JSON argument decoding."""

    def test_empty_payload(self):
        assert parse_arguments("") == {}
        assert parse_arguments("  ") == {}

    def test_object(self):
        assert parse_arguments('{"a": 1}') == {"a": 1}

    def test_invalid_json(self):
        with pytest.raises(ToolArgumentError):
            parse_arguments("{not json")

    def test_non_object(self):
        with pytest.raises(ToolArgumentError):
            parse_arguments("[1, 2]")


class TestExecuteOne:
    """Tests for single tool calls."""

    def test_successful_call(self):
        def greet(name: str) -> str:
            return f"Hello, {name}!"

        executor = make_executor(greet)
        agent = Agent(functions=["greet"])

        batch = executor.execute_all([call("call_1", "greet", name="World")], agent, {})

        assert len(batch.messages) == 1
        message = batch.messages[0]
        assert message.role == Role.TOOL
        assert message.content == "Hello, World!"
        assert message.tool_call_id == "call_1"

    def test_unknown_tool_is_not_fatal(self):
        executor = make_executor()
        agent = Agent()

        batch = executor.execute_all([call("call_9", "nonexistent")], agent, {})

        assert batch.messages[0].content == "Error: Tool nonexistent not found."
        assert batch.messages[0].tool_call_id == "call_9"
        assert batch.agent is None

    def test_registered_tool_not_listed_by_agent_is_not_found(self):
        def secret() -> str:
            return "classified"

        executor = make_executor(secret)
        agent = Agent(functions=[])

        batch = executor.execute_all([call("c", "secret")], agent, {})

        assert batch.messages[0].content == "Error: Tool secret not found."

    def test_bad_arguments_become_error_message(self):
        def greet(name: str) -> str:
            return name

        executor = make_executor(greet)
        agent = Agent(functions=["greet"])

        batch = executor.execute_all(
            [ToolCall(id="c1", name="greet", arguments="{broken"), call("c2", "greet")],
            agent,
            {},
        )

        assert batch.messages[0].content.startswith("Error: Invalid JSON arguments")
        assert batch.messages[1].content.startswith("Error: Missing required argument")

    def test_handler_exception_becomes_error_message(self):
        def flaky() -> str:
            raise ValueError("Something went wrong")

        executor = make_executor(flaky)

        batch = executor.execute_all([call("c", "flaky")], Agent(functions=["flaky"]), {})

        assert batch.messages[0].content == "Error: Something went wrong"

    @pytest.mark.parametrize("error", [
        FileOperationError("File not found: x"),
        NetworkError("down"),
        CommandExecutionError("disabled"),
    ])
    def test_infrastructure_errors_propagate(self, error):
        def broken() -> str:
            raise error

        executor = make_executor(broken)

        with pytest.raises(type(error)):
            executor.execute_all([call("c", "broken")], Agent(functions=["broken"]), {})

    def test_uncoercible_result_aborts(self):
        def bad() -> object:
            return Unprintable()

        executor = make_executor(bad)

        with pytest.raises(ToolResultCoercionError):
            executor.execute_all([call("c", "bad")], Agent(functions=["bad"]), {})

    def test_context_variables_injected_as_copy(self):
        seen = {}

        def whoami(context_variables: dict) -> str:
            seen.update(context_variables)
            context_variables["mutated"] = True
            return context_variables["user"]

        executor = make_executor(whoami)
        original = {"user": "Ada"}

        batch = executor.execute_all([call("c", "whoami")], Agent(functions=["whoami"]), original)

        assert batch.messages[0].content == "Ada"
        assert seen == {"user": "Ada"}
        assert original == {"user": "Ada"}
        assert "mutated" not in batch.context_variables

    def test_agent_callable_functions_are_dispatchable(self):
        def shout(text: str) -> str:
            return text.upper()

        executor = ToolExecutor(ToolRegistry())

        batch = executor.execute_all([call("c", "shout", text="hi")], Agent(functions=[shout]), {})

        assert batch.messages[0].content == "HI"


class TestAggregation:
    """Tests for merging several tool calls of one turn."""

    def test_context_variables_merge_later_wins(self):
        def first() -> ToolResult:
            return ToolResult(value="1", context_variables={"a": 1, "shared": "first"})

        def second() -> ToolResult:
            return ToolResult(value="2", context_variables={"b": 2, "shared": "second"})

        executor = make_executor(first, second)
        agent = Agent(functions=["first", "second"], parallel_tool_calls=False)

        batch = executor.execute_all(
            [call("c1", "first"), call("c2", "second")], agent, {"base": 0, "a": -1},
        )

        assert batch.context_variables == {"base": 0, "a": 1, "b": 2, "shared": "second"}

    def test_last_handoff_in_submission_order_wins(self):
        agent_a = Agent(name="A")
        agent_b = Agent(name="B")

        def to_a() -> Agent:
            time.sleep(0.05)
            return agent_a

        def to_b() -> Agent:
            return agent_b

        executor = make_executor(to_a, to_b)
        agent = Agent(functions=["to_a", "to_b"], parallel_tool_calls=True)

        batch = executor.execute_all([call("c1", "to_a"), call("c2", "to_b")], agent, {})

        assert batch.agent is agent_b

    def test_parallel_and_sequential_are_identical(self):
        def slow(tag: str, delay: float) -> ToolResult:
            time.sleep(delay)
            return ToolResult(value=tag, context_variables={"last": tag, tag: delay})

        executor = make_executor(slow)
        calls = [
            call("c1", "slow", tag="one", delay=0.06),
            call("c2", "slow", tag="two", delay=0.03),
            call("c3", "slow", tag="three", delay=0.0),
        ]

        parallel = executor.execute_all(calls, Agent(functions=["slow"], parallel_tool_calls=True), {})
        sequential = executor.execute_all(calls, Agent(functions=["slow"], parallel_tool_calls=False), {})

        assert [m.content for m in parallel.messages] == ["one", "two", "three"]
        assert [m.tool_call_id for m in parallel.messages] == ["c1", "c2", "c3"]
        assert parallel.messages == sequential.messages
        assert parallel.context_variables == sequential.context_variables
        assert parallel.context_variables["last"] == "three"

    def test_parallel_calls_run_concurrently(self):
        barrier = threading.Barrier(2, timeout=2)

        def meet(name: str) -> str:
            barrier.wait()
            return name

        executor = make_executor(meet)
        agent = Agent(functions=["meet"], parallel_tool_calls=True)

        batch = executor.execute_all([call("c1", "meet", name="x"), call("c2", "meet", name="y")], agent, {})

        assert [m.content for m in batch.messages] == ["x", "y"]

    def test_parallel_infrastructure_error_propagates(self):
        def ok() -> str:
            return "fine"

        def broken() -> str:
            raise FileOperationError("Directory not found: nope")

        executor = make_executor(ok, broken)
        agent = Agent(functions=["ok", "broken"], parallel_tool_calls=True)

        with pytest.raises(FileOperationError):
            executor.execute_all([call("c1", "ok"), call("c2", "broken")], agent, {})

    @pytest.mark.parametrize("parallel", [False, True])
    def test_failing_call_does_not_skip_later_calls(self, tmp_path, parallel):
        registry = create_builtin_tools(ToolsConfig(root=tmp_path))
        executor = ToolExecutor(registry)
        agent = Agent(functions=["readFile", "writeFile"], parallel_tool_calls=parallel)
        calls = [
            call("c1", "readFile", file_path="missing.txt"),
            call("c2", "writeFile", file_path="new.txt", content="x"),
        ]

        with pytest.raises(FileOperationError, match="File not found"):
            executor.execute_all(calls, agent, {})

        assert (tmp_path / "new.txt").read_text() == "x"

    @pytest.mark.parametrize("parallel", [False, True])
    def test_first_error_in_submission_order_is_raised(self, parallel):
        def slow_fail() -> str:
            time.sleep(0.05)
            raise FileOperationError("first")

        def fast_fail() -> str:
            raise NetworkError("second")

        executor = make_executor(slow_fail, fast_fail)
        agent = Agent(functions=["slow_fail", "fast_fail"], parallel_tool_calls=parallel)

        with pytest.raises(FileOperationError, match="first"):
            executor.execute_all([call("c1", "slow_fail"), call("c2", "fast_fail")], agent, {})


class TestArgumentTypes:
    """Arguments of the wrong JSON type never reach the handler."""

    def test_string_false_does_not_overwrite(self, tmp_path):
        (tmp_path / "a.txt").write_text("kept")
        executor = ToolExecutor(create_builtin_tools(ToolsConfig(root=tmp_path)))
        agent = Agent(functions=["writeFile"])

        batch = executor.execute_all(
            [call("c1", "writeFile", file_path="a.txt", content="clobbered", overwrite_file="false")],
            agent,
            {},
        )

        assert batch.messages[0].content.startswith("Error: Argument overwrite_file")
        assert (tmp_path / "a.txt").read_text() == "kept"

    def test_boolean_true_overwrites(self, tmp_path):
        (tmp_path / "a.txt").write_text("old")
        executor = ToolExecutor(create_builtin_tools(ToolsConfig(root=tmp_path)))

        batch = executor.execute_all(
            [call("c1", "writeFile", file_path="a.txt", content="new", overwrite_file=True)],
            Agent(functions=["writeFile"]),
            {},
        )

        assert batch.messages[0].content == "File written successfully."
        assert (tmp_path / "a.txt").read_text() == "new"
