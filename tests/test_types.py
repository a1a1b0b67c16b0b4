"""Tests for the core data types."""

import json

import pytest

from agentswarm.types import (
    Agent,
    ComputedInstructions,
    Message,
    OpenAIModel,
    Role,
    StaticInstructions,
    ToolCall,
    ToolResult,
)


class TestAgent:
    """Tests for Agent configuration."""

    def test_defaults(self):
        agent = Agent()
        assert agent.name == "Agent"
        assert agent.model == "gpt-4o-mini"
        assert agent.functions == []
        assert agent.tool_choice is None
        assert agent.parallel_tool_calls is True
        assert agent.get_instructions({}) == "You are a helpful assistant."

    def test_string_instructions_become_static(self):
        agent = Agent(instructions="Be brief.")
        assert agent.instructions == StaticInstructions("Be brief.")
        assert agent.get_instructions({"anything": 1}) == "Be brief."

    def test_callable_instructions_are_computed_per_call(self):
        agent = Agent(instructions=lambda cv: f"Help {cv.get('user', 'someone')}.")

        assert isinstance(agent.instructions, ComputedInstructions)
        assert agent.get_instructions({"user": "Ada"}) == "Help Ada."
        assert agent.get_instructions({}) == "Help someone."

    def test_invalid_instructions_rejected(self):
        with pytest.raises(TypeError):
            Agent(instructions=42)

    def test_model_enum_is_stored_as_string(self):
        agent = Agent(model=OpenAIModel.GPT_4O)
        assert agent.model == "gpt-4o"


class TestToolCall:
    """Tests for ToolCall wire conversion."""

    def test_from_dict_keeps_raw_arguments(self):
        call = ToolCall.from_dict({
            "id": "call_1",
            "type": "function",
            "function": {"name": "readFile", "arguments": '{"file_path": "a.txt"}'},
        })

        assert call.id == "call_1"
        assert call.name == "readFile"
        assert call.arguments == '{"file_path": "a.txt"}'

    def test_from_dict_encodes_object_arguments(self):
        call = ToolCall.from_dict({"id": "c", "function": {"name": "f", "arguments": {"x": 1}}})
        assert json.loads(call.arguments) == {"x": 1}

    def test_to_dict(self):
        call = ToolCall(id="c", name="f", arguments="{}")
        assert call.to_dict() == {
            "id": "c",
            "type": "function",
            "function": {"name": "f", "arguments": "{}"},
        }


class TestMessage:
    """Tests for Message conversion."""

    def test_plain_message_to_dict(self):
        message = Message(role=Role.USER, content="Hello")
        assert message.to_dict() == {"role": "user", "content": "Hello"}

    def test_sender_is_not_sent_to_provider(self):
        message = Message(role=Role.ASSISTANT, content="Hi", sender="Bot")

        assert "sender" not in message.to_dict()
        assert message.to_dict(include_sender=True)["sender"] == "Bot"

    def test_tool_calls_serialized(self):
        message = Message(
            role=Role.ASSISTANT,
            tool_calls=[ToolCall(id="c1", name="listFiles", arguments='{"directory_path": "."}')],
        )

        data = message.to_dict()

        assert data["tool_calls"][0]["function"]["name"] == "listFiles"

    def test_from_dict(self):
        message = Message.from_dict({"role": "tool", "content": "ok", "tool_call_id": "c1"})

        assert message.role == Role.TOOL
        assert message.tool_call_id == "c1"
        assert message.tool_calls == []

    def test_none_content_becomes_empty(self):
        message = Message.from_dict({"role": "assistant", "content": None})
        assert message.content == ""

    def test_coerce(self):
        message = Message(role="user", content="x")
        assert Message.coerce(message) is message
        assert Message.coerce({"role": "user", "content": "x"}) == message


class TestToolResult:
    """Tests for ToolResult constructors."""

    def test_from_value(self):
        result = ToolResult.from_value("done")
        assert result.value == "done"
        assert result.agent is None
        assert result.context_variables == {}

    def test_handoff(self):
        agent = Agent(name="Spanish Agent")
        result = ToolResult.handoff(agent)

        assert result.agent is agent
        assert json.loads(result.value) == {"assistant": "Spanish Agent"}
