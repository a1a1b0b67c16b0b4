"""
agentswarm - run conversations between users and tool-using agents.

A Swarm sends the conversation to an OpenAI-compatible chat-completion
API, executes the tools the model asks for, feeds the results back and
repeats until the model stops asking. Tools can hand the conversation
to a different agent and update shared context variables along the way.
"""

__version__ = "0.1.0"

from agentswarm.capabilities import BUILTIN_TOOL_NAMES, create_builtin_tools
from agentswarm.config import LLMConfig, RunConfig, SwarmConfig, ToolsConfig
from agentswarm.errors import (
    CommandExecutionError,
    FileOperationError,
    NetworkError,
    RunError,
    SwarmError,
    ToolArgumentError,
    ToolResultCoercionError,
)
from agentswarm.executor import ToolBatchResult, ToolExecutor, normalize_result
from agentswarm.llm import ChatChunk, ChatResponse, LLMClient, LLMError
from agentswarm.swarm import RunState, Swarm
from agentswarm.tools import Tool, ToolParameter, ToolRegistry
from agentswarm.types import (
    Agent,
    ComputedInstructions,
    Message,
    OpenAIModel,
    Response,
    Role,
    StaticInstructions,
    ToolCall,
    ToolResult,
)

__all__ = [
    "Swarm",
    "RunState",
    "Agent",
    "Message",
    "Role",
    "Response",
    "ToolCall",
    "ToolResult",
    "OpenAIModel",
    "StaticInstructions",
    "ComputedInstructions",
    "Tool",
    "ToolParameter",
    "ToolRegistry",
    "ToolExecutor",
    "ToolBatchResult",
    "normalize_result",
    "LLMClient",
    "ChatResponse",
    "ChatChunk",
    "LLMError",
    "LLMConfig",
    "ToolsConfig",
    "RunConfig",
    "SwarmConfig",
    "BUILTIN_TOOL_NAMES",
    "create_builtin_tools",
    "SwarmError",
    "FileOperationError",
    "NetworkError",
    "CommandExecutionError",
    "ToolArgumentError",
    "ToolResultCoercionError",
    "RunError",
]
