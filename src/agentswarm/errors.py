"""
Error taxonomy for agent runs.

Tool-level problems that the model can react to (unknown tool, bad
arguments) are turned into tool messages and never reach the caller.
Everything else aborts the run:

- FileOperationError and NetworkError propagate unchanged
- any other failure is wrapped in RunError with the original as __cause__
"""


class SwarmError(Exception):
    """Base class for all agentswarm errors."""
    pass


class FileOperationError(SwarmError):
    """A file tool failed: missing path, permissions, sandbox escape, bad extension."""
    pass


class NetworkError(SwarmError):
    """A network operation failed (provider call or document fetch)."""
    pass


class CommandExecutionError(SwarmError):
    """The shell tool is disabled, the command is not allowed, or it failed."""
    pass


class ToolArgumentError(SwarmError):
    """Arguments emitted by the model do not match the tool's parameters."""
    pass


class ToolResultCoercionError(SwarmError, TypeError):
    """A tool returned something that cannot be turned into a string."""
    pass


class RunError(SwarmError):
    """An unexpected failure aborted a run."""
    pass
