"""
Built-in capabilities exposed to agents as tools.

create_builtin_tools registers them under their wire names; an agent
opts in by listing those names in its functions.
"""

import httpx

from agentswarm.capabilities.fetch import FetchTools
from agentswarm.capabilities.filesystem import FileSystemTools
from agentswarm.capabilities.shell import ShellTools
from agentswarm.config import ToolsConfig
from agentswarm.tools import ToolRegistry

BUILTIN_TOOL_NAMES = [
    "listFiles",
    "readFile",
    "writeFile",
    "retrieveDocumentFromURL",
    "executeShellCommand",
]


def create_builtin_tools(
    config: ToolsConfig | None = None,
    registry: ToolRegistry | None = None,
    http_client: httpx.Client | None = None,
) -> ToolRegistry:
    """Register the file, fetch and shell tools for the given sandbox configuration."""
    config = config or ToolsConfig.from_env()
    registry = registry if registry is not None else ToolRegistry()

    files = FileSystemTools(config.root)
    fetch = FetchTools(
        files,
        allowed_extensions=config.allowed_extensions,
        max_file_size=config.max_file_size,
        client=http_client,
    )
    shell = ShellTools(
        enabled=config.allow_shell_execution,
        allowed_commands=config.allowed_shell_commands,
        cwd=files.root,
    )

    registry.register_function(files.list_files, name="listFiles")
    registry.register_function(files.read_file, name="readFile")
    registry.register_function(files.write_file, name="writeFile")
    registry.register_function(fetch.retrieve_document_from_url, name="retrieveDocumentFromURL")
    registry.register_function(shell.execute_shell_command, name="executeShellCommand")

    return registry


__all__ = [
    "BUILTIN_TOOL_NAMES",
    "FetchTools",
    "FileSystemTools",
    "ShellTools",
    "create_builtin_tools",
]
