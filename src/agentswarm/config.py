"""
Configuration for the swarm.

All configuration is loaded from environment variables by the from_env
constructors. Core classes take these values through their constructors
and never read the environment themselves, so a test can build any
configuration it needs directly.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path

DEFAULT_BASE_URL = "https://api.openai.com/v1"
DEFAULT_MODEL = "gpt-4o-mini"
DEFAULT_ALLOWED_EXTENSIONS = ("txt", "pdf", "doc", "docx", "csv")
DEFAULT_MAX_FILE_SIZE = 10 * 1024 * 1024  # 10 MB


def _split_csv(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


def _optional_float(value: str | None) -> float | None:
    return float(value) if value else None


def _optional_int(value: str | None) -> int | None:
    return int(value) if value else None


@dataclass
class LLMConfig:
    """Configuration for the chat-completion client."""
    base_url: str = DEFAULT_BASE_URL
    api_key: str = ""
    model: str = DEFAULT_MODEL
    temperature: float | None = None
    max_tokens: int | None = None

    @classmethod
    def from_env(cls) -> "LLMConfig":
        """Load configuration from environment variables."""
        return cls(
            base_url=os.getenv("LLM_BASE_URL", DEFAULT_BASE_URL),
            api_key=os.getenv("LLM_API_KEY") or os.getenv("OPENAI_API_KEY", ""),
            model=os.getenv("LLM_MODEL", DEFAULT_MODEL),
            temperature=_optional_float(os.getenv("LLM_TEMPERATURE")),
            max_tokens=_optional_int(os.getenv("LLM_MAX_TOKENS")),
        )


@dataclass
class ToolsConfig:
    """
    Configuration for the built-in capabilities.

    root is the sandbox: every path a file tool touches must resolve
    inside it. Shell execution is off unless explicitly enabled, and even
    then only the allow-listed command names may run.
    """
    root: Path = field(default_factory=Path.cwd)
    max_file_size: int = DEFAULT_MAX_FILE_SIZE
    allowed_extensions: list[str] = field(
        default_factory=lambda: list(DEFAULT_ALLOWED_EXTENSIONS)
    )
    allow_shell_execution: bool = False
    allowed_shell_commands: list[str] = field(default_factory=list)

    @classmethod
    def from_env(cls) -> "ToolsConfig":
        """Load configuration from environment variables."""
        return cls(
            root=Path(os.getenv("SWARM_ROOT", os.getcwd())),
            max_file_size=int(os.getenv("MAX_FILE_SIZE", str(DEFAULT_MAX_FILE_SIZE))),
            allowed_extensions=_split_csv(
                os.getenv("ALLOWED_EXTENSIONS", ",".join(DEFAULT_ALLOWED_EXTENSIONS))
            ),
            allow_shell_execution=os.getenv("ALLOW_SHELL_EXECUTION", "false") == "true",
            allowed_shell_commands=_split_csv(os.getenv("ALLOW_SHELL_COMMANDS", "")),
        )


@dataclass
class RunConfig:
    """
    Configuration for the run loop.

    max_turns of None means the loop only ends when the model stops
    asking for tools.
    """
    max_turns: int | None = None
    max_workers: int = 4

    @classmethod
    def from_env(cls) -> "RunConfig":
        """Load configuration from environment variables."""
        return cls(
            max_turns=_optional_int(os.getenv("SWARM_MAX_TURNS")),
            max_workers=int(os.getenv("SWARM_MAX_WORKERS", "4")),
        )


@dataclass
class SwarmConfig:
    """Combined configuration for the entire swarm."""
    llm: LLMConfig = field(default_factory=LLMConfig)
    tools: ToolsConfig = field(default_factory=ToolsConfig)
    run: RunConfig = field(default_factory=RunConfig)

    @classmethod
    def from_env(cls) -> "SwarmConfig":
        """Load all configuration from environment variables."""
        return cls(
            llm=LLMConfig.from_env(),
            tools=ToolsConfig.from_env(),
            run=RunConfig.from_env(),
        )
