"""Allow-listed shell command execution."""

import logging
import shlex
import subprocess
from pathlib import Path

from agentswarm.errors import CommandExecutionError

logger = logging.getLogger(__name__)

DEFAULT_COMMAND_TIMEOUT = 60


class ShellTools:
    """
    Run commands whose program name is on an allow-list.

    The command line is split with shlex and executed without a shell,
    so pipes, redirections and command chaining are not available.
    """

    def __init__(
        self,
        enabled: bool = False,
        allowed_commands: list[str] | None = None,
        cwd: str | Path | None = None,
        timeout: int = DEFAULT_COMMAND_TIMEOUT,
    ) -> None:
        self.enabled = enabled
        self.allowed_commands = list(allowed_commands or [])
        self.cwd = cwd
        self.timeout = timeout

    def is_allowed(self, command: str) -> bool:
        try:
            argv = shlex.split(command)
        except ValueError:
            return False
        return bool(argv) and argv[0] in self.allowed_commands

    def execute_shell_command(self, command: str) -> str:
        """Execute an allow-listed shell command and return its output."""
        if not self.enabled:
            raise CommandExecutionError("Shell command execution is disabled")
        if not self.is_allowed(command):
            raise CommandExecutionError(f"Invalid or disallowed command: {command}")

        logger.info(f"Running command: {command}")
        try:
            result = subprocess.run(
                shlex.split(command),
                cwd=self.cwd,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired as e:
            raise CommandExecutionError(
                f"Command timed out after {self.timeout} seconds: {command}"
            ) from e
        except OSError as e:
            raise CommandExecutionError(f"Error executing command: {e}") from e

        if result.returncode != 0:
            raise CommandExecutionError(
                f"Command failed: {command} (exit {result.returncode}) {result.stderr.strip()}"
            )
        return result.stdout.strip()
