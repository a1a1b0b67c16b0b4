"""
File system tools confined to a sandbox root.

Every path the model supplies is resolved relative to the root, symlinks
included, and rejected if the result lands outside it.
"""

import json
import logging
import os
from pathlib import Path

from agentswarm.errors import FileOperationError

logger = logging.getLogger(__name__)


class FileSystemTools:
    """List, read and write files under a single root directory."""

    def __init__(self, root: str | Path) -> None:
        self.root = Path(os.path.realpath(root))

    def sanitize_path(self, path: str) -> Path:
        """
        Resolve a path against the root and make sure it stays inside.

        Absolute paths are accepted only if they already point into the
        root.
        """
        resolved = os.path.realpath(os.path.join(self.root, path))
        if os.path.commonpath([str(self.root), resolved]) != str(self.root):
            logger.warning(f"Blocked access outside {self.root}: {path}")
            raise FileOperationError(f"Attempt to access file outside project directory: {path}")
        return Path(resolved)

    def list_files(self, directory_path: str) -> str:
        """List the names of the entries in a directory, as a JSON array."""
        safe_path = self.sanitize_path(directory_path)
        if not safe_path.is_dir():
            raise FileOperationError(f"Directory not found: {directory_path}")

        try:
            names = sorted(os.listdir(safe_path))
        except OSError as e:
            raise FileOperationError(f"Unable to read directory: {directory_path} {e}") from e
        return json.dumps(names)

    def read_file(self, file_path: str) -> str:
        """Read the contents of a text file."""
        safe_path = self.sanitize_path(file_path)
        if not safe_path.is_file():
            raise FileOperationError(f"File not found: {file_path}")

        try:
            return safe_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise FileOperationError(f"Unable to read file: {file_path} {e}") from e

    def write_file(self, file_path: str, content: str, overwrite_file: bool = False) -> str:
        """Write content to a file. Existing files are only replaced when overwrite_file is true."""
        safe_path = self.sanitize_path(file_path)
        if safe_path.exists() and not overwrite_file:
            raise FileOperationError(
                f"File already exists and overwrite is not allowed: {file_path}"
            )

        try:
            safe_path.parent.mkdir(parents=True, exist_ok=True)
            safe_path.write_text(content, encoding="utf-8")
        except OSError as e:
            raise FileOperationError(f"Unable to write file: {file_path} {e}") from e

        logger.info(f"Wrote {len(content)} chars to {safe_path}")
        return "File written successfully."
