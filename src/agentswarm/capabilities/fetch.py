"""HTTP document retrieval, optionally saved into the sandbox."""

import logging
from pathlib import PurePosixPath
from urllib.parse import urlparse

import httpx

from agentswarm.capabilities.filesystem import FileSystemTools
from agentswarm.errors import FileOperationError, NetworkError

logger = logging.getLogger(__name__)

DEFAULT_FETCH_TIMEOUT = 30.0


class FetchTools:
    """
    Fetch documents over HTTP.

    Saving is restricted twice: the URL's file extension must be allowed
    and the target directory must be inside the file tools' root.
    """

    def __init__(
        self,
        files: FileSystemTools,
        allowed_extensions: list[str],
        max_file_size: int,
        client: httpx.Client | None = None,
    ) -> None:
        self.files = files
        self.allowed_extensions = [ext.lower().lstrip(".") for ext in allowed_extensions]
        self.max_file_size = max_file_size
        self._client = client or httpx.Client(timeout=DEFAULT_FETCH_TIMEOUT, follow_redirects=True)

    def retrieve_document_from_url(self, url: str, save_path: str | None = None) -> str:
        """
        Retrieve a document from a URL. Returns its text, or saves it into
        save_path (a directory) and returns where it was saved.
        """
        url_path = PurePosixPath(urlparse(url).path)
        if save_path:
            extension = url_path.suffix.lstrip(".").lower()
            if extension not in self.allowed_extensions:
                raise FileOperationError(f"File extension not allowed: {extension}")

        try:
            response = self._client.get(url)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"Fetch failed for {url}: {e}")
            raise NetworkError(f"Unable to retrieve document from URL: {e}") from e

        if not save_path:
            return response.text

        if len(response.content) > self.max_file_size:
            raise FileOperationError(
                f"File too large: {len(response.content)} bytes (limit {self.max_file_size})"
            )

        directory = self.files.sanitize_path(save_path)
        target = directory / url_path.name
        try:
            directory.mkdir(parents=True, exist_ok=True)
            target.write_bytes(response.content)
        except OSError as e:
            raise FileOperationError(f"Unable to save file: {target} {e}") from e

        logger.info(f"Saved {url} to {target}")
        return f"File downloaded and saved successfully at: {target}"

    def close(self) -> None:
        self._client.close()
