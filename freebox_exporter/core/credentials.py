"""Persistent storage of the application token."""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path

from ..const import TOKEN_FILE_NAME
from .exceptions import NotRegisteredError

_LOGGER = logging.getLogger(__name__)


def write_private_file(path: Path, content: str) -> None:
    """Atomically replace ``path`` with ``content``, readable by the owner only.

    The content is written to a temporary file in the same directory and
    renamed over the target, so readers see either the old or the new file.
    """
    path = Path(path)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(content)
            handle.flush()
            os.fsync(handle.fileno())
        os.chmod(tmp_name, 0o600)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


class CredentialStore:
    """Stores the application token in the data directory."""

    def __init__(self, data_directory: Path | str, file_name: str = TOKEN_FILE_NAME):
        self._path = Path(data_directory) / file_name

    @property
    def path(self) -> Path:
        return self._path

    def exists(self) -> bool:
        """Return True if a non-empty token is stored."""
        try:
            return bool(self._path.read_text(encoding="utf-8").strip())
        except FileNotFoundError:
            return False

    def load(self) -> str:
        """Return the stored token, surrounding whitespace removed.

        Raises:
            NotRegisteredError: If no token is stored.
        """
        try:
            token = self._path.read_text(encoding="utf-8").strip()
        except FileNotFoundError as err:
            raise NotRegisteredError(f"No application token at {self._path}; run the register command") from err
        if not token:
            raise NotRegisteredError(f"Application token file {self._path} is empty; run the register command")
        return token

    def store(self, token: str) -> None:
        """Persist ``token``, replacing any previous one."""
        write_private_file(self._path, token)
        _LOGGER.debug("Application token stored in %s", self._path)

    def delete(self) -> None:
        """Remove the stored token if present."""
        self._path.unlink(missing_ok=True)
        _LOGGER.debug("Application token removed from %s", self._path)
