"""Persistent storage for the auth token."""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

_logger = logging.getLogger(__name__)


class TokenStore(Protocol):
    """Interface for reading and writing the auth token."""

    def get(self) -> str | None:
        """Return the stored token, if any."""

    def set(self, token: str) -> None:
        """Persist a token."""

    def clear(self) -> None:
        """Remove the stored token."""


@dataclass
class FileTokenStore(TokenStore):
    """Token store backed by a small JSON file keyed by a fixed name."""

    path: Path
    key: str = "token"

    @classmethod
    def create(cls, path: str, key: str = "token") -> "FileTokenStore":
        """Create a file token store, expanding the user home directory."""
        return cls(path=Path(path).expanduser(), key=key)

    def get(self) -> str | None:
        """Read the token from disk."""
        data = self._read()
        token = data.get(self.key)
        if isinstance(token, str) and token:
            return token
        return None

    def set(self, token: str) -> None:
        """Write the token to disk."""
        data = self._read()
        data[self.key] = token
        self._write(data)

    def clear(self) -> None:
        """Drop the token from disk."""
        data = self._read()
        if self.key not in data:
            return
        data.pop(self.key)
        self._write(data)

    def _read(self) -> dict[str, object]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            _logger.warning("Ignoring unreadable token file %s", self.path)
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: dict[str, object]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data), encoding="utf-8")
