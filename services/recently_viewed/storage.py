"""Key-value persistence for visitor-local state."""

import logging
import os
import re
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path

logger = logging.getLogger(__name__)


class PersistenceReadError(Exception):
    """Raised when a stored value cannot be read."""

    pass


class PersistenceWriteError(Exception):
    """Raised when a value cannot be written or removed."""

    pass


class KeyValueStorage(ABC):
    """Abstract string key-value store.

    Mirrors the get/set/remove surface of a browser's local storage so the
    recently-viewed cache can run against a file, a test double, or any
    other local persistence.
    """

    @abstractmethod
    def get(self, key: str) -> str | None:
        """Return the stored value, or None if the key is absent.

        Raises:
            PersistenceReadError: If the store cannot be read
        """
        ...

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store a value, replacing any previous one atomically.

        Raises:
            PersistenceWriteError: If the value cannot be written
        """
        ...

    @abstractmethod
    def remove(self, key: str) -> None:
        """Remove a key. Removing an absent key is a no-op.

        Raises:
            PersistenceWriteError: If the key cannot be removed
        """
        ...


class LocalFileStorage(KeyValueStorage):
    """Local filesystem implementation: one JSON file per key under base_dir."""

    def __init__(self, base_dir: str = ".local_storage"):
        """Initialize local file storage.

        Args:
            base_dir: Directory holding one file per key (created if missing)
        """
        self.base_dir = Path(base_dir)
        self.base_dir.mkdir(parents=True, exist_ok=True)

    def _path_for(self, key: str) -> Path:
        if not key:
            raise ValueError("Storage key is required")
        safe_key = re.sub(r"[^A-Za-z0-9_.-]", "_", key).strip(".") or "key"
        return self.base_dir / f"{safe_key}.json"

    def get(self, key: str) -> str | None:
        path = self._path_for(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            raise PersistenceReadError(f"Failed to read {path.name}: {e}") from e

    def set(self, key: str, value: str) -> None:
        path = self._path_for(key)
        tmp_path = None
        try:
            # Write-then-rename so readers never observe a half-written value
            with tempfile.NamedTemporaryFile(
                "w", encoding="utf-8", dir=self.base_dir, delete=False, suffix=".tmp"
            ) as tmp:
                tmp.write(value)
                tmp_path = tmp.name
            os.replace(tmp_path, path)
        except OSError as e:
            if tmp_path and os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise PersistenceWriteError(f"Failed to write {path.name}: {e}") from e

    def remove(self, key: str) -> None:
        path = self._path_for(key)
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            raise PersistenceWriteError(f"Failed to remove {path.name}: {e}") from e
