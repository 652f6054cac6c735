"""Durable, namespaced key-value storage for tokens and the offline datasets.

Each key is kept as one JSON document under the configured storage
directory, so state survives process restarts. Reads and writes never
raise: a missing, unreadable or corrupt document is the same as an absent
value, and failed writes are logged and reported through the return value.
"""

import copy
import json
import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel

from voicebridge.clients.mock_data import MOCK_LESSONS, MOCK_USER

logger = logging.getLogger(__name__)

HISTORY_LIMIT = 100

STORAGE_KEYS = {
    "TOKENS": "tokens",
    "QUERY_HISTORY": "query_history",
    "USER_PROFILE": "user_profile",
    "LESSONS": "lessons",
}

_KEY_PATTERN = re.compile(r"^[a-z0-9_]+$")


def _encode(value: Any) -> Any:
    """JSON fallback for pydantic models stored directly."""
    if isinstance(value, BaseModel):
        return value.model_dump()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


class LocalDataStore:
    """Namespaced JSON documents on disk, one file per key."""

    def __init__(self, storage_dir: Union[str, Path], namespace: str = "voicebridge"):
        """
        Initialize the store.

        Args:
            storage_dir: Directory holding the JSON documents (created lazily)
            namespace: Prefix for every document name
        """
        self.storage_dir = Path(storage_dir)
        self.namespace = namespace

    def _path(self, key: str) -> Path:
        if not _KEY_PATTERN.match(key):
            raise ValueError(f"Invalid storage key: {key!r}")
        return self.storage_dir / f"{self.namespace}_{key}.json"

    def get(self, key: str, default: Any = None) -> Any:
        """Return the stored value for ``key`` or ``default`` when absent or unreadable."""
        path = self._path(key)
        try:
            raw = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return default
        except OSError as e:
            logger.warning(f"Failed to read {path.name} from local storage: {e}")
            return default
        except UnicodeDecodeError as e:
            logger.warning(f"Discarding undecodable value for {key}: {e}")
            return default

        try:
            value = json.loads(raw)
        except ValueError as e:
            logger.warning(f"Discarding corrupt value for {key}: {e}")
            return default

        return default if value is None else value

    def set(self, key: str, value: Any) -> bool:
        """
        Persist ``value`` under ``key``.

        The document is written to a temporary file and moved into place so a
        crash never leaves a half-written value behind.

        Returns:
            True if the value was saved, False otherwise
        """
        path = self._path(key)
        try:
            payload = json.dumps(value, default=_encode)
        except (TypeError, ValueError) as e:
            logger.warning(f"Failed to serialize value for {key}: {e}")
            return False

        temp_path = None
        try:
            self.storage_dir.mkdir(parents=True, exist_ok=True)
            fd, temp_path = tempfile.mkstemp(dir=self.storage_dir, prefix=f".{path.stem}.", suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as temp_file:
                temp_file.write(payload)
            os.replace(temp_path, path)
            return True
        except OSError as e:
            logger.warning(f"Failed to save {key} to local storage: {e}")
            if temp_path is not None:
                try:
                    os.unlink(temp_path)
                except OSError:
                    pass
            return False

    def remove(self, key: str) -> bool:
        """Delete the stored value for ``key``. Missing keys are not an error."""
        path = self._path(key)
        try:
            path.unlink(missing_ok=True)
            return True
        except OSError as e:
            logger.warning(f"Failed to remove {key} from local storage: {e}")
            return False

    def get_list(self, key: str) -> List[Any]:
        """Return the stored list for ``key``; anything that is not a list reads as empty."""
        value = self.get(key)
        if not isinstance(value, list):
            return []
        return value

    def get_dict(self, key: str) -> Optional[Dict[str, Any]]:
        """Return the stored mapping for ``key`` or None."""
        value = self.get(key)
        return value if isinstance(value, dict) else None

    def ensure_seeded(self) -> List[str]:
        """
        Create the offline datasets that are not present yet.

        Existing values are never touched, so repeated calls are harmless and
        an existing history is never reset.

        Returns:
            Keys that were seeded by this call
        """
        defaults = {
            STORAGE_KEYS["LESSONS"]: MOCK_LESSONS,
            STORAGE_KEYS["QUERY_HISTORY"]: [],
            STORAGE_KEYS["USER_PROFILE"]: MOCK_USER,
        }

        seeded = []
        for key, default in defaults.items():
            if self.get(key) is None:
                if self.set(key, copy.deepcopy(default)):
                    seeded.append(key)

        if seeded:
            logger.info(f"Seeded offline datasets: {', '.join(seeded)}")
        return seeded

    def append_history(self, record: Dict[str, Any], limit: int = HISTORY_LIMIT) -> List[Dict[str, Any]]:
        """
        Insert ``record`` at the head of the query history and trim it.

        Returns:
            The persisted history, newest first, at most ``limit`` entries
        """
        history = self.get_list(STORAGE_KEYS["QUERY_HISTORY"])
        history.insert(0, record)
        history = history[:limit]
        self.set(STORAGE_KEYS["QUERY_HISTORY"], history)
        return history
