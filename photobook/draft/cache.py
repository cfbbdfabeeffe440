"""
Durable draft cache backends.

The cache holds one JSON record per configurator key. It is read once when
a draft store starts and is otherwise only overwritten or deleted.
"""

import json
import logging
from pathlib import Path
from typing import Any, Optional, Protocol

logger = logging.getLogger(__name__)


class DraftCache(Protocol):
    """Storage for the safe projection of a draft."""

    def load(self, key: str) -> Optional[dict[str, Any]]: ...

    def save(self, key: str, data: dict[str, Any]) -> None: ...

    def clear(self, key: str) -> None: ...


class MemoryDraftCache:
    """Process-local cache. Used by tests and the single-shot console mode."""

    def __init__(self) -> None:
        self._records: dict[str, str] = {}

    def load(self, key: str) -> Optional[dict[str, Any]]:
        raw = self._records.get(key)
        return json.loads(raw) if raw is not None else None

    def save(self, key: str, data: dict[str, Any]) -> None:
        self._records[key] = json.dumps(data)

    def clear(self, key: str) -> None:
        self._records.pop(key, None)


class JsonDraftCache:
    """One JSON file per configurator key, written atomically."""

    def __init__(self, data_dir: str) -> None:
        self._data_dir = Path(data_dir)
        self._data_dir.mkdir(parents=True, exist_ok=True)

    def _get_file_path(self, key: str) -> Path:
        safe_key = "".join(ch if ch.isalnum() or ch in "-_" else "_" for ch in key)
        return self._data_dir / f"{safe_key}.json"

    def load(self, key: str) -> Optional[dict[str, Any]]:
        """Return the cached record, or None when missing or unreadable."""
        file_path = self._get_file_path(key)
        if not file_path.exists():
            return None
        try:
            with open(file_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            logger.warning("Discarding unreadable draft cache %s: %s", file_path, e)
            return None
        if not isinstance(data, dict):
            logger.warning("Discarding malformed draft cache %s", file_path)
            return None
        return data

    def save(self, key: str, data: dict[str, Any]) -> None:
        file_path = self._get_file_path(key)
        temp_path = file_path.with_suffix(".json.tmp")
        try:
            with open(temp_path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
            temp_path.replace(file_path)
        except OSError:
            temp_path.unlink(missing_ok=True)
            raise

    def clear(self, key: str) -> None:
        self._get_file_path(key).unlink(missing_ok=True)
        logger.debug("Draft cache cleared for '%s'", key)
