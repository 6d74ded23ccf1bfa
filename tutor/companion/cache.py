"""Durable last-known-good storage, one JSON slot per cache key."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from tutor.utils import sanitize_cache_key

from .errors import CacheError

LOGGER = logging.getLogger("tutor.cache")


class PayloadCache:
    """Key-value store backed by one JSON file per key.

    Writes go through a temp file and an atomic replace, so a failed write
    leaves the previous entry intact.
    """

    def __init__(self, directory: Path, *, logger: logging.Logger | None = None) -> None:
        self._directory = Path(directory)
        self._logger = logger or LOGGER

    @property
    def directory(self) -> Path:
        return self._directory

    def path_for(self, key: str) -> Path:
        return self._directory / f"{sanitize_cache_key(key)}.json"

    def read(self, key: str) -> Any | None:
        path = self.path_for(key)
        if not path.exists():
            return None
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError, OSError, RecursionError) as exc:
            raise CacheError(f"Cache read failed for {key!r}: {exc}") from exc

    def write(self, key: str, raw: Any) -> None:
        path = self.path_for(key)
        tmp_path = path.with_suffix(".tmp")
        try:
            text = json.dumps(raw, indent=2)
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(text, encoding="utf-8")
            tmp_path.replace(path)
        except (TypeError, ValueError, OSError, RecursionError) as exc:
            raise CacheError(f"Cache write failed for {key!r}: {exc}") from exc
        self._logger.debug("Cached payload for %s at %s", key, path)

    def clear(self, key: str) -> None:
        try:
            self.path_for(key).unlink(missing_ok=True)
        except OSError as exc:
            raise CacheError(f"Cache clear failed for {key!r}: {exc}") from exc
