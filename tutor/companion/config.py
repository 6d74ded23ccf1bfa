"""Configuration helpers for the Tutor companion core."""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from tutor.datetime_utils import DEFAULT_TIMEZONE, is_timezone_valid
from tutor.utils import parse_float

from .errors import ConfigError

LOGGER = logging.getLogger("tutor.config")

DEFAULT_CACHE_DIR = Path("/opt/tutor/cache")
DEFAULT_FETCH_TIMEOUT = 10.0
DEFAULT_EMBEDDED_SCRIPT_ID = "embedded-content"
DEFAULT_CONTENT_LOCAL_PATH = "data/content.local.json"
DEFAULT_CONTENT_CACHE_KEY = "tutor.content.lastKnownGood"
DEFAULT_EVENTS_LOCAL_PATH = "data/events.json"
DEFAULT_EVENTS_CACHE_KEY = "tutor.events.lastKnownGood"


def _strip_or_none(value: Any) -> str | None:
    if not isinstance(value, str):
        return None
    stripped = value.strip()
    return stripped or None


def _normalize_timezone(value: Any) -> str:
    candidate = _strip_or_none(value)
    if not candidate:
        return DEFAULT_TIMEZONE
    if not is_timezone_valid(candidate):
        LOGGER.warning("Unknown timezone %r, falling back to %s", candidate, DEFAULT_TIMEZONE)
        return DEFAULT_TIMEZONE
    return candidate


@dataclass(frozen=True)
class PayloadSourceConfig:
    """Where one payload kind comes from, in tier order."""

    remote_url: str | None
    local_path: str | None
    cache_key: str
    embedded_document: Path | None = None
    embedded_script_id: str = DEFAULT_EMBEDDED_SCRIPT_ID


@dataclass(frozen=True)
class CompanionConfig:
    timezone: str
    cache_dir: Path
    fetch_timeout: float
    content: PayloadSourceConfig
    events: PayloadSourceConfig

    @staticmethod
    def from_env(env: Mapping[str, str] | None = None) -> CompanionConfig:
        source = env if env is not None else os.environ
        embedded_document = _strip_or_none(source.get("TUTOR_CONTENT_EMBEDDED_DOCUMENT"))
        content = PayloadSourceConfig(
            remote_url=_strip_or_none(source.get("TUTOR_CONTENT_REMOTE_URL")),
            local_path=_strip_or_none(source.get("TUTOR_CONTENT_LOCAL_PATH")) or DEFAULT_CONTENT_LOCAL_PATH,
            cache_key=_strip_or_none(source.get("TUTOR_CONTENT_CACHE_KEY")) or DEFAULT_CONTENT_CACHE_KEY,
            embedded_document=Path(embedded_document) if embedded_document else None,
            embedded_script_id=_strip_or_none(source.get("TUTOR_CONTENT_EMBEDDED_SCRIPT_ID"))
            or DEFAULT_EMBEDDED_SCRIPT_ID,
        )
        events = PayloadSourceConfig(
            remote_url=_strip_or_none(source.get("TUTOR_EVENTS_REMOTE_URL")),
            local_path=_strip_or_none(source.get("TUTOR_EVENTS_LOCAL_PATH")) or DEFAULT_EVENTS_LOCAL_PATH,
            cache_key=_strip_or_none(source.get("TUTOR_EVENTS_CACHE_KEY")) or DEFAULT_EVENTS_CACHE_KEY,
        )
        cache_dir = _strip_or_none(source.get("TUTOR_CACHE_DIR"))
        return CompanionConfig(
            timezone=_normalize_timezone(source.get("TUTOR_TIMEZONE")),
            cache_dir=Path(cache_dir) if cache_dir else DEFAULT_CACHE_DIR,
            fetch_timeout=max(1.0, parse_float(source.get("TUTOR_FETCH_TIMEOUT_SECONDS"), DEFAULT_FETCH_TIMEOUT)),
            content=content,
            events=events,
        )

    @staticmethod
    def from_mapping(data: Mapping[str, Any], *, base_dir: Path | None = None) -> CompanionConfig:
        """Build a config from the kiosk's JSON settings document.

        Relative ``cacheDir``/``embeddedDocument`` entries resolve against
        ``base_dir`` when given.
        """
        content_raw = data.get("content") if isinstance(data.get("content"), Mapping) else {}
        events_raw = data.get("events") if isinstance(data.get("events"), Mapping) else {}

        def _resolve(value: Any) -> Path | None:
            text = _strip_or_none(value)
            if not text:
                return None
            path = Path(text)
            if base_dir is not None and not path.is_absolute():
                path = base_dir / path
            return path

        timeout = data.get("fetchTimeoutSeconds")
        if isinstance(timeout, bool) or not isinstance(timeout, (int, float)):
            timeout = DEFAULT_FETCH_TIMEOUT

        return CompanionConfig(
            timezone=_normalize_timezone(data.get("timezone")),
            cache_dir=_resolve(data.get("cacheDir")) or DEFAULT_CACHE_DIR,
            fetch_timeout=max(1.0, float(timeout)),
            content=PayloadSourceConfig(
                remote_url=_strip_or_none(content_raw.get("remoteUrl")),
                local_path=_strip_or_none(content_raw.get("localPath")) or DEFAULT_CONTENT_LOCAL_PATH,
                cache_key=_strip_or_none(content_raw.get("cacheKey")) or DEFAULT_CONTENT_CACHE_KEY,
                embedded_document=_resolve(content_raw.get("embeddedDocument")),
                embedded_script_id=_strip_or_none(content_raw.get("embeddedScriptId")) or DEFAULT_EMBEDDED_SCRIPT_ID,
            ),
            events=PayloadSourceConfig(
                remote_url=_strip_or_none(events_raw.get("remoteUrl")),
                local_path=_strip_or_none(events_raw.get("localPath")) or DEFAULT_EVENTS_LOCAL_PATH,
                cache_key=_strip_or_none(events_raw.get("cacheKey")) or DEFAULT_EVENTS_CACHE_KEY,
            ),
        )


def load_config_file(path: Path) -> CompanionConfig:
    """Read a JSON settings document (``data/config.local.json`` style)."""
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ConfigError(f"Config load failed: {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Config load failed: {path}: expected an object")
    return CompanionConfig.from_mapping(data, base_dir=Path(path).parent)
