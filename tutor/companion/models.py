"""Immutable content and events models built from validated raw payloads."""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from tutor.datetime_utils import parse_hm

_EMPTY: Mapping[str, Any] = MappingProxyType({})


def freeze(value: Any) -> Any:
    """Recursively turn dicts into read-only mappings and lists into tuples."""
    if isinstance(value, Mapping):
        return MappingProxyType({key: freeze(item) for key, item in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(freeze(item) for item in value)
    return value


def thaw(value: Any) -> Any:
    """Inverse of :func:`freeze`, producing plain JSON-compatible containers."""
    if isinstance(value, Mapping):
        return {key: thaw(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [thaw(item) for item in value]
    return value


def coerce_text(value: Any) -> str:
    if value is None or value is False or value == "":
        return ""
    return str(value)


def _coerce_priority(value: Any) -> float:
    if isinstance(value, bool):
        return float(value)
    try:
        if isinstance(value, (int, float)):
            number = float(value)
        elif isinstance(value, str):
            # Digit separators are a Python literal form, not a numeric string.
            if "_" in value:
                return 0.0
            number = float(value.strip() or 0)
        else:
            return 0.0
    except (ValueError, OverflowError):
        return 0.0
    return number if math.isfinite(number) else 0.0


@dataclass(frozen=True, slots=True)
class Tile:
    label: str
    to: str | None = None


@dataclass(frozen=True, slots=True)
class Page:
    """One screen. ``type`` tags the variant; the body stays read-only in ``data``."""

    id: str
    type: str
    title: str
    tiles: tuple[Tile, ...] = ()
    data: Mapping[str, Any] = field(default_factory=lambda: _EMPTY)

    @classmethod
    def from_raw(cls, page_id: str, raw: Mapping[str, Any]) -> Page:
        tiles = raw.get("tiles")
        parsed_tiles: list[Tile] = []
        if isinstance(tiles, (list, tuple)):
            for tile in tiles:
                if not isinstance(tile, Mapping):
                    continue
                target = tile.get("to")
                parsed_tiles.append(
                    Tile(label=coerce_text(tile.get("label")), to=target if isinstance(target, str) else None)
                )
        return cls(
            id=page_id,
            type=coerce_text(raw.get("type")) or "info",
            title=coerce_text(raw.get("title")),
            tiles=tuple(parsed_tiles),
            data=freeze(raw),
        )

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)


@dataclass(frozen=True, slots=True)
class ContentPayload:
    meta: Mapping[str, Any]
    home_page_id: str
    pages: Mapping[str, Page]

    @classmethod
    def from_raw(cls, raw: Mapping[str, Any]) -> ContentPayload:
        meta = raw.get("meta")
        home_page_id = raw.get("homePageId")
        pages = raw.get("pages")
        parsed: dict[str, Page] = {}
        if isinstance(pages, Mapping):
            for page_id, page in pages.items():
                if isinstance(page, Mapping):
                    parsed[str(page_id)] = Page.from_raw(str(page_id), page)
        return cls(
            meta=freeze(meta) if isinstance(meta, Mapping) else _EMPTY,
            home_page_id=home_page_id if isinstance(home_page_id, str) else "",
            pages=MappingProxyType(parsed),
        )

    def get_page(self, page_id: str) -> Page | None:
        return self.pages.get(page_id)

    @property
    def home_page(self) -> Page | None:
        return self.pages.get(self.home_page_id)


@dataclass(frozen=True, slots=True)
class TimeRule:
    """A weekly (``dow``) or one-off (``date_local``) window in local ``HH:MM``.

    Unparsable start/end strings leave ``start_min``/``end_min`` as ``None``,
    which makes the window inert rather than an error.
    """

    type: str
    dow: str = ""
    date_local: str = ""
    start_local: str = ""
    end_local: str = ""
    start_min: int | None = None
    end_min: int | None = None

    @classmethod
    def from_raw(cls, raw: Mapping[str, Any]) -> TimeRule:
        start = raw.get("startLocal")
        end = raw.get("endLocal")
        return cls(
            type=coerce_text(raw.get("type")),
            dow=coerce_text(raw.get("dow")).upper(),
            date_local=coerce_text(raw.get("dateLocal")),
            start_local=start if isinstance(start, str) else "",
            end_local=end if isinstance(end, str) else "",
            start_min=parse_hm(start),
            end_min=parse_hm(end),
        )


@dataclass(frozen=True, slots=True)
class EventRule:
    id: str
    kind: str
    enabled: bool
    priority: float
    schedule: TimeRule | None
    title: str = ""
    note: str = ""
    message: str = ""
    raw: Mapping[str, Any] = field(default_factory=lambda: _EMPTY, repr=False)

    @classmethod
    def from_raw(cls, raw: Mapping[str, Any]) -> EventRule:
        schedule = raw.get("schedule")
        message = raw.get("message")
        return cls(
            id=coerce_text(raw.get("id")),
            kind=coerce_text(raw.get("kind")),
            # Only a literal true enables an entry.
            enabled=raw.get("enabled") is True,
            priority=_coerce_priority(raw.get("priority")),
            schedule=TimeRule.from_raw(schedule) if isinstance(schedule, Mapping) else None,
            title=coerce_text(raw.get("title")),
            note=coerce_text(raw.get("note")),
            message=message if isinstance(message, str) else "",
            raw=freeze(raw),
        )


@dataclass(frozen=True, slots=True)
class EventsPayload:
    meta: Mapping[str, Any]
    rules: tuple[EventRule, ...] = ()
    events: tuple[EventRule, ...] = ()

    @classmethod
    def from_raw(cls, raw: Any) -> EventsPayload:
        safe = raw if isinstance(raw, Mapping) else {}
        meta = safe.get("meta")
        return cls(
            meta=freeze(meta) if isinstance(meta, Mapping) else _EMPTY,
            rules=_parse_entries(safe.get("rules")),
            events=_parse_entries(safe.get("events")),
        )

    @classmethod
    def empty(cls) -> EventsPayload:
        return cls(meta=_EMPTY)

    def flattened(self) -> tuple[EventRule, ...]:
        """Rules then events, each in authored order."""
        return self.rules + self.events


def _parse_entries(value: Any) -> tuple[EventRule, ...]:
    if not isinstance(value, (list, tuple)):
        return ()
    return tuple(EventRule.from_raw(item) for item in value if isinstance(item, Mapping))
