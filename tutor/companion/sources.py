"""Tiered payload repositories: remote, last-known-good cache, bundled copy, embedded document."""

from __future__ import annotations

import json
import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from datetime import datetime
from html.parser import HTMLParser
from pathlib import Path
from typing import Any, Generic, TypeVar

import httpx

from tutor.datetime_utils import utc_now

from .cache import PayloadCache
from .config import DEFAULT_FETCH_TIMEOUT, PayloadSourceConfig
from .errors import (
    CacheError,
    ContentUnavailableError,
    ParseError,
    PayloadError,
    RetrievalError,
    ValidationError,
)
from .models import ContentPayload, EventsPayload
from .validator import ValidationResult, validate_content, validate_events

LOGGER = logging.getLogger("tutor.sources")

CACHE_SOURCE = "cache:lastKnownGood"
EMBEDDED_SOURCE = "embedded"
EMPTY_SOURCE = "empty"

_JSON_CONTENT_TYPES = ("application/json", "text/json")
_NO_CACHE_HEADERS = {
    "Accept": "application/json",
    "Cache-Control": "no-cache",
    "Pragma": "no-cache",
}

PayloadT = TypeVar("PayloadT")


@dataclass(frozen=True, slots=True)
class TierOk:
    raw: dict[str, Any]
    source: str
    persist: bool = False


@dataclass(frozen=True, slots=True)
class TierFailure:
    tier: str
    reason: str


TierResult = TierOk | TierFailure
TierFetch = Callable[[], Awaitable[TierOk | None]]


class _ScriptExtractor(HTMLParser):
    """Collect the text of the first ``<script id=...>`` element."""

    def __init__(self, script_id: str) -> None:
        super().__init__()
        self._script_id = script_id
        self._capturing = False
        self._chunks: list[str] = []
        self.found = False

    def handle_starttag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        if tag == "script" and not self.found and dict(attrs).get("id") == self._script_id:
            self.found = True
            self._capturing = True

    def handle_endtag(self, tag: str) -> None:
        if tag == "script":
            self._capturing = False

    def handle_data(self, data: str) -> None:
        if self._capturing:
            self._chunks.append(data)

    @property
    def text(self) -> str:
        return "".join(self._chunks)


def _parse_json(body: bytes | str) -> Any:
    try:
        return json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError, RecursionError) as exc:
        raise ParseError(f"Invalid JSON: {exc}") from exc


def _is_url(value: str) -> bool:
    lowered = value.lower()
    return lowered.startswith("http://") or lowered.startswith("https://")


def _prune_disabled(raw: dict[str, Any]) -> dict[str, Any]:
    """Drop pages flagged ``_disabled: true``; they stay in the JSON for authors only."""
    pages = raw.get("pages")
    if not isinstance(pages, dict):
        return raw
    kept = {
        page_id: page
        for page_id, page in pages.items()
        if not (isinstance(page, dict) and page.get("_disabled") is True)
    }
    return {**raw, "pages": kept}


class TieredLoader(Generic[PayloadT]):
    """Resolve one payload kind by walking its sources in order.

    Each tier produces an explicit result; the first :class:`TierOk` wins and
    later tiers are never attempted. Failures are recorded as reasons and never
    escape the tier that produced them.
    """

    kind = "payload"

    def __init__(
        self,
        config: PayloadSourceConfig,
        cache: PayloadCache,
        *,
        timeout: float = DEFAULT_FETCH_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
        clock: Callable[[], datetime] = utc_now,
        logger: logging.Logger | None = None,
    ) -> None:
        self._config = config
        self._cache = cache
        self._timeout = timeout
        self._transport = transport
        self._clock = clock
        self._logger = logger or LOGGER
        self.active: PayloadT | None = None
        self.source: str | None = None
        self.last_error: str | None = None
        self.loaded_at: datetime | None = None
        self.failures: list[TierFailure] = []

    async def load(self) -> PayloadT:
        self.failures = []
        self.last_error = None
        async with httpx.AsyncClient(
            timeout=self._timeout,
            follow_redirects=True,
            transport=self._transport,
        ) as client:
            for tier, fetch in self._tiers(client):
                result = await self._attempt(tier, fetch)
                if result is None:
                    continue
                if isinstance(result, TierFailure):
                    self._record(result)
                    continue
                try:
                    payload = self._build(_prune_disabled(result.raw))
                except RecursionError:
                    self._record(TierFailure(tier=tier, reason="Payload is nested too deeply."))
                    continue
                if result.persist:
                    self._persist(result.raw)
                return self._activate(payload, result.source)
        return self._exhausted()

    # ------------------------------------------------------------------
    # Hooks
    # ------------------------------------------------------------------

    def _validate(self, raw: Any) -> ValidationResult:
        raise NotImplementedError

    def _build(self, raw: dict[str, Any]) -> PayloadT:
        raise NotImplementedError

    def _exhausted(self) -> PayloadT:
        raise NotImplementedError

    def _tiers(self, client: httpx.AsyncClient) -> list[tuple[str, TierFetch]]:
        tiers: list[tuple[str, TierFetch]] = []
        remote_url = self._config.remote_url
        if remote_url:
            tiers.append(("remote", lambda: self._fetch_remote(client, remote_url)))
        tiers.append(("cache", self._read_cache))
        local_path = self._config.local_path
        if local_path:
            tiers.append(("local", lambda: self._fetch_local(client, local_path)))
        return tiers

    # ------------------------------------------------------------------
    # Tiers
    # ------------------------------------------------------------------

    async def _attempt(self, tier: str, fetch: TierFetch) -> TierResult | None:
        try:
            return await fetch()
        except PayloadError as exc:
            return TierFailure(tier=tier, reason=str(exc))

    async def _fetch_remote(self, client: httpx.AsyncClient, url: str) -> TierOk:
        raw = await self._get_json(client, url)
        return TierOk(raw=self._checked(raw), source=f"remote:{url}", persist=True)

    async def _read_cache(self) -> TierOk | None:
        raw = self._cache.read(self._config.cache_key)
        if raw is None:
            return None
        if not isinstance(raw, dict):
            raise CacheError("Cached payload is not an object.")
        self._logger.debug("Using last-known-good %s payload", self.kind)
        return TierOk(raw=raw, source=CACHE_SOURCE)

    async def _fetch_local(self, client: httpx.AsyncClient, local_path: str) -> TierOk:
        if _is_url(local_path):
            raw = await self._get_json(client, local_path)
        else:
            try:
                body = Path(local_path).read_bytes()
            except OSError as exc:
                raise RetrievalError(f"Could not read {local_path}: {exc.strerror or exc}") from exc
            except ValueError as exc:
                raise RetrievalError(f"Could not read {local_path}: {exc}") from exc
            raw = _parse_json(body)
        return TierOk(raw=self._checked(raw), source=f"local:{local_path}")

    async def _get_json(self, client: httpx.AsyncClient, url: str) -> Any:
        params = {"_ts": str(int(self._clock().timestamp() * 1000))}
        try:
            response = await client.get(url, params=params, headers=_NO_CACHE_HEADERS)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise RetrievalError(f"Request to {url} failed: {exc}") from exc
        if not response.is_success:
            raise RetrievalError(f"HTTP {response.status_code} {response.reason_phrase}".strip())
        content_type = response.headers.get("content-type", "").lower()
        if content_type and not any(expected in content_type for expected in _JSON_CONTENT_TYPES):
            self._logger.debug("Unexpected content-type %s from %s", content_type, url)
        return _parse_json(response.content)

    def _checked(self, raw: Any) -> dict[str, Any]:
        result = self._validate(raw)
        if not result.ok:
            raise ValidationError(result.errors)
        return raw

    # ------------------------------------------------------------------
    # Bookkeeping
    # ------------------------------------------------------------------

    def _record(self, failure: TierFailure) -> None:
        self.failures.append(failure)
        self.last_error = failure.reason
        self._logger.warning("%s %s tier failed: %s", self.kind.capitalize(), failure.tier, failure.reason)

    def _persist(self, raw: dict[str, Any]) -> None:
        try:
            self._cache.write(self._config.cache_key, raw)
        except CacheError as exc:
            self._logger.warning("Keeping previous %s cache entry: %s", self.kind, exc)

    def _activate(self, payload: PayloadT, source: str) -> PayloadT:
        self.active = payload
        self.source = source
        self.loaded_at = self._clock()
        self._logger.info("Activated %s payload from %s", self.kind, source)
        return self.active


class ContentRepository(TieredLoader[ContentPayload]):
    """Screen content. Running out of tiers is fatal for the kiosk."""

    kind = "content"

    def _validate(self, raw: Any) -> ValidationResult:
        return validate_content(raw)

    def _build(self, raw: dict[str, Any]) -> ContentPayload:
        return ContentPayload.from_raw(raw)

    def _tiers(self, client: httpx.AsyncClient) -> list[tuple[str, TierFetch]]:
        tiers = super()._tiers(client)
        if self._config.embedded_document is not None:
            tiers.append(("embedded", self._read_embedded))
        return tiers

    async def _read_embedded(self) -> TierOk:
        document = self._config.embedded_document
        script_id = self._config.embedded_script_id
        try:
            html = Path(document).read_text(encoding="utf-8")
        except (OSError, ValueError) as exc:
            raise RetrievalError(f"Could not read embedded document {document}: {exc}") from exc
        extractor = _ScriptExtractor(script_id)
        extractor.feed(html)
        extractor.close()
        if not extractor.found:
            raise RetrievalError(f'Missing <script id="{script_id}">')
        text = extractor.text.strip()
        if not text:
            raise ParseError("Embedded JSON is empty.")
        return TierOk(raw=self._checked(_parse_json(text)), source=EMBEDDED_SOURCE)

    def _exhausted(self) -> ContentPayload:
        raise ContentUnavailableError(self.failures)


class EventsRepository(TieredLoader[EventsPayload]):
    """Supplementary events. Running out of tiers resolves to an empty payload."""

    kind = "events"

    def _validate(self, raw: Any) -> ValidationResult:
        return validate_events(raw)

    def _build(self, raw: Mapping[str, Any]) -> EventsPayload:
        payload = EventsPayload.from_raw(raw)
        self._logger.debug("Events payload has %d rules and %d events", len(payload.rules), len(payload.events))
        return payload

    def _exhausted(self) -> EventsPayload:
        return self._activate(EventsPayload.empty(), EMPTY_SOURCE)

    def get_active(self) -> EventsPayload:
        return self.active if self.active is not None else EventsPayload.empty()

    def get_source(self) -> str:
        return self.source or "unknown"

    def get_last_error(self) -> str | None:
        return self.last_error
