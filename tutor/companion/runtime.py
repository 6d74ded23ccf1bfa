"""Load/refresh orchestration and per-render queries for the kiosk shell."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

import httpx

from tutor.datetime_utils import NowParts, now_parts

from .cache import PayloadCache
from .config import CompanionConfig
from .event_engine import get_active_event, get_today_event, resolve_home_message
from .models import ContentPayload, EventRule, EventsPayload
from .schedule import ScheduleDocument, ScheduleSection, apply_schedule_rules, resolve_schedule_today
from .sources import ContentRepository, EventsRepository

LOGGER = logging.getLogger("tutor.runtime")

# Only the "today" screen gets event lines injected into its day parts.
TODAY_SCHEDULE_PAGE_ID = "schedule_today"


class CompanionRuntime:
    """Owns both repositories and answers the renderer's time-dependent questions.

    Payloads are replaced wholesale on each successful :meth:`refresh`; every
    query samples a fresh ``now`` and returns a new immutable result.
    """

    def __init__(
        self,
        config: CompanionConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.config = config
        self._logger = logger or LOGGER
        self.cache = PayloadCache(config.cache_dir, logger=logger)
        self.content_repository = ContentRepository(
            config.content,
            self.cache,
            timeout=config.fetch_timeout,
            transport=transport,
            logger=logger,
        )
        self.events_repository = EventsRepository(
            config.events,
            self.cache,
            timeout=config.fetch_timeout,
            transport=transport,
            logger=logger,
        )
        self.content: ContentPayload | None = None
        self.events: EventsPayload = EventsPayload.empty()

    async def refresh(self) -> ContentPayload:
        """Reload content then events.

        Raises :class:`~tutor.companion.errors.ContentUnavailableError` when no
        content tier succeeds; the previous payloads stay active in that case.
        """
        content = await self.content_repository.load()
        events = await self.events_repository.load()
        self.content = content
        self.events = events
        self._logger.info(
            "Loaded content from %s and events from %s",
            self.content_repository.source,
            self.events_repository.get_source(),
        )
        if self.events_repository.get_last_error():
            self._logger.info("Last events error: %s", self.events_repository.get_last_error())
        return content

    def now(self, instant: datetime | None = None) -> NowParts:
        return now_parts(self.config.timezone, instant)

    def home_message(self, instant: datetime | None = None) -> str:
        return resolve_home_message(self.content, self.events, self.now(instant))

    def today_event(self, instant: datetime | None = None) -> EventRule | None:
        return get_today_event(self.events, self.now(instant))

    def active_event(self, instant: datetime | None = None) -> EventRule | None:
        return get_active_event(self.events, self.now(instant))

    def render_state(self, instant: datetime | None = None) -> dict[str, Any]:
        """Values the templating layer exposes as ``{{dow}}``, ``{{dateLong}}``, ``{{homeMessageText}}``."""
        now = self.now(instant)
        return {
            "dow": now.dow_long,
            "dateLong": now.date_long,
            "homeMessageText": resolve_home_message(self.content, self.events, now),
        }

    def schedule_for(self, page_id: str, instant: datetime | None = None) -> tuple[ScheduleSection, ...] | None:
        """Resolved sections for a schedule page, or ``None`` when the page is unknown."""
        if self.content is None:
            return None
        page = self.content.get_page(page_id)
        if page is None:
            return None
        document = ScheduleDocument.from_page(page)
        now = self.now(instant)
        if page_id == TODAY_SCHEDULE_PAGE_ID:
            return resolve_schedule_today(document, self.events, now)
        return apply_schedule_rules(document, now)
