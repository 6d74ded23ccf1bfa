"""Decide which event rules are active right now or today.

Every function here is total: entries with missing or malformed schedules
simply never match. Ties on priority keep the entry seen first, where the
flattened order is ``rules`` followed by ``events`` as authored.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable

from tutor.datetime_utils import NowParts, in_window

from .models import ContentPayload, EventRule, EventsPayload

LOGGER = logging.getLogger("tutor.event_engine")

# Sorts entries without a parsable start after every real start time.
_NO_START = 99999


def is_eligible(rule: EventRule) -> bool:
    """Enabled entries only; templates exist for authors and never match."""
    return rule.enabled and rule.kind != "template"


def _matches_day(rule: EventRule, now: NowParts) -> bool:
    schedule = rule.schedule
    if schedule is None:
        return False
    if schedule.type == "weekly":
        return bool(schedule.dow) and schedule.dow == now.dow3.upper()
    if schedule.type == "date":
        # Literal date equality: a window that wraps past midnight does not
        # carry over into the following calendar date.
        return schedule.date_local == now.date_local
    return False


def matches_today(rule: EventRule, now: NowParts) -> bool:
    """Day or date matches; the time window is ignored."""
    return _matches_day(rule, now)


def matches_now(rule: EventRule, now: NowParts) -> bool:
    """Day or date matches and ``now.minutes`` falls inside the window."""
    schedule = rule.schedule
    if schedule is None or schedule.start_min is None or schedule.end_min is None:
        return False
    if not in_window(now.minutes, schedule.start_min, schedule.end_min):
        return False
    return _matches_day(rule, now)


def _select(
    rules: Iterable[EventRule],
    now: NowParts,
    predicate: Callable[[EventRule, NowParts], bool],
) -> EventRule | None:
    best: EventRule | None = None
    for rule in rules:
        if not is_eligible(rule) or not predicate(rule, now):
            continue
        # Strictly greater only, so equal priorities keep the earlier entry.
        if best is None or rule.priority > best.priority:
            best = rule
    return best


def active_now(rules: Iterable[EventRule], now: NowParts) -> EventRule | None:
    return _select(rules, now, matches_now)


def active_today(rules: Iterable[EventRule], now: NowParts) -> EventRule | None:
    return _select(rules, now, matches_today)


def get_active_event(events: EventsPayload, now: NowParts) -> EventRule | None:
    return active_now(events.flattened(), now)


def get_today_event(events: EventsPayload, now: NowParts) -> EventRule | None:
    return active_today(events.flattened(), now)


def resolve_home_message(content: ContentPayload | None, events: EventsPayload, now: NowParts) -> str:
    """Message of today's highest-priority event, or '' when there is none.

    Home alerts are whole-day announcements, so this uses "today" matching
    rather than the minute window.
    """
    event = get_today_event(events, now)
    if event is not None and event.message.strip():
        LOGGER.debug("Home message from event %s", event.id or "<unnamed>")
        return event.message
    return ""


def collect_today_events(events: EventsPayload, now: NowParts) -> list[EventRule]:
    """All of today's eligible entries, highest priority first, then earliest start."""
    todays = [rule for rule in events.flattened() if is_eligible(rule) and matches_today(rule, now)]

    def _order(rule: EventRule) -> tuple[float, int]:
        start = rule.schedule.start_min if rule.schedule is not None else None
        return (-rule.priority, _NO_START if start is None else start)

    return sorted(todays, key=_order)
