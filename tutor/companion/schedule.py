"""Schedule documents: conditional line rules and today's-event injection.

Lines have no identity beyond their four fields, and every injection checks
for a structurally equal line first, so re-annotating an already annotated
document never duplicates anything.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import asdict, dataclass, replace
from typing import Any, Literal, Protocol, TypeVar

from tutor.datetime_utils import NowParts, format_time_12h, parse_hm

from .event_engine import collect_today_events
from .models import EventRule, EventsPayload, Page, coerce_text

LOGGER = logging.getLogger("tutor.schedule")

Bucket = Literal["morning", "midday", "evening"]

# Day-part boundaries in whole hours.
_MIDDAY_START_HOUR = 11
_EVENING_START_HOUR = 16


@dataclass(frozen=True, slots=True)
class Line:
    label: str = ""
    time: str = ""
    note: str = ""
    kind: str = "normal"


@dataclass(frozen=True, slots=True)
class ScheduleSection:
    heading: str
    lines: tuple[Line, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {"heading": self.heading, "lines": [asdict(line) for line in self.lines]}


@dataclass(frozen=True, slots=True)
class LineRule:
    """Append ``line`` to the section titled ``heading`` when the guard passes.

    Guard fields are optional; ``after`` is inclusive of its minute, and so is
    ``before``. Unparsable bounds are ignored.
    """

    heading: str | None
    line: Line | None
    dow: str = ""
    after: str = ""
    before: str = ""

    @classmethod
    def from_raw(cls, raw: Mapping[str, Any]) -> LineRule:
        when = raw.get("when")
        when = when if isinstance(when, Mapping) else {}
        effect = raw.get("addLineToSection")
        heading: str | None = None
        line: Line | None = None
        if isinstance(effect, Mapping):
            heading = coerce_text(effect.get("heading"))
            line = normalize_line(effect.get("line"))
        return cls(
            heading=heading,
            line=line,
            dow=coerce_text(when.get("dow")).upper(),
            after=coerce_text(when.get("after")),
            before=coerce_text(when.get("before")),
        )

    def applies(self, now: NowParts) -> bool:
        if self.dow and self.dow != now.dow3:
            return False
        after = parse_hm(self.after)
        if after is not None and now.minutes < after:
            return False
        before = parse_hm(self.before)
        if before is not None and now.minutes > before:
            return False
        return True


@dataclass(frozen=True, slots=True)
class ScheduleDocument:
    sections: tuple[ScheduleSection, ...] = ()
    rules: tuple[LineRule, ...] = ()

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> ScheduleDocument:
        sections = raw.get("sections")
        rules = raw.get("rules")
        parsed_sections: list[ScheduleSection] = []
        if isinstance(sections, (list, tuple)):
            for section in sections:
                if not isinstance(section, Mapping):
                    continue
                lines = section.get("lines")
                parsed_sections.append(
                    ScheduleSection(
                        heading=coerce_text(section.get("heading")),
                        lines=tuple(normalize_line(line) for line in lines)
                        if isinstance(lines, (list, tuple))
                        else (),
                    )
                )
        parsed_rules: tuple[LineRule, ...] = ()
        if isinstance(rules, (list, tuple)):
            parsed_rules = tuple(LineRule.from_raw(rule) for rule in rules if isinstance(rule, Mapping))
        return cls(sections=tuple(parsed_sections), rules=parsed_rules)

    @classmethod
    def from_page(cls, page: Page) -> ScheduleDocument:
        return cls.from_mapping(page.data)

    def with_sections(self, sections: Iterable[ScheduleSection]) -> ScheduleDocument:
        return replace(self, sections=tuple(sections))


def normalize_line(value: Any) -> Line:
    """Coerce a line object, a legacy ``{"text": ...}`` object, or a bare string."""
    if isinstance(value, Line):
        return value
    if isinstance(value, Mapping):
        kind = coerce_text(value.get("kind")) or "normal"
        if "label" in value or "time" in value or "note" in value:
            return Line(
                label=coerce_text(value.get("label")),
                time=coerce_text(value.get("time")),
                note=coerce_text(value.get("note")),
                kind=kind,
            )
        return Line(label=coerce_text(value.get("text")), kind=kind)
    return Line(label=coerce_text(value))


class _HasHeading(Protocol):
    @property
    def heading(self) -> str: ...


SectionT = TypeVar("SectionT", bound=_HasHeading)


@dataclass(slots=True)
class _Draft:
    heading: str
    lines: list[Line]

    def add(self, line: Line) -> None:
        if line not in self.lines:
            self.lines.append(line)

    def freeze(self) -> ScheduleSection:
        return ScheduleSection(heading=self.heading, lines=tuple(self.lines))


def _drafts(sections: Iterable[ScheduleSection]) -> list[_Draft]:
    return [_Draft(heading=section.heading, lines=list(section.lines)) for section in sections]


def find_section_by_heading(sections: Sequence[SectionT], heading: str) -> SectionT | None:
    wanted = heading.lower()
    return next((section for section in sections if section.heading.lower() == wanted), None)


def find_section_for_bucket(sections: Sequence[SectionT], bucket: str) -> SectionT | None:
    wanted = bucket.lower()
    return next((section for section in sections if wanted in section.heading.lower()), None)


def bucket_for_start(start_local: Any) -> Bucket:
    """Day part for a start time; anything unparsable lands in midday."""
    minutes = parse_hm(start_local)
    if minutes is None:
        return "midday"
    hour = minutes // 60
    if hour < _MIDDAY_START_HOUR:
        return "morning"
    if hour < _EVENING_START_HOUR:
        return "midday"
    return "evening"


def event_to_line(event: EventRule) -> Line:
    start = event.schedule.start_local if event.schedule is not None else ""
    time = format_time_12h(start)
    title = event.title.strip()
    if not title:
        # Older entries only carry a two-line message.
        parts = [part.strip() for part in event.message.split("\n") if part.strip()]
        return Line(
            label=parts[0] if parts else "Event",
            time=time,
            note=parts[1] if len(parts) > 1 else "",
            kind="event",
        )
    return Line(label=title, time=time, note=event.note.strip(), kind="event")


def apply_schedule_rules(document: ScheduleDocument, now: NowParts) -> tuple[ScheduleSection, ...]:
    drafts = _drafts(document.sections)
    for rule in document.rules:
        if rule.heading is None or rule.line is None or not rule.applies(now):
            continue
        target = find_section_by_heading(drafts, rule.heading)
        if target is None:
            continue
        target.add(rule.line)
    return tuple(draft.freeze() for draft in drafts)


def annotate_schedule(
    document: ScheduleDocument,
    now: NowParts,
    todays_events: Iterable[EventRule],
) -> tuple[ScheduleSection, ...]:
    """Apply conditional rules, then place each of today's events in its day part.

    Events whose day part has no matching section are dropped.
    """
    drafts = _drafts(apply_schedule_rules(document, now))
    for event in todays_events:
        start = event.schedule.start_local if event.schedule is not None else ""
        bucket = bucket_for_start(start)
        target = find_section_for_bucket(drafts, bucket)
        if target is None:
            LOGGER.debug("No %s section for event %s; skipping", bucket, event.id or "<unnamed>")
            continue
        target.add(event_to_line(event))
    return tuple(draft.freeze() for draft in drafts)


def resolve_schedule_today(
    document: ScheduleDocument,
    events: EventsPayload,
    now: NowParts,
) -> tuple[ScheduleSection, ...]:
    return annotate_schedule(document, now, collect_today_events(events, now))


def first_event_line(sections: Iterable[ScheduleSection]) -> Line | None:
    for section in sections:
        for line in section.lines:
            if line.kind == "event":
                return line
    return None
