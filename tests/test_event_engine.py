"""Tests for the temporal rule engine (tutor/companion/event_engine.py)."""

from __future__ import annotations

import pytest
from conftest import content_raw, event_entry, events_raw, make_now

from tutor.companion.event_engine import (
    active_now,
    active_today,
    collect_today_events,
    get_active_event,
    get_today_event,
    matches_now,
    matches_today,
    resolve_home_message,
)
from tutor.companion.models import ContentPayload, EventRule, EventsPayload


def _rule(entry_id: str = "x", **kwargs) -> EventRule:
    return EventRule.from_raw(event_entry(entry_id, **kwargs))


def _date_rule(entry_id: str, date_local: str, start: str, end: str, **kwargs) -> EventRule:
    schedule = {"type": "date", "dateLocal": date_local, "startLocal": start, "endLocal": end}
    return _rule(entry_id, schedule=schedule, **kwargs)


def _payload(rules=(), events=()) -> EventsPayload:
    return EventsPayload.from_raw(events_raw(rules=list(rules), events=list(events)))


# ============================================================================
# Matching
# ============================================================================


class TestMatching:
    def test_weekly_rule_in_window(self):
        assert matches_now(_rule(), make_now(minutes=9 * 60 + 30))

    def test_weekly_rule_window_is_half_open(self):
        assert matches_now(_rule(), make_now(minutes=9 * 60))
        assert not matches_now(_rule(), make_now(minutes=10 * 60))

    def test_weekly_rule_other_day(self):
        rule = _rule()
        now = make_now(dow3="TUE", dow_long="Tuesday", date_local="2026-01-06")
        assert not matches_today(rule, now)
        assert not matches_now(rule, now)

    def test_weekly_dow_is_case_insensitive(self):
        rule = _rule(schedule={"type": "weekly", "dow": "mon", "startLocal": "09:00", "endLocal": "10:00"})
        assert matches_now(rule, make_now())

    def test_weekly_rule_without_dow_never_matches(self):
        rule = _rule(schedule={"type": "weekly", "startLocal": "09:00", "endLocal": "10:00"})
        assert not matches_today(rule, make_now())

    def test_today_ignores_window(self):
        assert matches_today(_rule(), make_now(minutes=23 * 60))

    def test_date_rule(self):
        rule = _date_rule("d", "2026-01-05", "09:00", "10:00")
        assert matches_now(rule, make_now())
        assert not matches_today(rule, make_now(date_local="2026-01-12"))

    def test_unknown_schedule_type(self):
        rule = _rule(schedule={"type": "monthly", "startLocal": "09:00", "endLocal": "10:00"})
        assert not matches_today(rule, make_now())

    def test_missing_schedule(self):
        rule = EventRule.from_raw({"id": "x", "enabled": True})
        assert not matches_today(rule, make_now())
        assert not matches_now(rule, make_now())

    @pytest.mark.parametrize(("start", "end"), [("9am", "10:00"), ("09:00", None), ("24:00", "10:00")])
    def test_unparsable_window_never_active(self, start, end):
        rule = _rule(schedule={"type": "weekly", "dow": "MON", "startLocal": start, "endLocal": end})
        assert not matches_now(rule, make_now())

    def test_equal_start_and_end_never_active(self):
        rule = _rule(schedule={"type": "weekly", "dow": "MON", "startLocal": "09:30", "endLocal": "09:30"})
        assert not any(matches_now(rule, make_now(minutes=minute)) for minute in range(1440))

    def test_weekly_window_wraps_past_midnight(self):
        rule = _rule(schedule={"type": "weekly", "dow": "MON", "startLocal": "22:00", "endLocal": "02:00"})
        assert matches_now(rule, make_now(minutes=23 * 60))
        assert matches_now(rule, make_now(minutes=60))
        assert not matches_now(rule, make_now(minutes=12 * 60))

    def test_date_window_past_midnight_stays_on_its_date(self):
        """The post-midnight half of a date rule does not spill into the next date."""
        rule = _date_rule("late", "2026-01-05", "22:00", "02:00")
        assert matches_now(rule, make_now(date_local="2026-01-05", minutes=23 * 60 + 30))
        next_day = make_now(dow3="TUE", dow_long="Tuesday", date_local="2026-01-06", minutes=60)
        assert not matches_now(rule, next_day)


# ============================================================================
# Selection
# ============================================================================


class TestSelection:
    def test_highest_priority_wins(self):
        rules = [_rule("low", priority=1), _rule("high", priority=5), _rule("mid", priority=3)]
        assert active_now(rules, make_now()).id == "high"
        assert active_today(rules, make_now()).id == "high"

    def test_ties_keep_first_seen(self):
        rules = [_rule("first", priority=2), _rule("second", priority=2)]
        assert active_now(rules, make_now()).id == "first"
        assert active_today(rules, make_now()).id == "first"

    def test_ties_keep_first_seen_across_many_entries(self):
        rules = [_rule(f"tie-{index}", priority=4) for index in range(6)]
        assert active_now(rules, make_now()).id == "tie-0"
        assert active_today(rules, make_now()).id == "tie-0"

    def test_ties_spanning_rules_and_events_keep_first_rule(self):
        payload = _payload(
            rules=[
                event_entry("low", priority=1),
                event_entry("rule-a", priority=3),
                event_entry("rule-b", priority=3),
            ],
            events=[event_entry(f"event-{index}", priority=3) for index in range(4)],
        )
        assert get_active_event(payload, make_now()).id == "rule-a"
        assert get_today_event(payload, make_now()).id == "rule-a"

    def test_missing_priority_counts_as_zero(self):
        rules = [_rule("implicit"), _rule("negative", priority=-1)]
        assert active_now(rules, make_now()).id == "implicit"

    def test_string_priority_is_numeric(self):
        rules = [_rule("nine", priority=9), _rule("ten", priority="10")]
        assert active_now(rules, make_now()).id == "ten"

    def test_disabled_and_templates_excluded(self):
        rules = [
            _rule("off", priority=9, enabled=False),
            _rule("truthy", priority=9, enabled="true"),
            _rule("template", priority=9, kind="template"),
            _rule("real", priority=0),
        ]
        assert active_now(rules, make_now()).id == "real"

    def test_nothing_matches(self):
        now = make_now(dow3="SUN", dow_long="Sunday", date_local="2026-01-11")
        assert active_now([_rule()], now) is None
        assert active_today([_rule()], now) is None
        assert active_now([], now) is None

    def test_rules_precede_events_on_ties(self):
        payload = _payload(rules=[event_entry("rule", priority=1)], events=[event_entry("event", priority=1)])
        assert get_active_event(payload, make_now()).id == "rule"
        assert get_today_event(payload, make_now()).id == "rule"

    def test_event_beats_rule_on_priority(self):
        payload = _payload(rules=[event_entry("rule", priority=1)], events=[event_entry("event", priority=2)])
        assert get_active_event(payload, make_now()).id == "event"

    def test_today_versus_now(self):
        afternoon = {"type": "weekly", "dow": "MON", "startLocal": "15:00", "endLocal": "16:00"}
        payload = _payload(events=[event_entry("later", schedule=afternoon)])
        assert get_active_event(payload, make_now()) is None
        assert get_today_event(payload, make_now()).id == "later"

    def test_empty_payload(self):
        assert get_active_event(EventsPayload.empty(), make_now()) is None
        assert get_today_event(EventsPayload.empty(), make_now()) is None


# ============================================================================
# Home message
# ============================================================================


class TestHomeMessage:
    def test_message_of_today_event(self):
        payload = _payload(events=[event_entry("visit", message="Grandkids visit\nAfter lunch")])
        content = ContentPayload.from_raw(content_raw())
        assert resolve_home_message(content, payload, make_now(minutes=20 * 60)) == "Grandkids visit\nAfter lunch"

    def test_no_event_gives_empty(self):
        assert resolve_home_message(None, EventsPayload.empty(), make_now()) == ""

    def test_blank_message_gives_empty(self):
        payload = _payload(events=[event_entry("quiet", message="   ")])
        assert resolve_home_message(None, payload, make_now()) == ""

    def test_winner_without_message_is_not_replaced(self):
        payload = _payload(
            events=[event_entry("silent", priority=5), event_entry("chatty", priority=1, message="Hello")]
        )
        assert resolve_home_message(None, payload, make_now()) == ""


# ============================================================================
# Today's events
# ============================================================================


class TestCollectTodayEvents:
    def test_order_is_priority_then_start(self):
        def at(start, end):
            return {"type": "weekly", "dow": "MON", "startLocal": start, "endLocal": end}

        payload = _payload(
            events=[
                event_entry("late", schedule=at("18:00", "19:00")),
                event_entry("early", schedule=at("07:00", "08:00")),
                event_entry("important", schedule=at("20:00", "21:00"), priority=3),
                event_entry("untimed", schedule={"type": "weekly", "dow": "MON"}),
            ]
        )
        assert [rule.id for rule in collect_today_events(payload, make_now())] == [
            "important",
            "early",
            "late",
            "untimed",
        ]

    def test_excludes_ineligible_and_other_days(self):
        payload = _payload(
            rules=[event_entry("template", kind="template")],
            events=[
                event_entry("off", enabled=False),
                event_entry("tuesday", schedule={"type": "weekly", "dow": "TUE"}),
                event_entry("keep"),
            ],
        )
        assert [rule.id for rule in collect_today_events(payload, make_now())] == ["keep"]
