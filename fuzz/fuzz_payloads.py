import json
import sys

import atheris

with atheris.instrument_imports():
    from tutor.companion.event_engine import collect_today_events, get_active_event, get_today_event
    from tutor.companion.models import ContentPayload, EventsPayload
    from tutor.companion.schedule import ScheduleDocument, resolve_schedule_today
    from tutor.companion.validator import validate_content, validate_events
    from tutor.datetime_utils import NowParts


def TestOneInput(data: bytes) -> None:
    """Fuzz validation, model building, and rule matching with arbitrary JSON."""
    fdp = atheris.FuzzedDataProvider(data)
    minutes = fdp.ConsumeIntInRange(0, 1439)
    dow3 = fdp.PickValueInList(["MON", "TUE", "WED", "THU", "FRI", "SAT", "SUN"])
    text = fdp.ConsumeUnicodeNoSurrogates(fdp.remaining_bytes())
    try:
        raw = json.loads(text)
    except (json.JSONDecodeError, RecursionError):
        return  # Expected for invalid input

    now = NowParts(timezone="UTC", dow_long="", dow3=dow3, date_local="2026-01-05", minutes=minutes)

    # Validators report problems rather than raising
    if validate_content(raw).ok:
        content = ContentPayload.from_raw(raw)
        for page in content.pages.values():
            ScheduleDocument.from_page(page)

    validate_events(raw)
    events = EventsPayload.from_raw(raw)
    get_active_event(events, now)
    get_today_event(events, now)
    collect_today_events(events, now)

    if isinstance(raw, dict):
        resolve_schedule_today(ScheduleDocument.from_mapping(raw), events, now)


def main() -> None:
    atheris.Setup(sys.argv, TestOneInput)
    atheris.Fuzz()


if __name__ == "__main__":
    main()
