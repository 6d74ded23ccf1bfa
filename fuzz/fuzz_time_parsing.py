import sys

import atheris

with atheris.instrument_imports():
    from tutor.companion.schedule import bucket_for_start
    from tutor.datetime_utils import format_time_12h, in_window, parse_hm
    from tutor.utils import parse_float, sanitize_cache_key


def TestOneInput(data: bytes) -> None:
    """Fuzz HH:MM parsing and the helpers built on it with arbitrary input."""
    value = data.decode("utf-8", errors="ignore")

    # Parsers return None or "" for anything malformed (should never raise)
    minutes = parse_hm(value)
    if minutes is not None:
        assert 0 <= minutes < 1440
        assert format_time_12h(value)
    assert bucket_for_start(value) in ("morning", "midday", "evening")

    # Window containment over whatever three minutes the input yields
    if len(data) >= 6:
        start, end, now = (int.from_bytes(data[i : i + 2], "big") % 1440 for i in (0, 2, 4))
        result = in_window(now, start, end)
        if start == end:
            assert result is False

    sanitize_cache_key(value)
    parse_float(value, default=0.0)


def main() -> None:
    atheris.Setup(sys.argv, TestOneInput)
    atheris.Fuzz()


if __name__ == "__main__":
    main()
