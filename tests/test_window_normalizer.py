from datetime import UTC, datetime, timedelta

import pytest

from scheduling_pool.services.scheduling_errors import InvalidRequestError
from scheduling_pool.services.window_normalizer import (
    format_instant,
    normalize_timezone,
    normalize_window,
)

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


def test_normalize_window_clamps_start_to_one_minute_after_now() -> None:
    window = normalize_window("2026-02-28T08:00:00Z", "2026-03-02T12:00:00Z", now=NOW)

    assert window.start == NOW + timedelta(minutes=1)
    assert window.start_iso == "2026-03-01T12:01:00.000Z"
    assert window.end_iso == "2026-03-02T12:00:00.000Z"


def test_normalize_window_caps_end_at_seven_days_after_clamped_start() -> None:
    window = normalize_window("2026-03-05T09:00:00Z", "2026-04-30T09:00:00Z", now=NOW)

    assert window.start_iso == "2026-03-05T09:00:00.000Z"
    assert window.end_iso == "2026-03-12T09:00:00.000Z"


def test_normalize_window_keeps_future_window_untouched() -> None:
    window = normalize_window(
        "2026-03-02T15:30:00+05:30",
        "2026-03-03T15:30:00+05:30",
        now=NOW,
    )

    assert window.start_iso == "2026-03-02T10:00:00.000Z"
    assert window.end_iso == "2026-03-03T10:00:00.000Z"


def test_normalize_window_uses_custom_limits() -> None:
    window = normalize_window(
        "2026-03-01T11:00:00Z",
        "2026-03-09T00:00:00Z",
        now=NOW,
        min_start_buffer=timedelta(minutes=5),
        max_window=timedelta(days=1),
    )

    assert window.start_iso == "2026-03-01T12:05:00.000Z"
    assert window.end_iso == "2026-03-02T12:05:00.000Z"


@pytest.mark.parametrize(
    ("raw_start", "raw_end"),
    [
        ("not-a-date", "2026-03-02T12:00:00Z"),
        ("2026-03-02T12:00:00Z", ""),
        (None, "2026-03-02T12:00:00Z"),
    ],
)
def test_normalize_window_rejects_unparseable_bounds(raw_start, raw_end) -> None:  # type: ignore[no-untyped-def]
    with pytest.raises(InvalidRequestError, match="ISO 8601"):
        normalize_window(raw_start, raw_end, now=NOW)


def test_normalize_window_rejects_inverted_window() -> None:
    with pytest.raises(InvalidRequestError, match="End must be after start"):
        normalize_window("2026-03-04T12:00:00Z", "2026-03-03T12:00:00Z", now=NOW)


def test_normalize_window_rejects_window_entirely_in_the_past() -> None:
    with pytest.raises(InvalidRequestError):
        normalize_window("2026-02-20T12:00:00Z", "2026-02-21T12:00:00Z", now=NOW)


def test_format_instant_uses_millisecond_utc_form() -> None:
    assert format_instant(datetime(2026, 3, 2, 10, 0, 0, 123456, tzinfo=UTC)) == (
        "2026-03-02T10:00:00.123Z"
    )
    assert format_instant(datetime(2026, 3, 2, 10, 0)) == "2026-03-02T10:00:00.000Z"


def test_normalize_timezone_defaults_and_rewrites_legacy_alias() -> None:
    assert normalize_timezone(None, "Asia/Kolkata") == "Asia/Kolkata"
    assert normalize_timezone("  ", "UTC") == "UTC"
    assert normalize_timezone("asia/calcutta", "UTC") == "Asia/Kolkata"
    assert normalize_timezone("Asia/Calcutta", "UTC") == "Asia/Kolkata"
    assert normalize_timezone("Europe/Madrid", "UTC") == "Europe/Madrid"


def test_normalize_timezone_rejects_unknown_zone() -> None:
    with pytest.raises(InvalidRequestError, match="Unknown timezone"):
        normalize_timezone("Mars/Olympus_Mons", "UTC")
