from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from scheduling_pool.services.scheduling_errors import InvalidRequestError

DEFAULT_MIN_START_BUFFER = timedelta(minutes=1)
DEFAULT_MAX_WINDOW = timedelta(days=7)
_LEGACY_TIMEZONE_ALIASES = {
    "asia/calcutta": "Asia/Kolkata",
}


@dataclass(frozen=True)
class TimeWindow:
    start: datetime
    end: datetime

    @property
    def start_iso(self) -> str:
        return format_instant(self.start)

    @property
    def end_iso(self) -> str:
        return format_instant(self.end)


def parse_instant(raw_value: str | None) -> datetime:
    if not isinstance(raw_value, str) or not raw_value.strip():
        raise InvalidRequestError("Invalid start or end (must be ISO 8601)")
    normalized = raw_value.strip().replace("Z", "+00:00").replace("z", "+00:00")
    try:
        parsed = datetime.fromisoformat(normalized)
    except ValueError as exc:
        raise InvalidRequestError("Invalid start or end (must be ISO 8601)") from exc
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


def format_instant(value: datetime) -> str:
    """Render as ``YYYY-MM-DDTHH:MM:SS.mmmZ``; every slot key uses this form."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    in_utc = value.astimezone(UTC)
    milliseconds = in_utc.microsecond // 1000
    return f"{in_utc.strftime('%Y-%m-%dT%H:%M:%S')}.{milliseconds:03d}Z"


def normalize_window(
    raw_start: str | None,
    raw_end: str | None,
    *,
    now: datetime | None = None,
    min_start_buffer: timedelta = DEFAULT_MIN_START_BUFFER,
    max_window: timedelta = DEFAULT_MAX_WINDOW,
) -> TimeWindow:
    start = parse_instant(raw_start)
    end = parse_instant(raw_end)

    reference_now = now or datetime.now(UTC)
    # Calendly rejects start times that are not strictly in the future.
    min_start = reference_now + min_start_buffer
    clamped_start = max(start, min_start)
    max_end = clamped_start + max_window
    clamped_end = min(end, max_end)

    if clamped_end <= clamped_start:
        raise InvalidRequestError(
            f"End must be after start and within {_describe_window(max_window)}",
        )
    return TimeWindow(start=clamped_start, end=clamped_end)


def normalize_timezone(raw_timezone: str | None, default_timezone: str) -> str:
    cleaned = (raw_timezone or "").strip()
    if not cleaned:
        return default_timezone
    canonical = _LEGACY_TIMEZONE_ALIASES.get(cleaned.lower(), cleaned)
    try:
        ZoneInfo(canonical)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise InvalidRequestError(f"Unknown timezone: {cleaned}") from exc
    return canonical


def _describe_window(max_window: timedelta) -> str:
    if max_window.days and not max_window.seconds:
        return f"{max_window.days} days"
    return str(max_window)
