from datetime import datetime, timedelta
from typing import Any
import os
import re
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from langchain_core.tools import tool

WEEKDAYS = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]


def _local_tz() -> ZoneInfo:
    try:
        return ZoneInfo(os.getenv("INBOX_TRIAGE_TIMEZONE", "UTC"))
    except (ZoneInfoNotFoundError, ValueError):
        return ZoneInfo("UTC")


def _split_hhmm(start_time: int | None) -> tuple[int, int]:
    value = start_time if start_time is not None else 900
    return value // 100, value % 100


def _coerce_preferred_day(value: Any, fallback_start_time: int | None = None) -> datetime:
    """Turn the model's ``preferred_day`` into an aware datetime.

    Understands ISO 8601 strings, ``YYYY-MM-DD`` dates (timed at
    ``fallback_start_time``) and weekday phrases such as ``"next Tuesday 14:00"``.
    Anything else raises ``ValueError``.
    """
    tz = _local_tz()
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=tz)
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"preferred_day must be a datetime or non-empty string, got {value!r}")

    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        parsed = None
    if parsed is not None:
        if len(text) == 10:
            hour, minute = _split_hhmm(fallback_start_time)
            parsed = parsed.replace(hour=hour, minute=minute)
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=tz)

    tokens = text.lower().replace(",", " ").split()
    weekday = next((WEEKDAYS.index(tok) for tok in tokens if tok in WEEKDAYS), None)
    if weekday is None:
        raise ValueError(f"Could not interpret preferred_day {value!r}")

    hour, minute = _split_hhmm(fallback_start_time)
    for tok in tokens:
        match = re.fullmatch(r"(\d{1,2}):(\d{2})", tok)
        if match:
            hour, minute = int(match.group(1)), int(match.group(2))
            break

    today = datetime.now(tz)
    # "Tuesday" on a Tuesday means a week from today
    delta = (weekday - today.weekday()) % 7 or 7
    target = today + timedelta(days=delta)
    return target.replace(hour=hour, minute=minute, second=0, microsecond=0)


@tool
def schedule_meeting(
    attendees: list[str], subject: str, duration_minutes: int, preferred_day: str, start_time: int
) -> str:
    """Schedule a calendar meeting.

    Args:
        attendees: Email addresses of everyone invited.
        subject: Meeting title.
        duration_minutes: Length of the meeting in minutes.
        preferred_day: ISO 8601 date or datetime, e.g. "2025-05-15T14:00:00".
        start_time: Start time as HHMM in 24-hour form, e.g. 1400.
    """
    try:
        when = _coerce_preferred_day(preferred_day, fallback_start_time=start_time)
    except ValueError as exc:
        return f"Invalid preferred_day: {exc}"

    date_str = when.strftime("%A, %B %d, %Y")
    time_str = when.strftime("%H:%M")
    return (
        f"Meeting '{subject}' scheduled on {date_str} at {time_str} {when.tzname() or ''}"
        f" for {duration_minutes} minutes with {len(attendees)} attendees"
    )


@tool
def check_calendar_availability(day: str) -> str:
    """Check calendar availability for a given day."""
    tz_name = datetime.now(_local_tz()).tzname() or ""
    return f"Available times on {day} ({tz_name}): 9:00 AM, 2:00 PM, 4:00 PM"
