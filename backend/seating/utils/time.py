from datetime import date, timedelta

MINUTES_PER_HOUR = 60
LAST_MINUTE_OF_DAY = 24 * MINUTES_PER_HOUR - 1


def time_to_minutes(value: str) -> int:
    """Convert "HH:MM" into minutes since midnight. Hours wrap at 24, minutes at 60."""
    try:
        hours_str, minutes_str = value.strip().split(":", 1)
        hours, minutes = int(hours_str), int(minutes_str)
    except (AttributeError, ValueError) as exc:
        raise ValueError(f"invalid time {value!r}, expected HH:MM") from exc
    return (hours % 24) * MINUTES_PER_HOUR + (minutes % MINUTES_PER_HOUR)


def format_minutes(minutes: int) -> str:
    normalized = max(0, min(LAST_MINUTE_OF_DAY, round(minutes)))
    return f"{normalized // MINUTES_PER_HOUR:02d}:{normalized % MINUTES_PER_HOUR:02d}"


def previous_day(day: date) -> date:
    return day - timedelta(days=1)
