from datetime import datetime, time, timedelta, timezone as dt_tz

PERIODS = ("today", "week", "month", "all")


def to_utc_iso(dt):
    return dt.astimezone(dt_tz.utc).isoformat()


def utc_date(dt):
    return dt.astimezone(dt_tz.utc).date()


def period_start(now, period: str):
    """Start of a statistics period, measured in UTC."""
    today = datetime.combine(utc_date(now), time.min, tzinfo=dt_tz.utc)
    if period == "today":
        return today
    if period == "week":
        return today - timedelta(days=7)
    if period == "month":
        return today - timedelta(days=30)
    if period == "all":
        return datetime(1970, 1, 1, tzinfo=dt_tz.utc)
    raise ValueError(f"Unknown period: {period}")
