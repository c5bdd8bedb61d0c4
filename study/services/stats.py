from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Dict, Optional

from django.db.models import Avg, Count
from django.utils import timezone

from ..data.repos import reviews_for
from ..domain.enums import SUCCESSFUL_RATINGS, Rating
from ..utils.time import PERIODS, period_start, utc_date

STREAK_LOOKBACK_DAYS = 365


@dataclass(frozen=True)
class StudyStats:
    period: str
    total_reviews: int = 0
    accuracy: float = 0.0
    average_response_time_ms: float = 0.0
    study_streak: int = 0
    rating_breakdown: Dict[str, int] = field(default_factory=dict)


def study_stats(user_id, period: str = "today", deck_id=None,
                now: Optional[datetime] = None) -> StudyStats:
    if period not in PERIODS:
        raise ValueError(f"Unknown period: {period}")
    now = now or timezone.now()

    qs = reviews_for(user_id, period_start(now, period), deck_id=deck_id)
    breakdown = {rating.name: 0 for rating in Rating}
    for row in qs.order_by().values("rating").annotate(n=Count("id")):
        breakdown[row["rating"]] = row["n"]

    total = sum(breakdown.values())
    successful = sum(breakdown[r.name] for r in SUCCESSFUL_RATINGS)
    accuracy = round(successful / total * 100, 2) if total else 0.0
    avg_ms = qs.aggregate(avg=Avg("response_time_ms"))["avg"] or 0.0

    return StudyStats(
        period=period,
        total_reviews=total,
        accuracy=accuracy,
        average_response_time_ms=float(avg_ms),
        study_streak=study_streak(user_id, now),
        rating_breakdown=breakdown,
    )


def study_streak(user_id, now: datetime) -> int:
    """Consecutive UTC days with at least one review, ending today."""
    since = now - timedelta(days=STREAK_LOOKBACK_DAYS)
    days = {
        utc_date(reviewed_at)
        for reviewed_at in reviews_for(user_id, since).values_list("reviewed_at", flat=True)
    }
    streak = 0
    day = utc_date(now)
    while day in days:
        streak += 1
        day -= timedelta(days=1)
    return streak
