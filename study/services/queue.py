"""
Queue building for study sessions.

Purely a read: selects the user's due cards, ordered NEW, LEARNING, REVIEW and
most overdue first within each state. Safe to call concurrently and repeatedly.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from django.db.models import Count
from django.utils import timezone
import structlog

from ..data.repos import due_schedules, order_by_priority, to_domain
from ..domain.enums import QUEUEABLE_STATES, CardStateKind
from ..domain.filters import QueueFilters
from ..domain.logic import CardState

logger = structlog.get_logger()


@dataclass(frozen=True)
class QueueResult:
    cards: List[CardState] = field(default_factory=list)
    total_due: int = 0

    @property
    def count(self) -> int:
        return len(self.cards)


@dataclass(frozen=True)
class DueCounts:
    new: int = 0
    learning: int = 0
    review: int = 0

    @property
    def total(self) -> int:
        return self.new + self.learning + self.review


def build_queue(user_id, filters: Optional[QueueFilters] = None,
                now: Optional[datetime] = None) -> QueueResult:
    filters = filters or QueueFilters()
    if not filters.states:
        return QueueResult(cards=[], total_due=0)

    now = now or timezone.now()
    qs = due_schedules(user_id, now, filters.states, deck_id=filters.deck_id)
    total_due = qs.count()
    cards = [to_domain(sched) for sched in order_by_priority(qs)[: filters.limit]]

    logger.info("queue_built",
        user_id=str(user_id),
        deck_id=str(filters.deck_id) if filters.deck_id else None,
        states=sorted(s.value for s in filters.states),
        card_count=len(cards),
        total_due=total_due,
    )
    return QueueResult(cards=cards, total_due=total_due)


def due_counts(user_id, deck_id=None, now: Optional[datetime] = None) -> DueCounts:
    now = now or timezone.now()
    rows = (due_schedules(user_id, now, QUEUEABLE_STATES, deck_id=deck_id)
            .order_by()
            .values("state")
            .annotate(n=Count("id")))
    by_state = {row["state"]: row["n"] for row in rows}
    return DueCounts(
        new=by_state.get(CardStateKind.NEW.value, 0),
        learning=by_state.get(CardStateKind.LEARNING.value, 0),
        review=by_state.get(CardStateKind.REVIEW.value, 0),
    )
