from datetime import datetime
from typing import Iterable, Optional, Tuple

from django.utils import timezone
import structlog

from ..config import SchedulerConfig
from ..data.repos import create_missing_schedules, find_schedule, to_domain, update_schedule
from ..domain.enums import CardStateKind
from ..domain.errors import CardStateNotFound
from ..domain.logic import CardState

logger = structlog.get_logger()


def ensure_card_states(user_id, cards: Iterable[Tuple[object, object]],
                       now: Optional[datetime] = None,
                       config: Optional[SchedulerConfig] = None) -> int:
    """First exposure / bulk import: create NEW rows for unseen cards.

    ``cards`` yields (card_id, deck_id) pairs; deck_id may be None.
    Returns how many rows were created.
    """
    now = now or timezone.now()
    config = config or SchedulerConfig.from_settings()
    created = create_missing_schedules(user_id, list(cards), now, config)
    logger.info("card_states_initialized", user_id=str(user_id), created=created)
    return created


def get_card_state(user_id, card_id) -> CardState:
    sched = find_schedule(user_id, card_id)
    if sched is None:
        raise CardStateNotFound(
            "Card state not found",
            details={"user_id": str(user_id), "card_id": str(card_id)},
        )
    return to_domain(sched)


def suspend_card(user_id, card_id) -> CardState:
    sched = find_schedule(user_id, card_id)
    if sched is None:
        raise CardStateNotFound(
            "Card state not found",
            details={"user_id": str(user_id), "card_id": str(card_id)},
        )
    previous = sched.state
    update_schedule(sched, state=CardStateKind.SUSPENDED.value)
    logger.info("card_suspended", user_id=str(user_id), card_id=str(card_id),
                previous_state=previous)
    return to_domain(sched)


def unsuspend_card(user_id, card_id, now: Optional[datetime] = None) -> CardState:
    """Return a suspended card to NEW, due immediately. Ease and lapses survive."""
    sched = find_schedule(user_id, card_id, state=CardStateKind.SUSPENDED)
    if sched is None:
        raise CardStateNotFound(
            "Suspended card state not found",
            details={"user_id": str(user_id), "card_id": str(card_id)},
        )
    update_schedule(
        sched,
        state=CardStateKind.NEW.value,
        due_at=now or timezone.now(),
        interval=0,
        repetitions=0,
    )
    logger.info("card_unsuspended", user_id=str(user_id), card_id=str(card_id))
    return to_domain(sched)
