from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from django.db import DatabaseError, IntegrityError, transaction
from django.utils import timezone
import structlog

from ..config import SchedulerConfig
from ..data.models import ReviewLog
from ..data.repos import (
    append_review,
    get_existing_idempotent,
    get_schedule_for_update,
    save_state,
    to_domain,
)
from ..domain.enums import CardStateKind, Rating
from ..domain.errors import PersistenceFailure
from ..domain.logic import grade, parse_rating
from ..signals import review_recorded
from ..utils.time import to_utc_iso

logger = structlog.get_logger()


@dataclass(frozen=True)
class ReviewOutcome:
    card_id: object
    user_id: object
    rating: Rating
    state: CardStateKind
    due_at: datetime
    interval: int
    easiness_factor: float
    idempotent: bool
    review_id: int


def _outcome(log: ReviewLog, idempotent: bool) -> ReviewOutcome:
    return ReviewOutcome(
        card_id=log.card_id,
        user_id=log.user_id,
        rating=Rating[log.rating],
        state=CardStateKind(log.new_state),
        due_at=log.due_at,
        interval=log.new_interval,
        easiness_factor=log.easiness_factor,
        idempotent=idempotent,
        review_id=log.pk,
    )


def record_review(user_id, card_id, rating, idempotency_key: str,
                  response_time_ms: int = 0, now: Optional[datetime] = None,
                  config: Optional[SchedulerConfig] = None) -> ReviewOutcome:
    # Validate before touching the database
    rating = parse_rating(rating)
    config = config or SchedulerConfig.from_settings()

    logger.info("review_received",
        user_id=str(user_id),
        card_id=str(card_id),
        rating=rating.name,
        idempotency_key=idempotency_key,
    )

    # Fast path: return previous result if same idempotency_key
    existing = get_existing_idempotent(user_id, card_id, idempotency_key)
    if existing:
        logger.info("idempotent_reuse",
            user_id=str(user_id),
            card_id=str(card_id),
            review_id=existing.pk,
            due_at=to_utc_iso(existing.due_at),
        )
        return _outcome(existing, True)

    now = now or timezone.now()
    try:
        # State write and log append commit or roll back together
        with transaction.atomic():
            sched = get_schedule_for_update(user_id, card_id)
            result = grade(to_domain(sched), rating, now, config)
            save_state(sched, result.state)
            log = append_review(result.review, response_time_ms, idempotency_key)
    except IntegrityError:
        # A concurrent request with the same key won the race
        existing = get_existing_idempotent(user_id, card_id, idempotency_key)
        if existing is None:
            logger.error("review_persist_failed",
                user_id=str(user_id), card_id=str(card_id), reason="integrity_error")
            raise PersistenceFailure(
                "Review could not be stored",
                details={"user_id": str(user_id), "card_id": str(card_id)},
            )
        logger.info("idempotent_reuse", user_id=str(user_id), card_id=str(card_id),
                    review_id=existing.pk, race=True)
        return _outcome(existing, True)
    except DatabaseError as exc:
        logger.error("review_persist_failed",
            user_id=str(user_id), card_id=str(card_id), reason=str(exc))
        raise PersistenceFailure(
            "Review could not be stored; nothing was applied",
            details={"user_id": str(user_id), "card_id": str(card_id)},
        ) from exc

    logger.info("review_scheduled",
        user_id=str(user_id),
        card_id=str(card_id),
        rating=rating.name,
        state=result.state.state.value,
        interval_days=result.state.interval,
        easiness_factor=result.state.easiness_factor,
        due_at=to_utc_iso(result.state.due_at),
    )

    _notify(log, result.state)
    return _outcome(log, False)


def _notify(log: ReviewLog, state) -> None:
    for receiver, response in review_recorded.send_robust(
        sender=ReviewLog, review=log, state=state
    ):
        if isinstance(response, Exception):
            logger.error("review_signal_failed",
                review_id=log.pk,
                receiver=getattr(receiver, "__qualname__", repr(receiver)),
                error=repr(response),
            )
