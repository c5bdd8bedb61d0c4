"""
SM-2 style scheduling.

``grade`` is a pure function of (state, rating, now, config): it performs no I/O,
never reads the clock and keeps no module state. Persistence lives in
``study.data.repos`` and orchestration in ``study.services.reviews``.
"""

import math
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Optional, Union
from uuid import UUID

from ..config import INITIAL_EASINESS_FACTOR, SchedulerConfig
from .enums import CardStateKind, Rating
from .errors import InvalidRating, InvalidStateTransition

SECONDS_PER_DAY = 24 * 3600


@dataclass(frozen=True)
class CardState:
    card_id: UUID
    user_id: UUID
    state: CardStateKind
    due_at: datetime
    interval: int = 0
    repetitions: int = 0
    easiness_factor: float = INITIAL_EASINESS_FACTOR
    lapses: int = 0
    deck_id: Optional[UUID] = None
    last_reviewed_at: Optional[datetime] = None


@dataclass(frozen=True)
class ReviewEntry:
    """Audit snapshot of one grading event."""

    card_id: UUID
    user_id: UUID
    rating: Rating
    reviewed_at: datetime
    previous_interval: int
    new_interval: int
    easiness_factor: float
    previous_state: CardStateKind
    new_state: CardStateKind
    due_at: datetime


@dataclass(frozen=True)
class GradeResult:
    state: CardState
    review: ReviewEntry


def parse_rating(value: Union[Rating, int, str]) -> Rating:
    """Accept a Rating, its name (any case) or its integer value."""
    if isinstance(value, Rating):
        return value
    if isinstance(value, bool):
        raise InvalidRating(value)
    if isinstance(value, int):
        try:
            return Rating(value)
        except ValueError:
            raise InvalidRating(value) from None
    if isinstance(value, str):
        name = value.strip().upper()
        if name.isdigit():
            return parse_rating(int(name))
        try:
            return Rating[name]
        except KeyError:
            raise InvalidRating(value) from None
    raise InvalidRating(value)


def new_card_state(card_id, user_id, now: datetime, deck_id=None,
                   config: Optional[SchedulerConfig] = None) -> CardState:
    """First exposure of a card to a user: NEW and due immediately."""
    config = config or SchedulerConfig()
    return CardState(
        card_id=card_id,
        user_id=user_id,
        deck_id=deck_id,
        state=CardStateKind.NEW,
        due_at=now,
        interval=0,
        repetitions=0,
        easiness_factor=config.initial_easiness_factor,
        lapses=0,
    )


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _clamp_ef(ef: float, config: SchedulerConfig) -> float:
    return max(config.min_easiness_factor, round(ef, 4))


def _again(state: CardState, kind: CardStateKind, now: datetime,
           config: SchedulerConfig) -> CardState:
    if kind == CardStateKind.REVIEW:
        step = timedelta(minutes=config.relearning_step_minutes)
    else:
        step = timedelta(minutes=config.learning_step_minutes)
    lapsed = kind != CardStateKind.NEW
    return replace(
        state,
        state=CardStateKind.LEARNING,
        interval=0,
        repetitions=0,
        easiness_factor=_clamp_ef(state.easiness_factor - config.again_ef_penalty, config),
        lapses=state.lapses + 1 if lapsed else state.lapses,
        due_at=now + step,
        last_reviewed_at=now,
    )


def _advance(state: CardState, kind: CardStateKind, rating: Rating, now: datetime,
             config: SchedulerConfig) -> CardState:
    repetitions = state.repetitions + 1
    ef = state.easiness_factor

    if rating == Rating.HARD:
        interval = max(1, _round_half_up(state.interval * config.hard_interval_multiplier))
        ef = ef - config.hard_ef_penalty
    elif rating == Rating.GOOD:
        if state.interval == 0:
            interval = config.graduating_interval_days
        else:
            interval = max(1, _round_half_up(state.interval * ef))
    else:
        if state.interval == 0:
            interval = config.easy_interval_days
        else:
            interval = max(1, _round_half_up(state.interval * ef * config.easy_bonus))
        ef = ef + config.easy_ef_bonus

    interval = min(interval, config.max_interval_days)

    # Only AGAIN takes a card out of REVIEW
    if (rating == Rating.EASY or kind == CardStateKind.REVIEW
            or repetitions >= config.graduation_threshold):
        next_kind = CardStateKind.REVIEW
    else:
        next_kind = CardStateKind.LEARNING

    return replace(
        state,
        state=next_kind,
        interval=interval,
        repetitions=repetitions,
        easiness_factor=_clamp_ef(ef, config),
        due_at=now + timedelta(days=interval),
        last_reviewed_at=now,
    )


def grade(state: CardState, rating, now: datetime,
          config: Optional[SchedulerConfig] = None) -> GradeResult:
    """Apply one review outcome and return the new state plus its log entry.

    Raises InvalidRating for an out-of-domain rating and InvalidStateTransition
    for a suspended card. SUSPENDED is never produced here.
    """
    config = config or SchedulerConfig()
    rating = parse_rating(rating)
    kind = CardStateKind(state.state)

    if kind == CardStateKind.SUSPENDED:
        raise InvalidStateTransition(
            "Suspended cards cannot be graded",
            details={"card_id": str(state.card_id), "state": kind.value},
        )

    if rating == Rating.AGAIN:
        new_state = _again(state, kind, now, config)
    else:
        new_state = _advance(state, kind, rating, now, config)

    review = ReviewEntry(
        card_id=state.card_id,
        user_id=state.user_id,
        rating=rating,
        reviewed_at=now,
        previous_interval=state.interval,
        new_interval=new_state.interval,
        easiness_factor=new_state.easiness_factor,
        previous_state=kind,
        new_state=new_state.state,
        due_at=new_state.due_at,
    )
    return GradeResult(state=new_state, review=review)


def is_due(state: CardState, now: datetime) -> bool:
    return state.due_at <= now


def days_until_due(state: CardState, now: datetime) -> int:
    return math.ceil((state.due_at - now).total_seconds() / SECONDS_PER_DAY)


def describe_state(state: CardState, now: datetime) -> str:
    kind = CardStateKind(state.state)
    if kind == CardStateKind.NEW:
        return "New"
    if kind == CardStateKind.SUSPENDED:
        return "Suspended"
    if kind == CardStateKind.LEARNING:
        minutes = max(0, math.ceil((state.due_at - now).total_seconds() / 60))
        return f"Learning ({minutes}m)"
    days = days_until_due(state, now)
    if days <= 0:
        return "Due"
    if days == 1:
        return "Due tomorrow"
    return f"Due in {days} days"
