from django.db import IntegrityError, transaction
from django.db.models import Case, F, IntegerField, Value, When
from django.utils import timezone

from ..domain.enums import STATE_PRIORITY, CardStateKind
from ..domain.errors import ConcurrentModification, InvalidStateTransition
from ..domain.logic import CardState, new_card_state
from .models import CardSchedule, ReviewLog


def to_domain(sched: CardSchedule) -> CardState:
    return CardState(
        card_id=sched.card_id,
        user_id=sched.user_id,
        deck_id=sched.deck_id,
        state=CardStateKind(sched.state),
        due_at=sched.due_at,
        interval=sched.interval,
        repetitions=sched.repetitions,
        easiness_factor=sched.easiness_factor,
        lapses=sched.lapses,
        last_reviewed_at=sched.last_reviewed_at,
    )


def get_schedule_for_update(user_id, card_id) -> CardSchedule:
    """
    Fetch the schedule row and lock it until the surrounding transaction ends.
    Must be called inside transaction.atomic().
    """
    try:
        return (CardSchedule.objects
                .select_for_update()
                .get(user_id=user_id, card_id=card_id))
    except CardSchedule.DoesNotExist:
        raise InvalidStateTransition(
            "No scheduling state exists for this card",
            details={"user_id": str(user_id), "card_id": str(card_id)},
        ) from None


def find_schedule(user_id, card_id, state=None):
    qs = CardSchedule.objects.filter(user_id=user_id, card_id=card_id)
    if state is not None:
        qs = qs.filter(state=CardStateKind(state).value)
    return qs.first()


def save_state(sched: CardSchedule, new_state: CardState) -> None:
    """
    Write the graded state only if nobody else wrote the row since we read it.
    """
    updated = (CardSchedule.objects
               .filter(pk=sched.pk, version=sched.version)
               .update(
                   state=CardStateKind(new_state.state).value,
                   due_at=new_state.due_at,
                   interval=new_state.interval,
                   repetitions=new_state.repetitions,
                   easiness_factor=new_state.easiness_factor,
                   lapses=new_state.lapses,
                   last_reviewed_at=new_state.last_reviewed_at,
                   version=F("version") + 1,
                   updated_at=timezone.now(),
               ))
    if updated == 0:
        raise ConcurrentModification(
            "Card state changed while grading; retry the review",
            details={"user_id": str(sched.user_id), "card_id": str(sched.card_id)},
        )


def get_existing_idempotent(user_id, card_id, idem_key):
    return ReviewLog.objects.filter(
        user_id=user_id, card_id=card_id, idempotency_key=idem_key
    ).first()


def append_review(entry, response_time_ms, idem_key) -> ReviewLog:
    return ReviewLog.objects.create(
        user_id=entry.user_id,
        card_id=entry.card_id,
        rating=entry.rating.name,
        response_time_ms=response_time_ms,
        reviewed_at=entry.reviewed_at,
        previous_interval=entry.previous_interval,
        new_interval=entry.new_interval,
        easiness_factor=entry.easiness_factor,
        previous_state=CardStateKind(entry.previous_state).value,
        new_state=CardStateKind(entry.new_state).value,
        due_at=entry.due_at,
        idempotency_key=idem_key,
    )


def create_missing_schedules(user_id, cards, now, config=None) -> int:
    """
    Insert NEW rows for (card_id, deck_id) pairs the user has not seen yet.
    Existing rows are never touched.
    """
    wanted = {}
    for card_id, deck_id in cards:
        wanted.setdefault(card_id, deck_id)
    if not wanted:
        return 0

    with transaction.atomic():
        existing = set(
            CardSchedule.objects
            .filter(user_id=user_id, card_id__in=list(wanted))
            .values_list("card_id", flat=True)
        )
        rows = []
        for card_id, deck_id in wanted.items():
            if card_id in existing:
                continue
            state = new_card_state(card_id, user_id, now, deck_id=deck_id, config=config)
            rows.append(CardSchedule(
                user_id=state.user_id,
                card_id=state.card_id,
                deck_id=state.deck_id,
                state=state.state.value,
                due_at=state.due_at,
                interval=state.interval,
                repetitions=state.repetitions,
                easiness_factor=state.easiness_factor,
                lapses=state.lapses,
            ))
        created = 0
        for row in rows:
            try:
                with transaction.atomic():
                    row.save(force_insert=True)
            except IntegrityError:
                # A concurrent import created this card first
                continue
            created += 1
    return created


def update_schedule(sched: CardSchedule, **fields) -> CardSchedule:
    """
    Version-checked write of selected fields, same contract as save_state.
    """
    updated_at = timezone.now()
    updated = (CardSchedule.objects
               .filter(pk=sched.pk, version=sched.version)
               .update(**fields, version=F("version") + 1, updated_at=updated_at))
    if updated == 0:
        raise ConcurrentModification(
            "Card state changed concurrently; reload and retry",
            details={"user_id": str(sched.user_id), "card_id": str(sched.card_id)},
        )
    for name, value in fields.items():
        setattr(sched, name, value)
    sched.version += 1
    sched.updated_at = updated_at
    return sched


def due_schedules(user_id, now, states, deck_id=None):
    qs = CardSchedule.objects.filter(
        user_id=user_id,
        due_at__lte=now,
        state__in=[CardStateKind(s).value for s in states],
    )
    if deck_id is not None:
        qs = qs.filter(deck_id=deck_id)
    return qs


def order_by_priority(qs):
    """NEW, then LEARNING, then REVIEW; most overdue first within a state."""
    priority = Case(
        *[When(state=kind.value, then=Value(rank)) for kind, rank in STATE_PRIORITY.items()],
        default=Value(len(STATE_PRIORITY)),
        output_field=IntegerField(),
    )
    return qs.annotate(priority=priority).order_by("priority", "due_at", "card_id")


def reviews_for(user_id, since, deck_id=None):
    qs = ReviewLog.objects.filter(user_id=user_id, reviewed_at__gte=since)
    if deck_id is not None:
        deck_cards = CardSchedule.objects.filter(
            user_id=user_id, deck_id=deck_id
        ).values("card_id")
        qs = qs.filter(card_id__in=deck_cards)
    return qs
