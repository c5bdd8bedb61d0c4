from dataclasses import dataclass, field
from typing import FrozenSet, Iterable, Optional
from uuid import UUID

from ..config import QUEUE_DEFAULT_LIMIT, QUEUE_MAX_LIMIT
from .enums import QUEUEABLE_STATES, CardStateKind
from .errors import InvalidQueueFilter


@dataclass(frozen=True)
class QueueFilters:
    """Recognized queue options. Build through ``create`` to get validation."""

    deck_id: Optional[UUID] = None
    states: FrozenSet[CardStateKind] = field(default=QUEUEABLE_STATES)
    limit: int = QUEUE_DEFAULT_LIMIT

    @classmethod
    def create(
        cls,
        deck_id: Optional[UUID] = None,
        states: Optional[Iterable] = None,
        limit: Optional[int] = None,
        default_limit: int = QUEUE_DEFAULT_LIMIT,
        max_limit: int = QUEUE_MAX_LIMIT,
    ) -> "QueueFilters":
        if limit is None:
            limit = default_limit
        if isinstance(limit, bool) or not isinstance(limit, int) or not 1 <= limit <= max_limit:
            raise InvalidQueueFilter(
                f"limit must be an integer between 1 and {max_limit}",
                details={"limit": limit},
            )

        if states is None:
            parsed = QUEUEABLE_STATES
        else:
            parsed = set()
            for value in states:
                try:
                    kind = CardStateKind(str(value).strip().upper())
                except ValueError:
                    raise InvalidQueueFilter(
                        f"Unknown card state: {value!r}", details={"state": str(value)}
                    ) from None
                if kind not in QUEUEABLE_STATES:
                    raise InvalidQueueFilter(
                        "Suspended cards are never queued", details={"state": kind.value}
                    )
                parsed.add(kind)
            parsed = frozenset(parsed)

        return cls(deck_id=deck_id, states=parsed, limit=limit)
