from enum import Enum, IntEnum


class CardStateKind(str, Enum):
    NEW = "NEW"
    LEARNING = "LEARNING"
    REVIEW = "REVIEW"
    SUSPENDED = "SUSPENDED"


class Rating(IntEnum):
    AGAIN = 1
    HARD = 2
    GOOD = 3
    EASY = 4


# Queue priority is explicit; never derive it from declaration order.
STATE_PRIORITY = {
    CardStateKind.NEW: 0,
    CardStateKind.LEARNING: 1,
    CardStateKind.REVIEW: 2,
}

QUEUEABLE_STATES = frozenset(STATE_PRIORITY)

SUCCESSFUL_RATINGS = frozenset({Rating.GOOD, Rating.EASY})
