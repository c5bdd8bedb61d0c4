from dataclasses import dataclass, fields

from django.conf import settings

MIN_EASINESS_FACTOR = 1.3
INITIAL_EASINESS_FACTOR = 2.5
GRADUATION_THRESHOLD = 2
LEARNING_STEP_MINUTES = 1      # AGAIN on a new/learning card
RELEARNING_STEP_MINUTES = 10   # AGAIN on a review card (lapse)
GRADUATING_INTERVAL_DAYS = 1
EASY_INTERVAL_DAYS = 4
MAX_INTERVAL_DAYS = 36500

QUEUE_DEFAULT_LIMIT = 20
QUEUE_MAX_LIMIT = 50

RATE_LIMITS = {
    "default": {"limit": 1000, "window_seconds": 3600, "cache": "ratelimit"},
    "batch": {"limit": 100, "window_seconds": 3600, "cache": "ratelimit"},
}


@dataclass(frozen=True)
class SchedulerConfig:
    graduation_threshold: int = GRADUATION_THRESHOLD
    learning_step_minutes: int = LEARNING_STEP_MINUTES
    relearning_step_minutes: int = RELEARNING_STEP_MINUTES
    graduating_interval_days: int = GRADUATING_INTERVAL_DAYS
    easy_interval_days: int = EASY_INTERVAL_DAYS
    min_easiness_factor: float = MIN_EASINESS_FACTOR
    initial_easiness_factor: float = INITIAL_EASINESS_FACTOR
    hard_interval_multiplier: float = 1.2
    easy_bonus: float = 1.3
    again_ef_penalty: float = 0.2
    hard_ef_penalty: float = 0.15
    easy_ef_bonus: float = 0.15
    max_interval_days: int = MAX_INTERVAL_DAYS

    @classmethod
    def from_settings(cls) -> "SchedulerConfig":
        overrides = getattr(settings, "SRS_SCHEDULER", {}) or {}
        known = {f.name for f in fields(cls)}
        unknown = set(overrides) - known
        if unknown:
            raise ValueError(f"Unknown SRS_SCHEDULER options: {sorted(unknown)}")
        return cls(**overrides)


def queue_limits():
    """Return (default_limit, max_limit) for queue requests."""
    conf = getattr(settings, "SRS_QUEUE", {}) or {}
    return (
        conf.get("default_limit", QUEUE_DEFAULT_LIMIT),
        conf.get("max_limit", QUEUE_MAX_LIMIT),
    )


def rate_limit_options(scope: str) -> dict:
    configured = getattr(settings, "SRS_RATE_LIMITS", {}) or {}
    options = dict(RATE_LIMITS.get(scope, RATE_LIMITS["default"]))
    options.update(configured.get(scope, {}))
    return options
