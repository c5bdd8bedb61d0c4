from datetime import datetime, timezone
import uuid

import pytest
from django.core.cache import caches

from study.data.models import CardSchedule

NOW = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def clear_rate_limits():
    caches["ratelimit"].clear()
    yield
    caches["ratelimit"].clear()


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def user_id():
    return uuid.uuid4()


@pytest.fixture
def make_schedule(user_id):
    """Insert a CardSchedule row; defaults to a NEW card due at NOW."""

    def _make(**fields):
        values = {
            "user_id": user_id,
            "card_id": uuid.uuid4(),
            "state": "NEW",
            "due_at": NOW,
        }
        values.update(fields)
        return CardSchedule.objects.create(**values)

    return _make
