import pytest
import logging
from django.urls import reverse
from django.utils import timezone
from datetime import timedelta
import uuid

from study.data.models import ReviewLog
from study.domain.filters import QueueFilters
from study.services.cards import ensure_card_states
from study.services.queue import build_queue

logger = logging.getLogger(__name__)

# Helpers

def make_review(client, user_id, card_id, rating, idem_key, **headers):
    url = reverse("review")
    payload = {
        "user_id": str(user_id),
        "card_id": str(card_id),
        "rating": rating,
        "response_time_ms": 1200,
        "idempotency_key": idem_key,
    }
    resp = client.post(url, data=payload, content_type="application/json", **headers)
    data = resp.json()
    logger.info(
        "POST /reviews rating=%s → status=%s interval=%s idempotent=%s",
        rating,
        resp.status_code,
        data.get("interval"),
        data.get("idempotent"),
    )
    return resp


def get_queue(client, user_id, **params):
    url = reverse("queue", kwargs={"user_id": str(user_id)})
    resp = client.get(url, params)
    logger.info("GET /queue params=%s → status=%s", params, resp.status_code)
    return resp


def seed(user_id, count=1, deck_id=None):
    cards = [uuid.uuid4() for _ in range(count)]
    ensure_card_states(user_id, [(c, deck_id) for c in cards])
    return cards


# Reviews

@pytest.mark.django_db
def test_review_created_then_replayed(client):
    """Same idempotency key: 201 first, 200 with the stored result after."""
    user_id = uuid.uuid4()
    (card_id,) = seed(user_id)

    first = make_review(client, user_id, card_id, "GOOD", "idem-same")
    d1 = first.json()
    assert first.status_code == 201
    assert d1["idempotent"] is False
    assert d1["state"] == "LEARNING"
    assert d1["interval"] == 1
    assert d1["easiness_factor"] == 2.5

    second = make_review(client, user_id, card_id, "GOOD", "idem-same")
    d2 = second.json()
    assert second.status_code == 200
    assert d2["idempotent"] is True
    assert d1["due_at"] == d2["due_at"]
    assert ReviewLog.objects.filter(card_id=card_id).count() == 1

    logger.info("✓ Passed: idempotent replay handled")


@pytest.mark.django_db
def test_review_accepts_integer_rating(client):
    user_id = uuid.uuid4()
    (card_id,) = seed(user_id)

    resp = make_review(client, user_id, card_id, 4, "idem-int")

    assert resp.status_code == 201
    assert resp.json()["rating"] == "EASY"
    assert resp.json()["state"] == "REVIEW"


@pytest.mark.django_db
def test_review_with_unknown_rating(client):
    user_id = uuid.uuid4()
    (card_id,) = seed(user_id)

    resp = make_review(client, user_id, card_id, "PERFECT", "idem-bad")

    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "INVALID_RATING"


@pytest.mark.django_db
def test_review_missing_fields(client):
    resp = client.post(reverse("review"), data={"rating": "GOOD"},
                       content_type="application/json")
    assert resp.status_code == 400
    body = resp.json()
    assert body["error"]["code"] == "VALIDATION_ERROR"
    assert "user_id" in body["error"]["details"]["errors"]


@pytest.mark.django_db
def test_review_of_unknown_card_state(client):
    resp = make_review(client, uuid.uuid4(), uuid.uuid4(), "GOOD", "idem-none")
    assert resp.status_code == 409
    assert resp.json()["error"]["code"] == "INVALID_STATE_TRANSITION"


@pytest.mark.django_db
def test_review_of_suspended_card(client):
    user_id = uuid.uuid4()
    (card_id,) = seed(user_id)
    client.post(reverse("card-suspend", kwargs={"user_id": user_id, "card_id": card_id}))

    resp = make_review(client, user_id, card_id, "AGAIN", "idem-susp")

    assert resp.status_code == 409
    assert resp.json()["error"]["code"] == "INVALID_STATE_TRANSITION"


# Queue

@pytest.mark.django_db
def test_queue_priority_and_totals(client):
    user_id = uuid.uuid4()
    learning, review, new = seed(user_id, 3)
    make_review(client, user_id, learning, "AGAIN", "idem-l")
    make_review(client, user_id, review, "EASY", "idem-r")

    later = timezone.now() + timedelta(days=5)
    result = build_queue(user_id, QueueFilters(), now=later)
    assert [c.card_id for c in result.cards] == [new, learning, review]

    resp = get_queue(client, user_id)
    data = resp.json()
    assert resp.status_code == 200
    # Only NEW is due right now; LEARNING is a minute out and REVIEW days out
    assert data["count"] == 1
    assert data["total_due"] == 1
    assert data["cards"][0]["card_id"] == str(new)
    assert data["cards"][0]["state"] == "NEW"
    assert data["cards"][0]["state_description"] == "New"


@pytest.mark.django_db
def test_queue_limit_and_total(client):
    user_id = uuid.uuid4()
    seed(user_id, 4)

    data = get_queue(client, user_id, limit=3).json()

    assert data["count"] == 3
    assert data["total_due"] == 4
    assert len(data["cards"]) == 3


@pytest.mark.django_db
def test_queue_with_no_states(client):
    user_id = uuid.uuid4()
    seed(user_id, 2)

    resp = get_queue(client, user_id, states="")

    assert resp.status_code == 200
    assert resp.json()["cards"] == []
    assert resp.json()["total_due"] == 0


@pytest.mark.django_db
def test_queue_deck_and_state_filters(client):
    user_id, deck = uuid.uuid4(), uuid.uuid4()
    (in_deck,) = seed(user_id, deck_id=deck)
    seed(user_id, 2)

    data = get_queue(client, user_id, deck_id=str(deck), states="NEW,LEARNING").json()

    assert [c["card_id"] for c in data["cards"]] == [str(in_deck)]
    assert data["total_due"] == 1


@pytest.mark.django_db
@pytest.mark.parametrize("params", [{"limit": 0}, {"limit": 51}, {"states": "SUSPENDED"}])
def test_queue_rejects_bad_filters(client, params):
    resp = get_queue(client, uuid.uuid4(), **params)
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "VALIDATION_ERROR"


@pytest.mark.django_db
def test_due_cards_counts(client):
    user_id = uuid.uuid4()
    first, _ = seed(user_id, 2)
    make_review(client, user_id, first, "EASY", "idem-dc")

    resp = client.get(reverse("due-cards", kwargs={"user_id": str(user_id)}))
    data = resp.json()

    assert resp.status_code == 200
    assert (data["new"], data["learning"], data["review"], data["total_due"]) == (1, 0, 0, 1)


# Card lifecycle

@pytest.mark.django_db
def test_bulk_card_states(client):
    user_id, deck = uuid.uuid4(), uuid.uuid4()
    url = reverse("card-states", kwargs={"user_id": str(user_id)})
    payload = {"cards": [
        {"card_id": str(uuid.uuid4()), "deck_id": str(deck)},
        {"card_id": str(uuid.uuid4())},
    ]}

    first = client.post(url, data=payload, content_type="application/json")
    assert first.status_code == 201
    assert first.json()["created"] == 2

    again = client.post(url, data=payload, content_type="application/json")
    assert again.status_code == 200
    assert again.json()["created"] == 0


@pytest.mark.django_db
def test_bulk_card_states_requires_cards(client):
    url = reverse("card-states", kwargs={"user_id": str(uuid.uuid4())})
    resp = client.post(url, data={"cards": []}, content_type="application/json")
    assert resp.status_code == 400


@pytest.mark.django_db
def test_card_state_detail(client):
    user_id = uuid.uuid4()
    due, scheduled = seed(user_id, 2)
    make_review(client, user_id, scheduled, "EASY", "idem-detail")

    fresh = client.get(reverse("card-state", kwargs={"user_id": str(user_id), "card_id": str(due)}))
    assert fresh.status_code == 200
    assert fresh.json()["state"] == "NEW"
    assert fresh.json()["is_due"] is True

    later = client.get(reverse("card-state", kwargs={"user_id": str(user_id), "card_id": str(scheduled)}))
    assert later.json()["state"] == "REVIEW"
    assert later.json()["is_due"] is False
    assert later.json()["state_description"] == "Due in 4 days"

    missing = client.get(reverse("card-state", kwargs={"user_id": str(user_id), "card_id": str(uuid.uuid4())}))
    assert missing.status_code == 404
    assert missing.json()["error"]["code"] == "RESOURCE_NOT_FOUND"


@pytest.mark.django_db
def test_suspend_and_unsuspend(client):
    user_id = uuid.uuid4()
    (card_id,) = seed(user_id)
    kwargs = {"user_id": str(user_id), "card_id": str(card_id)}

    suspended = client.post(reverse("card-suspend", kwargs=kwargs))
    assert suspended.status_code == 200
    assert suspended.json()["state"] == "SUSPENDED"
    assert get_queue(client, user_id).json()["total_due"] == 0

    restored = client.post(reverse("card-unsuspend", kwargs=kwargs))
    assert restored.status_code == 200
    assert restored.json()["state"] == "NEW"
    assert restored.json()["interval"] == 0

    again = client.post(reverse("card-unsuspend", kwargs=kwargs))
    assert again.status_code == 404
    assert again.json()["error"]["code"] == "RESOURCE_NOT_FOUND"


# Stats

@pytest.mark.django_db
def test_stats_endpoint(client):
    user_id = uuid.uuid4()
    a, b = seed(user_id, 2)
    make_review(client, user_id, a, "GOOD", "idem-s1")
    make_review(client, user_id, b, "AGAIN", "idem-s2")

    resp = client.get(reverse("stats", kwargs={"user_id": str(user_id)}), {"period": "all"})
    data = resp.json()

    assert resp.status_code == 200
    assert data["total_reviews"] == 2
    assert data["accuracy"] == 50.0
    assert data["average_response_time_ms"] == 1200.0
    assert data["study_streak"] == 1
    assert data["rating_breakdown"]["AGAIN"] == 1


@pytest.mark.django_db
def test_stats_rejects_unknown_period(client):
    resp = client.get(reverse("stats", kwargs={"user_id": str(uuid.uuid4())}), {"period": "decade"})
    assert resp.status_code == 400


# Rate limiting

@pytest.mark.django_db
def test_rate_limit_headers_and_429(client, settings):
    settings.SRS_RATE_LIMITS = {"default": {"limit": 2, "window_seconds": 3600, "cache": "ratelimit"}}
    url = reverse("due-cards", kwargs={"user_id": str(uuid.uuid4())})

    first = client.get(url, HTTP_X_API_KEY_ID="key-a")
    assert first.status_code == 200
    assert first["X-RateLimit-Limit"] == "2"
    assert first["X-RateLimit-Remaining"] == "1"
    assert "X-RateLimit-Reset" in first

    client.get(url, HTTP_X_API_KEY_ID="key-a")
    blocked = client.get(url, HTTP_X_API_KEY_ID="key-a")

    assert blocked.status_code == 429
    body = blocked.json()
    assert body["error"]["code"] == "RATE_LIMIT_EXCEEDED"
    assert body["error"]["details"]["limit"] == 2
    assert body["error"]["details"]["remaining"] <= 0
    assert blocked["X-RateLimit-Remaining"] == "0"
    assert int(blocked["Retry-After"]) > 0

    other = client.get(url, HTTP_X_API_KEY_ID="key-b")
    assert other.status_code == 200
    logger.info("✓ Passed: quota enforced per API key")


@pytest.mark.django_db
def test_batch_endpoint_uses_batch_quota(client, settings):
    settings.SRS_RATE_LIMITS = {"batch": {"limit": 1, "window_seconds": 3600, "cache": "ratelimit"}}
    url = reverse("card-states", kwargs={"user_id": str(uuid.uuid4())})
    payload = {"cards": [{"card_id": str(uuid.uuid4())}]}
    token = {"HTTP_AUTHORIZATION": "Bearer secret-token"}

    assert client.post(url, data=payload, content_type="application/json", **token).status_code == 201
    blocked = client.post(url, data=payload, content_type="application/json", **token)
    assert blocked.status_code == 429

    # The default scope is untouched
    due = client.get(reverse("due-cards", kwargs={"user_id": str(uuid.uuid4())}), **token)
    assert due.status_code == 200
    assert due["X-RateLimit-Limit"] == "1000"
