from django.utils import timezone
from rest_framework import status
from rest_framework.response import Response
import structlog
import uuid

from ..config import queue_limits
from ..domain.filters import QueueFilters
from ..services.cards import ensure_card_states, get_card_state, suspend_card, unsuspend_card
from ..services.queue import build_queue, due_counts
from ..services.reviews import record_review
from ..services.stats import study_stats
from ..utils.time import to_utc_iso
from .serializers import (
    CardStateSerializer,
    CardStatesInSerializer,
    DeckQuerySerializer,
    QueueQuerySerializer,
    ReviewInSerializer,
    StatsQuerySerializer,
)
from .throttling import RateLimitedAPIView

base_logger = structlog.get_logger()


def _request_logger():
    return base_logger.bind(request_id=str(uuid.uuid4()))


class ReviewView(RateLimitedAPIView):
    def post(self, request):
        logger = _request_logger()

        s = ReviewInSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        data = s.validated_data

        outcome = record_review(
            data["user_id"],
            data["card_id"],
            data["rating"],
            data["idempotency_key"],
            response_time_ms=data["response_time_ms"],
        )
        status_code = status.HTTP_200_OK if outcome.idempotent else status.HTTP_201_CREATED

        logger.info(
            "review_api_response",
            user_id=str(outcome.user_id),
            card_id=str(outcome.card_id),
            rating=outcome.rating.name,
            idempotent=outcome.idempotent,
            interval_days=outcome.interval,
            due_at=to_utc_iso(outcome.due_at),
            status=status_code,
        )

        return Response(
            {
                "review_id": outcome.review_id,
                "card_id": str(outcome.card_id),
                "rating": outcome.rating.name,
                "state": outcome.state.value,
                "due_at": to_utc_iso(outcome.due_at),
                "interval": outcome.interval,
                "easiness_factor": outcome.easiness_factor,
                "idempotent": outcome.idempotent,
            },
            status=status_code,
        )


class QueueView(RateLimitedAPIView):
    def get(self, request, user_id):
        logger = _request_logger()

        qs = QueueQuerySerializer(data=request.query_params)
        qs.is_valid(raise_exception=True)
        default_limit, max_limit = queue_limits()
        filters = QueueFilters.create(
            deck_id=qs.validated_data.get("deck_id"),
            states=qs.validated_data.get("states"),
            limit=qs.validated_data.get("limit"),
            default_limit=default_limit,
            max_limit=max_limit,
        )

        now = timezone.now()
        result = build_queue(user_id, filters, now=now)
        cards = CardStateSerializer(result.cards, many=True, context={"now": now}).data

        logger.info(
            "queue_api_response",
            user_id=str(user_id),
            card_count=result.count,
            total_due=result.total_due,
        )

        return Response(
            {
                "user_id": str(user_id),
                "cards": cards,
                "count": result.count,
                "total_due": result.total_due,
            }
        )


class DueCardsView(RateLimitedAPIView):
    def get(self, request, user_id):
        qs = DeckQuerySerializer(data=request.query_params)
        qs.is_valid(raise_exception=True)

        counts = due_counts(user_id, deck_id=qs.validated_data.get("deck_id"))
        return Response(
            {
                "user_id": str(user_id),
                "new": counts.new,
                "learning": counts.learning,
                "review": counts.review,
                "total_due": counts.total,
            }
        )


class CardStatesView(RateLimitedAPIView):
    rate_limit_scope = "batch"

    def post(self, request, user_id):
        logger = _request_logger()

        s = CardStatesInSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        cards = [(ref["card_id"], ref["deck_id"]) for ref in s.validated_data["cards"]]

        created = ensure_card_states(user_id, cards)
        logger.info("card_states_api_response", user_id=str(user_id),
                    requested=len(cards), created=created)
        return Response(
            {"user_id": str(user_id), "requested": len(cards), "created": created},
            status=status.HTTP_201_CREATED if created else status.HTTP_200_OK,
        )


class CardStateView(RateLimitedAPIView):
    def get(self, request, user_id, card_id):
        state = get_card_state(user_id, card_id)
        return Response(CardStateSerializer(state, context={"now": timezone.now()}).data)


class SuspendCardView(RateLimitedAPIView):
    def post(self, request, user_id, card_id):
        state = suspend_card(user_id, card_id)
        return Response(CardStateSerializer(state, context={"now": timezone.now()}).data)


class UnsuspendCardView(RateLimitedAPIView):
    def post(self, request, user_id, card_id):
        now = timezone.now()
        state = unsuspend_card(user_id, card_id, now=now)
        return Response(CardStateSerializer(state, context={"now": now}).data)


class StatsView(RateLimitedAPIView):
    def get(self, request, user_id):
        qs = StatsQuerySerializer(data=request.query_params)
        qs.is_valid(raise_exception=True)

        stats = study_stats(
            user_id,
            period=qs.validated_data["period"],
            deck_id=qs.validated_data.get("deck_id"),
        )
        return Response(
            {
                "user_id": str(user_id),
                "period": stats.period,
                "total_reviews": stats.total_reviews,
                "accuracy": stats.accuracy,
                "average_response_time_ms": stats.average_response_time_ms,
                "study_streak": stats.study_streak,
                "rating_breakdown": stats.rating_breakdown,
            }
        )
