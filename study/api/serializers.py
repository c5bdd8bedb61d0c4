from rest_framework import serializers

from ..domain.logic import describe_state, is_due
from ..utils.time import PERIODS

MAX_BULK_CARDS = 500


class ReviewInSerializer(serializers.Serializer):
    user_id = serializers.UUIDField()
    card_id = serializers.UUIDField()
    # Parsed by the scheduler so unknown values surface as INVALID_RATING
    rating = serializers.CharField(max_length=16)
    response_time_ms = serializers.IntegerField(min_value=0, default=0)
    idempotency_key = serializers.CharField(max_length=64)


class QueueQuerySerializer(serializers.Serializer):
    deck_id = serializers.UUIDField(required=False)
    # Comma separated; present but empty means "no states"
    states = serializers.CharField(required=False, allow_blank=True)
    limit = serializers.IntegerField(required=False)

    def validate_states(self, value):
        return [part for part in (p.strip() for p in value.split(",")) if part]


class DeckQuerySerializer(serializers.Serializer):
    deck_id = serializers.UUIDField(required=False)


class StatsQuerySerializer(serializers.Serializer):
    period = serializers.ChoiceField(choices=PERIODS, default="today")
    deck_id = serializers.UUIDField(required=False)


class CardRefSerializer(serializers.Serializer):
    card_id = serializers.UUIDField()
    deck_id = serializers.UUIDField(required=False, allow_null=True, default=None)


class CardStatesInSerializer(serializers.Serializer):
    cards = CardRefSerializer(many=True, allow_empty=False, max_length=MAX_BULK_CARDS)


class CardStateSerializer(serializers.Serializer):
    card_id = serializers.UUIDField()
    deck_id = serializers.UUIDField(allow_null=True)
    state = serializers.CharField(source="state.value")
    due_at = serializers.DateTimeField()
    interval = serializers.IntegerField()
    repetitions = serializers.IntegerField()
    easiness_factor = serializers.FloatField()
    lapses = serializers.IntegerField()
    last_reviewed_at = serializers.DateTimeField(allow_null=True)
    state_description = serializers.SerializerMethodField()
    is_due = serializers.SerializerMethodField()

    def get_state_description(self, obj):
        return describe_state(obj, self.context["now"])

    def get_is_due(self, obj):
        return is_due(obj, self.context["now"])
