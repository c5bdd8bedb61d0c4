from django.db import models
from django.utils import timezone

from ..config import INITIAL_EASINESS_FACTOR
from ..domain.enums import CardStateKind, Rating
from ..domain.errors import AppendOnlyViolation

STATE_CHOICES = [(kind.value, kind.value.title()) for kind in CardStateKind]
RATING_CHOICES = [(rating.name, rating.name.title()) for rating in Rating]


class CardSchedule(models.Model):
    user_id = models.UUIDField()
    card_id = models.UUIDField()
    deck_id = models.UUIDField(null=True, blank=True)
    state = models.CharField(max_length=16, choices=STATE_CHOICES, default=CardStateKind.NEW.value)
    due_at = models.DateTimeField(default=timezone.now)  # UTC
    interval = models.PositiveIntegerField(default=0)  # days
    repetitions = models.PositiveIntegerField(default=0)
    easiness_factor = models.FloatField(default=INITIAL_EASINESS_FACTOR)
    lapses = models.PositiveIntegerField(default=0)
    last_reviewed_at = models.DateTimeField(null=True, blank=True)
    version = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        unique_together = (("user_id", "card_id"),)
        indexes = [
            models.Index(fields=["user_id", "state", "due_at"], name="sched_user_state_due_idx"),
            models.Index(fields=["user_id", "deck_id"], name="sched_user_deck_idx"),
        ]

    def __str__(self):
        return f"{self.user_id}:{self.card_id} {self.state}"


class ReviewLog(models.Model):
    user_id = models.UUIDField()
    card_id = models.UUIDField()
    rating = models.CharField(max_length=8, choices=RATING_CHOICES)
    response_time_ms = models.PositiveIntegerField(default=0)
    reviewed_at = models.DateTimeField(default=timezone.now)
    previous_interval = models.PositiveIntegerField()
    new_interval = models.PositiveIntegerField()
    easiness_factor = models.FloatField()
    previous_state = models.CharField(max_length=16, choices=STATE_CHOICES)
    new_state = models.CharField(max_length=16, choices=STATE_CHOICES)
    due_at = models.DateTimeField()
    idempotency_key = models.CharField(max_length=64)

    class Meta:
        unique_together = (("user_id", "card_id", "idempotency_key"),)
        indexes = [
            models.Index(fields=["user_id", "reviewed_at"], name="review_user_time_idx"),
            models.Index(fields=["user_id", "card_id", "reviewed_at"], name="review_user_card_time_idx"),
        ]

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise AppendOnlyViolation(
                "Review log entries are append-only", details={"review_id": self.pk}
            )
        super().save(*args, **kwargs)
