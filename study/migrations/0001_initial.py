import django.utils.timezone
from django.db import migrations, models

STATE_CHOICES = [
    ("NEW", "New"),
    ("LEARNING", "Learning"),
    ("REVIEW", "Review"),
    ("SUSPENDED", "Suspended"),
]

RATING_CHOICES = [
    ("AGAIN", "Again"),
    ("HARD", "Hard"),
    ("GOOD", "Good"),
    ("EASY", "Easy"),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="CardSchedule",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("user_id", models.UUIDField()),
                ("card_id", models.UUIDField()),
                ("deck_id", models.UUIDField(blank=True, null=True)),
                ("state", models.CharField(choices=STATE_CHOICES, default="NEW", max_length=16)),
                ("due_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("interval", models.PositiveIntegerField(default=0)),
                ("repetitions", models.PositiveIntegerField(default=0)),
                ("easiness_factor", models.FloatField(default=2.5)),
                ("lapses", models.PositiveIntegerField(default=0)),
                ("last_reviewed_at", models.DateTimeField(blank=True, null=True)),
                ("version", models.PositiveIntegerField(default=0)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "unique_together": {("user_id", "card_id")},
                "indexes": [
                    models.Index(fields=["user_id", "state", "due_at"], name="sched_user_state_due_idx"),
                    models.Index(fields=["user_id", "deck_id"], name="sched_user_deck_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="ReviewLog",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("user_id", models.UUIDField()),
                ("card_id", models.UUIDField()),
                ("rating", models.CharField(choices=RATING_CHOICES, max_length=8)),
                ("response_time_ms", models.PositiveIntegerField(default=0)),
                ("reviewed_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("previous_interval", models.PositiveIntegerField()),
                ("new_interval", models.PositiveIntegerField()),
                ("easiness_factor", models.FloatField()),
                ("previous_state", models.CharField(choices=STATE_CHOICES, max_length=16)),
                ("new_state", models.CharField(choices=STATE_CHOICES, max_length=16)),
                ("due_at", models.DateTimeField()),
                ("idempotency_key", models.CharField(max_length=64)),
            ],
            options={
                "unique_together": {("user_id", "card_id", "idempotency_key")},
                "indexes": [
                    models.Index(fields=["user_id", "reviewed_at"], name="review_user_time_idx"),
                    models.Index(fields=["user_id", "card_id", "reviewed_at"], name="review_user_card_time_idx"),
                ],
            },
        ),
    ]
