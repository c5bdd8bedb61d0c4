from django.urls import path
from .views import (
    CardStateView,
    CardStatesView,
    DueCardsView,
    QueueView,
    ReviewView,
    StatsView,
    SuspendCardView,
    UnsuspendCardView,
)

urlpatterns = [
    path("reviews", ReviewView.as_view(), name="review"),
    path("users/<uuid:user_id>/queue", QueueView.as_view(), name="queue"),
    path("users/<uuid:user_id>/due-cards", DueCardsView.as_view(), name="due-cards"),
    path("users/<uuid:user_id>/card-states", CardStatesView.as_view(), name="card-states"),
    path("users/<uuid:user_id>/cards/<uuid:card_id>", CardStateView.as_view(), name="card-state"),
    path("users/<uuid:user_id>/cards/<uuid:card_id>/suspend", SuspendCardView.as_view(), name="card-suspend"),
    path("users/<uuid:user_id>/cards/<uuid:card_id>/unsuspend", UnsuspendCardView.as_view(), name="card-unsuspend"),
    path("users/<uuid:user_id>/stats", StatsView.as_view(), name="stats"),
]
