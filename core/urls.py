"""URL routing configuration for core application."""

from django.urls import path

from .views import (
    DeadLetterListView,
    DeadLetterReplayView,
    RetryPurgeView,
    RetryStatsView,
    RetrySweepView,
)

urlpatterns = [
    # Dead letter queue
    path("dead-letters", DeadLetterListView.as_view(), name="dead-letter-list"),
    path(
        "dead-letters/replay",
        DeadLetterReplayView.as_view(),
        name="dead-letter-replay",
    ),
    # Retry queue
    path("retries", RetryPurgeView.as_view(), name="retry-purge"),
    path("retries/stats", RetryStatsView.as_view(), name="retry-stats"),
    path("retries/sweep", RetrySweepView.as_view(), name="retry-sweep"),
]
