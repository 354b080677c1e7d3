"""Component tests for the retry queue endpoints."""

from datetime import timedelta
from unittest.mock import patch

from django.utils import timezone

from core.models import RetryRecord
from tests.base import BaseComponentTest
from tests.factories import create_dead_letter, create_metric_events, create_retry_record


class RetryStatsEndpointTestCase(BaseComponentTest):
    """Test cases for GET /retries/stats."""

    def setUp(self):
        """Set up test fixtures."""
        super().setUp()
        self.url = f"{self.api_prefix}/retries/stats"

    def test_get_returns_statistics(self):
        """Test queue depth, breakdown and success rate."""
        create_retry_record(attempt_count=1)
        create_retry_record(attempt_count=1)
        create_retry_record(attempt_count=3)
        create_dead_letter()
        create_metric_events("success", 8)
        create_metric_events("failed", 2)

        response = self.client.get(self.url)

        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data["total_in_queue"], 3)
        self.assertEqual(data["by_attempt_count"], {"1": 2, "3": 1})
        self.assertEqual(data["retry_rate"], 80.0)
        self.assertEqual(data["dead_letter_total"], 1)
        self.assertIsNotNone(data["oldest_retry"])

    def test_get_on_empty_queue(self):
        """Test statistics with nothing pending."""
        response = self.client.get(self.url)

        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data["total_in_queue"], 0)
        self.assertIsNone(data["oldest_retry"])
        self.assertEqual(data["retry_rate"], 0.0)


@patch("core.services.retry_scheduler.django_rq.get_queue")
class RetrySweepEndpointTestCase(BaseComponentTest):
    """Test cases for POST /retries/sweep."""

    def setUp(self):
        """Set up test fixtures."""
        super().setUp()
        self.url = f"{self.api_prefix}/retries/sweep"
        now = timezone.now()
        create_retry_record(next_retry_at=now - timedelta(minutes=1))
        create_retry_record(next_retry_at=now + timedelta(hours=1))

    def test_post_queues_due_records(self, mock_get_queue):
        """Test that only due records are queued by default."""
        response = self.client.post(self.url)

        self.assertEqual(response.status_code, 202)
        self.assertEqual(
            response.json(),
            {
                "scheduled_count": 1,
                "immediate": False,
                "message": "Queued 1 due retries for processing",
            },
        )
        self.assertEqual(mock_get_queue.return_value.enqueue.call_count, 1)

    def test_post_immediate_queues_everything(self, mock_get_queue):
        """Test immediate=true."""
        response = self.client.post(f"{self.url}?immediate=true")

        self.assertEqual(response.status_code, 202)
        self.assertEqual(response.json()["scheduled_count"], 2)
        self.assertIs(response.json()["immediate"], True)

    def test_post_with_invalid_limit_returns_400(self, mock_get_queue):
        """Test limit validation."""
        response = self.client.post(f"{self.url}?limit=0")

        self.assertEqual(response.status_code, 400)
        mock_get_queue.assert_not_called()


class RetryPurgeEndpointTestCase(BaseComponentTest):
    """Test cases for DELETE /retries."""

    def setUp(self):
        """Set up test fixtures."""
        super().setUp()
        self.url = f"{self.api_prefix}/retries"
        self.record = create_retry_record()

    def test_delete_removes_record(self):
        """Test purging a pending retry."""
        response = self.client.delete(
            f"{self.url}?recipient_address={self.record.recipient_address}"
            f"&message_type={self.record.message_type}"
        )

        self.assertEqual(response.status_code, 200)
        self.assertIs(response.json()["removed"], True)
        self.assertFalse(RetryRecord.objects.exists())

    def test_delete_unknown_record_returns_404(self):
        """Test purging a key with no pending retry."""
        response = self.client.delete(
            f"{self.url}?recipient_address=nobody@example.com&message_type=welcome"
        )

        self.assertEqual(response.status_code, 404)
        self.assertIs(response.json()["removed"], False)

    def test_delete_without_parameters_returns_400(self):
        """Test required parameters."""
        response = self.client.delete(f"{self.url}?message_type=welcome")

        self.assertEqual(response.status_code, 400)
        self.assertTrue(RetryRecord.objects.exists())
