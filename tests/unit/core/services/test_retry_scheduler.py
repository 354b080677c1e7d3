"""Tests for RQ retry scheduling."""

from datetime import timedelta
from unittest.mock import Mock, patch

from django.test import SimpleTestCase
from redis.exceptions import ConnectionError as RedisConnectionError

from core.constants import PROCESS_RETRY_JOB
from core.exceptions import SchedulerError
from core.models import RetryRecord
from core.services.retry_scheduler import RQRetryScheduler, build_job_id


def make_record(**overrides):
    fields = {
        "recipient_address": "user@example.com",
        "message_type": "password_reset",
        "category": "default",
        "attempt_count": 2,
    }
    fields.update(overrides)
    return RetryRecord(**fields)


class TestBuildJobId(SimpleTestCase):
    """Tests for deterministic job IDs."""

    def test_same_attempt_gives_same_id(self):
        """Test that rescheduling an attempt reuses its job ID."""
        self.assertEqual(build_job_id(make_record()), build_job_id(make_record()))

    def test_id_changes_with_attempt_and_key(self):
        """Test that attempts and records never share job IDs."""
        base = build_job_id(make_record())

        self.assertNotEqual(base, build_job_id(make_record(attempt_count=3)))
        self.assertNotEqual(base, build_job_id(make_record(message_type="welcome")))
        self.assertNotEqual(
            base, build_job_id(make_record(recipient_address="other@example.com"))
        )

    def test_format(self):
        """Test the retry-<digest>-<attempt>[-suffix] format."""
        job_id = build_job_id(make_record(), suffix="sweep")

        prefix, digest, attempt, suffix = job_id.split("-")
        self.assertEqual(prefix, "retry")
        self.assertEqual(len(digest), 20)
        self.assertEqual(attempt, "2")
        self.assertEqual(suffix, "sweep")


class TestRQRetryScheduler(SimpleTestCase):
    """Tests for RQRetryScheduler."""

    def setUp(self):
        """Set up test fixtures."""
        self.scheduler = RQRetryScheduler("email-retry")
        self.record = make_record()

    @patch("core.services.retry_scheduler.django_rq.get_scheduler")
    def test_schedule_enqueues_delayed_job(self, mock_get_scheduler):
        """Test that the attempt is scheduled after the delay."""
        rq_scheduler = Mock()
        mock_get_scheduler.return_value = rq_scheduler

        job_id = self.scheduler.schedule(self.record, timedelta(seconds=120))

        mock_get_scheduler.assert_called_once_with("email-retry")
        rq_scheduler.enqueue_in.assert_called_once_with(
            timedelta(seconds=120),
            PROCESS_RETRY_JOB,
            "default",
            "user@example.com",
            "password_reset",
            2,
            job_id=job_id,
        )
        self.assertEqual(job_id, build_job_id(self.record))

    @patch("core.services.retry_scheduler.django_rq.get_scheduler")
    def test_schedule_redis_failure_raises_scheduler_error(self, mock_get_scheduler):
        """Test that Redis errors surface as SchedulerError."""
        mock_get_scheduler.return_value.enqueue_in.side_effect = RedisConnectionError(
            "Connection refused"
        )

        with self.assertRaises(SchedulerError):
            self.scheduler.schedule(self.record, timedelta(seconds=60))

    @patch("core.services.retry_scheduler.django_rq.get_queue")
    def test_schedule_now_enqueues_immediately(self, mock_get_queue):
        """Test that sweeps bypass the delay."""
        queue = Mock()
        mock_get_queue.return_value = queue

        job_id = self.scheduler.schedule_now(self.record)

        self.assertTrue(job_id.endswith("-sweep"))
        queue.enqueue.assert_called_once_with(
            PROCESS_RETRY_JOB,
            "default",
            "user@example.com",
            "password_reset",
            2,
            job_id=job_id,
        )

    @patch("core.services.retry_scheduler.django_rq.get_queue")
    def test_schedule_now_redis_failure_raises_scheduler_error(self, mock_get_queue):
        """Test that Redis errors surface as SchedulerError."""
        mock_get_queue.side_effect = RedisConnectionError("Connection refused")

        with self.assertRaises(SchedulerError):
            self.scheduler.schedule_now(self.record)
