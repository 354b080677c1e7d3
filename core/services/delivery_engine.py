"""Reliable delivery engine.

Moves a message through its retry lifecycle:

    failed send -> RetryRecord -> scheduled job -> process() -> send client
                -> sent | rescheduled | dead-lettered

Delivery is at-least-once: a crash after the send client accepts a message
but before its RetryRecord is removed sends the message again on the next
attempt. Send clients that need exactly-once must deduplicate on their side.
"""

import random
import time
from collections.abc import Callable, Iterable
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from datetime import datetime, timedelta
from typing import Any, Protocol
from uuid import UUID

from django.db import connections
from django.utils import timezone

import structlog

from core.constants import MANUAL_RETRY_ERROR, RETRY_ATTEMPT_TAG
from core.enums import DeliveryOutcome, FailureKind, MetricType
from core.exceptions import (
    DeadLetterNotFoundError,
    MaxAttemptsReachedError,
    SchedulerError,
    SendTimeoutError,
    StorageError,
    UnclassifiedError,
)
from core.models import DeadLetterRecord, RetryRecord
from core.repositories import DeadLetterStore, RetryStore
from core.schemas.delivery import RetryPolicy, SendResult
from core.services.backoff import next_delay
from core.services.email_service import SendClient
from core.services.failure_classifier import classify, error_message
from core.services.metrics_aggregator import MetricsAggregator

logger = structlog.get_logger(__name__)


class RetryScheduler(Protocol):
    """Delayed-job primitive firing process() for a stored record."""

    def schedule(self, record: RetryRecord, delay: timedelta) -> str:
        """Run the record's next attempt after ``delay``."""
        ...

    def schedule_now(self, record: RetryRecord) -> str:
        """Run the record's next attempt as soon as a worker is free."""
        ...


class ReliableDeliveryEngine:
    """Retries transient send failures and dead-letters the rest.

    One engine serves one delivery category and holds everything it needs;
    build engines through ``core.services.engine_factory.build_engine`` so
    each category gets the policy configured for it.
    """

    def __init__(
        self,
        *,
        send_client: SendClient,
        scheduler: RetryScheduler,
        policy: RetryPolicy,
        retry_store: RetryStore | None = None,
        dead_letter_store: DeadLetterStore | None = None,
        metrics: MetricsAggregator | None = None,
        category: str = "default",
        send_timeout_seconds: float | None = 30.0,
        dead_letter_append_attempts: int = 3,
        dead_letter_retry_delay: float = 0.5,
        clock: Callable[[], datetime] = timezone.now,
        sleep: Callable[[float], None] = time.sleep,
        uniform: Callable[[float, float], float] = random.uniform,
    ) -> None:
        """Initialize the engine.

        Args:
            send_client: Client performing the actual delivery.
            scheduler: Delayed-job scheduler for retry attempts.
            policy: Retry policy of the category.
            retry_store: Pending retry store; defaults to one bound to policy.
            dead_letter_store: Dead letter store.
            metrics: Metrics aggregator; defaults to one over retry_store.
            category: Delivery category served by this engine.
            send_timeout_seconds: Bound on a single send client call, or None.
            dead_letter_append_attempts: Tries for one dead letter insert.
            dead_letter_retry_delay: Seconds between dead letter insert tries.
            clock: Time source.
            sleep: Sleep function used between dead letter insert tries.
            uniform: Random source for backoff jitter.
        """
        self.send_client = send_client
        self.scheduler = scheduler
        self.policy = policy
        self.retry_store = retry_store or RetryStore(max_attempts=policy.max_attempts)
        self.dead_letter_store = dead_letter_store or DeadLetterStore()
        self.metrics = metrics or MetricsAggregator(
            self.retry_store, self.dead_letter_store, clock=clock
        )
        self.category = category
        self.send_timeout_seconds = send_timeout_seconds
        self.dead_letter_append_attempts = max(dead_letter_append_attempts, 1)
        self.dead_letter_retry_delay = dead_letter_retry_delay
        self._clock = clock
        self._sleep = sleep
        self._uniform = uniform

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def deliver(
        self,
        recipient_address: str,
        subject: str,
        message_type: str,
        payload: dict[str, Any] | None = None,
        tags: dict[str, Any] | None = None,
        recipient_user_id: str | None = None,
    ) -> DeliveryOutcome:
        """Make the original delivery attempt of a message.

        A failure enters the retry lifecycle as attempt 1. Send client errors
        never propagate to the caller.

        Returns:
            SENT, RETRY_SCHEDULED or DEAD_LETTERED.
        """
        payload = payload or {}
        tags = tags or {}
        original_send_time = self._clock()

        try:
            self._send(recipient_address, subject, message_type, payload, tags)
        except Exception as e:
            return self.report_failure(
                recipient_address=recipient_address,
                subject=subject,
                message_type=message_type,
                error=e,
                payload=payload,
                tags=tags,
                recipient_user_id=recipient_user_id,
                original_send_time=original_send_time,
            )

        logger.info(
            "message_delivered",
            recipient_address=recipient_address,
            message_type=message_type,
            category=self.category,
        )
        return DeliveryOutcome.SENT

    def report_failure(
        self,
        recipient_address: str,
        subject: str,
        message_type: str,
        error: BaseException | str,
        payload: dict[str, Any] | None = None,
        tags: dict[str, Any] | None = None,
        recipient_user_id: str | None = None,
        attempt_count: int = 1,
        original_send_time: datetime | None = None,
    ) -> DeliveryOutcome:
        """Hand a failed send made outside the engine over to it.

        Args:
            recipient_address: Recipient of the failed message.
            subject: Subject line.
            message_type: Template/kind identifier.
            error: Exception or error message of the failed send.
            payload: Template variables needed to resend.
            tags: Observability tags.
            recipient_user_id: Optional user ID of the recipient.
            attempt_count: Attempts made so far, including the failed one.
            original_send_time: When the message was first sent.

        Returns:
            RETRY_SCHEDULED or DEAD_LETTERED.

        Raises:
            StorageError: If the message could not be recorded anywhere.
        """
        now = self._clock()
        message = error_message(error)
        record = RetryRecord(
            recipient_address=recipient_address,
            recipient_user_id=recipient_user_id,
            subject=subject,
            message_type=message_type,
            category=self.category,
            payload=payload or {},
            tags=tags or {},
            attempt_count=attempt_count,
            last_error=message,
            next_retry_at=now + next_delay(attempt_count, self.policy, self._uniform),
            original_send_time=original_send_time or now,
        )

        if classify(error) == FailureKind.PERMANENT:
            self._dead_letter(record, final_error=message)
            return DeliveryOutcome.DEAD_LETTERED

        try:
            return self._store_and_schedule(record)
        except MaxAttemptsReachedError:
            self._dead_letter(
                record,
                final_error=f"Failed after {attempt_count} attempts: {message}",
            )
            return DeliveryOutcome.DEAD_LETTERED

    def process(
        self,
        recipient_address: str,
        message_type: str,
        attempt_count: int | None = None,
    ) -> DeliveryOutcome:
        """Run one retry attempt for a pending record.

        Args:
            recipient_address: Recipient of the pending record.
            message_type: Message type of the pending record.
            attempt_count: Attempt count the job was scheduled for. A job whose
                count no longer matches the stored record was superseded and
                is skipped.

        Returns:
            The resulting DeliveryOutcome.

        Raises:
            StorageError: If the retry or dead letter store fails. The stored
                record is left in place for the next sweep.
        """
        record = self.retry_store.get(recipient_address, message_type)
        if record is None:
            logger.info(
                "retry_record_missing",
                recipient_address=recipient_address,
                message_type=message_type,
            )
            return DeliveryOutcome.SKIPPED

        if attempt_count is not None and record.attempt_count != attempt_count:
            logger.info(
                "retry_job_stale",
                recipient_address=recipient_address,
                message_type=message_type,
                job_attempt_count=attempt_count,
                stored_attempt_count=record.attempt_count,
            )
            return DeliveryOutcome.SKIPPED

        tags = {**(record.tags or {}), RETRY_ATTEMPT_TAG: record.attempt_count}

        try:
            self._send(
                record.recipient_address,
                record.subject,
                record.message_type,
                record.payload or {},
                tags,
            )
        except Exception as e:
            return self._handle_retry_failure(record, e)

        self.retry_store.remove(record.recipient_address, record.message_type)
        self.metrics.record_outcome(MetricType.SUCCESS, record.attempt_count)

        logger.info(
            "retry_succeeded",
            recipient_address=record.recipient_address,
            message_type=record.message_type,
            attempt_count=record.attempt_count,
        )
        return DeliveryOutcome.SENT

    def process_batch(
        self, records: Iterable[RetryRecord], concurrency: int = 1
    ) -> dict[str, int]:
        """Process several pending records with bounded concurrency.

        Used by polling sweeps. One record failing never stops the others.

        Returns:
            Count of records per outcome, plus "errors".
        """
        records = list(records)
        summary: dict[str, int] = {outcome.value: 0 for outcome in DeliveryOutcome}
        summary["errors"] = 0

        if concurrency <= 1:
            outcomes = [self._process_safely(record) for record in records]
        else:
            with ThreadPoolExecutor(
                max_workers=concurrency, thread_name_prefix="retry-worker"
            ) as executor:
                outcomes = list(executor.map(self._process_in_thread, records))

        for outcome in outcomes:
            if outcome is None:
                summary["errors"] += 1
            else:
                summary[outcome.value] += 1
        return summary

    # ------------------------------------------------------------------
    # Operator operations
    # ------------------------------------------------------------------

    def replay(self, dead_letter_ids: Iterable[UUID | str]) -> dict[str, list[str]]:
        """Re-inject dead letters as fresh retries.

        Each replayed message gets a RetryRecord with attempt_count 0, a
        synthetic manual retry error and the first retry delay, and its dead
        letter record is deleted.

        Returns:
            Dict with the "replayed", "not_found" and "failed" IDs.
        """
        result: dict[str, list[str]] = {"replayed": [], "not_found": [], "failed": []}
        now = self._clock()

        for dead_letter_id in dead_letter_ids:
            dead_letter_key = str(dead_letter_id)
            try:
                dead_letter = self.dead_letter_store.get(dead_letter_id)
                record = RetryRecord(
                    recipient_address=dead_letter.recipient_address,
                    recipient_user_id=dead_letter.recipient_user_id,
                    subject=dead_letter.subject,
                    message_type=dead_letter.message_type,
                    category=dead_letter.category,
                    payload=dead_letter.payload or {},
                    tags=dead_letter.tags or {},
                    attempt_count=0,
                    last_error=MANUAL_RETRY_ERROR,
                    next_retry_at=now + next_delay(1, self.policy, self._uniform),
                    original_send_time=now,
                )
                self._store_and_schedule(record)
                self.dead_letter_store.delete(dead_letter_id)
            except DeadLetterNotFoundError:
                result["not_found"].append(dead_letter_key)
                continue
            except (StorageError, MaxAttemptsReachedError) as e:
                logger.error(
                    "dead_letter_replay_failed",
                    dead_letter_id=dead_letter_key,
                    error=str(e),
                )
                result["failed"].append(dead_letter_key)
                continue

            result["replayed"].append(dead_letter_key)

        logger.info(
            "dead_letters_replayed",
            replayed=len(result["replayed"]),
            not_found=len(result["not_found"]),
            failed=len(result["failed"]),
        )
        return result

    def sweep(self, immediate: bool = False, limit: int = 100) -> int:
        """Queue pending retries for immediate execution.

        Args:
            immediate: Queue every pending record, not only the due ones.
            limit: Maximum number of records to queue.

        Returns:
            Number of records queued.

        Raises:
            SchedulerError: If the job queue cannot be reached.
        """
        due_before = None if immediate else self._clock()
        records = self.retry_store.dequeue_due(due_before, limit=limit)

        for record in records:
            self.scheduler.schedule_now(record)

        logger.info(
            "retry_queue_swept",
            scheduled_count=len(records),
            immediate=immediate,
        )
        return len(records)

    def purge_record(self, recipient_address: str, message_type: str) -> bool:
        """Drop a pending retry without sending or dead-lettering it.

        Any job already scheduled for it finds no record and is skipped.
        """
        removed = self.retry_store.remove(recipient_address, message_type)
        logger.warning(
            "retry_record_purged",
            recipient_address=recipient_address,
            message_type=message_type,
            removed=removed,
        )
        return removed

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _send(
        self,
        recipient_address: str,
        subject: str,
        message_type: str,
        payload: dict[str, Any],
        tags: dict[str, Any],
    ) -> SendResult:
        """Call the send client, bounded by the send timeout.

        Raises:
            SendTimeoutError: If the call did not finish in time.
            UnclassifiedError: If the client returned a failed result.
        """
        if self.send_timeout_seconds is None:
            result = self.send_client.send(
                recipient_address, subject, message_type, payload, tags
            )
        else:
            executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="send")
            future = executor.submit(
                self.send_client.send,
                recipient_address,
                subject,
                message_type,
                payload,
                tags,
            )
            try:
                result = future.result(timeout=self.send_timeout_seconds)
            except FutureTimeoutError as e:
                future.cancel()
                raise SendTimeoutError(self.send_timeout_seconds) from e
            finally:
                # A hung call keeps its thread; never wait for it here
                executor.shutdown(wait=False)

        if result is not None and not result.success:
            raise UnclassifiedError(
                result.error or "Send client reported failure",
                status_code=result.status_code,
            )
        return result

    def _handle_retry_failure(
        self, record: RetryRecord, error: BaseException
    ) -> DeliveryOutcome:
        """Reschedule or dead-letter a record whose retry attempt failed."""
        self.metrics.record_outcome(MetricType.FAILED, record.attempt_count)
        message = error_message(error)
        kind = classify(error)

        logger.warning(
            "retry_attempt_failed",
            recipient_address=record.recipient_address,
            message_type=record.message_type,
            attempt_count=record.attempt_count,
            failure_kind=kind.value,
            error=message,
        )

        if kind == FailureKind.PERMANENT:
            self._dead_letter(record, final_error=message)
            self.retry_store.remove(record.recipient_address, record.message_type)
            return DeliveryOutcome.DEAD_LETTERED

        next_attempt = record.attempt_count + 1
        retry = RetryRecord(
            recipient_address=record.recipient_address,
            recipient_user_id=record.recipient_user_id,
            subject=record.subject,
            message_type=record.message_type,
            category=record.category,
            payload=record.payload,
            tags=record.tags,
            attempt_count=next_attempt,
            last_error=message,
            next_retry_at=self._clock()
            + next_delay(next_attempt, self.policy, self._uniform),
            original_send_time=record.original_send_time,
        )

        try:
            return self._store_and_schedule(retry)
        except MaxAttemptsReachedError:
            self._dead_letter(
                retry,
                final_error=f"Failed after {next_attempt} attempts: {message}",
            )
            self.retry_store.remove(record.recipient_address, record.message_type)
            return DeliveryOutcome.DEAD_LETTERED

    def _store_and_schedule(self, record: RetryRecord) -> DeliveryOutcome:
        """Upsert a retry record and schedule its next attempt.

        A scheduling failure is logged but not raised: the record is stored
        and a sweep will pick it up.

        Raises:
            MaxAttemptsReachedError: If the record is at the policy maximum.
            StorageError: If the upsert failed.
        """
        stored = self.retry_store.enqueue(record)
        delay = max(stored.next_retry_at - self._clock(), timedelta(0))

        try:
            job_id = self.scheduler.schedule(stored, delay)
        except SchedulerError as e:
            logger.error(
                "retry_schedule_failed",
                recipient_address=stored.recipient_address,
                message_type=stored.message_type,
                attempt_count=stored.attempt_count,
                error=str(e),
            )
            job_id = None

        logger.warning(
            "retry_scheduled",
            recipient_address=stored.recipient_address,
            message_type=stored.message_type,
            attempt_count=stored.attempt_count,
            next_retry_at=stored.next_retry_at.isoformat(),
            job_id=job_id,
            error=stored.last_error,
        )
        return DeliveryOutcome.RETRY_SCHEDULED

    def _dead_letter(self, record: RetryRecord, final_error: str) -> DeadLetterRecord:
        """Append a dead letter record, retrying the insert itself.

        Raises:
            StorageError: If every insert failed. The message is then only
                visible in the logs.
        """
        dead_letter = DeadLetterRecord(
            recipient_address=record.recipient_address,
            recipient_user_id=record.recipient_user_id,
            subject=record.subject,
            message_type=record.message_type,
            category=record.category,
            payload=record.payload or {},
            tags=record.tags or {},
            final_error=final_error,
            attempt_count=record.attempt_count,
            failed_at=self._clock(),
        )

        for attempt in range(1, self.dead_letter_append_attempts + 1):
            try:
                self.dead_letter_store.append(dead_letter)
                break
            except StorageError as e:
                if attempt == self.dead_letter_append_attempts:
                    logger.critical(
                        "dead_letter_lost",
                        recipient_address=record.recipient_address,
                        message_type=record.message_type,
                        subject=record.subject,
                        attempt_count=record.attempt_count,
                        final_error=final_error,
                        append_attempts=attempt,
                        error=str(e),
                    )
                    raise StorageError(
                        f"Could not dead-letter message to {record.recipient_address} "
                        f"after {attempt} attempts: {e}",
                        operation="append",
                    ) from e
                logger.warning(
                    "dead_letter_append_retry",
                    recipient_address=record.recipient_address,
                    append_attempt=attempt,
                    error=str(e),
                )
                self._sleep(self.dead_letter_retry_delay)

        dead_lettered_today = self.metrics.record_dead_letter()

        logger.error(
            "message_dead_lettered",
            dead_letter_id=str(dead_letter.dead_letter_id),
            recipient_address=record.recipient_address,
            message_type=record.message_type,
            category=record.category,
            attempt_count=record.attempt_count,
            final_error=final_error,
            dead_lettered_today=dead_lettered_today,
        )
        return dead_letter

    def _process_safely(self, record: RetryRecord) -> DeliveryOutcome | None:
        try:
            return self.process(
                record.recipient_address, record.message_type, record.attempt_count
            )
        except (StorageError, MaxAttemptsReachedError) as e:
            logger.error(
                "retry_processing_failed",
                recipient_address=record.recipient_address,
                message_type=record.message_type,
                error=str(e),
            )
            return None

    def _process_in_thread(self, record: RetryRecord) -> DeliveryOutcome | None:
        try:
            return self._process_safely(record)
        finally:
            # Worker threads open their own connections
            connections.close_all()
