"""Polling retry worker: process or queue pending retries."""

from itertools import groupby

from django.conf import settings
from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone

from core.constants import DEFAULT_SWEEP_LIMIT
from core.exceptions import SchedulerError, StorageError
from core.repositories import RetryStore
from core.services.engine_factory import build_engine, get_policy


class Command(BaseCommand):
    """Sweep the retry queue for records whose next_retry_at has passed.

    By default due records are processed in this process by a bounded pool of
    retry workers, the polling alternative to rq-scheduler timers. With
    --enqueue they are queued on the email-retry queue instead.
    """

    help = "Process (or queue) due retries from the retry queue"

    def add_arguments(self, parser):
        parser.add_argument(
            "--immediate",
            action="store_true",
            help="Include records that are not yet due",
        )
        parser.add_argument(
            "--limit",
            type=int,
            default=DEFAULT_SWEEP_LIMIT,
            help=f"Maximum records to sweep (default: {DEFAULT_SWEEP_LIMIT})",
        )
        parser.add_argument(
            "--concurrency",
            type=int,
            default=None,
            help="Simultaneous retry attempts (default: WORKER_CONCURRENCY)",
        )
        parser.add_argument(
            "--enqueue",
            action="store_true",
            help="Queue records on RQ instead of processing them here",
        )

    def handle(self, *_args, **options):
        limit = options["limit"]
        if limit < 1:
            raise CommandError("--limit must be at least 1")

        try:
            if options["enqueue"]:
                count = build_engine().sweep(
                    immediate=options["immediate"], limit=limit
                )
                self.stdout.write(self.style.SUCCESS(f"Queued {count} retries"))
                return

            self._process(options["immediate"], limit, options["concurrency"])
        except (StorageError, SchedulerError) as e:
            raise CommandError(str(e)) from e

    def _process(self, immediate: bool, limit: int, concurrency: int | None) -> None:
        if concurrency is None:
            concurrency = settings.RELIABLE_DELIVERY.get("WORKER_CONCURRENCY", 5)

        store = RetryStore(max_attempts=get_policy().max_attempts)
        records = store.dequeue_due(None if immediate else timezone.now(), limit)
        if not records:
            self.stdout.write("No retries due")
            return

        records.sort(key=lambda record: record.category)
        for category, group in groupby(records, key=lambda record: record.category):
            summary = build_engine(category).process_batch(
                group, concurrency=concurrency
            )
            self.stdout.write(
                self.style.SUCCESS(
                    f"[{category}] "
                    + ", ".join(f"{k.lower()}={v}" for k, v in summary.items())
                )
            )
