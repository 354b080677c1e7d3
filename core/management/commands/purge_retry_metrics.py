"""Delete retry metric events older than the retention window."""

from django.core.management.base import BaseCommand

from core.services.engine_factory import build_metrics


class Command(BaseCommand):
    help = "Purge retry metric events outside the statistics window"

    def handle(self, *_args, **_options):
        deleted = build_metrics().purge_expired()
        self.stdout.write(self.style.SUCCESS(f"Purged {deleted} metric events"))
