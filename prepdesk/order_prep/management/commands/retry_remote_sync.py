"""
Retry platform status pushes that failed during a transition or reopen.

Meant to run from cron, e.g. every five minutes.
"""

from django.core.management.base import BaseCommand

from order_prep.services import PrepService


class Command(BaseCommand):
    help = "Retry failed remote status updates for active and archived assignments"

    def handle(self, *args, **options):
        result = PrepService.retry_remote_sync()
        message = f"Retried {result['retried']}: {result['synced']} synced, {result['failed']} still failing"
        if result['failed']:
            self.stdout.write(self.style.WARNING(message))
        else:
            self.stdout.write(self.style.SUCCESS(message))
