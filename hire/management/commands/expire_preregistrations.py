from django.conf import settings
from django.core.management.base import BaseCommand

from hire.services.preregistration import expire_pending


class Command(BaseCommand):
    help = "Delete pending pre-registration invitations that were never filled in."

    def add_arguments(self, parser):
        parser.add_argument(
            "--days",
            type=int,
            default=None,
            help="Override PREREGISTRATION_TTL_DAYS setting.",
        )

    def handle(self, *args, **options):
        days = options.get("days")
        if days is None:
            days = settings.PREREGISTRATION_TTL_DAYS
        deleted = expire_pending(days)
        self.stdout.write(self.style.SUCCESS(f"Pre-registration cleanup complete. Deleted: {deleted}"))
