from django.core.management.base import BaseCommand

from clinic.services.waitlist import expire_stale


class Command(BaseCommand):
    help = "Mark Active waitlist entries past their expiry as Expired. Run daily."

    def handle(self, *args, **options):
        expired = expire_stale()
        self.stdout.write(self.style.SUCCESS(f"Expired {expired} waitlist entries"))
