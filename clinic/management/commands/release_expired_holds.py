from django.core.management.base import BaseCommand

from clinic.services.scheduling import release_expired_holds


class Command(BaseCommand):
    help = "Return Held slots whose hold has lapsed to Available. Run every 5 minutes."

    def handle(self, *args, **options):
        released = release_expired_holds()
        self.stdout.write(self.style.SUCCESS(f"Released {released} expired holds"))
