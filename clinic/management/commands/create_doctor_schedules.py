from datetime import timedelta

from django.core.management.base import BaseCommand
from django.utils import timezone

from clinic.models import User
from clinic.services.scheduling import generate_times, upsert_schedule


class Command(BaseCommand):
    help = "Publish weekday schedules (09:00-17:00, 30 minute slots) for every active doctor."

    def add_arguments(self, parser):
        parser.add_argument("--days", type=int, default=14, help="How many days ahead to cover")
        parser.add_argument("--start", default="09:00")
        parser.add_argument("--end", default="17:00")
        parser.add_argument("--interval", type=int, default=30)

    def handle(self, *args, **options):
        doctors = User.objects.filter(role=User.ROLE_STAFF, is_active=True).exclude(specialization="")
        times = generate_times(options["start"], options["end"], options["interval"])
        today = timezone.localdate()
        created = 0
        for doctor in doctors:
            for offset in range(options["days"]):
                day = today + timedelta(days=offset)
                if day.weekday() >= 5:
                    continue
                _, is_new = upsert_schedule(
                    doctor=doctor,
                    on_date=day,
                    times=times,
                    location=f"{doctor.department or 'General'} Clinic",
                    department=doctor.department,
                )
                created += int(is_new)
        self.stdout.write(self.style.SUCCESS(f"Created {created} schedules for {doctors.count()} doctors"))
