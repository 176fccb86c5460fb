from django.core.management.base import BaseCommand

from clinic.models import User

PASSWORD = "password123"

TEST_SET = [
    ("admin@smartcare.test", "System Admin", User.ROLE_ADMIN, {}),
    ("doctor@smartcare.test", "Alice Morgan", User.ROLE_STAFF,
     {"specialization": "Cardiology", "department": "Cardiology", "license_number": "MD-1001"}),
    ("nurse@smartcare.test", "Ben Carter", User.ROLE_STAFF, {"department": "Emergency"}),
    ("patient@smartcare.test", "Pat Jensen", User.ROLE_PATIENT, {"digital_health_card_id": "DHC-0001"}),
]


class Command(BaseCommand):
    help = f"Ensure development users exist with password={PASSWORD} (idempotent)."

    def handle(self, *args, **opts):
        for email, name, role, extra in TEST_SET:
            user = User.objects.filter(email=email).first()
            if user is None:
                user = User.objects.create_user(email=email, password=PASSWORD, name=name, role=role, **extra)
            else:
                user.set_password(PASSWORD)
                user.role = role
                user.is_active = True
                for field, value in extra.items():
                    setattr(user, field, value)
                user.save()
            self.stdout.write(self.style.SUCCESS(f"ok: {email} ({user.display_role})"))
        self.stdout.write(self.style.SUCCESS("All test users ensured."))
