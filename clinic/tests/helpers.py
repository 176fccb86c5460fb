"""Shared builders for the clinic test-suite."""
from datetime import timedelta

from django.utils import timezone

from clinic.models import User
from clinic.services.scheduling import upsert_schedule

PASSWORD = 'P@ssw0rd1'


def make_patient(email='patient@example.com', name='Pat Patient', **extra) -> User:
    return User.objects.create_user(email=email, password=PASSWORD, name=name, role=User.ROLE_PATIENT, **extra)


def make_doctor(email='doctor@example.com', name='Alice Morgan', specialization='Cardiology', **extra) -> User:
    extra.setdefault('department', 'Cardiology')
    return User.objects.create_user(
        email=email, password=PASSWORD, name=name, role=User.ROLE_STAFF, specialization=specialization, **extra
    )


def make_staff(email='nurse@example.com', name='Ben Carter', **extra) -> User:
    return User.objects.create_user(email=email, password=PASSWORD, name=name, role=User.ROLE_STAFF, **extra)


def make_admin(email='admin@example.com', name='Ada Admin', **extra) -> User:
    return User.objects.create_user(email=email, password=PASSWORD, name=name, role=User.ROLE_ADMIN, **extra)


def tomorrow():
    return timezone.localdate() + timedelta(days=1)


def make_schedule(doctor: User, on_date=None, times=('09:00', '09:30', '10:00')):
    schedule, _ = upsert_schedule(doctor=doctor, on_date=on_date or tomorrow(), times=times, location='Wing A')
    return schedule
