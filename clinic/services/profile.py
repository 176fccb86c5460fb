from __future__ import annotations

from django.db.models import Count
from django.utils import timezone
from rest_framework.exceptions import AuthenticationFailed, ValidationError

from clinic.models import Appointment, User
from clinic.services.common import clean_text
from clinic.services.users import invalidate_stats

PROFILE_FIELDS = (
    'name', 'phone', 'date_of_birth', 'gender', 'blood_type', 'address',
    'emergency_contact', 'insurance', 'specialization', 'department',
)


def role_data(user: User) -> dict:
    """Role specific extras shown on the profile page."""
    if user.role == User.ROLE_PATIENT:
        appointments = Appointment.objects.filter(patient=user).select_related('doctor')
        last_visit = appointments.filter(status=Appointment.STATUS_COMPLETED).order_by('-date', '-time').first()
        return {
            'bloodGroup': user.blood_type,
            'lastVisit': last_visit.date.isoformat() if last_visit else None,
            'upcomingAppointments': appointments.filter(
                status=Appointment.STATUS_SCHEDULED, date__gte=timezone.localdate()
            ).count(),
            'recentAppointments': list(appointments.order_by('-date', '-time')[:5]),
            'insurance': user.insurance,
            'emergencyContact': user.emergency_contact,
        }
    if user.role == User.ROLE_STAFF:
        return {
            'department': user.department,
            'specialization': user.specialization,
            'isDoctor': user.is_doctor,
            'appointmentsManaged': Appointment.objects.filter(created_by=user).count(),
        }
    counts = {
        row['role']: row['n']
        for row in User.objects.filter(is_active=True).values('role').annotate(n=Count('id'))
    }
    return {
        'systemStats': {
            'activePatients': counts.get(User.ROLE_PATIENT, 0),
            'activeStaff': counts.get(User.ROLE_STAFF, 0),
            'activeAdmins': counts.get(User.ROLE_ADMIN, 0),
            'appointmentsToday': Appointment.objects.filter(date=timezone.localdate()).count(),
        },
    }


def update_profile(user: User, data: dict) -> User:
    changes = {k: v for k, v in data.items() if k in PROFILE_FIELDS}
    if not changes:
        raise ValidationError('No valid fields to update')
    if user.role == User.ROLE_PATIENT:
        changes.pop('specialization', None)
        changes.pop('department', None)
    for field, value in changes.items():
        setattr(user, field, clean_text(value) if isinstance(value, str) else value)
    user.save()
    invalidate_stats()
    return user


def change_password(user: User, *, current_password: str, new_password: str) -> User:
    if not current_password or not new_password:
        raise ValidationError('Current password and new password are required')
    if len(new_password) < 6:
        raise ValidationError('New password must be at least 6 characters')
    if not user.check_password(current_password):
        raise AuthenticationFailed('Current password is incorrect')
    user.set_password(new_password)
    user.save(update_fields=['password', 'updated_at'])
    return user
