from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Iterable, Optional

from django.conf import settings
from django.db import transaction
from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework.exceptions import PermissionDenied, ValidationError

from clinic.models import Appointment, User, Waitlist
from clinic.services.common import clean_text, is_staff_or_admin
from clinic.services.notifications import notify

logger = logging.getLogger(__name__)


def join(
    *,
    patient: User,
    doctor_id,
    preferred_date: date,
    alternative_dates: Iterable[date] = (),
    department: str = '',
    reason: str = '',
    priority: str = 'Normal',
) -> Waitlist:
    doctor = User.objects.filter(id=doctor_id, role=User.ROLE_STAFF).first() if doctor_id else None
    if doctor is None or not doctor.specialization:
        raise ValidationError('Invalid doctor ID')
    if preferred_date < timezone.localdate():
        raise ValidationError('Preferred date cannot be in the past')
    if Waitlist.objects.filter(
        patient=patient, doctor=doctor, preferred_date=preferred_date, status=Waitlist.STATUS_ACTIVE
    ).exists():
        raise ValidationError('You are already on the waitlist for this doctor and date')
    return Waitlist.objects.create(
        patient=patient,
        doctor=doctor,
        preferred_date=preferred_date,
        alternative_dates=[d.isoformat() for d in alternative_dates],
        department=department or doctor.department,
        reason=clean_text(reason),
        priority=priority,
        expires_at=timezone.now() + timedelta(days=settings.WAITLIST_TTL_DAYS),
    )


def for_patient(patient: User):
    return Waitlist.objects.filter(
        patient=patient, status__in=[Waitlist.STATUS_ACTIVE, Waitlist.STATUS_FULFILLED]
    ).select_related('doctor').order_by('-created_at')


def for_doctor(doctor_id, *, status: Optional[str] = None):
    return Waitlist.objects.filter(
        doctor_id=doctor_id, status=status or Waitlist.STATUS_ACTIVE
    ).select_related('patient', 'doctor').order_by('created_at')


def _locked_active(entry_id) -> Waitlist:
    entry = get_object_or_404(Waitlist.objects.select_for_update().select_related('patient', 'doctor'), id=entry_id)
    if entry.status != Waitlist.STATUS_ACTIVE:
        raise ValidationError(f'Waitlist entry is {entry.status}, not Active')
    return entry


def _announce(entry: Waitlist, *, sender: Optional[User], message: str) -> None:
    notify(
        recipient=entry.patient,
        sender=sender,
        title='Appointment Slot Available',
        message=message,
        priority='High',
        metadata={'waitlistId': entry.id, 'doctorId': entry.doctor_id},
    )
    entry.notifications_sent += 1
    entry.last_notified_at = timezone.now()
    entry.save(update_fields=['notifications_sent', 'last_notified_at', 'updated_at'])


@transaction.atomic
def notify_entry(entry_id, *, sender: User, message: str = '') -> Waitlist:
    entry = _locked_active(entry_id)
    _announce(
        entry,
        sender=sender,
        message=clean_text(message) or (
            f"A slot with Dr. {entry.doctor.get_full_name()} is now available. "
            f"Book soon, slots are offered to the waitlist in order."
        ),
    )
    return entry


@transaction.atomic
def fulfill(entry_id, *, appointment_id) -> Waitlist:
    entry = _locked_active(entry_id)
    appointment = Appointment.objects.filter(id=appointment_id, patient=entry.patient).first() if appointment_id else None
    if appointment is None:
        raise ValidationError('Invalid appointment ID')
    entry.status = Waitlist.STATUS_FULFILLED
    entry.fulfilled_appointment = appointment
    entry.save(update_fields=['status', 'fulfilled_appointment', 'updated_at'])
    return entry


@transaction.atomic
def cancel(entry_id, *, user: User) -> Waitlist:
    entry = get_object_or_404(Waitlist.objects.select_for_update(), id=entry_id)
    if entry.patient_id != user.id and not is_staff_or_admin(user):
        raise PermissionDenied('Not authorized to cancel this waitlist entry')
    if entry.status != Waitlist.STATUS_ACTIVE:
        raise ValidationError(f'Waitlist entry is {entry.status}, not Active')
    entry.status = Waitlist.STATUS_CANCELLED
    entry.save(update_fields=['status', 'updated_at'])
    return entry


def notify_opening(appointment: Appointment) -> int:
    """Tell Active waitlisted patients that the appointment's slot opened up."""
    day = appointment.date.isoformat()
    entries = [
        e for e in Waitlist.objects.filter(
            doctor_id=appointment.doctor_id, status=Waitlist.STATUS_ACTIVE, expires_at__gt=timezone.now()
        ).select_related('patient', 'doctor').order_by('created_at')
        if e.preferred_date == appointment.date or day in (e.alternative_dates or [])
    ]
    for entry in entries:
        _announce(
            entry,
            sender=None,
            message=(
                f"A slot with Dr. {entry.doctor.get_full_name()} opened on {day} at "
                f"{appointment.time}. Book now to secure it."
            ),
        )
    if entries:
        logger.info('Notified %s waitlisted patients of an opening on %s', len(entries), day)
    return len(entries)


def expire_stale(now=None) -> int:
    now = now or timezone.now()
    expired = Waitlist.objects.filter(status=Waitlist.STATUS_ACTIVE, expires_at__lt=now).update(
        status=Waitlist.STATUS_EXPIRED, updated_at=now
    )
    if expired:
        logger.info('Expired %s waitlist entries', expired)
    return expired
