"""
Appointment booking.

At most one ``Scheduled`` appointment may exist for a doctor, date and
time. Booking serialises on the doctor's row, locks the matching
schedule slot, re-checks for a live appointment and inserts under a
conditional unique constraint; any of the three failing yields
:class:`~clinic.exceptions.SlotConflict` and rolls the slot back.
"""
from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from django.db import IntegrityError, transaction
from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework.exceptions import PermissionDenied, ValidationError

from clinic.exceptions import SlotConflict
from clinic.models import Appointment, DoctorSchedule, Payment, ScheduleSlot, User
from clinic.services import waitlist as waitlist_service
from clinic.services.audit import log_action
from clinic.services.calendar import build_ics
from clinic.services.common import clean_text, ensure_party
from clinic.services.notifications import notify
from clinic.services.scheduling import parse_time

logger = logging.getLogger(__name__)


def visible_to(user: User):
    """Appointments a user sees on their own list."""
    qs = Appointment.objects.select_related('patient', 'doctor')
    if user.role == User.ROLE_PATIENT:
        return qs.filter(patient=user)
    if user.is_doctor:
        return qs.filter(doctor=user)
    return qs


def list_all(*, status: Optional[str] = None, on_date: Optional[date] = None, doctor_id=None, patient_id=None):
    qs = Appointment.objects.select_related('patient', 'doctor')
    if status:
        qs = qs.filter(status=status)
    if on_date:
        qs = qs.filter(date=on_date)
    if doctor_id:
        qs = qs.filter(doctor_id=doctor_id)
    if patient_id:
        qs = qs.filter(patient_id=patient_id)
    return qs


def get_for_user(appointment_id, user: User) -> Appointment:
    appointment = get_object_or_404(Appointment.objects.select_related('patient', 'doctor'), id=appointment_id)
    ensure_party(
        user,
        patient_id=appointment.patient_id,
        doctor_id=appointment.doctor_id,
        message='Not authorized to access this appointment',
    )
    return appointment


def _check_not_past(on_date: date, at_time: str) -> None:
    today = timezone.localdate()
    if on_date < today or (on_date == today and at_time <= timezone.localtime().strftime('%H:%M')):
        raise ValidationError('Cannot book an appointment in the past')


def _payment_for(patient: User, payment_id) -> Optional[Payment]:
    if not payment_id:
        return None
    payment = Payment.objects.filter(id=payment_id, user=patient, status=Payment.STATUS_COMPLETED).first()
    if payment is None or Appointment.objects.filter(payment=payment, status=Appointment.STATUS_SCHEDULED).exists():
        raise ValidationError('Invalid or incomplete payment')
    return payment


def _locate_slot(doctor: User, on_date: date, at_time: str, schedule_id=None) -> Optional[ScheduleSlot]:
    """Lock and return the schedule slot for the booking, if the doctor publishes one."""
    if schedule_id:
        schedule = DoctorSchedule.objects.select_for_update().filter(id=schedule_id).first()
        if schedule is None or schedule.doctor_id != doctor.id or schedule.date != on_date:
            raise ValidationError('Schedule does not match the requested doctor and date')
    else:
        schedule = DoctorSchedule.objects.select_for_update().filter(doctor=doctor, date=on_date).first()
        if schedule is None:
            return None
    if not schedule.is_active:
        raise ValidationError('Doctor is not available on this date')
    slot = ScheduleSlot.objects.select_for_update().select_related('schedule').filter(
        schedule=schedule, time=at_time
    ).first()
    if slot is None:
        raise ValidationError("Requested time is not on the doctor's schedule")
    return slot


def _ensure_free(doctor: User, on_date: date, at_time: str, *, exclude_id=None) -> None:
    qs = Appointment.objects.filter(
        doctor=doctor, date=on_date, time=at_time, status=Appointment.STATUS_SCHEDULED
    )
    if exclude_id:
        qs = qs.exclude(id=exclude_id)
    if qs.exists():
        logger.warning('Booking conflict for doctor %s at %s %s', doctor.id, on_date, at_time)
        raise SlotConflict()


def _claim(slot: ScheduleSlot, *, claimants: set) -> None:
    now = timezone.now()
    if slot.status == ScheduleSlot.STATUS_BOOKED:
        raise SlotConflict()
    if slot.status == ScheduleSlot.STATUS_BLOCKED:
        raise SlotConflict('This time slot is not available')
    if slot.status == ScheduleSlot.STATUS_HELD and not slot.hold_expired(now) and slot.held_by_id not in claimants:
        raise SlotConflict('This time slot is currently held by another user')


def _mark_booked(slot: ScheduleSlot, appointment: Appointment) -> None:
    slot.status = ScheduleSlot.STATUS_BOOKED
    slot.appointment = appointment
    slot.held_by = None
    slot.held_until = None
    slot.save(update_fields=['status', 'appointment', 'held_by', 'held_until'])


def free_slot(appointment: Appointment) -> int:
    return ScheduleSlot.objects.filter(appointment=appointment).update(
        status=ScheduleSlot.STATUS_AVAILABLE, appointment=None, held_by=None, held_until=None
    )


def book_appointment(
    *,
    actor: User,
    patient: User,
    doctor: User,
    on_date: date,
    at_time: str,
    schedule_id=None,
    reason: str = '',
    notes: str = '',
    department: str = '',
    payment_id=None,
) -> tuple[Appointment, str]:
    """Book ``doctor`` for ``patient``; return the appointment and its ICS invitation."""
    at_time = parse_time(at_time)
    _check_not_past(on_date, at_time)
    location = None
    try:
        with transaction.atomic():
            User.objects.select_for_update().filter(pk=doctor.pk).first()
            payment = _payment_for(patient, payment_id)
            slot = _locate_slot(doctor, on_date, at_time, schedule_id)
            _ensure_free(doctor, on_date, at_time)
            if slot is not None:
                _claim(slot, claimants={actor.id, patient.id})
            appointment = Appointment.objects.create(
                patient=patient,
                doctor=doctor,
                date=on_date,
                time=at_time,
                department=department or (slot.schedule.department if slot else '') or doctor.department,
                reason=clean_text(reason),
                notes=clean_text(notes),
                payment=payment,
                created_by=actor,
            )
            if slot is not None:
                _mark_booked(slot, appointment)
                location = slot.schedule.location
    except IntegrityError as exc:
        logger.warning('Booking for doctor %s at %s %s lost the race', doctor.id, on_date, at_time)
        raise SlotConflict() from exc

    notify(
        recipient=patient,
        sender=actor,
        title='Appointment Confirmed',
        message=(
            f"Your appointment with Dr. {doctor.get_full_name()} on {on_date.isoformat()} "
            f"at {at_time} has been confirmed."
        ),
        metadata={'appointmentId': appointment.id},
    )
    log_action(
        user=actor,
        action='CREATE_APPOINTMENT',
        resource='Appointment',
        resource_id=appointment.id,
        details=f"Booked doctor {doctor.id} for patient {patient.id} on {on_date} {at_time}",
    )
    logger.info('Appointment %s booked for doctor %s at %s %s', appointment.id, doctor.id, on_date, at_time)
    return appointment, build_ics(appointment, location=location)


def update_appointment(appointment_id, *, actor: User, data: dict) -> Appointment:
    """Change status, reschedule or edit notes under the booking rules."""
    new_status = data.get('status')
    new_date = data.get('date')
    new_time = parse_time(data['time']) if data.get('time') else None
    previous_status = None
    try:
        with transaction.atomic():
            appointment = get_object_or_404(
                Appointment.objects.select_for_update().select_related('patient', 'doctor'), id=appointment_id
            )
            ensure_party(
                actor,
                patient_id=appointment.patient_id,
                doctor_id=appointment.doctor_id,
                message='Not authorized to update this appointment',
            )
            previous_status = appointment.status
            if actor.role == User.ROLE_PATIENT and new_status and new_status != Appointment.STATUS_CANCELLED:
                raise PermissionDenied('Patients can only cancel their appointments')
            moving = bool(
                (new_date and new_date != appointment.date) or (new_time and new_time != appointment.time)
            )
            if (new_status and new_status != appointment.status) or moving:
                if appointment.status != Appointment.STATUS_SCHEDULED:
                    raise ValidationError(f'Cannot modify a {appointment.status} appointment')

            if moving:
                target_date = new_date or appointment.date
                target_time = new_time or appointment.time
                _check_not_past(target_date, target_time)
                User.objects.select_for_update().filter(pk=appointment.doctor_id).first()
                slot = _locate_slot(appointment.doctor, target_date, target_time)
                _ensure_free(appointment.doctor, target_date, target_time, exclude_id=appointment.id)
                if slot is not None:
                    _claim(slot, claimants={actor.id, appointment.patient_id})
                free_slot(appointment)
                appointment.date, appointment.time = target_date, target_time
                if slot is not None:
                    _mark_booked(slot, appointment)

            if new_status:
                appointment.status = new_status
            for field in ('notes', 'reason', 'department'):
                if field in data:
                    setattr(appointment, field, clean_text(data[field]))
            appointment.save()
            if appointment.status == Appointment.STATUS_CANCELLED:
                free_slot(appointment)
    except IntegrityError as exc:
        raise SlotConflict() from exc

    cancelled = previous_status == Appointment.STATUS_SCHEDULED and appointment.status == Appointment.STATUS_CANCELLED
    log_action(
        user=actor,
        action='CANCEL_APPOINTMENT' if cancelled else 'UPDATE_APPOINTMENT',
        resource='Appointment',
        resource_id=appointment.id,
        details=f"Status {previous_status} -> {appointment.status}",
    )
    if cancelled:
        waitlist_service.notify_opening(appointment)
        if actor.id != appointment.patient_id:
            notify(
                recipient=appointment.patient,
                sender=actor,
                title='Appointment Cancelled',
                message=(
                    f"Your appointment with Dr. {appointment.doctor.get_full_name()} on "
                    f"{appointment.date.isoformat()} at {appointment.time} has been cancelled."
                ),
                priority='High',
                metadata={'appointmentId': appointment.id},
            )
    return appointment


def delete_appointment(appointment_id, *, actor: User) -> None:
    with transaction.atomic():
        appointment = get_object_or_404(
            Appointment.objects.select_for_update().select_related('doctor'), id=appointment_id
        )
        was_scheduled = appointment.status == Appointment.STATUS_SCHEDULED
        free_slot(appointment)
        snapshot = Appointment(id=appointment.id, doctor=appointment.doctor, date=appointment.date, time=appointment.time)
        appointment.delete()
    log_action(user=actor, action='CANCEL_APPOINTMENT', resource='Appointment', resource_id=snapshot.id,
               details='Appointment deleted')
    if was_scheduled:
        waitlist_service.notify_opening(snapshot)


def ics_for(appointment: Appointment) -> str:
    slot = ScheduleSlot.objects.select_related('schedule').filter(appointment=appointment).first()
    return build_ics(appointment, location=slot.schedule.location if slot else None)
