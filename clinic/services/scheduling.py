"""
Doctor schedules and slot state.

A slot is ``Available``, ``Held``, ``Booked`` or ``Blocked``. Holds carry
an expiry; an expired hold counts as Available for both holding and
booking even before :func:`release_expired_holds` resets it. Every
mutation locks the slot row inside a transaction.
"""
from __future__ import annotations

import logging
import re
from datetime import date, datetime, timedelta
from typing import Iterable, Optional

from django.conf import settings
from django.db import transaction
from django.db.models import Q
from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework.exceptions import NotFound, PermissionDenied, ValidationError

from clinic.exceptions import SlotConflict
from clinic.models import DoctorSchedule, ScheduleSlot, User

logger = logging.getLogger(__name__)

TIME_RE = re.compile(r'^([01]\d|2[0-3]):[0-5]\d$')


def parse_time(value) -> str:
    value = (value or '').strip() if isinstance(value, str) else ''
    if not TIME_RE.match(value):
        raise ValidationError('Time must be in HH:MM format')
    return value


def generate_times(start: str, end: str, interval_minutes: int = 30) -> list[str]:
    """Return ``HH:MM`` times from ``start`` (inclusive) to ``end`` (exclusive)."""
    start, end = parse_time(start), parse_time(end)
    if interval_minutes <= 0:
        raise ValidationError('Interval must be positive')
    current = datetime.strptime(start, '%H:%M')
    stop = datetime.strptime(end, '%H:%M')
    if current >= stop:
        raise ValidationError('End time must be after start time')
    times = []
    while current < stop:
        times.append(current.strftime('%H:%M'))
        current += timedelta(minutes=interval_minutes)
    return times


def get_doctor(doctor_id) -> User:
    doctor = User.objects.filter(id=doctor_id, role=User.ROLE_STAFF, is_active=True).first() if doctor_id else None
    if doctor is None or not doctor.specialization:
        raise ValidationError('Invalid doctor ID')
    return doctor


def hold_minutes(requested=None) -> int:
    minutes = int(requested or settings.SLOT_HOLD_MINUTES)
    return min(settings.SLOT_HOLD_MAX_MINUTES, max(1, minutes))


@transaction.atomic
def upsert_schedule(
    *,
    doctor: User,
    on_date: date,
    times: Iterable[str],
    location: str = '',
    department: str = '',
    is_active: bool = True,
    notes: str = '',
) -> tuple[DoctorSchedule, bool]:
    """Create or replace the doctor's schedule for ``on_date``.

    Booked slots always survive a replace; other slots missing from
    ``times`` are removed.
    """
    wanted = {parse_time(t) for t in times}
    if not wanted:
        raise ValidationError('At least one slot time is required')
    schedule = DoctorSchedule.objects.select_for_update().filter(doctor=doctor, date=on_date).first()
    created = schedule is None
    if created:
        schedule = DoctorSchedule.objects.create(
            doctor=doctor,
            date=on_date,
            location=location or settings.CLINIC_LOCATION,
            department=department or doctor.department,
            is_active=is_active,
            notes=notes,
        )
    else:
        schedule.location = location or schedule.location
        schedule.department = department or schedule.department
        schedule.is_active = is_active
        schedule.notes = notes
        schedule.save()

    existing = {s.time: s for s in ScheduleSlot.objects.select_for_update().filter(schedule=schedule)}
    for t, slot in existing.items():
        if t not in wanted and slot.status != ScheduleSlot.STATUS_BOOKED:
            slot.delete()
    ScheduleSlot.objects.bulk_create(
        [ScheduleSlot(schedule=schedule, time=t) for t in sorted(wanted - existing.keys())]
    )
    logger.info('Schedule %s for doctor %s on %s %s', schedule.id, doctor.id, on_date, 'created' if created else 'updated')
    return schedule, created


def list_schedules(*, on_date=None, doctor_id=None, department: Optional[str] = None):
    qs = DoctorSchedule.objects.select_related('doctor').prefetch_related('slots')
    if on_date:
        qs = qs.filter(date=on_date)
    if doctor_id:
        qs = qs.filter(doctor_id=doctor_id)
    if department:
        qs = qs.filter(department__iexact=department)
    return qs.order_by('date', 'doctor__name')


def list_available(
    *,
    doctor_id=None,
    department: Optional[str] = None,
    specialization: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> list[tuple[DoctorSchedule, list[ScheduleSlot]]]:
    """Return active schedules paired with their currently bookable slots."""
    today = timezone.localdate()
    start_date = max(start_date or today, today)
    qs = DoctorSchedule.objects.filter(
        is_active=True, date__gte=start_date, doctor__is_active=True
    ).select_related('doctor').prefetch_related('slots')
    if end_date:
        qs = qs.filter(date__lte=end_date)
    if doctor_id:
        qs = qs.filter(doctor_id=doctor_id)
    if department:
        qs = qs.filter(Q(department__iexact=department) | Q(doctor__department__iexact=department))
    if specialization:
        qs = qs.filter(doctor__specialization__icontains=specialization)

    now = timezone.now()
    current_time = timezone.localtime(now).strftime('%H:%M')
    result = []
    for schedule in qs.order_by('date'):
        open_slots = [
            s for s in schedule.slots.all()
            if s.is_open(now) and not (schedule.date == today and s.time <= current_time)
        ]
        if open_slots:
            result.append((schedule, open_slots))
    return result


def _locked_slot(schedule_id, at_time: str) -> ScheduleSlot:
    slot = (
        ScheduleSlot.objects.select_for_update()
        .select_related('schedule')
        .filter(schedule_id=schedule_id, time=parse_time(at_time))
        .first()
    )
    if slot is None:
        raise NotFound('Slot not found')
    return slot


def hold_slot(*, user: User, schedule_id, at_time: str, minutes=None) -> ScheduleSlot:
    minutes = hold_minutes(minutes)
    get_object_or_404(DoctorSchedule, id=schedule_id)
    with transaction.atomic():
        slot = _locked_slot(schedule_id, at_time)
        if not slot.schedule.is_active:
            raise ValidationError('Schedule is not active')
        now = timezone.now()
        local_now = timezone.localtime(now)
        if slot.schedule.date < local_now.date() or (
            slot.schedule.date == local_now.date() and slot.time <= local_now.strftime('%H:%M')
        ):
            raise ValidationError('Cannot hold a slot in the past')
        if not slot.is_open(now):
            raise SlotConflict('Slot not available')
        slot.status = ScheduleSlot.STATUS_HELD
        slot.held_by = user
        slot.held_until = now + timedelta(minutes=minutes)
        slot.appointment = None
        slot.save(update_fields=['status', 'held_by', 'held_until', 'appointment'])
    logger.info('Slot %s held by user %s until %s', slot.id, user.id, slot.held_until.isoformat())
    return slot


def release_slot(*, user: User, schedule_id, at_time: str) -> ScheduleSlot:
    get_object_or_404(DoctorSchedule, id=schedule_id)
    with transaction.atomic():
        slot = _locked_slot(schedule_id, at_time)
        if slot.status != ScheduleSlot.STATUS_HELD:
            return slot
        if slot.held_by_id != user.id and user.role not in (User.ROLE_STAFF, User.ROLE_ADMIN):
            raise PermissionDenied('Only the holder can release this slot')
        slot.reset()
        slot.save(update_fields=['status', 'held_by', 'held_until', 'appointment'])
    return slot


@transaction.atomic
def set_blocked(schedule_id, times: Iterable[str], *, block: bool) -> DoctorSchedule:
    """Toggle Available slots to Blocked (or back). Other slots are left untouched."""
    schedule = get_object_or_404(DoctorSchedule.objects.select_for_update(), id=schedule_id)
    wanted = {parse_time(t) for t in times}
    source = ScheduleSlot.STATUS_AVAILABLE if block else ScheduleSlot.STATUS_BLOCKED
    target = ScheduleSlot.STATUS_BLOCKED if block else ScheduleSlot.STATUS_AVAILABLE
    ScheduleSlot.objects.filter(schedule=schedule, time__in=wanted, status=source).update(status=target)
    return schedule


@transaction.atomic
def delete_schedule(schedule_id) -> None:
    schedule = get_object_or_404(DoctorSchedule.objects.select_for_update(), id=schedule_id)
    if schedule.slots.filter(status=ScheduleSlot.STATUS_BOOKED).exists():
        raise ValidationError('Cannot delete a schedule with booked appointments')
    schedule.delete()


def release_expired_holds(now: Optional[datetime] = None) -> int:
    now = now or timezone.now()
    released = ScheduleSlot.objects.filter(status=ScheduleSlot.STATUS_HELD).filter(
        Q(held_until__lt=now) | Q(held_until__isnull=True)
    ).update(status=ScheduleSlot.STATUS_AVAILABLE, held_by=None, held_until=None)
    if released:
        logger.info('Released %s expired slot holds', released)
    return released
