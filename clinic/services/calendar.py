"""iCalendar (RFC 5545) invitation for a booked appointment."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone as dt_timezone
from typing import Optional

from django.conf import settings

from clinic.models import Appointment


def _escape(text: str) -> str:
    return (
        (text or '')
        .replace('\\', '\\\\')
        .replace(';', '\\;')
        .replace(',', '\\,')
        .replace('\r\n', '\\n')
        .replace('\n', '\\n')
    )


def build_ics(appointment: Appointment, *, location: Optional[str] = None) -> str:
    start = datetime.combine(appointment.date, datetime.strptime(appointment.time, '%H:%M').time())
    end = start + timedelta(minutes=settings.APPOINTMENT_DURATION_MINUTES)
    stamp = datetime.now(dt_timezone.utc).strftime('%Y%m%dT%H%M%SZ')
    doctor_name = appointment.doctor.get_full_name()
    description = f"Appointment with Dr. {doctor_name}"
    if appointment.doctor.specialization:
        description += f" ({appointment.doctor.specialization})"
    if appointment.reason:
        description += f"\nReason: {appointment.reason}"

    lines = [
        'BEGIN:VCALENDAR',
        'VERSION:2.0',
        f'PRODID:-//{settings.CLINIC_NAME}//Appointment//EN',
        'CALSCALE:GREGORIAN',
        'METHOD:REQUEST',
        'BEGIN:VEVENT',
        f'UID:appointment-{appointment.id}@smartcare',
        f'DTSTAMP:{stamp}',
        f"DTSTART:{start.strftime('%Y%m%dT%H%M%S')}",
        f"DTEND:{end.strftime('%Y%m%dT%H%M%S')}",
        f'SUMMARY:{_escape(f"Medical Appointment with Dr. {doctor_name}")}',
        f'DESCRIPTION:{_escape(description)}',
        f'LOCATION:{_escape(location or settings.CLINIC_LOCATION)}',
        'STATUS:CONFIRMED',
        'SEQUENCE:0',
        'BEGIN:VALARM',
        'TRIGGER:-PT1H',
        'ACTION:DISPLAY',
        'DESCRIPTION:Appointment reminder',
        'END:VALARM',
        'END:VEVENT',
        'END:VCALENDAR',
    ]
    return '\r\n'.join(lines) + '\r\n'
