from __future__ import annotations

from rest_framework import serializers

from clinic.models import Waitlist
from clinic.serializers import iso
from clinic.serializers.auth import user_brief


class WaitlistCreateSerializer(serializers.Serializer):
    doctorId = serializers.IntegerField()
    preferredDate = serializers.DateField()
    alternativeDates = serializers.ListField(child=serializers.DateField(), required=False, default=list)
    department = serializers.CharField(required=False, allow_blank=True, max_length=100)
    reason = serializers.CharField(required=False, allow_blank=True)
    priority = serializers.ChoiceField(choices=[c[0] for c in Waitlist.PRIORITY_CHOICES], required=False, default='Normal')


class WaitlistNotifySerializer(serializers.Serializer):
    message = serializers.CharField(required=False, allow_blank=True)


class WaitlistFulfillSerializer(serializers.Serializer):
    appointmentId = serializers.IntegerField()


def waitlist_dict(entry: Waitlist) -> dict:
    return {
        'id': entry.id,
        'patient': user_brief(entry.patient),
        'doctor': user_brief(entry.doctor),
        'preferredDate': iso(entry.preferred_date),
        'alternativeDates': entry.alternative_dates,
        'department': entry.department,
        'reason': entry.reason,
        'priority': entry.priority,
        'status': entry.status,
        'notificationsSent': entry.notifications_sent,
        'lastNotifiedAt': iso(entry.last_notified_at),
        'fulfilledAppointmentId': entry.fulfilled_appointment_id,
        'expiresAt': iso(entry.expires_at),
        'createdAt': iso(entry.created_at),
    }
