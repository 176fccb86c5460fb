from __future__ import annotations

from rest_framework import serializers

from clinic.models import DoctorSchedule, ScheduleSlot
from clinic.serializers import iso
from clinic.serializers.auth import user_brief


class ScheduleUpsertSerializer(serializers.Serializer):
    """Either an explicit ``slots`` list or a ``startTime``/``endTime`` range."""
    doctorId = serializers.IntegerField()
    date = serializers.DateField()
    slots = serializers.ListField(child=serializers.CharField(max_length=5), required=False, allow_empty=False)
    startTime = serializers.CharField(required=False, max_length=5)
    endTime = serializers.CharField(required=False, max_length=5)
    intervalMinutes = serializers.IntegerField(required=False, min_value=5, max_value=240, default=30)
    location = serializers.CharField(required=False, allow_blank=True, max_length=255)
    department = serializers.CharField(required=False, allow_blank=True, max_length=100)
    isActive = serializers.BooleanField(required=False, default=True)
    notes = serializers.CharField(required=False, allow_blank=True)

    def validate(self, attrs):
        if not attrs.get('slots') and not (attrs.get('startTime') and attrs.get('endTime')):
            raise serializers.ValidationError('Provide slots or startTime and endTime')
        return attrs


class SlotActionSerializer(serializers.Serializer):
    scheduleId = serializers.IntegerField()
    time = serializers.CharField(max_length=5)
    minutes = serializers.IntegerField(required=False, min_value=1)


class BlockSlotsSerializer(serializers.Serializer):
    times = serializers.ListField(child=serializers.CharField(max_length=5), allow_empty=False)
    block = serializers.BooleanField()


class ScheduleFilterSerializer(serializers.Serializer):
    date = serializers.DateField(required=False)
    doctorId = serializers.IntegerField(required=False)
    department = serializers.CharField(required=False, allow_blank=True)


class AvailabilityQuerySerializer(serializers.Serializer):
    doctorId = serializers.IntegerField(required=False)
    department = serializers.CharField(required=False, allow_blank=True)
    specialization = serializers.CharField(required=False, allow_blank=True)
    startDate = serializers.DateField(required=False)
    endDate = serializers.DateField(required=False)


def slot_dict(slot: ScheduleSlot, *, now=None) -> dict:
    expired = slot.hold_expired(now)
    return {
        'time': slot.time,
        'status': ScheduleSlot.STATUS_AVAILABLE if expired else slot.status,
        'heldBy': None if expired else slot.held_by_id,
        'holdUntil': None if expired else iso(slot.held_until),
        'appointmentId': slot.appointment_id,
    }


def schedule_dict(schedule: DoctorSchedule, *, slots=None, now=None) -> dict:
    slots = schedule.slots.all() if slots is None else slots
    return {
        'id': schedule.id,
        'doctor': user_brief(schedule.doctor),
        'date': iso(schedule.date),
        'location': schedule.location,
        'department': schedule.department,
        'isActive': schedule.is_active,
        'notes': schedule.notes,
        'slots': [slot_dict(s, now=now) for s in slots],
    }
