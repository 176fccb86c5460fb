from __future__ import annotations

from rest_framework import serializers

from clinic.models import Appointment
from clinic.serializers import iso
from clinic.serializers.auth import user_brief


class AppointmentCreateSerializer(serializers.Serializer):
    doctorId = serializers.IntegerField()
    patientId = serializers.IntegerField(required=False)
    date = serializers.DateField()
    time = serializers.CharField(max_length=5)
    scheduleId = serializers.IntegerField(required=False, allow_null=True)
    reason = serializers.CharField(required=False, allow_blank=True)
    notes = serializers.CharField(required=False, allow_blank=True)
    department = serializers.CharField(required=False, allow_blank=True, max_length=100)
    paymentId = serializers.IntegerField(required=False, allow_null=True)


class AppointmentUpdateSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=[c[0] for c in Appointment.STATUS_CHOICES], required=False)
    date = serializers.DateField(required=False)
    time = serializers.CharField(required=False, max_length=5)
    notes = serializers.CharField(required=False, allow_blank=True)
    reason = serializers.CharField(required=False, allow_blank=True)
    department = serializers.CharField(required=False, allow_blank=True, max_length=100)


class AppointmentFilterSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=[c[0] for c in Appointment.STATUS_CHOICES], required=False)
    date = serializers.DateField(required=False)
    doctorId = serializers.IntegerField(required=False)
    patientId = serializers.IntegerField(required=False)


def appointment_dict(appointment: Appointment) -> dict:
    return {
        'id': appointment.id,
        'patient': user_brief(appointment.patient),
        'doctor': user_brief(appointment.doctor),
        'date': iso(appointment.date),
        'time': appointment.time,
        'status': appointment.status,
        'department': appointment.department,
        'reason': appointment.reason,
        'notes': appointment.notes,
        'paymentId': appointment.payment_id,
        'createdBy': appointment.created_by_id,
        'createdAt': iso(appointment.created_at),
        'updatedAt': iso(appointment.updated_at),
    }
