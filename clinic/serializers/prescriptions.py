from __future__ import annotations

from rest_framework import serializers

from clinic.models import EPrescription
from clinic.serializers import iso
from clinic.serializers.auth import user_brief


class MedicationSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255)
    dosage = serializers.CharField(max_length=100)
    frequency = serializers.CharField(max_length=100)
    duration = serializers.CharField(required=False, allow_blank=True, max_length=100)
    instructions = serializers.CharField(required=False, allow_blank=True)


class PrescriptionCreateSerializer(serializers.Serializer):
    patientId = serializers.IntegerField()
    medications = MedicationSerializer(many=True, allow_empty=False)
    notes = serializers.CharField(required=False, allow_blank=True)
    refillsRemaining = serializers.IntegerField(required=False, min_value=0, default=0)


class PrescriptionFilterSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=[c[0] for c in EPrescription.STATUS_CHOICES], required=False)
    patientId = serializers.IntegerField(required=False)
    doctorId = serializers.IntegerField(required=False)


class PrescriptionStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=[EPrescription.STATUS_REJECTED, EPrescription.STATUS_EXPIRED])
    notes = serializers.CharField(required=False, allow_blank=True)


class ClarifySerializer(serializers.Serializer):
    reason = serializers.CharField()


class ClarificationResponseSerializer(serializers.Serializer):
    response = serializers.CharField()


class SuggestAlternativeSerializer(serializers.Serializer):
    medicationName = serializers.CharField(max_length=255)
    alternatives = serializers.ListField(child=serializers.CharField(max_length=255), allow_empty=False)
    reason = serializers.CharField(required=False, allow_blank=True)


class DispenseSerializer(serializers.Serializer):
    paymentId = serializers.IntegerField(required=False, allow_null=True)


def prescription_dict(prescription: EPrescription) -> dict:
    return {
        'id': prescription.id,
        'patient': user_brief(prescription.patient),
        'doctor': user_brief(prescription.doctor),
        'medications': prescription.medications,
        'status': prescription.status,
        'validatedBy': prescription.validated_by_id,
        'validatedAt': iso(prescription.validated_at),
        'refillsRemaining': prescription.refills_remaining,
        'notes': prescription.notes,
        'clarificationRequest': {
            'reason': prescription.clarification_reason or None,
            'requestedBy': prescription.clarification_requested_by_id,
            'requestedAt': iso(prescription.clarification_requested_at),
            'resolved': prescription.clarification_resolved,
            'response': prescription.clarification_response or None,
        },
        'unavailableMedications': prescription.unavailable_medications,
        'dispensedMedications': prescription.dispensed_medications,
        'paymentId': prescription.payment_id,
        'paymentStatus': prescription.payment_status,
        'expiresAt': iso(prescription.expires_at),
        'createdAt': iso(prescription.created_at),
        'updatedAt': iso(prescription.updated_at),
    }
