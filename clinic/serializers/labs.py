from __future__ import annotations

from rest_framework import serializers

from clinic.models import LabOrder
from clinic.serializers import iso
from clinic.serializers.auth import user_brief

LAB_STATUSES = [c[0] for c in LabOrder.STATUS_CHOICES]


class LabOrderCreateSerializer(serializers.Serializer):
    patientId = serializers.IntegerField()
    testType = serializers.CharField(max_length=255)
    priority = serializers.ChoiceField(choices=[c[0] for c in LabOrder.PRIORITY_CHOICES], required=False,
                                       default=LabOrder.PRIORITY_ROUTINE)
    clinicalNotes = serializers.CharField(required=False, allow_blank=True)
    notes = serializers.CharField(required=False, allow_blank=True)
    sampleType = serializers.CharField(required=False, allow_blank=True, max_length=100)


class CollectSampleSerializer(serializers.Serializer):
    sampleType = serializers.CharField(required=False, allow_blank=True, max_length=100)
    collectionMethod = serializers.CharField(required=False, allow_blank=True, max_length=100)
    quality = serializers.ChoiceField(choices=[c[0] for c in LabOrder.QUALITY_CHOICES], required=False, default='Good')


class RejectSampleSerializer(serializers.Serializer):
    reason = serializers.CharField()
    quality = serializers.ChoiceField(choices=['Poor', 'Contaminated', 'Insufficient'])


class LabResultsSerializer(serializers.Serializer):
    results = serializers.JSONField()
    status = serializers.ChoiceField(choices=[LabOrder.STATUS_COMPLETED, LabOrder.STATUS_PROCESSING],
                                     required=False, default=LabOrder.STATUS_COMPLETED)
    isCritical = serializers.BooleanField(required=False, default=False)
    criticalMessage = serializers.CharField(required=False, allow_blank=True)
    interpretation = serializers.CharField(required=False, allow_blank=True)
    notes = serializers.CharField(required=False, allow_blank=True)


class InterpretationSerializer(serializers.Serializer):
    interpretation = serializers.CharField()
    followUpActions = serializers.CharField(required=False, allow_blank=True)


class LabStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=LAB_STATUSES)
    notes = serializers.CharField(required=False, allow_blank=True)


class LabFilterSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=LAB_STATUSES, required=False)
    priority = serializers.ChoiceField(choices=[c[0] for c in LabOrder.PRIORITY_CHOICES], required=False)
    patientId = serializers.IntegerField(required=False)
    doctorId = serializers.IntegerField(required=False)


def lab_dict(order: LabOrder) -> dict:
    return {
        'id': order.id,
        'patient': user_brief(order.patient),
        'doctor': user_brief(order.doctor),
        'testType': order.test_type,
        'status': order.status,
        'priority': order.priority,
        'results': order.results,
        'clinicalNotes': order.clinical_notes,
        'notes': order.notes,
        'sample': {
            'type': order.sample_type,
            'collectionMethod': order.collection_method,
            'quality': order.sample_quality or None,
            'collectedBy': order.sample_collected_by_id,
            'collectedAt': iso(order.sample_collected_at),
            'rejectionReason': order.rejection_reason or None,
            'rejectedBy': order.rejected_by_id,
            'rejectedAt': iso(order.rejected_at),
        },
        'criticalAlert': {
            'isCritical': order.is_critical,
            'flaggedAt': iso(order.critical_flagged_at),
            'message': order.critical_message or None,
            'acknowledgedBy': order.critical_acknowledged_by_id,
            'acknowledgedAt': iso(order.critical_acknowledged_at),
        },
        'doctorInterpretation': {
            'interpretation': order.interpretation or None,
            'followUpActions': order.follow_up_actions or None,
            'interpretedAt': iso(order.interpreted_at),
        },
        'notificationSent': order.notification_sent,
        'completedBy': order.completed_by_id,
        'completedAt': iso(order.completed_at),
        'createdAt': iso(order.created_at),
        'updatedAt': iso(order.updated_at),
    }
