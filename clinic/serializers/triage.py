from __future__ import annotations

from rest_framework import serializers

from clinic.models import Bed, TriageRecord
from clinic.serializers import iso
from clinic.serializers.auth import user_brief, user_dict


class VerifyPatientSerializer(serializers.Serializer):
    digitalHealthCardId = serializers.CharField(required=False, allow_blank=True)
    patientId = serializers.IntegerField(required=False)

    def validate(self, attrs):
        if not attrs.get('digitalHealthCardId') and not attrs.get('patientId'):
            raise serializers.ValidationError('digitalHealthCardId or patientId is required')
        return attrs


class VitalsSerializer(serializers.Serializer):
    bp = serializers.CharField(source='blood_pressure', max_length=20)
    hr = serializers.IntegerField(source='heart_rate', min_value=0, max_value=300)
    temp = serializers.DecimalField(source='temperature', max_digits=4, decimal_places=1)
    respiratoryRate = serializers.IntegerField(source='respiratory_rate', required=False, allow_null=True,
                                               min_value=0, max_value=100)
    oxygenSaturation = serializers.IntegerField(source='oxygen_saturation', required=False, allow_null=True,
                                                min_value=0, max_value=100)


class TriageSerializer(serializers.Serializer):
    patientId = serializers.IntegerField()
    vitals = VitalsSerializer()
    symptoms = serializers.CharField()
    severityLevel = serializers.ChoiceField(source='severity_level', choices=[c[0] for c in TriageRecord.SEVERITY_CHOICES])
    admissionStatus = serializers.ChoiceField(source='admission_status', required=False,
                                              choices=[c[0] for c in TriageRecord.ADMISSION_CHOICES])
    notes = serializers.CharField(required=False, allow_blank=True)


class BedSerializer(serializers.Serializer):
    bedNumber = serializers.CharField(max_length=20)
    ward = serializers.CharField(max_length=100)
    status = serializers.ChoiceField(choices=[c[0] for c in Bed.STATUS_CHOICES], required=False, default=Bed.STATUS_VACANT)
    notes = serializers.CharField(required=False, allow_blank=True)


class BedUpdateSerializer(serializers.Serializer):
    ward = serializers.CharField(required=False, max_length=100)
    status = serializers.ChoiceField(choices=[c[0] for c in Bed.STATUS_CHOICES], required=False)
    notes = serializers.CharField(required=False, allow_blank=True)


class BedAssignSerializer(serializers.Serializer):
    bedId = serializers.IntegerField()
    patientId = serializers.IntegerField()
    triageRecordId = serializers.IntegerField(required=False, allow_null=True)
    notifyDoctorId = serializers.IntegerField(required=False, allow_null=True)


def bed_dict(bed: Bed) -> dict:
    return {
        'id': bed.id,
        'bedNumber': bed.bed_number,
        'ward': bed.ward,
        'status': bed.status,
        'currentPatient': user_brief(bed.current_patient),
        'assignedDate': iso(bed.assigned_date),
        'notes': bed.notes,
    }


def triage_dict(record: TriageRecord) -> dict:
    return {
        'id': record.id,
        'patient': user_brief(record.patient),
        'vitals': {
            'bp': record.blood_pressure,
            'hr': record.heart_rate,
            'temp': float(record.temperature),
            'respiratoryRate': record.respiratory_rate,
            'oxygenSaturation': record.oxygen_saturation,
        },
        'symptoms': record.symptoms,
        'severityLevel': record.severity_level,
        'admissionStatus': record.admission_status,
        'assignedBed': bed_dict(record.assigned_bed) if record.assigned_bed_id else None,
        'notes': record.notes,
        'createdBy': record.created_by_id,
        'createdAt': iso(record.created_at),
        'updatedAt': iso(record.updated_at),
    }


def patient_dict(patient) -> dict:
    data = user_dict(patient)
    data.pop('licenseNumber', None)
    data.pop('specialization', None)
    return data
