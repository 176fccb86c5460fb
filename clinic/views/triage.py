"""
Emergency department endpoints: patient verification, triage records
and bed management. Every write is recorded in the audit log.
"""
from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated

from ..models import User
from ..permissions import IsStaffOrAdmin
from ..responses import success
from ..serializers.appointments import appointment_dict
from ..serializers.labs import lab_dict
from ..serializers.prescriptions import prescription_dict
from ..serializers.triage import (
    BedAssignSerializer, BedSerializer, BedUpdateSerializer, TriageSerializer, VerifyPatientSerializer,
    bed_dict, patient_dict, triage_dict,
)
from ..services import triage as triage_service


def _triage_fields(validated: dict) -> dict:
    data = dict(validated)
    data.pop('patientId', None)
    data.update(data.pop('vitals', None) or {})
    return data


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsStaffOrAdmin])
def verify_patient(request):
    user: User = request.user  # type: ignore[assignment]
    s = VerifyPatientSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    patient = triage_service.verify_patient(
        user=user,
        card_id=s.validated_data.get('digitalHealthCardId') or None,
        patient_id=s.validated_data.get('patientId'),
        request=request,
    )
    return success({'patient': patient_dict(patient), 'verified': True})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsStaffOrAdmin])
def patient_history(request, patient_id: int):
    user: User = request.user  # type: ignore[assignment]
    result = triage_service.patient_history(patient_id, user=user, request=request)
    history = result['medicalHistory']
    return success({
        'patient': patient_dict(result['patient']),
        'medicalHistory': {
            'appointments': [appointment_dict(a) for a in history['appointments']],
            'triageRecords': [triage_dict(t) for t in history['triageRecords']],
            'labOrders': [lab_dict(o) for o in history['labOrders']],
            'prescriptions': [prescription_dict(p) for p in history['prescriptions']],
        },
    })


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsStaffOrAdmin])
def triage_list(request):
    user: User = request.user  # type: ignore[assignment]
    if request.method == 'GET':
        qs = triage_service.queue(
            admission_status=request.query_params.get('admissionStatus') or None,
            severity=request.query_params.get('severityLevel') or None,
        )
        return success([triage_dict(r) for r in qs])

    s = TriageSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    record = triage_service.create_record(
        user=user,
        patient_id=s.validated_data['patientId'],
        data=_triage_fields(s.validated_data),
        request=request,
    )
    return success(triage_dict(record), status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT'])
@permission_classes([IsAuthenticated, IsStaffOrAdmin])
def triage_detail(request, record_id: int):
    user: User = request.user  # type: ignore[assignment]
    if request.method == 'GET':
        return success(triage_dict(triage_service.get_record(record_id)))

    s = TriageSerializer(data=request.data, partial=True)
    s.is_valid(raise_exception=True)
    record = triage_service.update_record(record_id, user=user, data=_triage_fields(s.validated_data), request=request)
    return success(triage_dict(record))


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsStaffOrAdmin])
def beds(request):
    if request.method == 'GET':
        qs = triage_service.list_beds(
            status=request.query_params.get('status') or None,
            ward=request.query_params.get('ward') or None,
        )
        return success([bed_dict(b) for b in qs])

    s = BedSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    bed = triage_service.create_bed(
        bed_number=vd['bedNumber'], ward=vd['ward'], status=vd['status'], notes=vd.get('notes', ''),
    )
    return success(bed_dict(bed), status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT'])
@permission_classes([IsAuthenticated, IsStaffOrAdmin])
def bed_detail(request, bed_id: int):
    if request.method == 'GET':
        return success(bed_dict(triage_service.get_bed(bed_id)))

    s = BedUpdateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    return success(bed_dict(triage_service.update_bed(bed_id, dict(s.validated_data))))


@api_view(['PUT'])
@permission_classes([IsAuthenticated, IsStaffOrAdmin])
def assign_bed(request):
    user: User = request.user  # type: ignore[assignment]
    s = BedAssignSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    bed, record = triage_service.assign_bed(
        user=user,
        bed_id=vd['bedId'],
        patient_id=vd['patientId'],
        triage_record_id=vd.get('triageRecordId'),
        notify_doctor_id=vd.get('notifyDoctorId'),
        request=request,
    )
    return success({'bed': bed_dict(bed), 'triageRecord': triage_dict(record) if record else None})


@api_view(['PUT'])
@permission_classes([IsAuthenticated, IsStaffOrAdmin])
def release_bed(request, bed_id: int):
    user: User = request.user  # type: ignore[assignment]
    return success(bed_dict(triage_service.release_bed(bed_id, user=user, request=request)))
