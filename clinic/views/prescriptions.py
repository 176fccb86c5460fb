"""
E-prescription endpoints.

Doctors write prescriptions; pharmacists check stock, ask for
clarification, suggest alternatives and dispense. A partial dispense
answers 206 Partial Content with the unavailable items listed.
"""
from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import PermissionDenied
from rest_framework.permissions import IsAuthenticated

from ..models import User
from ..permissions import IsStaffOrAdmin
from ..responses import success
from ..serializers.auth import user_brief
from ..serializers.prescriptions import (
    ClarificationResponseSerializer, ClarifySerializer, DispenseSerializer, PrescriptionCreateSerializer,
    PrescriptionFilterSerializer, PrescriptionStatusSerializer, SuggestAlternativeSerializer, prescription_dict,
)
from ..services import prescriptions as rx_service
from ..services.common import is_staff_or_admin


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsStaffOrAdmin])
def create_prescription(request):
    user: User = request.user  # type: ignore[assignment]
    s = PrescriptionCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    rx = rx_service.create_prescription(
        doctor=user,
        patient_id=vd['patientId'],
        medications=[dict(m) for m in vd['medications']],
        notes=vd.get('notes', ''),
        refills_remaining=vd['refillsRemaining'],
    )
    return success(prescription_dict(rx), status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsStaffOrAdmin])
def pending_prescriptions(request):
    return success([prescription_dict(p) for p in rx_service.pending()])


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsStaffOrAdmin])
def all_prescriptions(request):
    q = PrescriptionFilterSerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    qs = rx_service.list_all(
        status=q.validated_data.get('status'),
        patient_id=q.validated_data.get('patientId'),
        doctor_id=q.validated_data.get('doctorId'),
    )
    return success([prescription_dict(p) for p in qs])


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsStaffOrAdmin])
def my_written_prescriptions(request):
    user: User = request.user  # type: ignore[assignment]
    return success([prescription_dict(p) for p in rx_service.list_all(doctor_id=user.id)])


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def patient_prescriptions(request, patient_id: int):
    user: User = request.user  # type: ignore[assignment]
    if user.id != patient_id and not is_staff_or_admin(user):
        raise PermissionDenied('Not authorized to view these prescriptions')
    return success([prescription_dict(p) for p in rx_service.list_all(patient_id=patient_id)])


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsStaffOrAdmin])
def search_patients(request):
    patients = rx_service.search_patients(request.query_params.get('search', ''))
    return success([user_brief(p) for p in patients])


@api_view(['GET', 'PUT'])
@permission_classes([IsAuthenticated])
def prescription_detail(request, prescription_id: int):
    user: User = request.user  # type: ignore[assignment]
    if request.method == 'GET':
        return success(prescription_dict(rx_service.get_for_user(prescription_id, user)))

    if not is_staff_or_admin(user):
        raise PermissionDenied('Only staff or administrators can update prescriptions')
    s = PrescriptionStatusSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    rx = rx_service.update_status(
        prescription_id, user=user, status=s.validated_data['status'], notes=s.validated_data.get('notes', ''),
    )
    return success(prescription_dict(rx))


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsStaffOrAdmin])
def check_inventory(request, prescription_id: int):
    user: User = request.user  # type: ignore[assignment]
    return success(rx_service.check_inventory(prescription_id, user=user))


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsStaffOrAdmin])
def request_clarification(request, prescription_id: int):
    user: User = request.user  # type: ignore[assignment]
    s = ClarifySerializer(data=request.data)
    s.is_valid(raise_exception=True)
    rx = rx_service.request_clarification(prescription_id, user=user, reason=s.validated_data['reason'])
    return success(prescription_dict(rx))


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsStaffOrAdmin])
def respond_clarification(request, prescription_id: int):
    user: User = request.user  # type: ignore[assignment]
    s = ClarificationResponseSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    rx = rx_service.respond_clarification(prescription_id, user=user, response=s.validated_data['response'])
    return success(prescription_dict(rx))


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsStaffOrAdmin])
def suggest_alternative(request, prescription_id: int):
    user: User = request.user  # type: ignore[assignment]
    s = SuggestAlternativeSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    rx = rx_service.suggest_alternative(
        prescription_id,
        user=user,
        medication_name=vd['medicationName'],
        alternatives=vd['alternatives'],
        reason=vd.get('reason', ''),
    )
    return success(prescription_dict(rx))


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsStaffOrAdmin])
def dispense_prescription(request, prescription_id: int):
    user: User = request.user  # type: ignore[assignment]
    s = DispenseSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    rx, complete = rx_service.dispense(prescription_id, pharmacist=user, payment_id=s.validated_data.get('paymentId'))
    if complete:
        return success(prescription_dict(rx))
    return success(
        {
            **prescription_dict(rx),
            'message': 'Prescription partially dispensed',
        },
        status=status.HTTP_206_PARTIAL_CONTENT,
    )
