"""
Lab order endpoints.

Ordering, sample collection, results and doctor interpretation. Every
status change goes through the transition table in
``clinic.services.labs``; a backwards move answers 400.
"""
from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import PermissionDenied
from rest_framework.permissions import IsAuthenticated

from ..models import User
from ..permissions import IsStaffOrAdmin
from ..responses import success
from ..serializers.labs import (
    CollectSampleSerializer, InterpretationSerializer, LabFilterSerializer, LabOrderCreateSerializer,
    LabResultsSerializer, LabStatusSerializer, RejectSampleSerializer, lab_dict,
)
from ..services import labs as lab_service
from ..services.common import is_staff_or_admin


def _filters(request) -> dict:
    s = LabFilterSerializer(data=request.query_params)
    s.is_valid(raise_exception=True)
    return s.validated_data


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsStaffOrAdmin])
def create_lab_order(request):
    user: User = request.user  # type: ignore[assignment]
    s = LabOrderCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    order = lab_service.create_order(
        doctor=user,
        patient_id=vd['patientId'],
        test_type=vd['testType'],
        priority=vd['priority'],
        clinical_notes=vd.get('clinicalNotes', ''),
        notes=vd.get('notes', ''),
        sample_type=vd.get('sampleType', ''),
    )
    return success(lab_dict(order), status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsStaffOrAdmin])
def pending_lab_orders(request):
    """Work queue for the lab: STAT first, then Urgent, then Routine; oldest first within a priority."""
    vd = _filters(request)
    qs = lab_service.pending_queue(status=vd.get('status'), priority=vd.get('priority'))
    return success([lab_dict(o) for o in qs])


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsStaffOrAdmin])
def all_lab_orders(request):
    vd = _filters(request)
    qs = lab_service.list_orders(
        status=vd.get('status'),
        priority=vd.get('priority'),
        patient_id=vd.get('patientId'),
        doctor_id=vd.get('doctorId'),
    )
    return success([lab_dict(o) for o in qs])


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def lab_order_detail(request, order_id: int):
    user: User = request.user  # type: ignore[assignment]
    return success(lab_dict(lab_service.get_for_user(order_id, user)))


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def patient_lab_orders(request, patient_id: int):
    user: User = request.user  # type: ignore[assignment]
    if user.id != patient_id and not is_staff_or_admin(user):
        raise PermissionDenied('Not authorized to view these lab orders')
    return success([lab_dict(o) for o in lab_service.list_orders(patient_id=patient_id)])


@api_view(['PUT'])
@permission_classes([IsAuthenticated, IsStaffOrAdmin])
def collect_sample(request, order_id: int):
    user: User = request.user  # type: ignore[assignment]
    s = CollectSampleSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    order = lab_service.collect_sample(
        order_id,
        user=user,
        sample_type=vd.get('sampleType', ''),
        collection_method=vd.get('collectionMethod', ''),
        quality=vd['quality'],
    )
    return success(lab_dict(order))


@api_view(['PUT'])
@permission_classes([IsAuthenticated, IsStaffOrAdmin])
def reject_sample(request, order_id: int):
    user: User = request.user  # type: ignore[assignment]
    s = RejectSampleSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    order = lab_service.reject_sample(
        order_id, user=user, reason=s.validated_data['reason'], quality=s.validated_data['quality'],
    )
    return success(lab_dict(order))


@api_view(['PUT'])
@permission_classes([IsAuthenticated, IsStaffOrAdmin])
def lab_results(request, order_id: int):
    user: User = request.user  # type: ignore[assignment]
    s = LabResultsSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    order = lab_service.record_results(
        order_id,
        user=user,
        results=vd['results'],
        status=vd['status'],
        is_critical=vd['isCritical'],
        critical_message=vd.get('criticalMessage', ''),
        interpretation=vd.get('interpretation', ''),
        notes=vd.get('notes', ''),
    )
    return success(lab_dict(order))


@api_view(['PUT'])
@permission_classes([IsAuthenticated, IsStaffOrAdmin])
def lab_interpretation(request, order_id: int):
    user: User = request.user  # type: ignore[assignment]
    s = InterpretationSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    order = lab_service.add_interpretation(
        order_id,
        user=user,
        interpretation=s.validated_data['interpretation'],
        follow_up_actions=s.validated_data.get('followUpActions', ''),
    )
    return success(lab_dict(order))


@api_view(['PUT'])
@permission_classes([IsAuthenticated, IsStaffOrAdmin])
def acknowledge_critical(request, order_id: int):
    user: User = request.user  # type: ignore[assignment]
    return success(lab_dict(lab_service.acknowledge_critical(order_id, user=user)))


@api_view(['PUT'])
@permission_classes([IsAuthenticated, IsStaffOrAdmin])
def lab_status(request, order_id: int):
    user: User = request.user  # type: ignore[assignment]
    s = LabStatusSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    order = lab_service.change_status(
        order_id, user=user, status=s.validated_data['status'], notes=s.validated_data.get('notes', ''),
    )
    return success(lab_dict(order))
