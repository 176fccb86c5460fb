"""Waitlist endpoints."""
from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated

from ..models import User
from ..permissions import IsPatientRole, IsStaffOrAdmin
from ..responses import success
from ..serializers.waitlist import (
    WaitlistCreateSerializer, WaitlistFulfillSerializer, WaitlistNotifySerializer, waitlist_dict,
)
from ..services import waitlist as waitlist_service


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsPatientRole])
def join_waitlist(request):
    user: User = request.user  # type: ignore[assignment]
    s = WaitlistCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    entry = waitlist_service.join(
        patient=user,
        doctor_id=vd['doctorId'],
        preferred_date=vd['preferredDate'],
        alternative_dates=vd.get('alternativeDates', []),
        department=vd.get('department', ''),
        reason=vd.get('reason', ''),
        priority=vd['priority'],
    )
    return success(waitlist_dict(entry), status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def my_waitlist(request):
    user: User = request.user  # type: ignore[assignment]
    return success([waitlist_dict(e) for e in waitlist_service.for_patient(user)])


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsStaffOrAdmin])
def doctor_waitlist(request, doctor_id: int):
    qs = waitlist_service.for_doctor(doctor_id, status=request.query_params.get('status') or None)
    return success([waitlist_dict(e) for e in qs])


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsStaffOrAdmin])
def notify_waitlist(request, entry_id: int):
    user: User = request.user  # type: ignore[assignment]
    s = WaitlistNotifySerializer(data=request.data)
    s.is_valid(raise_exception=True)
    entry = waitlist_service.notify_entry(entry_id, sender=user, message=s.validated_data.get('message', ''))
    return success(waitlist_dict(entry))


@api_view(['PUT'])
@permission_classes([IsAuthenticated, IsStaffOrAdmin])
def fulfill_waitlist(request, entry_id: int):
    s = WaitlistFulfillSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    entry = waitlist_service.fulfill(entry_id, appointment_id=s.validated_data['appointmentId'])
    return success(waitlist_dict(entry))


@api_view(['DELETE'])
@permission_classes([IsAuthenticated])
def cancel_waitlist(request, entry_id: int):
    user: User = request.user  # type: ignore[assignment]
    entry = waitlist_service.cancel(entry_id, user=user)
    return success(waitlist_dict(entry))
