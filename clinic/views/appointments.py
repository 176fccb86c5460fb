"""
Appointment endpoints.

Patients book for themselves; staff and administrators book on behalf
of a patient. Booking returns the appointment together with an
iCalendar invitation. Conflicting bookings answer 409.
"""
from __future__ import annotations

from django.http import HttpResponse
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import PermissionDenied, ValidationError
from rest_framework.permissions import IsAuthenticated

from ..models import User
from ..permissions import IsStaffOrAdmin
from ..responses import success
from ..serializers.appointments import (
    AppointmentCreateSerializer, AppointmentFilterSerializer, AppointmentUpdateSerializer, appointment_dict,
)
from ..services import appointments as appointment_service
from ..services.common import get_patient
from ..services.scheduling import get_doctor


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def create_appointment(request):
    user: User = request.user  # type: ignore[assignment]
    s = AppointmentCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data

    if user.role == User.ROLE_PATIENT:
        patient = user
    elif vd.get('patientId'):
        patient = get_patient(vd['patientId'])
    else:
        raise ValidationError('patientId is required when booking for a patient')

    appointment, ics = appointment_service.book_appointment(
        actor=user,
        patient=patient,
        doctor=get_doctor(vd['doctorId']),
        on_date=vd['date'],
        at_time=vd['time'],
        schedule_id=vd.get('scheduleId'),
        reason=vd.get('reason', ''),
        notes=vd.get('notes', ''),
        department=vd.get('department', ''),
        payment_id=vd.get('paymentId'),
    )
    return success({'appointment': appointment_dict(appointment), 'icsFile': ics}, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def my_appointments(request):
    user: User = request.user  # type: ignore[assignment]
    qs = appointment_service.visible_to(user)
    if request.query_params.get('status'):
        qs = qs.filter(status=request.query_params['status'])
    return success([appointment_dict(a) for a in qs])


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsStaffOrAdmin])
def all_appointments(request):
    s = AppointmentFilterSerializer(data=request.query_params)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    qs = appointment_service.list_all(
        status=vd.get('status'),
        on_date=vd.get('date'),
        doctor_id=vd.get('doctorId'),
        patient_id=vd.get('patientId'),
    )
    return success([appointment_dict(a) for a in qs])


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([IsAuthenticated])
def appointment_detail(request, appointment_id: int):
    user: User = request.user  # type: ignore[assignment]
    if request.method == 'GET':
        return success(appointment_dict(appointment_service.get_for_user(appointment_id, user)))

    if request.method == 'DELETE':
        if not IsStaffOrAdmin().has_permission(request, None):
            raise PermissionDenied('Only staff or administrators can delete appointments')
        appointment_service.delete_appointment(appointment_id, actor=user)
        return success({'message': 'Appointment deleted'})

    s = AppointmentUpdateSerializer(data=request.data, partial=True)
    s.is_valid(raise_exception=True)
    appointment = appointment_service.update_appointment(appointment_id, actor=user, data=dict(s.validated_data))
    return success(appointment_dict(appointment))


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def appointment_ics(request, appointment_id: int):
    user: User = request.user  # type: ignore[assignment]
    appointment = appointment_service.get_for_user(appointment_id, user)
    response = HttpResponse(appointment_service.ics_for(appointment), content_type='text/calendar; charset=utf-8')
    response['Content-Disposition'] = f'attachment; filename="appointment-{appointment.id}.ics"'
    return response
