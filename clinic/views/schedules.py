"""
Doctor schedule endpoints: publishing working days, the public
availability search and slot hold/release/block operations.
"""
from __future__ import annotations

from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import PermissionDenied
from rest_framework.permissions import AllowAny, IsAuthenticated

from ..models import User
from ..permissions import IsAdminRole, IsStaffOrAdmin
from ..responses import success
from ..serializers.schedules import (
    AvailabilityQuerySerializer, BlockSlotsSerializer, ScheduleFilterSerializer, ScheduleUpsertSerializer,
    SlotActionSerializer, schedule_dict, slot_dict,
)
from ..services import scheduling


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsStaffOrAdmin])
def schedules(request):
    if request.method == 'GET':
        q = ScheduleFilterSerializer(data=request.query_params)
        q.is_valid(raise_exception=True)
        qs = scheduling.list_schedules(
            on_date=q.validated_data.get('date'),
            doctor_id=q.validated_data.get('doctorId'),
            department=q.validated_data.get('department') or None,
        )
        now = timezone.now()
        return success([schedule_dict(s, now=now) for s in qs])

    s = ScheduleUpsertSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    times = vd.get('slots') or scheduling.generate_times(vd['startTime'], vd['endTime'], vd['intervalMinutes'])
    schedule, created = scheduling.upsert_schedule(
        doctor=scheduling.get_doctor(vd['doctorId']),
        on_date=vd['date'],
        times=times,
        location=vd.get('location', ''),
        department=vd.get('department', ''),
        is_active=vd['isActive'],
        notes=vd.get('notes', ''),
    )
    return success(
        schedule_dict(schedule),
        status=status.HTTP_201_CREATED if created else status.HTTP_200_OK,
    )


@api_view(['GET'])
@permission_classes([AllowAny])
def available_schedules(request):
    """Public search for bookable slots. Defaults to today onwards."""
    s = AvailabilityQuerySerializer(data=request.query_params)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    results = scheduling.list_available(
        doctor_id=vd.get('doctorId'),
        department=vd.get('department'),
        specialization=vd.get('specialization'),
        start_date=vd.get('startDate'),
        end_date=vd.get('endDate'),
    )
    data = []
    for schedule, open_slots in results:
        item = schedule_dict(schedule, slots=open_slots)
        item['availableSlots'] = item.pop('slots')
        data.append(item)
    return success(data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def doctor_schedules(request, doctor_id: int):
    qs = scheduling.list_schedules(doctor_id=doctor_id).filter(date__gte=timezone.localdate())
    now = timezone.now()
    return success([schedule_dict(s, now=now) for s in qs])


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def hold_slot(request):
    user: User = request.user  # type: ignore[assignment]
    s = SlotActionSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    slot = scheduling.hold_slot(user=user, schedule_id=vd['scheduleId'], at_time=vd['time'], minutes=vd.get('minutes'))
    return success({
        'scheduleId': slot.schedule_id,
        'slot': slot_dict(slot),
        'holdUntil': slot.held_until.isoformat(),
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def release_slot(request):
    user: User = request.user  # type: ignore[assignment]
    s = SlotActionSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    slot = scheduling.release_slot(user=user, schedule_id=vd['scheduleId'], at_time=vd['time'])
    return success({'message': 'Slot released successfully', 'slot': slot_dict(slot)})


@api_view(['PUT', 'DELETE'])
@permission_classes([IsAuthenticated, IsStaffOrAdmin])
def schedule_detail(request, schedule_id: int):
    if request.method == 'DELETE':
        if not IsAdminRole().has_permission(request, None):
            raise PermissionDenied('Only administrators can delete schedules')
        scheduling.delete_schedule(schedule_id)
        return success({'message': 'Schedule deleted'})

    s = BlockSlotsSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    schedule = scheduling.set_blocked(schedule_id, s.validated_data['times'], block=s.validated_data['block'])
    return success(schedule_dict(schedule))
