"""Notification inbox endpoints. Live delivery goes through ``clinic.realtime``."""
from __future__ import annotations

from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated

from ..models import User
from ..responses import success
from ..serializers.notifications import notification_dict
from ..services import notifications as notification_service


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def my_notifications(request):
    user: User = request.user  # type: ignore[assignment]
    qs = notification_service.inbox(
        user,
        status=request.query_params.get('status') or None,
        type=request.query_params.get('type') or None,
    )
    return success([notification_dict(n) for n in qs])


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def unread_count(request):
    user: User = request.user  # type: ignore[assignment]
    return success({'count': notification_service.unread_count(user)})


@api_view(['PUT'])
@permission_classes([IsAuthenticated])
def mark_all_read(request):
    user: User = request.user  # type: ignore[assignment]
    return success({'updated': notification_service.mark_all_read(user)})


@api_view(['GET', 'DELETE'])
@permission_classes([IsAuthenticated])
def notification_detail(request, notification_id: int):
    user: User = request.user  # type: ignore[assignment]
    notification = notification_service.get_for_user(notification_id, user)
    if request.method == 'DELETE':
        notification.delete()
        return success({'message': 'Notification deleted'})
    return success(notification_dict(notification))


@api_view(['PUT'])
@permission_classes([IsAuthenticated])
def mark_read(request, notification_id: int):
    user: User = request.user  # type: ignore[assignment]
    return success(notification_dict(notification_service.mark_read(notification_id, user)))
