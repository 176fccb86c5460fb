"""Versioned profile endpoints (``/api/v1/profile``)."""
from __future__ import annotations

from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated

from ..models import User
from ..responses import success
from ..serializers.appointments import appointment_dict
from ..serializers.auth import PasswordChangeSerializer, user_dict
from ..serializers.users import ProfileUpdateSerializer
from ..services import profile as profile_service


def _profile(user: User) -> dict:
    role_data = profile_service.role_data(user)
    if 'recentAppointments' in role_data:
        role_data['recentAppointments'] = [appointment_dict(a) for a in role_data['recentAppointments']]
    return {**user_dict(user), 'roleData': role_data}


@api_view(['GET', 'PUT'])
@permission_classes([IsAuthenticated])
def profile(request):
    user: User = request.user  # type: ignore[assignment]
    if request.method == 'PUT':
        s = ProfileUpdateSerializer(data=request.data, partial=True)
        s.is_valid(raise_exception=True)
        profile_service.update_profile(user, dict(s.validated_data))
    return success(_profile(user))


@api_view(['PUT'])
@permission_classes([IsAuthenticated])
def profile_password(request):
    user: User = request.user  # type: ignore[assignment]
    s = PasswordChangeSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    profile_service.change_password(
        user,
        current_password=s.validated_data['currentPassword'],
        new_password=s.validated_data['newPassword'],
    )
    return success({'message': 'Password updated successfully'})
