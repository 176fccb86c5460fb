"""Patient and staff directories for clinical staff."""
from __future__ import annotations

from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated

from ..models import User
from ..permissions import IsStaffOrAdmin
from ..responses import success
from ..serializers.auth import user_dict
from ..services import users as users_service


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsStaffOrAdmin])
def patients(request):
    qs = users_service.directory(User.ROLE_PATIENT, search=request.query_params.get('search', ''))
    return success([user_dict(u) for u in qs])


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsStaffOrAdmin])
def staff(request):
    qs = users_service.directory(User.ROLE_STAFF, search=request.query_params.get('search', ''))
    return success([user_dict(u) for u in qs])
