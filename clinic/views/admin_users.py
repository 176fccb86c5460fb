"""
Administrator endpoints: staff account management, user statistics and
the audit trail.
"""
from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import ValidationError
from rest_framework.permissions import IsAuthenticated

from ..models import AuditLog, User
from ..permissions import IsAdminRole
from ..responses import success
from ..serializers import iso
from ..serializers.auth import user_dict
from ..serializers.users import (
    AdminUserCreateSerializer, AdminUserUpdateSerializer, AuditLogQuerySerializer, UserListQuerySerializer,
)
from ..services import audit as audit_service
from ..services import users as users_service


def audit_dict(entry: AuditLog) -> dict:
    return {
        'id': entry.id,
        'userId': entry.user_id,
        'userRole': entry.user_role,
        'action': entry.action,
        'resource': entry.resource,
        'resourceId': entry.resource_id,
        'details': entry.details,
        'metadata': entry.metadata,
        'ipAddress': entry.ip_address,
        'userAgent': entry.user_agent,
        'status': entry.status,
        'errorMessage': entry.error_message or None,
        'timestamp': iso(entry.created_at),
    }


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsAdminRole])
def admin_users(request):
    user: User = request.user  # type: ignore[assignment]
    if request.method == 'GET':
        q = UserListQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)
        vd = q.validated_data
        result = users_service.list_users(
            role=vd.get('role'), specialization=vd.get('specialization') or None, page=vd['page'], limit=vd['limit'],
        )
        return success({
            'users': [user_dict(u) for u in result['users']],
            'pagination': result['pagination'],
        })

    s = AdminUserCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = dict(s.validated_data)
    created = users_service.create_staff(
        actor=user, email=vd.pop('email'), password=vd.pop('password'), name=vd.pop('name'), **vd,
    )
    return success(user_dict(created), status=status.HTTP_201_CREATED)


@api_view(['PUT', 'DELETE'])
@permission_classes([IsAuthenticated, IsAdminRole])
def admin_user_detail(request, user_id: int):
    user: User = request.user  # type: ignore[assignment]
    if request.method == 'DELETE':
        users_service.delete_user(user_id, actor=user)
        return success({'message': 'User deleted successfully'})

    s = AdminUserUpdateSerializer(data=request.data, partial=True)
    s.is_valid(raise_exception=True)
    updated = users_service.update_user(user_id, actor=user, data=dict(s.validated_data))
    return success(user_dict(updated))


@api_view(['PATCH'])
@permission_classes([IsAuthenticated, IsAdminRole])
def admin_user_status(request, user_id: int):
    user: User = request.user  # type: ignore[assignment]
    if 'isActive' not in request.data:
        raise ValidationError('isActive is required')
    updated = users_service.set_active(user_id, actor=user, is_active=request.data['isActive'])
    return success(user_dict(updated))


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminRole])
def user_stats(request):
    return success(users_service.stats())


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminRole])
def audit_logs(request):
    q = AuditLogQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    vd = q.validated_data
    logs = audit_service.list_logs(
        action=vd.get('action') or None,
        resource=vd.get('resource') or None,
        user_id=vd.get('userId'),
        limit=vd['limit'],
    )
    return success([audit_dict(e) for e in logs])
