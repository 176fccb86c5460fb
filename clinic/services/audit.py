from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from django.db import DatabaseError, transaction

from clinic.models import AuditLog, User

logger = logging.getLogger(__name__)


def _client_ip(request) -> Optional[str]:
    if request is None:
        return None
    forwarded = request.META.get('HTTP_X_FORWARDED_FOR', '')
    if forwarded:
        return forwarded.split(',')[0].strip() or None
    return request.META.get('REMOTE_ADDR') or None


def log_action(
    *,
    user: Optional[User],
    action: str,
    resource: str,
    resource_id: Any = None,
    details: str = '',
    metadata: Optional[Dict[str, Any]] = None,
    status: str = AuditLog.STATUS_SUCCESS,
    error_message: str = '',
    request=None,
) -> Optional[AuditLog]:
    """Write an audit entry.

    The write runs in its own savepoint so a failure here never poisons
    the caller's transaction; such failures are logged and ``None`` is
    returned.
    """
    actor = user if isinstance(user, User) and user.pk else None
    try:
        with transaction.atomic():
            return AuditLog.objects.create(
                user=actor,
                user_role=getattr(actor, 'role', '') or '',
                action=action,
                resource=resource,
                resource_id='' if resource_id is None else str(resource_id),
                details=details,
                metadata=metadata or {},
                ip_address=_client_ip(request),
                user_agent=(request.META.get('HTTP_USER_AGENT', '') if request is not None else '')[:255],
                status=status,
                error_message=error_message,
            )
    except DatabaseError:
        logger.exception('Failed to write audit entry %s on %s', action, resource)
        return None


def list_logs(*, action: Optional[str] = None, resource: Optional[str] = None, user_id=None, limit: int = 100):
    qs = AuditLog.objects.select_related('user')
    if action:
        qs = qs.filter(action=action)
    if resource:
        qs = qs.filter(resource=resource)
    if user_id:
        qs = qs.filter(user_id=user_id)
    return qs[:min(500, max(1, int(limit or 100)))]
