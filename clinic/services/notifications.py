"""
Notification creation, delivery and inbox management.

Notifications are stored first and pushed to the recipient's channel
group (``user.<id>``) once the surrounding transaction commits, so a
rolled-back workflow never announces anything.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, Optional

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.db import transaction
from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework.exceptions import PermissionDenied

from clinic.models import EPrescription, Notification, Payment, User

logger = logging.getLogger(__name__)


def user_group(user_id: int) -> str:
    return f"user.{user_id}"


def _push(notification: Notification) -> None:
    channel_layer = get_channel_layer()
    if channel_layer is None:
        return
    payload = {
        "type": "notification.message",
        "id": notification.id,
        "notificationType": notification.type,
        "title": notification.title,
        "message": notification.message,
        "priority": notification.priority,
        "createdAt": notification.created_at.isoformat(),
    }
    try:
        async_to_sync(channel_layer.group_send)(user_group(notification.recipient_id), payload)
    except Exception:
        logger.exception('Realtime delivery failed for notification %s', notification.id)


def notify(
    *,
    recipient: User,
    title: str,
    message: str,
    type: str = Notification.TYPE_GENERAL,
    priority: str = 'Medium',
    sender: Optional[User] = None,
    prescription: Optional[EPrescription] = None,
    payment: Optional[Payment] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> Notification:
    notification = Notification.objects.create(
        recipient=recipient,
        sender=sender if sender is not None and sender.pk else None,
        type=type,
        title=title,
        message=message,
        priority=priority,
        related_prescription=prescription,
        related_payment=payment,
        metadata=metadata or {},
    )
    logger.info('Notification %s (%s) queued for user %s', notification.id, type, recipient.id)
    transaction.on_commit(lambda: _push(notification))
    return notification


def notify_many(recipients: Iterable[User], **kwargs) -> list[Notification]:
    return [notify(recipient=r, **kwargs) for r in recipients]


def inbox(user: User, *, status: Optional[str] = None, type: Optional[str] = None):
    qs = Notification.objects.filter(recipient=user).select_related('sender')
    if status:
        qs = qs.filter(status=status)
    if type:
        qs = qs.filter(type=type)
    return qs


def unread_count(user: User) -> int:
    return Notification.objects.filter(recipient=user, status=Notification.STATUS_UNREAD).count()


def mark_all_read(user: User) -> int:
    return Notification.objects.filter(recipient=user, status=Notification.STATUS_UNREAD).update(
        status=Notification.STATUS_READ, read_at=timezone.now()
    )


def get_for_user(notification_id: int, user: User, *, allow_admin: bool = True) -> Notification:
    notification = get_object_or_404(Notification.objects.select_related('sender'), id=notification_id)
    if notification.recipient_id == user.id:
        return notification
    if allow_admin and user.role == User.ROLE_ADMIN:
        return notification
    raise PermissionDenied('Not authorized to access this notification')


def mark_read(notification_id: int, user: User) -> Notification:
    notification = get_for_user(notification_id, user, allow_admin=False)
    if notification.status == Notification.STATUS_UNREAD:
        notification.status = Notification.STATUS_READ
        notification.read_at = timezone.now()
        notification.save(update_fields=['status', 'read_at'])
    return notification
