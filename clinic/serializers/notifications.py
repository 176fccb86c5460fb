from __future__ import annotations

from clinic.models import Notification
from clinic.serializers import iso
from clinic.serializers.auth import user_brief


def notification_dict(notification: Notification) -> dict:
    return {
        'id': notification.id,
        'type': notification.type,
        'title': notification.title,
        'message': notification.message,
        'sender': user_brief(notification.sender),
        'relatedPrescriptionId': notification.related_prescription_id,
        'relatedPaymentId': notification.related_payment_id,
        'metadata': notification.metadata,
        'status': notification.status,
        'priority': notification.priority,
        'readAt': iso(notification.read_at),
        'createdAt': iso(notification.created_at),
    }
