"""
Laboratory order workflow.

Orders move forward only through :data:`LAB_TRANSITIONS`; the single
backwards edge is recollection after a rejected sample. Every change
locks the order row.
"""
from __future__ import annotations

import logging
from typing import Any, Optional

from django.db import transaction
from django.db.models import Case, IntegerField, Value, When
from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework.exceptions import PermissionDenied, ValidationError

from clinic.models import LabOrder, Notification, User
from clinic.services.audit import log_action
from clinic.services.common import clean_text, ensure_party, get_patient
from clinic.services.notifications import notify

logger = logging.getLogger(__name__)

LAB_TRANSITIONS = {
    LabOrder.STATUS_ORDERED: [LabOrder.STATUS_SAMPLE_COLLECTED, LabOrder.STATUS_CANCELLED],
    LabOrder.STATUS_SAMPLE_COLLECTED: [
        LabOrder.STATUS_PROCESSING,
        LabOrder.STATUS_COMPLETED,
        LabOrder.STATUS_SAMPLE_REJECTED,
        LabOrder.STATUS_CANCELLED,
    ],
    LabOrder.STATUS_PROCESSING: [LabOrder.STATUS_COMPLETED, LabOrder.STATUS_CANCELLED],
    LabOrder.STATUS_SAMPLE_REJECTED: [LabOrder.STATUS_SAMPLE_COLLECTED],
    LabOrder.STATUS_COMPLETED: [],
    LabOrder.STATUS_CANCELLED: [],
}

PENDING_STATUSES = [
    LabOrder.STATUS_ORDERED,
    LabOrder.STATUS_SAMPLE_COLLECTED,
    LabOrder.STATUS_PROCESSING,
]


def can_transition(current: str, new: str) -> bool:
    """Return True if a lab order may move from ``current`` to ``new``."""
    return new in LAB_TRANSITIONS.get(current, [])


def _advance(order: LabOrder, new_status: str) -> None:
    if not can_transition(order.status, new_status):
        raise ValidationError(f'Cannot change lab order from {order.status} to {new_status}')
    order.status = new_status


def _locked(order_id) -> LabOrder:
    return get_object_or_404(LabOrder.objects.select_for_update().select_related('patient', 'doctor'), id=order_id)


def create_order(
    *,
    doctor: User,
    patient_id,
    test_type: str,
    priority: str = LabOrder.PRIORITY_ROUTINE,
    clinical_notes: str = '',
    notes: str = '',
    sample_type: str = '',
) -> LabOrder:
    patient = get_patient(patient_id)
    order = LabOrder.objects.create(
        patient=patient,
        doctor=doctor,
        test_type=clean_text(test_type),
        priority=priority,
        clinical_notes=clean_text(clinical_notes),
        notes=clean_text(notes),
        sample_type=clean_text(sample_type),
    )
    log_action(user=doctor, action='CREATE_LAB_ORDER', resource='LabOrder', resource_id=order.id,
               details=f"{order.test_type} ({order.priority}) for patient {patient.id}")
    return order


def _priority_rank():
    return Case(
        When(priority=LabOrder.PRIORITY_STAT, then=Value(1)),
        When(priority=LabOrder.PRIORITY_URGENT, then=Value(2)),
        default=Value(3),
        output_field=IntegerField(),
    )


def pending_queue(*, status: Optional[str] = None, priority: Optional[str] = None):
    qs = LabOrder.objects.select_related('patient', 'doctor')
    qs = qs.filter(status=status) if status else qs.filter(status__in=PENDING_STATUSES)
    if priority:
        qs = qs.filter(priority=priority)
    return qs.annotate(priority_rank=_priority_rank()).order_by('priority_rank', 'created_at')


def list_orders(*, status: Optional[str] = None, priority: Optional[str] = None, patient_id=None, doctor_id=None):
    qs = LabOrder.objects.select_related('patient', 'doctor')
    if status:
        qs = qs.filter(status=status)
    if priority:
        qs = qs.filter(priority=priority)
    if patient_id:
        qs = qs.filter(patient_id=patient_id)
    if doctor_id:
        qs = qs.filter(doctor_id=doctor_id)
    return qs


def get_for_user(order_id, user: User) -> LabOrder:
    order = get_object_or_404(LabOrder.objects.select_related('patient', 'doctor'), id=order_id)
    ensure_party(user, patient_id=order.patient_id, doctor_id=order.doctor_id,
                 message='Not authorized to view this lab order')
    return order


@transaction.atomic
def collect_sample(order_id, *, user: User, sample_type: str = '', collection_method: str = '',
                   quality: str = 'Good') -> LabOrder:
    order = _locked(order_id)
    _advance(order, LabOrder.STATUS_SAMPLE_COLLECTED)
    order.sample_type = clean_text(sample_type) or order.sample_type
    order.collection_method = clean_text(collection_method)
    order.sample_quality = quality or 'Good'
    order.sample_collected_by = user
    order.sample_collected_at = timezone.now()
    order.rejection_reason = ''
    order.save()
    return order


@transaction.atomic
def reject_sample(order_id, *, user: User, reason: str, quality: str) -> LabOrder:
    if not (reason or '').strip():
        raise ValidationError('Rejection reason is required')
    if quality not in ('Poor', 'Contaminated', 'Insufficient'):
        raise ValidationError('Sample quality must be Poor, Contaminated or Insufficient')
    order = _locked(order_id)
    _advance(order, LabOrder.STATUS_SAMPLE_REJECTED)
    order.sample_quality = quality
    order.rejection_reason = clean_text(reason)
    order.rejected_by = user
    order.rejected_at = timezone.now()
    order.save()
    notify(
        recipient=order.doctor,
        sender=user,
        title='Lab Sample Rejected',
        message=f"The {order.test_type} sample for {order.patient.get_full_name()} was rejected: {order.rejection_reason}",
        priority='High',
        metadata={'labOrderId': order.id},
    )
    return order


@transaction.atomic
def record_results(
    order_id,
    *,
    user: User,
    results: Any,
    status: str = LabOrder.STATUS_COMPLETED,
    is_critical: bool = False,
    critical_message: str = '',
    interpretation: str = '',
    notes: str = '',
) -> LabOrder:
    """Store results verbatim and advance to Completed (or Processing for partial results)."""
    if results in (None, '', [], {}):
        raise ValidationError('Results are required')
    if status not in (LabOrder.STATUS_COMPLETED, LabOrder.STATUS_PROCESSING):
        raise ValidationError('Status must be Completed or Processing')
    order = _locked(order_id)
    if order.status != status:
        _advance(order, status)
    elif status != LabOrder.STATUS_PROCESSING:
        raise ValidationError(f'Cannot change lab order from {order.status} to {status}')
    now = timezone.now()
    order.results = results
    if notes:
        order.notes = clean_text(notes)
    if interpretation:
        order.interpretation = clean_text(interpretation)
        order.interpreted_at = now
    if status == LabOrder.STATUS_COMPLETED:
        order.completed_by = user
        order.completed_at = now
    newly_critical = bool(is_critical) and not order.is_critical
    if newly_critical:
        order.is_critical = True
        order.critical_flagged_at = now
        order.critical_message = clean_text(critical_message) or f"Critical values in {order.test_type}"
    order.save()

    if newly_critical:
        logger.warning('Critical lab result on order %s', order.id)
        notify(
            recipient=order.doctor,
            sender=user,
            type=Notification.TYPE_LAB_CRITICAL,
            title='Critical Lab Result',
            message=f"{order.test_type} for {order.patient.get_full_name()}: {order.critical_message}",
            priority='Urgent',
            metadata={'labOrderId': order.id},
        )
    if status == LabOrder.STATUS_COMPLETED:
        notify(
            recipient=order.patient,
            sender=user,
            type=Notification.TYPE_LAB_RESULT,
            title='Lab Results Ready',
            message=f"Your {order.test_type} results are ready.",
            metadata={'labOrderId': order.id},
        )
        order.notification_sent = True
        order.notification_sent_at = now
        order.save(update_fields=['notification_sent', 'notification_sent_at', 'updated_at'])
    log_action(user=user, action='UPDATE_LAB_ORDER', resource='LabOrder', resource_id=order.id,
               details=f"Results recorded, status {order.status}")
    return order


@transaction.atomic
def add_interpretation(order_id, *, user: User, interpretation: str, follow_up_actions: str = '') -> LabOrder:
    if not (interpretation or '').strip():
        raise ValidationError('Interpretation is required')
    order = _locked(order_id)
    if order.doctor_id != user.id and user.role != User.ROLE_ADMIN:
        raise PermissionDenied('Only the ordering doctor can interpret this order')
    if order.status != LabOrder.STATUS_COMPLETED:
        raise ValidationError('Results must be completed before interpretation')
    order.interpretation = clean_text(interpretation)
    order.follow_up_actions = clean_text(follow_up_actions)
    order.interpreted_at = timezone.now()
    order.save()
    return order


@transaction.atomic
def acknowledge_critical(order_id, *, user: User) -> LabOrder:
    order = _locked(order_id)
    if not order.is_critical:
        raise ValidationError('Lab order has no critical alert')
    if order.critical_acknowledged_at:
        raise ValidationError('Critical alert already acknowledged')
    order.critical_acknowledged_by = user
    order.critical_acknowledged_at = timezone.now()
    order.save()
    return order


@transaction.atomic
def change_status(order_id, *, user: User, status: str, notes: str = '') -> LabOrder:
    order = _locked(order_id)
    _advance(order, status)
    now = timezone.now()
    if status == LabOrder.STATUS_SAMPLE_COLLECTED:
        order.sample_collected_by = user
        order.sample_collected_at = now
    elif status == LabOrder.STATUS_COMPLETED:
        if not order.results:
            raise ValidationError('Results are required to complete a lab order')
        order.completed_by = user
        order.completed_at = now
    if notes:
        order.notes = clean_text(notes)
    order.save()
    return order
