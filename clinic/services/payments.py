"""
Payment records.

The gateway itself lives outside this service: ``execute`` records the
confirmation identifiers the client obtained from the gateway and
``fail`` records a gateway rejection.
"""
from __future__ import annotations

import logging
import uuid
from decimal import Decimal
from typing import Optional

from django.db import transaction
from django.shortcuts import get_object_or_404
from rest_framework.exceptions import PermissionDenied, ValidationError

from clinic.models import Appointment, Notification, Payment, User
from clinic.services.common import clean_text, is_staff_or_admin
from clinic.services.notifications import notify

logger = logging.getLogger(__name__)


def create_payment(
    *,
    user: User,
    amount: Decimal,
    method: str = 'PayPal',
    currency: str = 'USD',
    description: str = '',
    appointment_id=None,
    metadata: Optional[dict] = None,
) -> Payment:
    if amount is None or amount <= 0:
        raise ValidationError('Amount must be greater than zero')
    meta = dict(metadata or {})
    if appointment_id:
        if not Appointment.objects.filter(id=appointment_id, patient=user).exists():
            raise ValidationError('Invalid appointment ID')
        meta['appointmentId'] = int(appointment_id)
    payment = Payment.objects.create(
        user=user,
        amount=amount,
        method=method,
        currency=(currency or 'USD').upper(),
        description=clean_text(description),
        gateway_payment_id=f"PAY-{uuid.uuid4().hex[:20].upper()}",
        metadata=meta,
    )
    logger.info('Payment %s created for user %s (%s %s)', payment.id, user.id, payment.amount, payment.currency)
    return payment


def _locked_owned(payment_id, user: User) -> Payment:
    payment = get_object_or_404(Payment.objects.select_for_update(), id=payment_id)
    if payment.user_id != user.id:
        raise PermissionDenied('Not authorized to modify this payment')
    return payment


@transaction.atomic
def execute(*, user: User, payment_id, payer_id: str) -> Payment:
    if not payment_id or not payer_id:
        raise ValidationError('paymentId and payerId are required')
    payment = _locked_owned(payment_id, user)
    if payment.status != Payment.STATUS_PENDING:
        raise ValidationError(f'Payment is {payment.status}, not Pending')
    payment.status = Payment.STATUS_COMPLETED
    payment.payer_id = payer_id
    payment.failure_reason = ''
    payment.save()
    return payment


@transaction.atomic
def fail(payment_id, *, user: User, reason: str = '') -> Payment:
    payment = _locked_owned(payment_id, user)
    if payment.status != Payment.STATUS_PENDING:
        raise ValidationError(f'Payment is {payment.status}, not Pending')
    payment.status = Payment.STATUS_FAILED
    payment.failure_reason = clean_text(reason) or 'Payment was declined'
    payment.save()
    notify(
        recipient=payment.user,
        type=Notification.TYPE_PAYMENT_FAILED,
        title='Payment Failed',
        message=f"Your payment of {payment.amount} {payment.currency} failed: {payment.failure_reason}",
        priority='High',
        payment=payment,
    )
    logger.warning('Payment %s failed: %s', payment.id, payment.failure_reason)
    return payment


@transaction.atomic
def retry(payment_id, *, user: User) -> Payment:
    payment = _locked_owned(payment_id, user)
    if payment.status != Payment.STATUS_FAILED:
        raise ValidationError('Only failed payments can be retried')
    payment.status = Payment.STATUS_PENDING
    payment.gateway_payment_id = f"PAY-{uuid.uuid4().hex[:20].upper()}"
    payment.save()
    return payment


@transaction.atomic
def pay_alternate(*, user: User, payment_id, method: str) -> Payment:
    if method not in ('Card', 'Cash'):
        raise ValidationError('Alternate method must be Card or Cash')
    payment = _locked_owned(payment_id, user)
    if payment.status not in (Payment.STATUS_PENDING, Payment.STATUS_FAILED):
        raise ValidationError(f'Payment is {payment.status}')
    payment.method = method
    payment.status = Payment.STATUS_COMPLETED
    payment.failure_reason = ''
    payment.save()
    return payment


@transaction.atomic
def refund(payment_id, *, reason: str = '') -> Payment:
    payment = get_object_or_404(Payment.objects.select_for_update(), id=payment_id)
    if payment.status != Payment.STATUS_COMPLETED:
        raise ValidationError('Only completed payments can be refunded')
    payment.status = Payment.STATUS_REFUNDED
    payment.metadata = {**payment.metadata, 'refundReason': clean_text(reason)}
    payment.save()
    logger.info('Payment %s refunded', payment.id)
    return payment


def get_for_user(payment_id, user: User) -> Payment:
    payment = get_object_or_404(Payment, id=payment_id)
    if payment.user_id != user.id and not is_staff_or_admin(user):
        raise PermissionDenied('Not authorized to view this payment')
    return payment


def list_all(*, status: Optional[str] = None, user_id=None):
    qs = Payment.objects.select_related('user')
    if status:
        qs = qs.filter(status=status)
    if user_id:
        qs = qs.filter(user_id=user_id)
    return qs
