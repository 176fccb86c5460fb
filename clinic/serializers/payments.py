from __future__ import annotations

from decimal import Decimal

from rest_framework import serializers

from clinic.models import Payment
from clinic.serializers import iso

METHODS = [c[0] for c in Payment.METHOD_CHOICES]


class PaymentCreateSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=Decimal('0.01'))
    method = serializers.ChoiceField(choices=METHODS, required=False, default='PayPal')
    currency = serializers.CharField(required=False, max_length=3, default='USD')
    description = serializers.CharField(required=False, allow_blank=True, max_length=255)
    appointmentId = serializers.IntegerField(required=False, allow_null=True)


class PaymentExecuteSerializer(serializers.Serializer):
    paymentId = serializers.IntegerField()
    payerId = serializers.CharField(max_length=255)


class PaymentFailSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True)


class PaymentFilterSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=[c[0] for c in Payment.STATUS_CHOICES], required=False)
    userId = serializers.IntegerField(required=False)


class AlternatePaymentSerializer(serializers.Serializer):
    paymentId = serializers.IntegerField()
    method = serializers.ChoiceField(choices=['Card', 'Cash'])


def payment_dict(payment: Payment) -> dict:
    return {
        'id': payment.id,
        'userId': payment.user_id,
        'amount': str(payment.amount),
        'currency': payment.currency,
        'method': payment.method,
        'status': payment.status,
        'gatewayPaymentId': payment.gateway_payment_id,
        'payerId': payment.payer_id or None,
        'description': payment.description,
        'failureReason': payment.failure_reason or None,
        'metadata': payment.metadata,
        'createdAt': iso(payment.created_at),
        'updatedAt': iso(payment.updated_at),
    }
