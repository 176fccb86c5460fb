"""Payment endpoints."""
from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated

from ..models import Payment, User
from ..permissions import IsStaffOrAdmin
from ..responses import success
from ..serializers.payments import (
    AlternatePaymentSerializer, PaymentCreateSerializer, PaymentExecuteSerializer, PaymentFailSerializer,
    PaymentFilterSerializer, payment_dict,
)
from ..services import payments as payment_service


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def create_payment(request):
    user: User = request.user  # type: ignore[assignment]
    s = PaymentCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    payment = payment_service.create_payment(
        user=user,
        amount=vd['amount'],
        method=vd['method'],
        currency=vd['currency'],
        description=vd.get('description', ''),
        appointment_id=vd.get('appointmentId'),
    )
    return success(payment_dict(payment), status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def execute_payment(request):
    user: User = request.user  # type: ignore[assignment]
    s = PaymentExecuteSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    payment = payment_service.execute(
        user=user, payment_id=s.validated_data['paymentId'], payer_id=s.validated_data['payerId'],
    )
    return success(payment_dict(payment))


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def fail_payment(request, payment_id: int):
    user: User = request.user  # type: ignore[assignment]
    s = PaymentFailSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    payment = payment_service.fail(payment_id, user=user, reason=s.validated_data.get('reason', ''))
    return success(payment_dict(payment))


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def retry_payment(request, payment_id: int):
    user: User = request.user  # type: ignore[assignment]
    return success(payment_dict(payment_service.retry(payment_id, user=user)))


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def alternate_payment(request):
    user: User = request.user  # type: ignore[assignment]
    s = AlternatePaymentSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    payment = payment_service.pay_alternate(
        user=user, payment_id=s.validated_data['paymentId'], method=s.validated_data['method'],
    )
    return success(payment_dict(payment))


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def my_payments(request):
    user: User = request.user  # type: ignore[assignment]
    return success([payment_dict(p) for p in Payment.objects.filter(user=user)])


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsStaffOrAdmin])
def all_payments(request):
    q = PaymentFilterSerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    qs = payment_service.list_all(
        status=q.validated_data.get('status'),
        user_id=q.validated_data.get('userId'),
    )
    return success([payment_dict(p) for p in qs])


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def payment_detail(request, payment_id: int):
    user: User = request.user  # type: ignore[assignment]
    return success(payment_dict(payment_service.get_for_user(payment_id, user)))


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsStaffOrAdmin])
def refund_payment(request, payment_id: int):
    s = PaymentFailSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    return success(payment_dict(payment_service.refund(payment_id, reason=s.validated_data.get('reason', ''))))
