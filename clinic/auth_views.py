"""
Authentication views.

E-mail/password login issuing SimpleJWT access and refresh tokens,
patient self-registration, token refresh, logout (refresh-token
blacklisting) and the ``me`` endpoints. Kept apart from
``clinic.authentication`` so DRF can import the authentication class
without pulling in views.
"""
from __future__ import annotations

from django.contrib.auth.models import update_last_login
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes, throttle_classes
from rest_framework.exceptions import AuthenticationFailed, ValidationError
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework_simplejwt.exceptions import InvalidToken, TokenError
from rest_framework_simplejwt.serializers import TokenRefreshSerializer
from rest_framework_simplejwt.token_blacklist.models import BlacklistedToken, OutstandingToken
from rest_framework_simplejwt.tokens import RefreshToken

from clinic.models import AuditLog, User
from clinic.responses import success
from clinic.serializers.auth import (
    LoginSerializer, LogoutSerializer, MeUpdateSerializer, PasswordChangeSerializer, RegisterSerializer, user_dict,
)
from clinic.services import profile as profile_service
from clinic.services import users as users_service
from clinic.services.audit import log_action
from clinic.throttles import LoginRateThrottle, RegisterRateThrottle


def token_payload(user: User) -> dict:
    refresh = RefreshToken.for_user(user)
    return {
        'token': str(refresh.access_token),
        'refresh': str(refresh),
        'user': user_dict(user),
    }


@api_view(['POST'])
@permission_classes([AllowAny])
@throttle_classes([LoginRateThrottle])
def login_view(request):
    """Log in with e-mail and password.

    Unknown e-mail and wrong password share one message so the endpoint
    does not reveal which accounts exist.
    """
    s = LoginSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    email = s.validated_data['email']
    password = s.validated_data['password']

    user = User.objects.filter(email__iexact=email).first()
    if user is None or not user.check_password(password):
        log_action(user=user, action='LOGIN', resource='User', resource_id=getattr(user, 'id', None),
                   status=AuditLog.STATUS_FAILURE, error_message='Invalid credentials',
                   metadata={'email': email}, request=request)
        raise AuthenticationFailed('Invalid credentials')
    if not user.is_active:
        log_action(user=user, action='LOGIN', resource='User', resource_id=user.id,
                   status=AuditLog.STATUS_FAILURE, error_message='Account is deactivated', request=request)
        raise AuthenticationFailed('Account is deactivated')

    log_action(user=user, action='LOGIN', resource='User', resource_id=user.id, request=request)
    update_last_login(None, user)
    return success(token_payload(user))


@api_view(['POST'])
@permission_classes([AllowAny])
@throttle_classes([RegisterRateThrottle])
def register_view(request):
    s = RegisterSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = dict(s.validated_data)
    user = users_service.register(
        email=vd.pop('email'),
        password=vd.pop('password'),
        name=vd.pop('name'),
        role=vd.pop('role', User.ROLE_PATIENT),
        **vd,
    )
    return success(token_payload(user), status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([AllowAny])
def refresh_view(request):
    s = TokenRefreshSerializer(data=request.data)
    try:
        s.is_valid(raise_exception=True)
    except TokenError as e:
        raise InvalidToken(e.args[0])
    return success({'token': s.validated_data['access'], 'refresh': s.validated_data.get('refresh')})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def logout_view(request):
    """Blacklist the given refresh token, or every outstanding token of the user."""
    user: User = request.user  # type: ignore[assignment]
    s = LogoutSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    raw = s.validated_data.get('refresh')
    if raw:
        try:
            token = RefreshToken(raw)
        except TokenError as e:
            raise ValidationError(str(e))
        if str(token.payload.get('user_id')) != str(user.id):
            raise ValidationError('Token does not belong to this user')
        token.blacklist()
    else:
        for outstanding in OutstandingToken.objects.filter(user=user):
            BlacklistedToken.objects.get_or_create(token=outstanding)
    log_action(user=user, action='LOGOUT', resource='User', resource_id=user.id, request=request)
    return success({'message': 'Logged out successfully'})


@api_view(['GET', 'PUT'])
@permission_classes([IsAuthenticated])
def me_view(request):
    user: User = request.user  # type: ignore[assignment]
    if request.method == 'PUT':
        s = MeUpdateSerializer(data=request.data, partial=True)
        s.is_valid(raise_exception=True)
        profile_service.update_profile(user, dict(s.validated_data))
    return success(user_dict(user))


@api_view(['PUT'])
@permission_classes([IsAuthenticated])
def update_password_view(request):
    user: User = request.user  # type: ignore[assignment]
    s = PasswordChangeSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    profile_service.change_password(
        user,
        current_password=s.validated_data['currentPassword'],
        new_password=s.validated_data['newPassword'],
    )
    return success(token_payload(user))
