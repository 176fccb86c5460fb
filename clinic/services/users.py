"""
Account management: registration, admin user administration and the
staff directory. User statistics are cached and invalidated on every
write made through this module.
"""
from __future__ import annotations

import logging
from typing import Optional

from django.conf import settings
from django.core.cache import cache
from django.db import IntegrityError, transaction
from django.db.models import Count, Q
from django.shortcuts import get_object_or_404
from rest_framework.exceptions import PermissionDenied, ValidationError

from clinic.models import User
from clinic.services.audit import log_action
from clinic.services.common import clean_text, page_params

logger = logging.getLogger(__name__)

STATS_CACHE_KEY = 'clinic:user-stats'

ADMIN_EDITABLE = (
    'name', 'phone', 'department', 'specialization', 'license_number', 'address', 'is_active',
    'gender', 'date_of_birth',
)


def invalidate_stats() -> None:
    cache.delete(STATS_CACHE_KEY)


def _create(*, email: str, password: str, name: str, role: str, **extra) -> User:
    email = (email or '').strip().lower()
    if User.objects.filter(email__iexact=email).exists():
        raise ValidationError('User already exists with this email')
    try:
        with transaction.atomic():
            user = User.objects.create_user(email=email, password=password, name=clean_text(name), role=role, **extra)
    except IntegrityError as exc:
        raise ValidationError('User already exists with this email') from exc
    invalidate_stats()
    return user


def register(*, email: str, password: str, name: str, role: str = User.ROLE_PATIENT, **extra) -> User:
    if role != User.ROLE_PATIENT:
        raise PermissionDenied('Only patient accounts can be self-registered')
    user = _create(email=email, password=password, name=name, role=User.ROLE_PATIENT, **extra)
    logger.info('Registered patient %s', user.id)
    return user


def create_staff(*, actor: User, email: str, password: str, name: str, **extra) -> User:
    user = _create(email=email, password=password, name=name, role=User.ROLE_STAFF, **extra)
    log_action(user=actor, action='CREATE_USER', resource='User', resource_id=user.id,
               details=f"Created {user.display_role} account")
    logger.info('Admin %s created staff user %s', actor.id, user.id)
    return user


def list_users(*, role: Optional[str] = None, specialization: Optional[str] = None, page=1, limit=10) -> dict:
    page, limit = page_params(page, limit, default=10)
    qs = User.objects.all().order_by('-created_at')
    if role:
        qs = qs.filter(role=role)
    if specialization:
        qs = qs.filter(specialization__icontains=specialization)
    total = qs.count()
    users = list(qs[(page - 1) * limit: page * limit])
    return {
        'users': users,
        'pagination': {'page': page, 'limit': limit, 'total': total, 'pages': (total + limit - 1) // limit},
    }


@transaction.atomic
def update_user(user_id, *, actor: User, data: dict) -> User:
    user = get_object_or_404(User.objects.select_for_update(), id=user_id)
    changed = []
    for field, value in data.items():
        if field in ADMIN_EDITABLE:
            setattr(user, field, clean_text(value) if isinstance(value, str) else value)
            changed.append(field)
    if not changed:
        raise ValidationError('No valid fields to update')
    user.save()
    invalidate_stats()
    log_action(user=actor, action='UPDATE_USER', resource='User', resource_id=user.id,
               details=f"Updated {', '.join(sorted(changed))}")
    return user


def set_active(user_id, *, actor: User, is_active) -> User:
    if not isinstance(is_active, bool):
        raise ValidationError('isActive must be a boolean')
    return update_user(user_id, actor=actor, data={'is_active': is_active})


def delete_user(user_id, *, actor: User) -> None:
    user = get_object_or_404(User, id=user_id)
    if user.id == actor.id:
        raise ValidationError('You cannot delete your own account')
    user.delete()
    invalidate_stats()
    log_action(user=actor, action='DELETE_USER', resource='User', resource_id=user_id)
    logger.info('Admin %s deleted user %s', actor.id, user_id)


def stats() -> dict:
    cached = cache.get(STATS_CACHE_KEY)
    if cached is not None:
        return cached
    by_role = {row['role']: row['n'] for row in User.objects.values('role').annotate(n=Count('id'))}
    total = sum(by_role.values())
    active = User.objects.filter(is_active=True).count()
    data = {
        'totalUsers': total,
        'byRole': {
            'staff': by_role.get(User.ROLE_STAFF, 0),
            'patient': by_role.get(User.ROLE_PATIENT, 0),
            'admin': by_role.get(User.ROLE_ADMIN, 0),
            'doctors': User.objects.filter(role=User.ROLE_STAFF).exclude(specialization='').count(),
        },
        'activeUsers': active,
        'inactiveUsers': total - active,
    }
    cache.set(STATS_CACHE_KEY, data, settings.USER_STATS_CACHE_SECONDS)
    return data


def directory(role: str, *, search: str = ''):
    qs = User.objects.filter(role=role, is_active=True)
    if search:
        qs = qs.filter(Q(name__icontains=search) | Q(email__icontains=search))
    return qs.order_by('name')
