from __future__ import annotations

from typing import Optional

import bleach
from rest_framework.exceptions import PermissionDenied, ValidationError

from clinic.models import User


def clean_text(value: Optional[str]) -> str:
    return bleach.clean((value or '').strip(), strip=True)


def is_staff_or_admin(user: User) -> bool:
    return getattr(user, 'role', None) in (User.ROLE_STAFF, User.ROLE_ADMIN)


def ensure_party(user: User, *, patient_id=None, doctor_id=None, message: str = 'Not authorized') -> None:
    """Allow Staff, Admin, the patient concerned or the responsible doctor."""
    if is_staff_or_admin(user):
        return
    if user.id is not None and user.id in (patient_id, doctor_id):
        return
    raise PermissionDenied(message)


def get_patient(patient_id) -> User:
    patient = User.objects.filter(id=patient_id, role=User.ROLE_PATIENT).first() if patient_id else None
    if patient is None:
        raise ValidationError('Invalid patient ID')
    return patient


def page_params(page, limit, *, default: int = 20) -> tuple[int, int]:
    try:
        page = max(1, int(page or 1))
        limit = min(100, max(1, int(limit or default)))
    except (TypeError, ValueError):
        raise ValidationError('page and limit must be integers')
    return page, limit
