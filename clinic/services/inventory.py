from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from django.db import IntegrityError, transaction
from django.db.models import F
from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from clinic.models import Inventory, Notification, User
from clinic.services.notifications import notify_many

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = (
    'drug_name', 'generic_name', 'category', 'quantity', 'unit', 'reorder_level',
    'expiry_date', 'batch_number', 'supplier', 'cost_per_unit', 'alternatives',
)


def list_items(*, status: Optional[str] = None, low_stock: bool = False):
    qs = Inventory.objects.all()
    if status:
        qs = qs.filter(status=status)
    if low_stock:
        qs = qs.filter(quantity__lte=F('reorder_level'))
    return qs


def find_by_name(drug_name: str) -> Optional[Inventory]:
    return Inventory.objects.filter(drug_name__iexact=(drug_name or '').strip()).first()


def create_item(data: dict) -> Inventory:
    if find_by_name(data.get('drug_name', '')):
        raise ValidationError('Drug already exists in inventory')
    try:
        with transaction.atomic():
            return Inventory.objects.create(**{k: v for k, v in data.items() if k in EDITABLE_FIELDS})
    except IntegrityError as exc:
        raise ValidationError('Drug already exists in inventory') from exc


@transaction.atomic
def update_item(item_id, data: dict) -> Inventory:
    item = get_object_or_404(Inventory.objects.select_for_update(), id=item_id)
    name = data.get('drug_name')
    if name and Inventory.objects.filter(drug_name__iexact=name).exclude(id=item.id).exists():
        raise ValidationError('Drug already exists in inventory')
    for field, value in data.items():
        if field in EDITABLE_FIELDS:
            setattr(item, field, value)
    item.save()
    return item


def get_item(item_id) -> Inventory:
    return get_object_or_404(Inventory, id=item_id)


def delete_item(item_id) -> None:
    get_object_or_404(Inventory, id=item_id).delete()


@transaction.atomic
def restock(item_id, *, quantity: int, batch_number: str = '', expiry_date: Optional[date] = None) -> Inventory:
    if not quantity or quantity <= 0:
        raise ValidationError('Restock quantity must be greater than zero')
    item = get_object_or_404(Inventory.objects.select_for_update(), id=item_id)
    item.quantity += quantity
    if batch_number:
        item.batch_number = batch_number
    if expiry_date:
        item.expiry_date = expiry_date
    item.last_restocked = timezone.now()
    item.save()
    logger.info('Restocked %s by %s (now %s)', item.drug_name, quantity, item.quantity)
    return item


def check(drug_name: str, quantity: int = 1) -> dict:
    item = find_by_name(drug_name)
    if item is None:
        return {'available': False, 'reason': 'Not in inventory', 'alternatives': []}
    return {'drugName': item.drug_name, **item.check_availability(quantity)}


def take(item: Inventory, quantity: int = 1) -> None:
    """Decrement a row already locked by the caller and alert admins on low stock."""
    before = item.status
    item.quantity -= quantity
    item.save(update_fields=['quantity', 'updated_at'])
    if item.status in (Inventory.STATUS_LOW, Inventory.STATUS_OUT) and item.status != before:
        alert_low_stock(item)


def alert_low_stock(item: Inventory) -> None:
    admins = User.objects.filter(role=User.ROLE_ADMIN, is_active=True)
    notify_many(
        admins,
        type=Notification.TYPE_INVENTORY_LOW,
        title=f'Inventory {item.status}: {item.drug_name}',
        message=f"{item.drug_name} has {item.quantity} {item.unit} left (reorder level {item.reorder_level}).",
        priority='High' if item.status == Inventory.STATUS_OUT else 'Medium',
        metadata={'inventoryId': item.id},
    )
    logger.warning('Inventory %s is %s (%s left)', item.drug_name, item.status, item.quantity)
