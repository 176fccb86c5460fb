"""Pharmacy inventory endpoints."""
from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import PermissionDenied, ValidationError
from rest_framework.permissions import IsAuthenticated

from ..permissions import IsAdminRole, IsStaffOrAdmin
from ..responses import success
from ..serializers.inventory import InventorySerializer, RestockSerializer, inventory_dict
from ..services import inventory as inventory_service


def _item_data(validated: dict) -> dict:
    data = dict(validated)
    if 'alternatives' in data:
        data['alternatives'] = [dict(a) for a in data['alternatives']]
    return data


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsStaffOrAdmin])
def inventory_list(request):
    if request.method == 'GET':
        qs = inventory_service.list_items(
            status=request.query_params.get('status') or None,
            low_stock=request.query_params.get('lowStock') == 'true',
        )
        return success([inventory_dict(i) for i in qs])

    s = InventorySerializer(data=request.data)
    s.is_valid(raise_exception=True)
    item = inventory_service.create_item(_item_data(s.validated_data))
    return success(inventory_dict(item), status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([IsAuthenticated, IsStaffOrAdmin])
def inventory_detail(request, item_id: int):
    if request.method == 'GET':
        return success(inventory_dict(inventory_service.get_item(item_id)))

    if request.method == 'DELETE':
        if not IsAdminRole().has_permission(request, None):
            raise PermissionDenied('Only administrators can delete inventory items')
        inventory_service.delete_item(item_id)
        return success({'message': 'Inventory item deleted'})

    s = InventorySerializer(data=request.data, partial=True)
    s.is_valid(raise_exception=True)
    item = inventory_service.update_item(item_id, _item_data(s.validated_data))
    return success(inventory_dict(item))


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsStaffOrAdmin])
def restock_item(request, item_id: int):
    s = RestockSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    item = inventory_service.restock(
        item_id,
        quantity=vd['quantity'],
        batch_number=vd.get('batchNumber', ''),
        expiry_date=vd.get('expiryDate'),
    )
    return success(inventory_dict(item))


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsStaffOrAdmin])
def check_drug(request, drug_name: str):
    try:
        quantity = int(request.query_params.get('quantity', 1))
    except (TypeError, ValueError):
        raise ValidationError('quantity must be an integer')
    if quantity <= 0:
        raise ValidationError('quantity must be greater than zero')
    return success({'drugName': drug_name, 'quantity': quantity, **inventory_service.check(drug_name, quantity)})
