from __future__ import annotations

from rest_framework import serializers

from clinic.models import Inventory
from clinic.serializers import iso


class AlternativeDrugSerializer(serializers.Serializer):
    drugName = serializers.CharField(max_length=255)
    genericName = serializers.CharField(required=False, allow_blank=True, max_length=255)


class InventorySerializer(serializers.Serializer):
    drugName = serializers.CharField(source='drug_name', max_length=255)
    genericName = serializers.CharField(source='generic_name', required=False, allow_blank=True, max_length=255)
    category = serializers.CharField(required=False, allow_blank=True, max_length=100)
    quantity = serializers.IntegerField(min_value=0)
    unit = serializers.CharField(required=False, max_length=30)
    reorderLevel = serializers.IntegerField(source='reorder_level', required=False, min_value=0)
    expiryDate = serializers.DateField(source='expiry_date', required=False, allow_null=True)
    batchNumber = serializers.CharField(source='batch_number', required=False, allow_blank=True, max_length=100)
    supplier = serializers.CharField(required=False, allow_blank=True, max_length=255)
    costPerUnit = serializers.DecimalField(source='cost_per_unit', max_digits=10, decimal_places=2,
                                           required=False, allow_null=True, min_value=0)
    alternatives = AlternativeDrugSerializer(many=True, required=False)


class RestockSerializer(serializers.Serializer):
    quantity = serializers.IntegerField(min_value=1)
    batchNumber = serializers.CharField(required=False, allow_blank=True, max_length=100)
    expiryDate = serializers.DateField(required=False, allow_null=True)


def inventory_dict(item: Inventory) -> dict:
    return {
        'id': item.id,
        'drugName': item.drug_name,
        'genericName': item.generic_name,
        'category': item.category,
        'quantity': item.quantity,
        'unit': item.unit,
        'reorderLevel': item.reorder_level,
        'expiryDate': iso(item.expiry_date),
        'batchNumber': item.batch_number,
        'supplier': item.supplier,
        'costPerUnit': str(item.cost_per_unit) if item.cost_per_unit is not None else None,
        'alternatives': item.alternatives,
        'status': item.status,
        'lastRestocked': iso(item.last_restocked),
        'updatedAt': iso(item.updated_at),
    }
