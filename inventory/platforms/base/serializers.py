from decimal import Decimal

from django.db.models import Sum
from rest_framework import serializers

from configurations.base_features.serializers.base_serializer import BaseSerializer
from inventory.models import AdjustmentType, Batch, InventoryMovement, InventoryRecord, Product


class ProductBaseSerializer(BaseSerializer):
    """Base serializer for Product model"""

    class Meta:
        model = Product
        fields = "__all__"
        read_only_fields = ("id", "created_at", "updated_at")

    def mod_to_representation(self, instance):
        response = super().mod_to_representation(instance)
        totals = instance.inventory_records.aggregate(
            available=Sum('quantity_available'),
            reserved=Sum('quantity_reserved'),
        )
        response['total_available'] = totals['available'] or 0
        response['total_reserved'] = totals['reserved'] or 0
        response['code'] = f"{instance.sku} - {instance.name}"
        return response


class BatchBaseSerializer(BaseSerializer):
    """Batches are created through the receive operation, read only here"""

    class Meta:
        model = Batch
        fields = "__all__"
        read_only_fields = (
            "id", "product", "batch_number", "received_date", "quantity_received",
            "created_at", "updated_at",
        )

    def mod_to_representation(self, instance):
        response = super().mod_to_representation(instance)
        response['product'] = str(instance.product_id)
        response['product_sku'] = instance.product.sku
        response['quantity_available'] = instance.inventory_records.aggregate(
            total=Sum('quantity_available')
        )['total'] or 0
        return response


class InventoryRecordBaseSerializer(BaseSerializer):

    class Meta:
        model = InventoryRecord
        fields = "__all__"
        read_only_fields = (
            "id", "product", "batch", "location", "quantity_available",
            "quantity_reserved", "version", "created_at", "updated_at",
        )

    def mod_to_representation(self, instance):
        response = super().mod_to_representation(instance)
        response['product'] = str(instance.product_id)
        response['batch'] = str(instance.batch_id) if instance.batch_id else None
        response['location'] = str(instance.location_id)
        response['product_sku'] = instance.product.sku
        response['batch_number'] = instance.batch.batch_number if instance.batch_id else None
        response['location_code'] = instance.location.code
        response['quantity_on_hand'] = instance.quantity_on_hand
        return response


class InventoryMovementBaseSerializer(BaseSerializer):

    class Meta:
        model = InventoryMovement
        fields = "__all__"
        read_only_fields = [f.name for f in InventoryMovement._meta.fields]

    def mod_to_representation(self, instance):
        response = super().mod_to_representation(instance)
        response['product_sku'] = instance.product.sku
        response['location_code'] = instance.location.code
        response['performed_by'] = instance.performed_by.email if instance.performed_by_id else None
        return response


class ReceiveBatchSerializer(serializers.Serializer):
    """Serializer for receiving a new batch into inventory"""
    product_id = serializers.UUIDField(required=True)
    location_id = serializers.UUIDField(required=False, allow_null=True)
    batch_number = serializers.CharField(max_length=100)
    quantity = serializers.IntegerField(min_value=1)
    unit_cost = serializers.DecimalField(max_digits=12, decimal_places=4, min_value=Decimal('0'), required=False)
    received_date = serializers.DateTimeField(required=False)
    expiry_date = serializers.DateField(required=False, allow_null=True)
    supplier = serializers.CharField(max_length=255, required=False, allow_blank=True)
    device_imeis = serializers.ListField(child=serializers.CharField(), required=False)
    idempotency_key = serializers.CharField(max_length=100, required=False)


class AdjustInventorySerializer(serializers.Serializer):
    """
    quantity is the change for INCREASE and DECREASE and the target
    available quantity for CORRECTION
    """
    product_id = serializers.UUIDField(required=True)
    adjustment_type = serializers.ChoiceField(choices=AdjustmentType.choices)
    quantity = serializers.IntegerField(min_value=0)
    reason = serializers.CharField()
    batch_id = serializers.UUIDField(required=False, allow_null=True)
    location_id = serializers.UUIDField(required=False, allow_null=True)
    device_imeis = serializers.ListField(child=serializers.CharField(), required=False)
    idempotency_key = serializers.CharField(max_length=100, required=False)


class TransferInventorySerializer(serializers.Serializer):
    product_id = serializers.UUIDField(required=True)
    from_location_id = serializers.UUIDField(required=True)
    to_location_id = serializers.UUIDField(required=True)
    quantity = serializers.IntegerField(min_value=1)
    batch_id = serializers.UUIDField(required=False, allow_null=True)
    device_imeis = serializers.ListField(child=serializers.CharField(), required=False)
    reason = serializers.CharField(required=False, allow_blank=True)
    idempotency_key = serializers.CharField(max_length=100, required=False)


class ReservationSerializer(serializers.Serializer):
    """Serializer for reserve, release and commit on one inventory record"""
    record_id = serializers.UUIDField(required=True)
    quantity = serializers.IntegerField(min_value=1)
    reference = serializers.CharField(max_length=100, required=False)
