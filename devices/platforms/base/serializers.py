from rest_framework import serializers

from configurations.base_features.serializers.base_serializer import BaseSerializer
from devices.models import Device, DeviceLog


class DeviceBaseSerializer(BaseSerializer):
    """Only the descriptive fields are writable, lifecycle changes go through the operations"""

    class Meta:
        model = Device
        fields = "__all__"
        read_only_fields = (
            "id", "imei", "product", "batch", "location", "status", "job", "requisition_item",
            "issued_at", "issued_by", "activated_at", "retired_at", "retired_reason",
            "created_at", "updated_at",
        )

    def mod_to_representation(self, instance):
        response = super().mod_to_representation(instance)
        response['product_sku'] = instance.product.sku
        response['batch_number'] = instance.batch.batch_number if instance.batch_id else None
        response['location_code'] = instance.location.code if instance.location_id else None
        response['job_number'] = instance.job.job_number if instance.job_id else None
        return response


class DeviceLogBaseSerializer(BaseSerializer):

    class Meta:
        model = DeviceLog
        fields = "__all__"
        read_only_fields = [f.name for f in DeviceLog._meta.fields]

    def mod_to_representation(self, instance):
        response = super().mod_to_representation(instance)
        response['job_number'] = instance.job.job_number if instance.job_id else None
        response['location_code'] = instance.location.code if instance.location_id else None
        response['performed_by'] = instance.performed_by.email if instance.performed_by_id else None
        return response


class RegisterDevicesSerializer(serializers.Serializer):
    product_id = serializers.UUIDField(required=True)
    batch_id = serializers.UUIDField(required=False, allow_null=True)
    location_id = serializers.UUIDField(required=False, allow_null=True)
    imeis = serializers.ListField(child=serializers.CharField(), allow_empty=False)


class ActivateDeviceSerializer(serializers.Serializer):
    sim_card_iccid = serializers.CharField(max_length=30, required=False, allow_blank=True)
    sim_card_imsi = serializers.CharField(max_length=30, required=False, allow_blank=True)
    mac_address = serializers.CharField(max_length=50, required=False, allow_blank=True)
    serial_number = serializers.CharField(max_length=100, required=False, allow_blank=True)


class DeviceReasonSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True)


class ReturnDeviceSerializer(serializers.Serializer):
    reason = serializers.CharField()
    location_id = serializers.UUIDField(required=False, allow_null=True)
