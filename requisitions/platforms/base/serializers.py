from rest_framework import serializers

from configurations.base_features.serializers.base_serializer import BaseSerializer
from requisitions.models import Requisition, RequisitionIssuance, RequisitionItem, RequisitionLog


class RequisitionItemBaseSerializer(BaseSerializer):

    class Meta:
        model = RequisitionItem
        fields = "__all__"
        read_only_fields = [f.name for f in RequisitionItem._meta.fields]

    def mod_to_representation(self, instance):
        response = super().mod_to_representation(instance)
        response['product_sku'] = instance.product.sku
        response['product_name'] = instance.product.name
        response['is_serialized'] = instance.product.is_serialized
        response['quantity_outstanding'] = instance.quantity_outstanding
        response['is_fully_issued'] = instance.is_fully_issued
        return response


class RequisitionIssuanceBaseSerializer(BaseSerializer):

    class Meta:
        model = RequisitionIssuance
        fields = "__all__"
        read_only_fields = [f.name for f in RequisitionIssuance._meta.fields]

    def mod_to_representation(self, instance):
        response = super().mod_to_representation(instance)
        response['batch_number'] = instance.batch.batch_number if instance.batch_id else None
        response['location_code'] = instance.location.code
        return response


class RequisitionLogBaseSerializer(BaseSerializer):

    class Meta:
        model = RequisitionLog
        fields = "__all__"
        read_only_fields = [f.name for f in RequisitionLog._meta.fields]


class RequisitionBaseSerializer(BaseSerializer):
    """Status and approval fields move through the workflow operations, only notes are editable"""

    class Meta:
        model = Requisition
        fields = "__all__"
        read_only_fields = [f.name for f in Requisition._meta.fields if f.name != 'notes']

    def mod_to_representation(self, instance):
        response = super().mod_to_representation(instance)
        response['job_number'] = instance.job.job_number
        response['technician_code'] = instance.technician.technician_code
        response['location_code'] = instance.location.code if instance.location_id else None
        response['items'] = RequisitionItemBaseSerializer(instance.items.select_related('product'), many=True).data
        return response


class RequisitionItemInputSerializer(serializers.Serializer):
    product_id = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1)
    is_required_to_start = serializers.BooleanField(required=False, default=False)


class CreateRequisitionSerializer(serializers.Serializer):
    job_id = serializers.UUIDField()
    technician_id = serializers.UUIDField(required=False, allow_null=True)
    location_id = serializers.UUIDField(required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    items = RequisitionItemInputSerializer(many=True, allow_empty=False)


class ApproveRequisitionSerializer(serializers.Serializer):
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class RejectRequisitionSerializer(serializers.Serializer):
    reason = serializers.CharField()


class IssueLineSerializer(serializers.Serializer):
    item_id = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1)
    batch_id = serializers.UUIDField(required=False, allow_null=True)
    location_id = serializers.UUIDField(required=False, allow_null=True)
    device_imeis = serializers.ListField(child=serializers.CharField(), required=False, default=list)


class IssueRequisitionSerializer(serializers.Serializer):
    lines = IssueLineSerializer(many=True, allow_empty=False)
    idempotency_key = serializers.CharField(max_length=100, required=False, allow_blank=True, allow_null=True)


class ReturnLineSerializer(serializers.Serializer):
    item_id = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1)
    device_imeis = serializers.ListField(child=serializers.CharField(), required=False, default=list)


class ReturnRequisitionSerializer(serializers.Serializer):
    lines = ReturnLineSerializer(many=True, allow_empty=False)
    reason = serializers.CharField()
    location_id = serializers.UUIDField(required=False, allow_null=True)
