from rest_framework import serializers

from configurations.base_features.serializers.base_serializer import BaseSerializer
from inspections.models import (
    InspectionChecklistItem,
    InspectionRecord,
    InspectionRecordRevision,
    InspectionStage,
)


class InspectionChecklistItemBaseSerializer(BaseSerializer):

    class Meta:
        model = InspectionChecklistItem
        fields = "__all__"
        read_only_fields = ("id", "created_at", "updated_at")

    def validate(self, attrs):
        pre = attrs.get('is_pre_installation', getattr(self.instance, 'is_pre_installation', True))
        post = attrs.get('is_post_installation', getattr(self.instance, 'is_post_installation', True))
        if not pre and not post:
            raise serializers.ValidationError("A checklist item must apply to at least one stage")
        return attrs


class InspectionRecordRevisionBaseSerializer(BaseSerializer):

    class Meta:
        model = InspectionRecordRevision
        fields = "__all__"
        read_only_fields = [f.name for f in InspectionRecordRevision._meta.fields]


class InspectionRecordBaseSerializer(BaseSerializer):
    """Records are written through the submit operation only"""

    class Meta:
        model = InspectionRecord
        fields = "__all__"
        read_only_fields = [f.name for f in InspectionRecord._meta.fields]

    def mod_to_representation(self, instance):
        response = super().mod_to_representation(instance)
        response['checklist_item_name'] = instance.checklist_item.name
        response['category'] = instance.checklist_item.category
        response['job_number'] = instance.job.job_number
        response['technician_code'] = instance.technician.technician_code if instance.technician_id else None
        return response


class InspectionItemResultSerializer(serializers.Serializer):
    checklist_item_id = serializers.UUIDField()
    status = serializers.ChoiceField(choices=InspectionRecord.Status.choices)
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    photo_urls = serializers.ListField(child=serializers.URLField(), required=False, default=list)


class SubmitInspectionSerializer(serializers.Serializer):
    job_id = serializers.UUIDField()
    stage = serializers.ChoiceField(choices=InspectionStage.choices)
    vehicle_id = serializers.UUIDField(required=False, allow_null=True)
    technician_id = serializers.UUIDField(required=False, allow_null=True)
    items = InspectionItemResultSerializer(many=True, allow_empty=False)
    edit = serializers.BooleanField(required=False, default=False)
    edit_reason = serializers.CharField(required=False, allow_blank=True, allow_null=True)

    def validate(self, attrs):
        if attrs.get('edit') and not attrs.get('edit_reason'):
            raise serializers.ValidationError({'edit_reason': "A reason is required when editing results"})
        return attrs


class InspectionStageSerializer(serializers.Serializer):
    job_id = serializers.UUIDField()
    stage = serializers.ChoiceField(choices=InspectionStage.choices)
