from rest_framework import status

from configurations.base_features.views.base_api_view import BaseAPIView
from inspections.models import InspectionChecklistItem, InspectionRecord
from inspections.platforms.base.serializers import (
    InspectionChecklistItemBaseSerializer, InspectionRecordBaseSerializer,
    InspectionRecordRevisionBaseSerializer, InspectionStageSerializer, SubmitInspectionSerializer,
)
from inspections.services import inspection_service


class InspectionChecklistItemBaseView(BaseAPIView):
    serializer_class = InspectionChecklistItemBaseSerializer
    model_class = InspectionChecklistItem
    exact_params = ("category", "is_active", "is_pre_installation", "is_post_installation", "requires_photo")

    def get_queryset(self, params=None, ordering=None):
        return super().get_queryset(params, ordering or "display_order")

    def destroy(self, request, pk, *args, **kwargs):
        """Items that already have results are deactivated instead of deleted"""
        instance = self.get_instance(pk)
        if instance.records.exists():
            instance.is_active = False
            instance.save(update_fields=['is_active', 'updated_at'])
            return self.format_response(
                data=self.get_serialized_objects(instance),
                status_code=200,
                warnings=["Checklist item has recorded results, it was deactivated instead"],
            )
        instance.delete()
        return self.format_response(data={}, status_code=204)


class InspectionRecordBaseView(BaseAPIView):
    serializer_class = InspectionRecordBaseSerializer
    model_class = InspectionRecord
    http_method_names = ["get", "head", "options"]
    exact_params = ("status", "stage")

    def get_queryset(self, params=None, ordering=None):
        return super().get_queryset(params, ordering or "checklist_item__display_order").select_related(
            "job", "checklist_item", "technician"
        )


class InspectionOperationsBaseView(BaseAPIView):
    """Checklist toggling plus submit, status and verify per job stage"""

    model_class = None
    serializer_class = None

    def checklist_for_stage(self, request):
        try:
            items = inspection_service.get_checklist(
                stage=request.query_params.get('stage'),
                active_only=request.query_params.get('include_inactive') not in ('1', 'true', 'True'),
            )
            return self.format_response(
                InspectionChecklistItemBaseSerializer(items, many=True).data, None, status.HTTP_200_OK
            )
        except Exception as e:
            return self.handle_exception(e)

    def toggle_checklist_item(self, request, pk):
        try:
            item = inspection_service.toggle_item(pk)
            return self.format_response(
                InspectionChecklistItemBaseSerializer(item).data, None, status.HTTP_200_OK
            )
        except Exception as e:
            return self.handle_exception(e)

    def submit_inspection(self, request):
        try:
            data = self.get_validated_data(SubmitInspectionSerializer)
            records = inspection_service.submit(
                job_id=data['job_id'],
                stage=data['stage'],
                items=data['items'],
                vehicle_id=data.get('vehicle_id'),
                technician_id=data.get('technician_id'),
                performed_by=request.user,
                edit=data.get('edit', False),
                edit_reason=data.get('edit_reason'),
            )
            return self.format_response(
                InspectionRecordBaseSerializer(records, many=True).data,
                None,
                status.HTTP_200_OK if data.get('edit') else status.HTTP_201_CREATED
            )
        except Exception as e:
            return self.handle_exception(e)

    def _stage_params(self, request):
        data = self.get_validated_data(InspectionStageSerializer, data=request.query_params)
        return data['job_id'], data['stage']

    def inspection_status(self, request):
        try:
            job_id, stage = self._stage_params(request)
            result = inspection_service.get_status(job_id, stage)
            result['records'] = InspectionRecordBaseSerializer(result['records'], many=True).data
            return self.format_response(result, None, status.HTTP_200_OK)
        except Exception as e:
            return self.handle_exception(e)

    def verify_inspection(self, request):
        try:
            data = self.get_validated_data(InspectionStageSerializer)
            records = inspection_service.verify(data['job_id'], data['stage'], performed_by=request.user)
            return self.format_response(
                InspectionRecordBaseSerializer(records, many=True).data, None, status.HTTP_200_OK
            )
        except Exception as e:
            return self.handle_exception(e)

    def record_revisions(self, request, pk):
        try:
            record = InspectionRecord.objects.get_object_or_404(raise_exception=True, id=pk)
            return self.format_response(
                InspectionRecordRevisionBaseSerializer(record.revisions.all(), many=True).data,
                None,
                status.HTTP_200_OK
            )
        except Exception as e:
            return self.handle_exception(e)
