from rest_framework import status

from configurations.base_features.views.base_api_view import BaseAPIView
from requisitions.models import Requisition, RequisitionIssuance
from requisitions.platforms.base.serializers import (
    ApproveRequisitionSerializer, CreateRequisitionSerializer, IssueRequisitionSerializer,
    RejectRequisitionSerializer, RequisitionBaseSerializer, RequisitionIssuanceBaseSerializer,
    RequisitionLogBaseSerializer, ReturnRequisitionSerializer,
)
from requisitions.services import requisition_service


class RequisitionBaseView(BaseAPIView):
    """Listing and notes edits, creation goes through the service so items and the job are validated"""
    serializer_class = RequisitionBaseSerializer
    model_class = Requisition
    http_method_names = ["get", "post", "patch", "head", "options"]
    exact_params = ("status", "requisition_number")

    def get_queryset(self, params=None, ordering=None):
        return super().get_queryset(params, ordering).select_related("job", "technician", "location")

    def create(self, data, params, *args, **kwargs):
        validated = self.get_validated_data(CreateRequisitionSerializer, data=data)
        requisition = requisition_service.create_requisition(
            job_id=validated['job_id'],
            items=validated['items'],
            technician_id=validated.get('technician_id'),
            location_id=validated.get('location_id'),
            notes=validated.get('notes'),
            performed_by=params.get('user'),
        )
        return self.format_response(data=self.get_serialized_objects(requisition), status_code=201)


class RequisitionIssuanceBaseView(BaseAPIView):
    serializer_class = RequisitionIssuanceBaseSerializer
    model_class = RequisitionIssuance
    http_method_names = ["get", "head", "options"]
    exact_params = ("idempotency_key",)

    def get_queryset(self, params=None, ordering=None):
        return super().get_queryset(params, ordering).select_related("batch", "location")


class RequisitionOperationsBaseView(BaseAPIView):

    model_class = None
    serializer_class = None

    def _respond(self, requisition, status_code=status.HTTP_200_OK):
        requisition.refresh_from_db()
        return self.format_response(
            RequisitionBaseSerializer(requisition, context={"request": self.request}).data,
            None,
            status_code
        )

    def approve_requisition(self, request, pk):
        try:
            data = self.get_validated_data(ApproveRequisitionSerializer)
            requisition = requisition_service.approve(pk, performed_by=request.user, notes=data.get('notes'))
            return self._respond(requisition)
        except Exception as e:
            return self.handle_exception(e)

    def reject_requisition(self, request, pk):
        try:
            data = self.get_validated_data(RejectRequisitionSerializer)
            requisition = requisition_service.reject(pk, data['reason'], performed_by=request.user)
            return self._respond(requisition)
        except Exception as e:
            return self.handle_exception(e)

    def issue_requisition(self, request, pk):
        """Issue stock for one or more lines, all or nothing"""
        try:
            data = self.get_validated_data(IssueRequisitionSerializer)
            requisition = requisition_service.issue(
                pk,
                lines=data['lines'],
                performed_by=request.user,
                idempotency_key=data.get('idempotency_key') or None,
            )
            return self._respond(requisition)
        except Exception as e:
            return self.handle_exception(e)

    def return_requisition_items(self, request, pk):
        try:
            data = self.get_validated_data(ReturnRequisitionSerializer)
            requisition = requisition_service.return_items(
                pk,
                lines=data['lines'],
                reason=data['reason'],
                location_id=data.get('location_id'),
                performed_by=request.user,
            )
            return self._respond(requisition)
        except Exception as e:
            return self.handle_exception(e)

    def requisition_logs(self, request, pk):
        try:
            requisition = Requisition.objects.get_object_or_404(raise_exception=True, id=pk)
            return self.format_response(
                RequisitionLogBaseSerializer(requisition.logs.all(), many=True).data, None, status.HTTP_200_OK
            )
        except Exception as e:
            return self.handle_exception(e)

    def requisition_statistics(self, request):
        try:
            result = requisition_service.get_statistics(job_id=request.query_params.get('job_id'))
            return self.format_response(result, None, status.HTTP_200_OK)
        except Exception as e:
            return self.handle_exception(e)
