from rest_framework import viewsets
from rest_framework.decorators import action

from requisitions.platforms.api.serializers import RequisitionApiSerializer, RequisitionIssuanceApiSerializer
from requisitions.platforms.base.views import (
    RequisitionBaseView, RequisitionIssuanceBaseView, RequisitionOperationsBaseView,
)


class RequisitionApiView(RequisitionBaseView):
    serializer_class = RequisitionApiSerializer


class RequisitionIssuanceApiView(RequisitionIssuanceBaseView):
    serializer_class = RequisitionIssuanceApiSerializer


class RequisitionOperationsApiView(RequisitionOperationsBaseView, viewsets.ViewSet):
    """API view for the requisition workflow (approve, reject, issue, return)"""

    @action(detail=True, methods=['post'], url_path='approve')
    def approve(self, request, pk=None):
        return super().approve_requisition(request, pk)

    @action(detail=True, methods=['post'], url_path='reject')
    def reject(self, request, pk=None):
        return super().reject_requisition(request, pk)

    @action(detail=True, methods=['post'], url_path='issue')
    def issue(self, request, pk=None):
        return super().issue_requisition(request, pk)

    @action(detail=True, methods=['post'], url_path='return')
    def return_items(self, request, pk=None):
        return super().return_requisition_items(request, pk)

    @action(detail=True, methods=['get'], url_path='logs')
    def logs(self, request, pk=None):
        return super().requisition_logs(request, pk)

    @action(detail=False, methods=['get'], url_path='statistics')
    def statistics(self, request):
        return super().requisition_statistics(request)
