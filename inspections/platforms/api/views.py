from rest_framework import viewsets
from rest_framework.decorators import action

from inspections.platforms.api.serializers import (
    InspectionChecklistItemApiSerializer, InspectionRecordApiSerializer,
)
from inspections.platforms.base.views import (
    InspectionChecklistItemBaseView, InspectionOperationsBaseView, InspectionRecordBaseView,
)


class InspectionChecklistItemApiView(InspectionChecklistItemBaseView):
    serializer_class = InspectionChecklistItemApiSerializer


class InspectionRecordApiView(InspectionRecordBaseView):
    serializer_class = InspectionRecordApiSerializer


class InspectionOperationsApiView(InspectionOperationsBaseView, viewsets.ViewSet):

    @action(detail=False, methods=['get'], url_path='checklist')
    def checklist(self, request):
        return super().checklist_for_stage(request)

    @action(detail=True, methods=['post'], url_path='toggle')
    def toggle(self, request, pk=None):
        return super().toggle_checklist_item(request, pk)

    @action(detail=False, methods=['post'], url_path='submit')
    def submit(self, request):
        return super().submit_inspection(request)

    @action(detail=False, methods=['get'], url_path='status')
    def stage_status(self, request):
        return super().inspection_status(request)

    @action(detail=False, methods=['post'], url_path='verify')
    def verify(self, request):
        return super().verify_inspection(request)

    @action(detail=True, methods=['get'], url_path='revisions')
    def revisions(self, request, pk=None):
        return super().record_revisions(request, pk)
