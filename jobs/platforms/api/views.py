from rest_framework import viewsets
from rest_framework.decorators import action

from jobs.platforms.api.serializers import JobApiSerializer
from jobs.platforms.base.views import JobBaseView, JobOperationsBaseView


class JobApiView(JobBaseView):
    serializer_class = JobApiSerializer


class JobOperationsApiView(JobOperationsBaseView, viewsets.ViewSet):

    @action(detail=True, methods=['post'], url_path='assign-technicians')
    def assign_technicians(self, request, pk=None):
        return super().assign_job_technicians(request, pk)

    @action(detail=True, methods=['delete'], url_path='technicians')
    def remove_technician(self, request, pk=None, technician_id=None):
        return super().remove_job_technician(request, pk, technician_id)

    @action(detail=True, methods=['post'], url_path='primary-technician')
    def set_primary(self, request, pk=None):
        return super().set_job_primary_technician(request, pk)

    @action(detail=True, methods=['post'], url_path='reassign-technician')
    def reassign(self, request, pk=None):
        return super().reassign_job_technician(request, pk)

    @action(detail=True, methods=['post'], url_path='vehicle')
    def vehicle(self, request, pk=None):
        return super().attach_job_vehicle(request, pk)

    @action(detail=True, methods=['post', 'get'], url_path='transition')
    def transition(self, request, pk=None):
        if request.method == 'GET':
            return super().allowed_transitions(request, pk)
        return super().transition_job(request, pk)

    @action(detail=True, methods=['post'], url_path='start')
    def start(self, request, pk=None):
        return super().start_job(request, pk)

    @action(detail=True, methods=['post'], url_path='complete')
    def complete(self, request, pk=None):
        return super().complete_job(request, pk)

    @action(detail=True, methods=['post'], url_path='verify')
    def verify(self, request, pk=None):
        return super().verify_job(request, pk)

    @action(detail=True, methods=['post'], url_path='cancel')
    def cancel(self, request, pk=None):
        return super().cancel_job(request, pk)

    @action(detail=True, methods=['post'], url_path='installation')
    def installation(self, request, pk=None):
        return super().save_job_installation(request, pk)

    @action(detail=True, methods=['get'], url_path='completion-checklist')
    def checklist(self, request, pk=None):
        return super().job_completion_checklist(request, pk)

    @action(detail=True, methods=['get'], url_path='logs')
    def logs(self, request, pk=None):
        return super().job_logs(request, pk)

    @action(detail=False, methods=['get'], url_path='statistics')
    def statistics(self, request):
        return super().job_statistics(request)
