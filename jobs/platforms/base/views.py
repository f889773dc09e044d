from rest_framework import status

from configurations.base_features.views.base_api_view import BaseAPIView
from jobs.models import Job
from jobs.platforms.base.serializers import (
    AssignTechniciansSerializer, AttachVehicleSerializer, CancelJobSerializer, CompleteJobSerializer,
    CreateJobSerializer, JobBaseSerializer, JobInstallationBaseSerializer, JobLogBaseSerializer,
    ReassignTechnicianSerializer, RemoveTechnicianSerializer, SaveInstallationSerializer, StartJobSerializer,
    TechnicianSerializer, TransitionJobSerializer,
)
from jobs.services import job_service, job_state_machine
from jobs.transitions import next_states


class JobBaseView(BaseAPIView):
    serializer_class = JobBaseSerializer
    model_class = Job
    http_method_names = ["get", "post", "patch", "head", "options"]
    exact_params = ("status", "job_type", "job_number")

    def get_queryset(self, params=None, ordering=None):
        return super().get_queryset(params, ordering).select_related("customer", "vehicle", "primary_technician")

    def create(self, data, params, *args, **kwargs):
        validated = self.get_validated_data(CreateJobSerializer, data=data)
        job = job_service.create_job(
            customer_id=validated['customer_id'],
            job_type=validated['job_type'],
            vehicle_id=validated.get('vehicle_id'),
            scheduled_date=validated.get('scheduled_date'),
            service_description=validated.get('service_description'),
            required_product_ids=validated.get('required_product_ids'),
            technician_ids=validated.get('technician_ids'),
            created_by=params.get('user'),
        )
        return self.format_response(data=self.get_serialized_objects(job), status_code=201)


class JobOperationsBaseView(BaseAPIView):
    """Technician assignment, lifecycle transitions and installation data"""

    model_class = None
    serializer_class = None

    def _respond(self, job):
        job.refresh_from_db()
        return self.format_response(
            JobBaseSerializer(job, context={"request": self.request}).data, None, status.HTTP_200_OK
        )

    def assign_job_technicians(self, request, pk):
        try:
            data = self.get_validated_data(AssignTechniciansSerializer)
            job = job_service.assign_technicians(
                pk, data['technician_ids'], primary_first=data.get('primary_first', True), performed_by=request.user,
            )
            return self._respond(job)
        except Exception as e:
            return self.handle_exception(e)

    def remove_job_technician(self, request, pk, technician_id):
        try:
            data = self.get_validated_data(RemoveTechnicianSerializer)
            job = job_service.remove_technician(
                pk, technician_id, new_primary_id=data.get('new_primary_id'), performed_by=request.user,
            )
            return self._respond(job)
        except Exception as e:
            return self.handle_exception(e)

    def set_job_primary_technician(self, request, pk):
        try:
            data = self.get_validated_data(TechnicianSerializer)
            job = job_service.set_primary_technician(pk, data['technician_id'], performed_by=request.user)
            return self._respond(job)
        except Exception as e:
            return self.handle_exception(e)

    def reassign_job_technician(self, request, pk):
        try:
            data = self.get_validated_data(ReassignTechnicianSerializer)
            job = job_service.reassign_technician(
                pk, data['from_technician_id'], data['to_technician_id'], performed_by=request.user,
            )
            return self._respond(job)
        except Exception as e:
            return self.handle_exception(e)

    def attach_job_vehicle(self, request, pk):
        try:
            data = self.get_validated_data(AttachVehicleSerializer)
            job = job_service.attach_vehicle(pk, data['vehicle_id'], performed_by=request.user)
            return self._respond(job)
        except Exception as e:
            return self.handle_exception(e)

    def transition_job(self, request, pk):
        """Generic TransitionJob: the target status plus whatever its guard needs"""
        try:
            data = dict(self.get_validated_data(TransitionJobSerializer))
            target = data.pop('status')
            context = {key: value for key, value in data.items() if value not in (None, '')}
            job = job_state_machine.transition(pk, target, context, actor=request.user)
            return self._respond(job)
        except Exception as e:
            return self.handle_exception(e)

    def allowed_transitions(self, request, pk):
        try:
            job = Job.objects.get_object_or_404(raise_exception=True, id=pk)
            return self.format_response(
                {'status': job.status, 'next_states': next_states(job.status)}, None, status.HTTP_200_OK
            )
        except Exception as e:
            return self.handle_exception(e)

    def save_job_installation(self, request, pk):
        try:
            data = self.get_validated_data(SaveInstallationSerializer)
            installation = job_service.save_installation(pk, performed_by=request.user, **data)
            return self.format_response(
                JobInstallationBaseSerializer(installation).data, None, status.HTTP_200_OK
            )
        except Exception as e:
            return self.handle_exception(e)

    def job_completion_checklist(self, request, pk):
        try:
            return self.format_response(job_service.get_completion_checklist(pk), None, status.HTTP_200_OK)
        except Exception as e:
            return self.handle_exception(e)

    def job_logs(self, request, pk):
        try:
            logs = job_service.get_logs(pk)
            return self.format_response(JobLogBaseSerializer(logs, many=True).data, None, status.HTTP_200_OK)
        except Exception as e:
            return self.handle_exception(e)

    def job_statistics(self, request):
        try:
            return self.format_response(job_service.get_statistics(), None, status.HTTP_200_OK)
        except Exception as e:
            return self.handle_exception(e)

    def start_job(self, request, pk):
        try:
            data = self.get_validated_data(StartJobSerializer)
            job = job_service.start(pk, gps_coordinates=data.get('gps_coordinates'), performed_by=request.user)
            return self._respond(job)
        except Exception as e:
            return self.handle_exception(e)

    def complete_job(self, request, pk):
        try:
            data = self.get_validated_data(CompleteJobSerializer)
            job = job_service.complete(pk, performed_by=request.user, **data)
            return self._respond(job)
        except Exception as e:
            return self.handle_exception(e)

    def verify_job(self, request, pk):
        try:
            job = job_service.verify(pk, performed_by=request.user)
            return self._respond(job)
        except Exception as e:
            return self.handle_exception(e)

    def cancel_job(self, request, pk):
        try:
            data = self.get_validated_data(CancelJobSerializer)
            job = job_service.cancel(pk, data['reason'], performed_by=request.user)
            return self._respond(job)
        except Exception as e:
            return self.handle_exception(e)
