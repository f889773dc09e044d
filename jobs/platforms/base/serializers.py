from rest_framework import serializers

from configurations.base_features.serializers.base_serializer import BaseSerializer
from jobs.models import Job, JobInstallation, JobLog, JobTechnician


class JobTechnicianBaseSerializer(BaseSerializer):

    class Meta:
        model = JobTechnician
        fields = ("id", "technician", "position", "assigned_by", "created_at")
        read_only_fields = fields

    def mod_to_representation(self, instance):
        response = super().mod_to_representation(instance)
        response['technician_code'] = instance.technician.technician_code
        response['is_primary'] = instance.job.primary_technician_id == instance.technician_id
        return response


class JobInstallationBaseSerializer(BaseSerializer):

    class Meta:
        model = JobInstallation
        fields = "__all__"
        read_only_fields = [f.name for f in JobInstallation._meta.fields]


class JobLogBaseSerializer(BaseSerializer):

    class Meta:
        model = JobLog
        fields = "__all__"
        read_only_fields = [f.name for f in JobLog._meta.fields]

    def mod_to_representation(self, instance):
        response = super().mod_to_representation(instance)
        response['user'] = instance.user.email if instance.user_id else None
        return response


class JobBaseSerializer(BaseSerializer):
    """Descriptive fields only, status and technicians change through the job operations"""

    class Meta:
        model = Job
        fields = "__all__"
        read_only_fields = (
            "id", "job_number", "customer", "vehicle", "job_type", "status", "primary_technician", "technicians",
            "assigned_at", "start_time", "start_gps_coordinates", "end_time", "completion_notes",
            "customer_acknowledged_at", "customer_signature_url", "verified_by", "verified_at",
            "cancellation_reason", "cancelled_at", "created_by", "created_at", "updated_at",
        )

    def mod_to_representation(self, instance):
        response = super().mod_to_representation(instance)
        response['customer_name'] = instance.customer.name
        response['vehicle_registration'] = instance.vehicle.registration if instance.vehicle_id else None
        response['technicians'] = JobTechnicianBaseSerializer(
            instance.assignments.select_related('technician', 'job'), many=True
        ).data
        response['primary_technician_code'] = (
            instance.primary_technician.technician_code if instance.primary_technician_id else None
        )
        return response


class CreateJobSerializer(serializers.Serializer):
    customer_id = serializers.UUIDField()
    job_type = serializers.ChoiceField(choices=Job.Type.choices)
    vehicle_id = serializers.UUIDField(required=False, allow_null=True)
    scheduled_date = serializers.DateField(required=False, allow_null=True)
    service_description = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    required_product_ids = serializers.ListField(child=serializers.UUIDField(), required=False, default=list)
    technician_ids = serializers.ListField(child=serializers.UUIDField(), required=False, default=list)


class AssignTechniciansSerializer(serializers.Serializer):
    technician_ids = serializers.ListField(child=serializers.UUIDField(), allow_empty=False)
    primary_first = serializers.BooleanField(required=False, default=True)


class RemoveTechnicianSerializer(serializers.Serializer):
    new_primary_id = serializers.UUIDField(required=False, allow_null=True)


class TechnicianSerializer(serializers.Serializer):
    technician_id = serializers.UUIDField()


class ReassignTechnicianSerializer(serializers.Serializer):
    from_technician_id = serializers.UUIDField()
    to_technician_id = serializers.UUIDField()


class AttachVehicleSerializer(serializers.Serializer):
    vehicle_id = serializers.UUIDField()


class TransitionJobSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Job.Status.choices)
    gps_coordinates = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    reason = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    completion_notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    customer_signature_url = serializers.URLField(required=False, allow_blank=True, allow_null=True)
    customer_acknowledged = serializers.BooleanField(required=False, default=False)


class SaveInstallationSerializer(serializers.Serializer):
    imei_numbers = serializers.ListField(child=serializers.CharField(), required=False, default=list)
    no_device_change = serializers.BooleanField(required=False, default=False)
    photo_urls = serializers.ListField(child=serializers.URLField(), required=False, default=list)
    sim_card_iccid = serializers.CharField(max_length=30, required=False, allow_blank=True, allow_null=True)
    mac_address = serializers.CharField(max_length=50, required=False, allow_blank=True, allow_null=True)
    device_position = serializers.CharField(max_length=255, required=False, allow_blank=True, allow_null=True)
    gps_coordinates = serializers.CharField(max_length=100, required=False, allow_blank=True, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class StartJobSerializer(serializers.Serializer):
    gps_coordinates = serializers.CharField(max_length=100, required=False, allow_blank=True, allow_null=True)


class CompleteJobSerializer(serializers.Serializer):
    completion_notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    customer_signature_url = serializers.URLField(required=False, allow_blank=True, allow_null=True)
    customer_acknowledged = serializers.BooleanField(required=False, default=False)


class CancelJobSerializer(serializers.Serializer):
    reason = serializers.CharField(allow_blank=False)
