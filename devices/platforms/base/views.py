from rest_framework import status

from configurations.base_features.exceptions.workflow_exceptions import ValidationError
from configurations.base_features.views.base_api_view import BaseAPIView
from devices.models import Device
from devices.platforms.base.serializers import (
    ActivateDeviceSerializer, DeviceBaseSerializer, DeviceLogBaseSerializer,
    DeviceReasonSerializer, RegisterDevicesSerializer, ReturnDeviceSerializer,
)
from devices.services import device_service


class DeviceBaseView(BaseAPIView):
    serializer_class = DeviceBaseSerializer
    model_class = Device
    http_method_names = ["get", "patch", "head", "options"]
    exact_params = ("status", "imei")

    def get_queryset(self, params=None, ordering=None):
        return super().get_queryset(params, ordering or "imei").select_related(
            "product", "batch", "location", "job"
        )


class DeviceOperationsBaseView(BaseAPIView):
    """Device registry operations keyed by IMEI"""

    model_class = None
    serializer_class = None

    def register_devices(self, request):
        try:
            data = self.get_validated_data(RegisterDevicesSerializer)
            devices = device_service.register_devices(
                product_id=data['product_id'],
                batch_id=data.get('batch_id'),
                imeis=data['imeis'],
                location_id=data.get('location_id'),
                performed_by=request.user,
            )
            return self.format_response(
                DeviceBaseSerializer(devices, many=True).data, None, status.HTTP_201_CREATED
            )
        except Exception as e:
            return self.handle_exception(e)

    def device_by_imei(self, request, imei):
        try:
            device = device_service.get_by_imei(imei)
            return self.format_response(DeviceBaseSerializer(device).data, None, status.HTTP_200_OK)
        except Exception as e:
            return self.handle_exception(e)

    def device_history(self, request, imei):
        try:
            logs = device_service.get_history(imei)
            return self.format_response(DeviceLogBaseSerializer(logs, many=True).data, None, status.HTTP_200_OK)
        except Exception as e:
            return self.handle_exception(e)

    def available_devices(self, request):
        try:
            product_id = request.query_params.get('product_id')
            if not product_id:
                raise ValidationError("product_id query parameter is required", param="product_id")
            devices = device_service.get_available_devices(
                product_id,
                batch_id=request.query_params.get('batch_id'),
                location_id=request.query_params.get('location_id'),
            )
            return self.format_response(DeviceBaseSerializer(devices, many=True).data, None, status.HTTP_200_OK)
        except Exception as e:
            return self.handle_exception(e)

    def activate_device(self, request, imei):
        try:
            data = self.get_validated_data(ActivateDeviceSerializer)
            device = device_service.activate(imei, performed_by=request.user, **data)
            return self.format_response(DeviceBaseSerializer(device).data, None, status.HTTP_200_OK)
        except Exception as e:
            return self.handle_exception(e)

    def mark_device_damaged(self, request, imei):
        try:
            data = self.get_validated_data(DeviceReasonSerializer)
            device = device_service.mark_damaged(imei, data.get('reason'), performed_by=request.user)
            return self.format_response(DeviceBaseSerializer(device).data, None, status.HTTP_200_OK)
        except Exception as e:
            return self.handle_exception(e)

    def return_device(self, request, imei):
        try:
            data = self.get_validated_data(ReturnDeviceSerializer)
            device = device_service.return_device(
                imei, data['reason'], location_id=data.get('location_id'), performed_by=request.user,
            )
            return self.format_response(DeviceBaseSerializer(device).data, None, status.HTTP_200_OK)
        except Exception as e:
            return self.handle_exception(e)

    def deactivate_device(self, request, imei):
        try:
            data = self.get_validated_data(DeviceReasonSerializer)
            device = device_service.deactivate(imei, data.get('reason'), performed_by=request.user)
            return self.format_response(DeviceBaseSerializer(device).data, None, status.HTTP_200_OK)
        except Exception as e:
            return self.handle_exception(e)

    def status_counts(self, request):
        try:
            counts = device_service.get_status_counts(request.query_params.get('product_id'))
            return self.format_response(counts, None, status.HTTP_200_OK)
        except Exception as e:
            return self.handle_exception(e)
