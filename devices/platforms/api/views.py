from rest_framework import viewsets
from rest_framework.decorators import action

from devices.platforms.api.serializers import DeviceApiSerializer
from devices.platforms.base.views import DeviceBaseView, DeviceOperationsBaseView


class DeviceApiView(DeviceBaseView):
    serializer_class = DeviceApiSerializer


class DeviceOperationsApiView(DeviceOperationsBaseView, viewsets.ViewSet):

    @action(detail=False, methods=['post'], url_path='register')
    def register(self, request):
        return super().register_devices(request)

    @action(detail=False, methods=['get'], url_path='available')
    def available(self, request):
        return super().available_devices(request)

    @action(detail=False, methods=['get'], url_path='status-counts')
    def counts(self, request):
        return super().status_counts(request)

    @action(detail=True, methods=['get'], url_path='by-imei')
    def by_imei(self, request, imei=None):
        return super().device_by_imei(request, imei)

    @action(detail=True, methods=['get'], url_path='history')
    def history(self, request, imei=None):
        return super().device_history(request, imei)

    @action(detail=True, methods=['post'], url_path='activate')
    def activate(self, request, imei=None):
        return super().activate_device(request, imei)

    @action(detail=True, methods=['post'], url_path='damaged')
    def damaged(self, request, imei=None):
        return super().mark_device_damaged(request, imei)

    @action(detail=True, methods=['post'], url_path='return')
    def return_to_stock(self, request, imei=None):
        return super().return_device(request, imei)

    @action(detail=True, methods=['post'], url_path='deactivate')
    def deactivate(self, request, imei=None):
        return super().deactivate_device(request, imei)
