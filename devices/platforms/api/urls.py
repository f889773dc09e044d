from django.urls import path

from devices.platforms.api.views import DeviceApiView, DeviceOperationsApiView

urlpatterns = [
    path('devices', DeviceApiView.as_view(), name='devices-list'),
    path('devices/<uuid:pk>', DeviceApiView.as_view(), name='devices-detail'),

    path('register', DeviceOperationsApiView.as_view({'post': 'register'}), name='devices-register'),
    path('available', DeviceOperationsApiView.as_view({'get': 'available'}), name='devices-available'),
    path('status-counts', DeviceOperationsApiView.as_view({'get': 'counts'}), name='devices-status-counts'),
    path('imei/<str:imei>', DeviceOperationsApiView.as_view({'get': 'by_imei'}), name='devices-by-imei'),
    path('imei/<str:imei>/history', DeviceOperationsApiView.as_view({'get': 'history'}), name='devices-history'),
    path('imei/<str:imei>/activate', DeviceOperationsApiView.as_view({'post': 'activate'}), name='devices-activate'),
    path('imei/<str:imei>/damaged', DeviceOperationsApiView.as_view({'post': 'damaged'}), name='devices-damaged'),
    path('imei/<str:imei>/return', DeviceOperationsApiView.as_view({'post': 'return_to_stock'}), name='devices-return'),
    path('imei/<str:imei>/deactivate', DeviceOperationsApiView.as_view({'post': 'deactivate'}), name='devices-deactivate'),
]
