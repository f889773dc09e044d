from django.urls import path, include
from django.contrib import admin

from rest_framework_simplejwt.views import (
    TokenObtainPairView,
    TokenRefreshView,
    TokenVerifyView
)

from django.conf.urls.static import static
from django.conf import settings


api_urls = [
    path('users/', include('users.platforms.api.urls')),
    path('company/', include('company.platforms.api.urls')),
    path('inventory/', include('inventory.platforms.api.urls')),
    path('devices/', include('devices.platforms.api.urls')),
    path('requisitions/', include('requisitions.platforms.api.urls')),
    path('inspections/', include('inspections.platforms.api.urls')),
    path('jobs/', include('jobs.platforms.api.urls')),
]

v1_urlpatterns = [
    path('api/', include(api_urls)),
]

urlpatterns = [
    path('admin/', admin.site.urls),
    path('v1/', include(v1_urlpatterns)),
    path('v1/api/token/', TokenObtainPairView.as_view(), name='token_obtain_pair'),
    path('v1/api/token/refresh/', TokenRefreshView.as_view(), name='token_refresh'),
    path('v1/api/token/verify/', TokenVerifyView.as_view(), name='token_verify'),
]
urlpatterns += static(settings.MEDIA_URL, document_root=settings.MEDIA_ROOT)
urlpatterns += static(settings.STATIC_URL, document_root=settings.STATIC_ROOT)
