from django.urls import path
from company.platforms.api.views import LocationApiView


urlpatterns = [
    path('locations', LocationApiView.as_view(), name='locations-list'),
    path('locations/<uuid:pk>', LocationApiView.as_view(), name='locations-detail'),
]
