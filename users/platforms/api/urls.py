from django.urls import path
from users.platforms.api.views import CurrentUserApiView, TechnicianApiView


urlpatterns = [
    path('me', CurrentUserApiView.as_view(), name='current-user'),
    path('technicians', TechnicianApiView.as_view(), name='technicians-list'),
    path('technicians/<uuid:pk>', TechnicianApiView.as_view(), name='technicians-detail'),
]
