from configurations.base_features.views.base_api_view import BaseAPIView
from company.models import Location
from company.platforms.base.serializers import LocationBaseSerializer


class LocationBaseView(BaseAPIView):
    serializer_class = LocationBaseSerializer
    model_class = Location
    exact_params = ("code",)

    def get_queryset(self, params=None, ordering=None):
        return super().get_queryset(params, ordering or "code")
