from company.platforms.base.views import LocationBaseView
from company.platforms.api.serializers import LocationApiSerializer


class LocationApiView(LocationBaseView):
    serializer_class = LocationApiSerializer
