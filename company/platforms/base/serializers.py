from configurations.base_features.serializers.base_serializer import BaseSerializer
from company.models import Location


class LocationBaseSerializer(BaseSerializer):
    class Meta:
        model = Location
        fields = "__all__"
        read_only_fields = ("id", "created_at", "updated_at")
