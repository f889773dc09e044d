from company.platforms.base.serializers import LocationBaseSerializer


class LocationApiSerializer(LocationBaseSerializer):
    pass
