from inspections.platforms.base.serializers import (
    InspectionChecklistItemBaseSerializer, InspectionRecordBaseSerializer,
)


class InspectionChecklistItemApiSerializer(InspectionChecklistItemBaseSerializer):
    pass


class InspectionRecordApiSerializer(InspectionRecordBaseSerializer):
    pass
