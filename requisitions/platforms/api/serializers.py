from requisitions.platforms.base.serializers import (
    RequisitionBaseSerializer, RequisitionIssuanceBaseSerializer,
)


class RequisitionApiSerializer(RequisitionBaseSerializer):
    pass


class RequisitionIssuanceApiSerializer(RequisitionIssuanceBaseSerializer):
    pass
