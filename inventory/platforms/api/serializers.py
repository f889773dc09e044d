from inventory.platforms.base.serializers import (
    BatchBaseSerializer, InventoryMovementBaseSerializer, InventoryRecordBaseSerializer,
    ProductBaseSerializer,
)


class ProductApiSerializer(ProductBaseSerializer):
    pass


class BatchApiSerializer(BatchBaseSerializer):
    pass


class InventoryRecordApiSerializer(InventoryRecordBaseSerializer):
    pass


class InventoryMovementApiSerializer(InventoryMovementBaseSerializer):
    pass
