from rest_framework import viewsets
from rest_framework.decorators import action

from inventory.platforms.base.views import (
    BatchBaseView, InventoryMovementBaseView, InventoryOperationsBaseView,
    InventoryRecordBaseView, ProductBaseView,
)
from inventory.platforms.api.serializers import (
    BatchApiSerializer, InventoryMovementApiSerializer, InventoryRecordApiSerializer,
    ProductApiSerializer,
)


class ProductApiView(ProductBaseView):
    serializer_class = ProductApiSerializer


class BatchApiView(BatchBaseView):
    serializer_class = BatchApiSerializer


class InventoryRecordApiView(InventoryRecordBaseView):
    serializer_class = InventoryRecordApiSerializer


class InventoryMovementApiView(InventoryMovementBaseView):
    serializer_class = InventoryMovementApiSerializer


class InventoryOperationsApiView(InventoryOperationsBaseView, viewsets.ViewSet):
    """API view for stock operations (receive, adjust, transfer, reservations)"""

    @action(detail=False, methods=['post'], url_path='receive')
    def receive(self, request):
        return super().receive_batch(request)

    @action(detail=False, methods=['post'], url_path='adjust')
    def adjust(self, request):
        return super().adjust_inventory(request)

    @action(detail=False, methods=['post'], url_path='transfer')
    def transfer(self, request):
        return super().transfer_inventory(request)

    @action(detail=False, methods=['post'], url_path='reserve')
    def reserve(self, request):
        return super().reserve_stock(request)

    @action(detail=False, methods=['post'], url_path='release')
    def release(self, request):
        return super().release_stock(request)

    @action(detail=False, methods=['post'], url_path='commit')
    def commit(self, request):
        return super().commit_stock(request)

    @action(detail=False, methods=['get'], url_path='summary')
    def summary(self, request):
        return super().inventory_summary(request)

    @action(detail=False, methods=['get'], url_path='stock-levels')
    def levels(self, request):
        return super().stock_levels(request)

    @action(detail=False, methods=['get'], url_path='low-stock')
    def low(self, request):
        return super().low_stock(request)
