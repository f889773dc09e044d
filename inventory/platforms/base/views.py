from rest_framework import status

from configurations.base_features.views.base_api_view import BaseAPIView
from inventory.models import Batch, InventoryMovement, InventoryRecord, Product
from inventory.platforms.base.serializers import (
    AdjustInventorySerializer, BatchBaseSerializer, InventoryMovementBaseSerializer,
    InventoryRecordBaseSerializer, ProductBaseSerializer, ReceiveBatchSerializer,
    ReservationSerializer, TransferInventorySerializer,
)
from inventory.services import inventory_service


class ProductBaseView(BaseAPIView):
    """Base view for Product CRUD operations"""
    serializer_class = ProductBaseSerializer
    model_class = Product
    exact_params = ("sku", "is_serialized", "is_active")


class BatchBaseView(BaseAPIView):
    serializer_class = BatchBaseSerializer
    model_class = Batch
    http_method_names = ["get", "patch", "head", "options"]

    def get_queryset(self, params=None, ordering=None):
        return super().get_queryset(params, ordering or "received_date").select_related("product")


class InventoryRecordBaseView(BaseAPIView):
    serializer_class = InventoryRecordBaseSerializer
    model_class = InventoryRecord
    http_method_names = ["get", "head", "options"]

    def get_queryset(self, params=None, ordering=None):
        return super().get_queryset(params, ordering).select_related("product", "batch", "location")


class InventoryMovementBaseView(BaseAPIView):
    """The ledger is append only, so this view only lists"""
    serializer_class = InventoryMovementBaseSerializer
    model_class = InventoryMovement
    http_method_names = ["get", "head", "options"]
    exact_params = ("movement_type", "reference")

    def get_queryset(self, params=None, ordering=None):
        return super().get_queryset(params, ordering).select_related("product", "location", "performed_by")


class InventoryOperationsBaseView(BaseAPIView):
    """Base view for stock operations, everything goes through the service layer"""

    model_class = None
    serializer_class = None

    def receive_batch(self, request):
        """Receive a batch into inventory"""
        try:
            data = self.get_validated_data(ReceiveBatchSerializer)
            result = inventory_service.receive_batch(
                product_id=str(data['product_id']),
                quantity=data['quantity'],
                batch_number=data['batch_number'],
                unit_cost=data.get('unit_cost'),
                location_id=data.get('location_id'),
                received_date=data.get('received_date'),
                expiry_date=data.get('expiry_date'),
                supplier=data.get('supplier'),
                device_imeis=data.get('device_imeis'),
                performed_by=request.user,
                idempotency_key=data.get('idempotency_key'),
            )
            return self.format_response(
                {
                    'operation': 'receive',
                    'message': result.message,
                    'batch': BatchBaseSerializer(result.batch).data,
                    'record': InventoryRecordBaseSerializer(result.record).data,
                    'movement': str(result.movement.id),
                    'devices': result.devices,
                },
                None,
                status.HTTP_201_CREATED
            )
        except Exception as e:
            return self.handle_exception(e)

    def adjust_inventory(self, request):
        """INCREASE, DECREASE or CORRECTION on one inventory record"""
        try:
            data = self.get_validated_data(AdjustInventorySerializer)
            result = inventory_service.adjust(
                product_id=str(data['product_id']),
                adjustment_type=data['adjustment_type'],
                quantity=data['quantity'],
                reason=data['reason'],
                batch_id=data.get('batch_id'),
                location_id=data.get('location_id'),
                device_imeis=data.get('device_imeis'),
                performed_by=request.user,
                idempotency_key=data.get('idempotency_key'),
            )
            return self.format_response(
                {
                    'operation': 'adjust',
                    'record': InventoryRecordBaseSerializer(result.record).data,
                    'requested_delta': result.requested_delta,
                    'applied_delta': result.applied_delta,
                    'movements': result.movements,
                    'devices': result.devices,
                },
                None,
                status.HTTP_200_OK,
                warnings=result.warnings,
            )
        except Exception as e:
            return self.handle_exception(e)

    def transfer_inventory(self, request):
        """Transfer stock between locations"""
        try:
            data = self.get_validated_data(TransferInventorySerializer)
            result = inventory_service.transfer(
                product_id=str(data['product_id']),
                from_location_id=str(data['from_location_id']),
                to_location_id=str(data['to_location_id']),
                quantity=data['quantity'],
                batch_id=data.get('batch_id'),
                device_imeis=data.get('device_imeis'),
                performed_by=request.user,
                reason=data.get('reason'),
                idempotency_key=data.get('idempotency_key'),
            )
            return self.format_response(
                {
                    'operation': 'transfer',
                    'success': result.success,
                    'message': result.message,
                    'allocations': [
                        {
                            'batch_id': allocation.batch_id,
                            'quantity': allocation.quantity,
                            'from_record_id': allocation.from_record_id,
                            'to_record_id': allocation.to_record_id,
                        } for allocation in result.allocations
                    ],
                    'movements': result.movements,
                    'devices': result.devices,
                },
                None,
                status.HTTP_200_OK
            )
        except Exception as e:
            return self.handle_exception(e)

    def _reservation(self, request, operation):
        try:
            data = self.get_validated_data(ReservationSerializer)
            handler = getattr(inventory_service, operation)
            record, movement = handler(
                data['record_id'],
                data['quantity'],
                performed_by=request.user,
                reference=data.get('reference'),
            )
            return self.format_response(
                {
                    'operation': operation,
                    'record': InventoryRecordBaseSerializer(record).data,
                    'movement': str(movement.id),
                },
                None,
                status.HTTP_200_OK
            )
        except Exception as e:
            return self.handle_exception(e)

    def reserve_stock(self, request):
        return self._reservation(request, 'reserve')

    def release_stock(self, request):
        return self._reservation(request, 'release')

    def commit_stock(self, request):
        return self._reservation(request, 'commit')

    def inventory_summary(self, request):
        try:
            data = inventory_service.get_inventory_summary(
                product_id=request.query_params.get('product_id'),
                location_id=request.query_params.get('location_id'),
            )
            return self.format_response(data, None, status.HTTP_200_OK)
        except Exception as e:
            return self.handle_exception(e)

    def stock_levels(self, request):
        try:
            data = inventory_service.get_stock_levels(
                product_id=request.query_params.get('product_id'),
                location_id=request.query_params.get('location_id'),
            )
            return self.format_response(data, None, status.HTTP_200_OK)
        except Exception as e:
            return self.handle_exception(e)

    def low_stock(self, request):
        try:
            return self.format_response(inventory_service.get_low_stock(), None, status.HTTP_200_OK)
        except Exception as e:
            return self.handle_exception(e)
