from django.contrib import admin

from inventory.models import Batch, InventoryMovement, InventoryRecord, Product


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ('sku', 'name', 'is_serialized', 'reorder_level', 'is_active')
    list_filter = ('is_serialized', 'is_active')
    search_fields = ('sku', 'name')


@admin.register(Batch)
class BatchAdmin(admin.ModelAdmin):
    list_display = ('batch_number', 'product', 'received_date', 'quantity_received', 'unit_cost', 'supplier')
    list_select_related = ('product',)
    search_fields = ('batch_number', 'product__sku')


@admin.register(InventoryRecord)
class InventoryRecordAdmin(admin.ModelAdmin):
    list_display = ('product', 'batch', 'location', 'quantity_available', 'quantity_reserved', 'version')
    list_select_related = ('product', 'batch', 'location')
    list_filter = ('location',)
    readonly_fields = ('quantity_available', 'quantity_reserved', 'version')


@admin.register(InventoryMovement)
class InventoryMovementAdmin(admin.ModelAdmin):
    list_display = ('created_at', 'movement_type', 'product', 'location', 'quantity_delta', 'reserved_delta', 'reference')
    list_select_related = ('product', 'location')
    list_filter = ('movement_type',)
    search_fields = ('reference', 'idempotency_key', 'product__sku')

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
