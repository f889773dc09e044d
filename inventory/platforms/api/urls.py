from django.urls import path

from inventory.platforms.api.views import (
    BatchApiView, InventoryMovementApiView, InventoryOperationsApiView,
    InventoryRecordApiView, ProductApiView,
)

urlpatterns = [
    path('products', ProductApiView.as_view(), name='products-list'),
    path('products/<uuid:pk>', ProductApiView.as_view(), name='products-detail'),

    path('batches', BatchApiView.as_view(), name='batches-list'),
    path('batches/<uuid:pk>', BatchApiView.as_view(), name='batches-detail'),

    path('records', InventoryRecordApiView.as_view(), name='inventory-records-list'),
    path('records/<uuid:pk>', InventoryRecordApiView.as_view(), name='inventory-records-detail'),

    path('movements', InventoryMovementApiView.as_view(), name='movements-list'),
    path('movements/<uuid:pk>', InventoryMovementApiView.as_view(), name='movements-detail'),

    path('receive', InventoryOperationsApiView.as_view({'post': 'receive'}), name='inventory-receive'),
    path('adjust', InventoryOperationsApiView.as_view({'post': 'adjust'}), name='inventory-adjust'),
    path('transfer', InventoryOperationsApiView.as_view({'post': 'transfer'}), name='inventory-transfer'),
    path('reserve', InventoryOperationsApiView.as_view({'post': 'reserve'}), name='inventory-reserve'),
    path('release', InventoryOperationsApiView.as_view({'post': 'release'}), name='inventory-release'),
    path('commit', InventoryOperationsApiView.as_view({'post': 'commit'}), name='inventory-commit'),
    path('summary', InventoryOperationsApiView.as_view({'get': 'summary'}), name='inventory-summary'),
    path('stock-levels', InventoryOperationsApiView.as_view({'get': 'levels'}), name='inventory-stock-levels'),
    path('low-stock', InventoryOperationsApiView.as_view({'get': 'low'}), name='inventory-low-stock'),
]
