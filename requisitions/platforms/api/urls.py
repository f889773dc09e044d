from django.urls import path

from requisitions.platforms.api.views import (
    RequisitionApiView, RequisitionIssuanceApiView, RequisitionOperationsApiView,
)

urlpatterns = [
    path('requisitions', RequisitionApiView.as_view(), name='requisitions-list'),
    path('requisitions/statistics',
         RequisitionOperationsApiView.as_view({'get': 'statistics'}), name='requisitions-statistics'),
    path('requisitions/<uuid:pk>', RequisitionApiView.as_view(), name='requisitions-detail'),
    path('requisitions/<uuid:pk>/approve',
         RequisitionOperationsApiView.as_view({'post': 'approve'}), name='requisitions-approve'),
    path('requisitions/<uuid:pk>/reject',
         RequisitionOperationsApiView.as_view({'post': 'reject'}), name='requisitions-reject'),
    path('requisitions/<uuid:pk>/issue',
         RequisitionOperationsApiView.as_view({'post': 'issue'}), name='requisitions-issue'),
    path('requisitions/<uuid:pk>/return',
         RequisitionOperationsApiView.as_view({'post': 'return_items'}), name='requisitions-return'),
    path('requisitions/<uuid:pk>/logs',
         RequisitionOperationsApiView.as_view({'get': 'logs'}), name='requisitions-logs'),

    path('issuances', RequisitionIssuanceApiView.as_view(), name='issuances-list'),
    path('issuances/<uuid:pk>', RequisitionIssuanceApiView.as_view(), name='issuances-detail'),
]
