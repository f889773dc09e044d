from django.urls import path

from inspections.platforms.api.views import (
    InspectionChecklistItemApiView, InspectionOperationsApiView, InspectionRecordApiView,
)

urlpatterns = [
    path('checklist-items', InspectionChecklistItemApiView.as_view(), name='checklist-items-list'),
    path('checklist-items/<uuid:pk>', InspectionChecklistItemApiView.as_view(), name='checklist-items-detail'),
    path(
        'checklist-items/<uuid:pk>/toggle',
        InspectionOperationsApiView.as_view({'post': 'toggle'}),
        name='checklist-items-toggle'
    ),
    path('checklist', InspectionOperationsApiView.as_view({'get': 'checklist'}), name='inspection-checklist'),

    path('records', InspectionRecordApiView.as_view(), name='inspection-records-list'),
    path('records/<uuid:pk>', InspectionRecordApiView.as_view(), name='inspection-records-detail'),
    path(
        'records/<uuid:pk>/revisions',
        InspectionOperationsApiView.as_view({'get': 'revisions'}),
        name='inspection-records-revisions'
    ),

    path('submit', InspectionOperationsApiView.as_view({'post': 'submit'}), name='inspection-submit'),
    path('status', InspectionOperationsApiView.as_view({'get': 'stage_status'}), name='inspection-status'),
    path('verify', InspectionOperationsApiView.as_view({'post': 'verify'}), name='inspection-verify'),
]
