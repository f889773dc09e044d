from django.urls import path

from jobs.platforms.api.views import JobApiView, JobOperationsApiView

urlpatterns = [
    path('jobs', JobApiView.as_view(), name='jobs-list'),
    path('jobs/statistics', JobOperationsApiView.as_view({'get': 'statistics'}), name='jobs-statistics'),
    path('jobs/<uuid:pk>', JobApiView.as_view(), name='jobs-detail'),
    path('jobs/<uuid:pk>/assign-technicians',
         JobOperationsApiView.as_view({'post': 'assign_technicians'}), name='jobs-assign-technicians'),
    path('jobs/<uuid:pk>/technicians/<uuid:technician_id>',
         JobOperationsApiView.as_view({'delete': 'remove_technician'}), name='jobs-remove-technician'),
    path('jobs/<uuid:pk>/primary-technician',
         JobOperationsApiView.as_view({'post': 'set_primary'}), name='jobs-primary-technician'),
    path('jobs/<uuid:pk>/reassign-technician',
         JobOperationsApiView.as_view({'post': 'reassign'}), name='jobs-reassign-technician'),
    path('jobs/<uuid:pk>/vehicle', JobOperationsApiView.as_view({'post': 'vehicle'}), name='jobs-vehicle'),
    path('jobs/<uuid:pk>/transition',
         JobOperationsApiView.as_view({'get': 'transition', 'post': 'transition'}), name='jobs-transition'),
    path('jobs/<uuid:pk>/start', JobOperationsApiView.as_view({'post': 'start'}), name='jobs-start'),
    path('jobs/<uuid:pk>/complete', JobOperationsApiView.as_view({'post': 'complete'}), name='jobs-complete'),
    path('jobs/<uuid:pk>/verify', JobOperationsApiView.as_view({'post': 'verify'}), name='jobs-verify'),
    path('jobs/<uuid:pk>/cancel', JobOperationsApiView.as_view({'post': 'cancel'}), name='jobs-cancel'),
    path('jobs/<uuid:pk>/installation',
         JobOperationsApiView.as_view({'post': 'installation'}), name='jobs-installation'),
    path('jobs/<uuid:pk>/completion-checklist',
         JobOperationsApiView.as_view({'get': 'checklist'}), name='jobs-completion-checklist'),
    path('jobs/<uuid:pk>/logs', JobOperationsApiView.as_view({'get': 'logs'}), name='jobs-logs'),
]
