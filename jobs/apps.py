from django.apps import AppConfig
from django.db.models.signals import post_save


class JobsConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'jobs'

    def ready(self):
        from inspections.signals import inspection_submitted
        from jobs.models import Job
        from jobs.signals import (  # noqa
            advance_job_on_inspection,
            advance_job_on_requisition_change,
            create_job_created_log,
        )
        from requisitions.signals import requisition_changed

        post_save.connect(create_job_created_log, sender=Job, dispatch_uid="jobs_created_log")
        requisition_changed.connect(advance_job_on_requisition_change, dispatch_uid="jobs_requisition_changed")
        inspection_submitted.connect(advance_job_on_inspection, dispatch_uid="jobs_inspection_submitted")
