import logging

from django.conf import settings

from inspections.models import InspectionStage
from jobs.models import Job, JobLog
from requisitions.models import Requisition

logger = logging.getLogger(__name__)


def create_job_created_log(sender, created, instance, **kwargs):
    if not created:
        return
    JobLog.objects.create(
        job=instance,
        log_type=JobLog.LogType.CREATED,
        new_status=instance.status,
        user=instance.created_by,
        description=f"{instance.get_job_type_display()} job created",
    )


def advance_job_on_requisition_change(sender, requisition, previous_status=None, performed_by=None, **kwargs):
    """A new requisition parks the job in REQUISITION_PENDING, approval or issue may release it"""
    if not settings.JOBS_AUTO_ADVANCE:
        return
    from jobs.services import job_state_machine

    job = Job.objects.get(pk=requisition.job_id)
    if job.status == Job.Status.ASSIGNED and requisition.status == Requisition.Status.PENDING:
        job_state_machine.advance_if_ready(job, Job.Status.REQUISITION_PENDING, actor=performed_by)
    elif job.status == Job.Status.REQUISITION_PENDING:
        job_state_machine.advance_if_ready(job, Job.Status.REQUISITION_APPROVED, actor=performed_by)


def advance_job_on_inspection(sender, job, stage, performed_by=None, **kwargs):
    if not settings.JOBS_AUTO_ADVANCE:
        return
    from jobs.services import job_state_machine

    job.refresh_from_db(fields=['status'])
    if stage == InspectionStage.PRE_INSTALLATION and job.status == Job.Status.PRE_INSPECTION_PENDING:
        job_state_machine.advance_if_ready(job, Job.Status.PRE_INSPECTION_APPROVED, actor=performed_by)
