import logging
from typing import Any, Dict, List

from django.db import transaction
from django.utils import timezone

from configurations.base_features.exceptions.workflow_exceptions import ValidationError
from inspections.models import (
    InspectionChecklistItem,
    InspectionRecord,
    InspectionRecordRevision,
    InspectionStage,
)
from inspections.signals import inspection_submitted
from jobs.models import Job
from users.models import Technician

logger = logging.getLogger(__name__)

# job statuses in which each stage accepts submissions
OPEN_STATUSES = {
    InspectionStage.PRE_INSTALLATION: (
        Job.Status.PRE_INSPECTION_PENDING,
        Job.Status.PRE_INSPECTION_APPROVED,
    ),
    InspectionStage.POST_INSTALLATION: (
        Job.Status.IN_PROGRESS,
        Job.Status.POST_INSPECTION_PENDING,
    ),
}


class InspectionService:
    """Checklist maintenance and per job inspection records"""

    @staticmethod
    def validate_stage(stage):
        if stage not in InspectionStage.values:
            raise ValidationError(f"Unknown inspection stage '{stage}'", stage=stage)
        return stage

    def get_checklist(self, stage=None, active_only=True):
        queryset = InspectionChecklistItem.objects.all()
        if active_only:
            queryset = queryset.filter(is_active=True)
        if stage:
            self.validate_stage(stage)
            flag = 'is_pre_installation' if stage == InspectionStage.PRE_INSTALLATION else 'is_post_installation'
            queryset = queryset.filter(**{flag: True})
        return queryset.order_by('display_order', 'name')

    def toggle_item(self, item_id) -> InspectionChecklistItem:
        item = InspectionChecklistItem.objects.get_object_or_404(raise_exception=True, id=item_id)
        item.is_active = not item.is_active
        item.save(update_fields=['is_active', 'updated_at'])
        logger.info("Checklist item %s is_active=%s", item.name, item.is_active)
        return item

    def missing_items(self, job, stage) -> List[str]:
        """Names of active items of the stage that have no result yet"""
        done = set(
            InspectionRecord.objects.filter(job=job, stage=stage)
            .exclude(status=InspectionRecord.Status.NOT_CHECKED)
            .values_list('checklist_item_id', flat=True)
        )
        return [item.name for item in self.get_checklist(stage) if item.id not in done]

    def is_stage_complete(self, job, stage) -> bool:
        return not self.missing_items(job, stage)

    def _resolve_technician(self, job, technician_id, performed_by):
        if technician_id:
            technician = Technician.objects.get_object_or_404(raise_exception=True, id=technician_id)
            if not job.assignments.filter(technician=technician).exists():
                raise ValidationError(
                    "Technician is not assigned to the job",
                    technician_id=str(technician.id),
                    job_id=job.job_number,
                )
            return technician
        return Technician.objects.get_or_none(user=performed_by) if performed_by is not None else None

    def _validate_items(self, stage, items) -> List[Dict[str, Any]]:
        if not items:
            raise ValidationError("At least one checklist item is required")

        checklist = {
            str(item.id): item
            for item in InspectionChecklistItem.objects.filter(id__in=[str(i.get('checklist_item_id')) for i in items])
        }
        seen = set()
        cleaned = []
        for entry in items:
            item_id = str(entry.get('checklist_item_id'))
            item = checklist.get(item_id)
            if item is None:
                raise ValidationError("Unknown checklist item", checklist_item_id=item_id)
            if item_id in seen:
                raise ValidationError("Checklist item submitted twice", checklist_item_id=item_id)
            seen.add(item_id)
            if not item.is_active:
                raise ValidationError("Checklist item is inactive", checklist_item_id=item_id)
            if not item.applies_to(stage):
                raise ValidationError("Checklist item does not apply to this stage", checklist_item_id=item_id, stage=stage)

            status = entry.get('status')
            if status not in InspectionRecord.Status.values:
                raise ValidationError(f"Unknown inspection status '{status}'", checklist_item_id=item_id)
            photo_urls = list(entry.get('photo_urls') or [])
            if item.requires_photo and status == InspectionRecord.Status.CHECKED and not photo_urls:
                raise ValidationError("A photo is required for this item", checklist_item_id=item_id, item=item.name)

            cleaned.append({
                'item': item,
                'status': status,
                'notes': entry.get('notes'),
                'photo_urls': photo_urls,
            })
        return cleaned

    def submit(
        self,
        job_id,
        stage,
        items,
        vehicle_id=None,
        technician_id=None,
        performed_by=None,
        edit=False,
        edit_reason=None,
    ) -> List[InspectionRecord]:
        """
        Record checklist results for one stage of a job.

        The first result for an item is appended. Changing an existing result
        needs `edit`, which keeps the previous values as a revision.
        """
        self.validate_stage(stage)
        entries = self._validate_items(stage, items)

        with transaction.atomic():
            job = Job.objects.get_object_or_404(raise_exception=True, id=job_id)
            job = Job.objects.select_for_update().get(pk=job.pk)
            if job.status not in OPEN_STATUSES[stage]:
                raise ValidationError(
                    "Inspection stage is not open for the job",
                    job_id=job.job_number,
                    stage=stage,
                    job_status=job.status,
                )
            if job.vehicle_id is None:
                raise ValidationError("Job has no vehicle attached", job_id=job.job_number)
            if vehicle_id and str(vehicle_id) != str(job.vehicle_id):
                raise ValidationError(
                    "Vehicle does not match the job",
                    job_id=job.job_number,
                    vehicle_id=str(vehicle_id),
                )

            technician = self._resolve_technician(job, technician_id, performed_by)
            existing = {
                record.checklist_item_id: record
                for record in InspectionRecord.objects.select_for_update().filter(
                    job=job, stage=stage, checklist_item__in=[entry['item'] for entry in entries],
                )
            }

            now = timezone.now()
            records = []
            for entry in entries:
                item = entry['item']
                record = existing.get(item.id)
                if record is not None and not edit:
                    raise ValidationError(
                        "Item already recorded for this stage, resubmit in edit mode to change it",
                        checklist_item_id=str(item.id),
                        stage=stage,
                    )
                if record is None:
                    record = InspectionRecord(job=job, stage=stage, checklist_item=item)
                else:
                    InspectionRecordRevision.objects.create(
                        record=record,
                        previous_status=record.status,
                        previous_notes=record.notes,
                        previous_photo_urls=record.photo_urls,
                        previous_technician=record.technician,
                        previous_checked_at=record.checked_at,
                        changed_by=performed_by,
                        change_reason=edit_reason,
                    )
                    record.revision_count += 1
                    record.verified_by = None
                    record.verified_at = None

                record.vehicle_id = job.vehicle_id
                record.status = entry['status']
                record.notes = entry['notes']
                record.photo_urls = entry['photo_urls']
                record.technician = technician
                record.checked_at = now
                record.save()
                records.append(record)

            logger.info(
                "Inspection %s for %s: %s items (%s)",
                stage, job.job_number, len(records), "edit" if edit else "new",
            )
            inspection_submitted.send(sender=InspectionRecord, job=job, stage=stage, performed_by=performed_by)
        return records

    def get_status(self, job_id, stage) -> Dict[str, Any]:
        self.validate_stage(stage)
        job = Job.objects.get_object_or_404(raise_exception=True, id=job_id)
        records = list(
            InspectionRecord.objects.select_related('checklist_item', 'technician')
            .filter(job=job, stage=stage)
        )
        missing = self.missing_items(job, stage)
        return {
            'job_id': str(job.id),
            'job_number': job.job_number,
            'stage': stage,
            'is_complete': not missing,
            'missing_items': missing,
            'issues_found': [
                record.checklist_item.name for record in records
                if record.status == InspectionRecord.Status.ISSUE_FOUND
            ],
            'is_verified': bool(records) and all(record.verified_at for record in records),
            'records': records,
        }

    def verify(self, job_id, stage, performed_by=None) -> List[InspectionRecord]:
        """Supervisor sign-off on a complete stage"""
        self.validate_stage(stage)
        with transaction.atomic():
            job = Job.objects.get_object_or_404(raise_exception=True, id=job_id)
            missing = self.missing_items(job, stage)
            if missing:
                raise ValidationError(
                    "Inspection stage is incomplete",
                    job_id=job.job_number,
                    stage=stage,
                    missing_items=missing,
                )
            now = timezone.now()
            InspectionRecord.objects.filter(job=job, stage=stage).update(
                verified_by=performed_by, verified_at=now, updated_at=now,
            )
        return list(InspectionRecord.objects.filter(job=job, stage=stage))


inspection_service = InspectionService()
