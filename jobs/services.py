"""
Job lifecycle services

JobStateMachine owns `Job.status`: it snapshots the facts the guards need,
evaluates the transition table in `jobs.transitions` and applies the change
with its audit row. It only reads requisitions and inspections, stock is
never touched from here.

JobService covers the rest of the job: creation, technician assignment,
vehicle and installation data, statistics.
"""
import logging
from typing import Any, Dict, List, Optional

from django.conf import settings
from django.db import transaction
from django.db.models import Count, Max
from django.utils import timezone

from company.models import CompanyProfile
from configurations.base_features.exceptions.workflow_exceptions import (
    InvalidTransition,
    LocationRequired,
    ValidationError,
)
from configurations.tasks import notify_on_commit
from customers.models import Customer, Vehicle
from devices import registry as device_registry
from devices.models import Device
from inspections.models import InspectionStage
from inspections.services import inspection_service
from inventory.models import Product
from jobs import transitions
from jobs.models import Job, JobInstallation, JobLog, JobTechnician
from requisitions.services import requisition_service
from users.models import Technician

logger = logging.getLogger(__name__)

# statuses in which the technician list may still change
ASSIGNABLE_STATUSES = (
    Job.Status.PENDING,
    Job.Status.ASSIGNED,
    Job.Status.REQUISITION_PENDING,
    Job.Status.REQUISITION_APPROVED,
    Job.Status.PRE_INSPECTION_PENDING,
    Job.Status.PRE_INSPECTION_APPROVED,
    Job.Status.IN_PROGRESS,
    Job.Status.POST_INSPECTION_PENDING,
)


def _lock_job(job_id) -> Job:
    job = Job.objects.get_object_or_404(raise_exception=True, id=job_id)
    return Job.objects.select_for_update().get(pk=job.pk)


class JobStateMachine:

    def collect_facts(self, job, context=None) -> transitions.JobFacts:
        """Snapshot of everything the guards read, `context` overlays values sent with the request"""
        context = context or {}
        requisitions = requisition_service.get_job_requisition_facts(job)
        installation = JobInstallation.objects.get_or_none(job=job)
        notes = context.get('completion_notes') or job.completion_notes or ''
        return transitions.JobFacts(
            job_type=job.job_type,
            technician_count=job.assignments.count(),
            requisition_statuses=requisitions['statuses'],
            outstanding_required_items=requisitions['outstanding_required_items'],
            vehicle_required=job.job_type in settings.JOBS_VEHICLE_REQUIRED_TYPES,
            vehicle_present=job.vehicle_id is not None,
            pre_inspection_missing=tuple(inspection_service.missing_items(job, InspectionStage.PRE_INSTALLATION)),
            post_inspection_missing=tuple(inspection_service.missing_items(job, InspectionStage.POST_INSTALLATION)),
            installation_present=installation is not None and installation.is_complete,
            completion_notes=bool(str(notes).strip()),
            customer_acknowledged=bool(
                context.get('customer_acknowledged')
                or context.get('customer_signature_url')
                or job.customer_acknowledged_at
            ),
            scheduled_date=job.scheduled_date,
            today=CompanyProfile.local_today(),
        )

    def _apply(self, job, target, context, actor):
        now = timezone.now()
        if target == Job.Status.ASSIGNED and job.assigned_at is None:
            job.assigned_at = now
        elif target == Job.Status.IN_PROGRESS:
            job.start_time = now
            job.start_gps_coordinates = str(context['gps_coordinates']).strip()
        elif target == Job.Status.COMPLETED:
            job.end_time = now
            if context.get('completion_notes'):
                job.completion_notes = context['completion_notes']
            if context.get('customer_signature_url'):
                job.customer_signature_url = context['customer_signature_url']
            if job.customer_acknowledged_at is None:
                job.customer_acknowledged_at = now
        elif target == Job.Status.VERIFIED:
            job.verified_by = actor
            job.verified_at = now
        elif target == Job.Status.CANCELLED:
            job.cancellation_reason = str(context['reason']).strip()
            job.cancelled_at = now

    def transition(self, job_id, target, context: Optional[Dict[str, Any]] = None, actor=None) -> Job:
        """
        Move a job to `target`.

        A failed guard raises InvalidTransition (LocationRequired for a start
        without GPS) and changes nothing. Requesting the current status is a
        no-op so retries are safe.
        """
        if target not in Job.Status.values:
            raise ValidationError(f"Unknown job status '{target}'", status=target)
        context = context or {}

        with transaction.atomic():
            job = _lock_job(job_id)
            if job.status == target:
                logger.info("Job %s already %s", job.job_number, target)
                return job

            facts = self.collect_facts(job, context)
            unmet = transitions.evaluate_transition(job.status, target, facts, context)
            if unmet == transitions.START_LOCATION_GUARD:
                raise LocationRequired(job_id=job.job_number)
            if unmet:
                raise InvalidTransition(
                    current_state=job.status,
                    requested_state=target,
                    unmet_guard=unmet,
                    entity="Job",
                    entity_id=job.job_number,
                )

            previous = job.status
            self._apply(job, target, context, actor)
            job.status = target
            job.save()
            JobLog.objects.create(
                job=job,
                log_type=JobLog.LogType.STATUS_CHANGED,
                previous_status=previous,
                new_status=target,
                user=actor,
                description=context.get('notes') or context.get('reason'),
                details={k: v for k, v in context.items() if isinstance(v, (str, int, float, bool))},
            )
            notify_on_commit('job.status_changed', {
                'job_id': str(job.id),
                'job_number': job.job_number,
                'previous_status': previous,
                'status': target,
            })

        logger.info("Job %s: %s -> %s", job.job_number, previous, target)
        return job

    def advance_if_ready(self, job, target, actor=None) -> bool:
        """Best effort move used by event handlers, an unmet guard just leaves the job where it is"""
        try:
            self.transition(job.pk, target, actor=actor)
            return True
        except (InvalidTransition, LocationRequired) as e:
            logger.debug("Job %s not advanced to %s: %s", job.pk, target, e)
            return False


job_state_machine = JobStateMachine()


class JobService:

    def __init__(self, state_machine: JobStateMachine):
        self.state_machine = state_machine

    # -------------------------------
    # Helpers
    # -------------------------------

    @staticmethod
    def _log(job, log_type, user=None, description=None, details=None):
        return JobLog.objects.create(
            job=job,
            log_type=log_type,
            previous_status=job.status,
            new_status=job.status,
            user=user,
            description=description,
            details=details or {},
        )

    @staticmethod
    def _assignment(job, technician_id) -> JobTechnician:
        assignment = job.assignments.select_related('technician').filter(technician_id=technician_id).first()
        if assignment is None:
            raise ValidationError(
                "Technician is not assigned to the job",
                technician_id=str(technician_id),
                job_id=job.job_number,
            )
        return assignment

    @staticmethod
    def _ensure_assignable(job):
        if job.status not in ASSIGNABLE_STATUSES:
            raise ValidationError(
                "Technicians cannot be changed on a job in its current status",
                job_id=job.job_number,
                job_status=job.status,
            )

    # -------------------------------
    # Jobs
    # -------------------------------

    def create_job(self, customer_id, job_type, vehicle_id=None, scheduled_date=None, service_description=None,
                   required_product_ids=None, technician_ids=None, created_by=None) -> Job:
        if job_type not in Job.Type.values:
            raise ValidationError(f"Unknown job type '{job_type}'", job_type=job_type)

        with transaction.atomic():
            customer = Customer.objects.get_object_or_404(raise_exception=True, id=customer_id)
            vehicle = None
            if vehicle_id:
                vehicle = Vehicle.objects.get_object_or_404(raise_exception=True, id=vehicle_id)
                if vehicle.customer_id != customer.id:
                    raise ValidationError("Vehicle does not belong to the customer", vehicle_id=str(vehicle.id))

            product_ids = [str(product_id) for product_id in (required_product_ids or [])]
            if product_ids:
                known = {str(pk) for pk in Product.objects.filter(id__in=product_ids).values_list('id', flat=True)}
                unknown = [product_id for product_id in product_ids if product_id not in known]
                if unknown:
                    raise ValidationError("Unknown product", product_ids=unknown)

            job = Job.objects.create(
                customer=customer,
                vehicle=vehicle,
                job_type=job_type,
                scheduled_date=scheduled_date,
                service_description=service_description,
                required_product_ids=product_ids,
                created_by=created_by,
            )
            if technician_ids:
                job = self.assign_technicians(job.id, technician_ids, performed_by=created_by)

        logger.info("Job %s created for %s", job.job_number, customer)
        return job

    def attach_vehicle(self, job_id, vehicle_id, performed_by=None) -> Job:
        with transaction.atomic():
            job = _lock_job(job_id)
            if job.status in (Job.Status.COMPLETED,) + transitions.TERMINAL_STATES:
                raise ValidationError("Vehicle cannot be changed on a closed job", job_id=job.job_number)
            vehicle = Vehicle.objects.get_object_or_404(raise_exception=True, id=vehicle_id)
            if vehicle.customer_id != job.customer_id:
                raise ValidationError("Vehicle does not belong to the job's customer", vehicle_id=str(vehicle.id))
            job.vehicle = vehicle
            job.save(update_fields=['vehicle', 'updated_at'])
            self._log(job, JobLog.LogType.VEHICLE_ATTACHED, performed_by, f"Vehicle {vehicle} attached")
        return job

    # -------------------------------
    # Technicians
    # -------------------------------

    def assign_technicians(self, job_id, technician_ids, primary_first=True, performed_by=None) -> Job:
        """
        Append technicians in the given order. With `primary_first` the first
        of them becomes primary when the job has none yet. A PENDING job moves
        to ASSIGNED.
        """
        ids = [str(technician_id) for technician_id in (technician_ids or [])]
        if not ids:
            raise ValidationError("At least one technician is required")
        if len(set(ids)) != len(ids):
            raise ValidationError("Technician listed twice", technician_ids=ids)

        with transaction.atomic():
            job = _lock_job(job_id)
            self._ensure_assignable(job)

            technicians = {str(t.id): t for t in Technician.objects.filter(id__in=ids)}
            missing = [technician_id for technician_id in ids if technician_id not in technicians]
            if missing:
                raise ValidationError("Unknown technician", technician_ids=missing)
            inactive = [technician_id for technician_id in ids if not technicians[technician_id].is_active]
            if inactive:
                raise ValidationError("Technician is inactive", technician_ids=inactive)

            current = {str(pk) for pk in job.assignments.values_list('technician_id', flat=True)}
            position = (job.assignments.aggregate(top=Max('position'))['top'] or 0)
            added = []
            for technician_id in ids:
                if technician_id in current:
                    continue
                position += 1
                JobTechnician.objects.create(
                    job=job,
                    technician=technicians[technician_id],
                    position=position,
                    assigned_by=performed_by,
                )
                added.append(technician_id)

            if primary_first and job.primary_technician_id is None:
                job.primary_technician = technicians[ids[0]]
                job.save(update_fields=['primary_technician', 'updated_at'])

            if added:
                self._log(
                    job, JobLog.LogType.TECHNICIAN_ASSIGNED, performed_by,
                    details={'technician_ids': added, 'primary_technician_id': str(job.primary_technician_id)},
                )
                notify_on_commit('job.assigned', {
                    'job_id': str(job.id),
                    'job_number': job.job_number,
                    'technician_ids': added,
                })

            if job.status == Job.Status.PENDING:
                job = self.state_machine.transition(job.id, Job.Status.ASSIGNED, actor=performed_by)

        logger.info("Job %s: assigned %s technician(s)", job.job_number, len(added))
        return job

    def remove_technician(self, job_id, technician_id, new_primary_id=None, performed_by=None) -> Job:
        """
        Drop an assignment. Removing the primary promotes `new_primary_id`
        when given, otherwise the next technician by assignment order.
        """
        with transaction.atomic():
            job = _lock_job(job_id)
            self._ensure_assignable(job)
            assignment = self._assignment(job, technician_id)
            remaining = list(job.assignments.exclude(pk=assignment.pk).order_by('position', 'created_at'))
            if not remaining and job.status != Job.Status.PENDING:
                raise ValidationError(
                    "The last technician cannot be removed once the job is assigned",
                    job_id=job.job_number,
                )

            was_primary = job.primary_technician_id == assignment.technician_id
            if new_primary_id and not any(str(a.technician_id) == str(new_primary_id) for a in remaining):
                raise ValidationError(
                    "New primary must be one of the remaining technicians",
                    technician_id=str(new_primary_id),
                )

            assignment.delete()
            self._log(job, JobLog.LogType.TECHNICIAN_REMOVED, performed_by,
                      details={'technician_id': str(technician_id)})

            if was_primary or new_primary_id:
                if new_primary_id:
                    job.primary_technician_id = next(
                        a.technician_id for a in remaining if str(a.technician_id) == str(new_primary_id)
                    )
                else:
                    job.primary_technician_id = remaining[0].technician_id if remaining else None
                job.save(update_fields=['primary_technician', 'updated_at'])
                self._log(job, JobLog.LogType.PRIMARY_CHANGED, performed_by,
                          details={'primary_technician_id': str(job.primary_technician_id)})
        return job

    def set_primary_technician(self, job_id, technician_id, performed_by=None) -> Job:
        with transaction.atomic():
            job = _lock_job(job_id)
            self._ensure_assignable(job)
            assignment = self._assignment(job, technician_id)
            if job.primary_technician_id != assignment.technician_id:
                job.primary_technician = assignment.technician
                job.save(update_fields=['primary_technician', 'updated_at'])
                self._log(job, JobLog.LogType.PRIMARY_CHANGED, performed_by,
                          details={'primary_technician_id': str(assignment.technician_id)})
        return job

    def reassign_technician(self, job_id, from_technician_id, to_technician_id, performed_by=None) -> Job:
        """Swap one technician for another keeping the position and primary flag"""
        with transaction.atomic():
            job = _lock_job(job_id)
            self._ensure_assignable(job)
            assignment = self._assignment(job, from_technician_id)
            replacement = Technician.objects.get_object_or_404(raise_exception=True, id=to_technician_id)
            if not replacement.is_active:
                raise ValidationError("Technician is inactive", technician_id=str(replacement.id))
            if job.assignments.filter(technician=replacement).exists():
                raise ValidationError("Technician is already assigned to the job", technician_id=str(replacement.id))

            was_primary = job.primary_technician_id == assignment.technician_id
            assignment.technician = replacement
            assignment.assigned_by = performed_by
            assignment.save()
            if was_primary:
                job.primary_technician = replacement
                job.save(update_fields=['primary_technician', 'updated_at'])
            self._log(job, JobLog.LogType.TECHNICIAN_REASSIGNED, performed_by, details={
                'from_technician_id': str(from_technician_id),
                'to_technician_id': str(replacement.id),
            })
            notify_on_commit('job.assigned', {
                'job_id': str(job.id),
                'job_number': job.job_number,
                'technician_ids': [str(replacement.id)],
            })
        return job

    # -------------------------------
    # Field work
    # -------------------------------

    def save_installation(self, job_id, imei_numbers=None, no_device_change=False, photo_urls=None,
                          sim_card_iccid=None, mac_address=None, device_position=None, gps_coordinates=None,
                          notes=None, performed_by=None) -> JobInstallation:
        """
        Record what was fitted. The IMEIs must be devices issued to this job,
        "no device change" is only accepted for service job types.
        """
        imeis = device_registry.normalize_imeis(imei_numbers)
        photos = [url for url in (photo_urls or []) if url]

        with transaction.atomic():
            job = _lock_job(job_id)
            if job.status != Job.Status.IN_PROGRESS:
                raise ValidationError(
                    "Installation data can only be saved while the job is in progress",
                    job_id=job.job_number,
                    job_status=job.status,
                )
            if no_device_change:
                if job.job_type not in settings.JOBS_NO_DEVICE_CHANGE_TYPES:
                    raise ValidationError(
                        f"'No device change' is not allowed for {job.job_type} jobs",
                        job_id=job.job_number,
                    )
                if imeis:
                    raise ValidationError("IMEIs cannot be combined with 'no device change'", job_id=job.job_number)
            elif not imeis:
                raise ValidationError("Installed device IMEIs are required", job_id=job.job_number)
            if not photos:
                raise ValidationError("At least one installation photo is required", job_id=job.job_number)

            if imeis:
                bound = set(
                    Device.objects.filter(
                        imei__in=imeis,
                        job=job,
                        status__in=[Device.Status.ISSUED, Device.Status.ACTIVE],
                    ).values_list('imei', flat=True)
                )
                foreign = [imei for imei in imeis if imei not in bound]
                if foreign:
                    raise ValidationError("Devices were not issued to this job", imeis=foreign, job_id=job.job_number)

            installation, _ = JobInstallation.objects.update_or_create(
                job=job,
                defaults={
                    'imei_numbers': imeis,
                    'no_device_change': bool(no_device_change),
                    'photo_urls': photos,
                    'sim_card_iccid': sim_card_iccid,
                    'mac_address': mac_address,
                    'device_position': device_position,
                    'gps_coordinates': gps_coordinates,
                    'notes': notes,
                    'recorded_by': performed_by,
                    'recorded_at': timezone.now(),
                },
            )
            self._log(job, JobLog.LogType.INSTALLATION_SAVED, performed_by,
                      details={'imei_numbers': imeis, 'no_device_change': bool(no_device_change)})

            if settings.JOBS_AUTO_ADVANCE:
                self.state_machine.advance_if_ready(job, Job.Status.POST_INSPECTION_PENDING, actor=performed_by)

        logger.info("Installation saved for %s (%s devices)", job.job_number, len(imeis))
        return installation

    def start(self, job_id, gps_coordinates=None, performed_by=None) -> Job:
        return self.state_machine.transition(
            job_id, Job.Status.IN_PROGRESS, {'gps_coordinates': gps_coordinates}, actor=performed_by,
        )

    def complete(self, job_id, completion_notes=None, customer_signature_url=None, customer_acknowledged=False,
                 performed_by=None) -> Job:
        return self.state_machine.transition(
            job_id,
            Job.Status.COMPLETED,
            {
                'completion_notes': completion_notes,
                'customer_signature_url': customer_signature_url,
                'customer_acknowledged': customer_acknowledged,
            },
            actor=performed_by,
        )

    def verify(self, job_id, performed_by=None) -> Job:
        return self.state_machine.transition(job_id, Job.Status.VERIFIED, actor=performed_by)

    def cancel(self, job_id, reason, performed_by=None) -> Job:
        """Issued stock stays with the job, it comes back through requisition returns"""
        return self.state_machine.transition(job_id, Job.Status.CANCELLED, {'reason': reason}, actor=performed_by)

    # -------------------------------
    # Queries
    # -------------------------------

    def get_statistics(self) -> Dict[str, Any]:
        by_status = {status: 0 for status in Job.Status.values}
        for row in Job.objects.values('status').annotate(total=Count('id')):
            by_status[row['status']] = row['total']
        return {
            'total': sum(by_status.values()),
            'pending': by_status[Job.Status.PENDING],
            'assigned': by_status[Job.Status.ASSIGNED],
            'in_progress': by_status[Job.Status.IN_PROGRESS],
            'awaiting_inspection': (
                by_status[Job.Status.PRE_INSPECTION_PENDING] + by_status[Job.Status.POST_INSPECTION_PENDING]
            ),
            'completed': by_status[Job.Status.COMPLETED] + by_status[Job.Status.VERIFIED],
            'cancelled': by_status[Job.Status.CANCELLED],
            'by_status': by_status,
        }

    def get_completion_checklist(self, job_id) -> Dict[str, Any]:
        job = Job.objects.get_object_or_404(raise_exception=True, id=job_id)
        facts = self.state_machine.collect_facts(job)
        items = [
            {'name': name, 'satisfied': satisfied}
            for name, satisfied in transitions.completion_checklist(facts)
        ]
        return {
            'job_id': str(job.id),
            'job_number': job.job_number,
            'status': job.status,
            'can_complete': all(item['satisfied'] for item in items),
            'items': items,
            'pre_inspection_missing': list(facts.pre_inspection_missing),
            'post_inspection_missing': list(facts.post_inspection_missing),
        }

    def get_logs(self, job_id) -> List[JobLog]:
        job = Job.objects.get_object_or_404(raise_exception=True, id=job_id)
        return list(job.logs.select_related('user'))


job_service = JobService(job_state_machine)
