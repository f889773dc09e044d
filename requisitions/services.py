"""
Requisition workflow service

PENDING -> APPROVED | REJECTED, then APPROVED -> PARTIALLY_ISSUED -> FULLY_ISSUED
as stock is issued against the lines.

An issue call is all or nothing: every line is planned and validated
before the first ledger movement is written, and the whole call runs in one
transaction so a failure on the last line leaves no trace of the first.
"""
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from django.db import transaction
from django.db.models import Count, Sum
from django.utils import timezone

from company.models import Location
from configurations.base_features.exceptions.workflow_exceptions import (
    DeviceAllocationMismatch,
    InsufficientStock,
    InvalidTransition,
    ValidationError,
)
from configurations.tasks import notify_on_commit
from devices import registry as device_registry
from devices.models import Device, DeviceLog
from inventory.models import InventoryRecord, Product
from inventory.services import AllocationLine, inventory_service
from jobs.models import Job
from requisitions.models import Requisition, RequisitionIssuance, RequisitionItem, RequisitionLog
from requisitions.signals import requisition_changed
from users.models import Technician

logger = logging.getLogger(__name__)

# job statuses that still accept new requisitions
REQUISITION_OPEN_JOB_STATUSES = (
    Job.Status.ASSIGNED,
    Job.Status.REQUISITION_PENDING,
    Job.Status.REQUISITION_APPROVED,
    Job.Status.PRE_INSPECTION_PENDING,
    Job.Status.PRE_INSPECTION_APPROVED,
    Job.Status.IN_PROGRESS,
)


@dataclass
class PlannedAllocation:
    line: AllocationLine
    devices: List[Device] = field(default_factory=list)


@dataclass
class PlannedIssue:
    """Validated issue line, ready to be written"""
    item: RequisitionItem
    quantity: int
    allocations: List[PlannedAllocation]


class RequisitionService:

    # -------------------------------
    # Helpers
    # -------------------------------

    @staticmethod
    def _lock(requisition_id) -> Requisition:
        requisition = Requisition.objects.get_object_or_404(raise_exception=True, id=requisition_id)
        return Requisition.objects.select_for_update().select_related('job', 'location').get(pk=requisition.pk)

    @staticmethod
    def _log(requisition, action_type, previous_status, performed_by=None, notes=None, details=None):
        return RequisitionLog.objects.create(
            requisition=requisition,
            action_type=action_type,
            previous_status=previous_status,
            new_status=requisition.status,
            performed_by=performed_by,
            notes=notes,
            details=details or {},
        )

    @staticmethod
    def _changed(requisition, previous_status, performed_by, event):
        requisition_changed.send(
            sender=Requisition,
            requisition=requisition,
            previous_status=previous_status,
            performed_by=performed_by,
        )
        notify_on_commit(event, {
            'requisition_id': str(requisition.id),
            'requisition_number': requisition.requisition_number,
            'job_number': requisition.job.job_number,
            'status': requisition.status,
        })

    @staticmethod
    def _transition_error(requisition, requested_state, unmet_guard):
        return InvalidTransition(
            current_state=requisition.status,
            requested_state=requested_state,
            unmet_guard=unmet_guard,
            entity="Requisition",
            entity_id=requisition.requisition_number,
        )

    @staticmethod
    def _resolve_technician(job, technician_id, performed_by) -> Technician:
        if technician_id:
            technician = Technician.objects.get_object_or_404(raise_exception=True, id=technician_id)
        else:
            technician = Technician.objects.get_or_none(user=performed_by) if performed_by is not None else None
            if technician is None:
                raise ValidationError("A technician is required to raise a requisition")
        if not job.assignments.filter(technician=technician).exists():
            raise ValidationError(
                "Technician is not assigned to the job",
                technician_id=str(technician.id),
                job_id=job.job_number,
            )
        return technician

    # -------------------------------
    # Workflow
    # -------------------------------

    def create_requisition(self, job_id, items, technician_id=None, location_id=None,
                           notes=None, performed_by=None) -> Requisition:
        if not items:
            raise ValidationError("A requisition needs at least one item")

        with transaction.atomic():
            job = Job.objects.get_object_or_404(raise_exception=True, id=job_id)
            job = Job.objects.select_for_update().get(pk=job.pk)
            if job.status not in REQUISITION_OPEN_JOB_STATUSES:
                raise ValidationError(
                    "Requisitions cannot be raised for the job in its current status",
                    job_id=job.job_number,
                    job_status=job.status,
                )
            technician = self._resolve_technician(job, technician_id, performed_by)
            location = Location.objects.get_object_or_404(raise_exception=True, id=location_id) if location_id else None

            products = set()
            lines = []
            for entry in items:
                product = Product.objects.get_object_or_404(raise_exception=True, id=entry.get('product_id'))
                if not product.is_active:
                    raise ValidationError("Product is inactive", product_id=str(product.id))
                if product.id in products:
                    raise ValidationError("Product requested twice", product_id=str(product.id))
                products.add(product.id)
                quantity = entry.get('quantity') or 0
                if quantity <= 0:
                    raise ValidationError("Requested quantity must be positive", product_id=str(product.id))
                lines.append((product, quantity, bool(entry.get('is_required_to_start', False))))

            requisition = Requisition.objects.create(
                job=job,
                technician=technician,
                location=location,
                notes=notes,
            )
            for product, quantity, required in lines:
                RequisitionItem.objects.create(
                    requisition=requisition,
                    product=product,
                    quantity_requested=quantity,
                    is_required_to_start=required,
                )
            self._log(requisition, RequisitionLog.ActionType.CREATED, None, performed_by, notes)
            self._changed(requisition, None, performed_by, 'requisition.created')

        logger.info("Requisition %s raised for %s", requisition.requisition_number, job.job_number)
        return requisition

    def approve(self, requisition_id, performed_by=None, notes=None) -> Requisition:
        with transaction.atomic():
            requisition = self._lock(requisition_id)
            if requisition.job.status == Job.Status.CANCELLED:
                raise self._transition_error(
                    requisition, Requisition.Status.APPROVED, f"job {requisition.job.job_number} is cancelled",
                )
            if requisition.status != Requisition.Status.PENDING:
                raise self._transition_error(
                    requisition, Requisition.Status.APPROVED, "only pending requisitions can be approved",
                )
            previous = requisition.status
            requisition.status = Requisition.Status.APPROVED
            requisition.approved_by = performed_by
            requisition.approved_at = timezone.now()
            requisition.save()
            self._log(requisition, RequisitionLog.ActionType.APPROVED, previous, performed_by, notes)
            self._changed(requisition, previous, performed_by, 'requisition.approved')
        logger.info("Requisition %s approved", requisition.requisition_number)
        return requisition

    def reject(self, requisition_id, reason, performed_by=None) -> Requisition:
        if not reason or not str(reason).strip():
            raise ValidationError("A rejection reason is required")

        with transaction.atomic():
            requisition = self._lock(requisition_id)
            if requisition.status != Requisition.Status.PENDING:
                raise self._transition_error(
                    requisition, Requisition.Status.REJECTED, "only pending requisitions can be rejected",
                )
            previous = requisition.status
            requisition.status = Requisition.Status.REJECTED
            requisition.rejected_by = performed_by
            requisition.rejected_at = timezone.now()
            requisition.rejection_reason = reason
            requisition.save()
            self._log(requisition, RequisitionLog.ActionType.REJECTED, previous, performed_by, reason)
            self._changed(requisition, previous, performed_by, 'requisition.rejected')
        logger.info("Requisition %s rejected: %s", requisition.requisition_number, reason)
        return requisition

    # -------------------------------
    # Issuance
    # -------------------------------

    def _select_devices(self, item, quantity, imeis, batch, location, claimed) -> List[Device]:
        imeis = device_registry.normalize_imeis(imeis)
        item_id = str(item.id)
        if len(imeis) != quantity:
            raise DeviceAllocationMismatch(
                item_id=item_id,
                reason=f"{len(imeis)} devices selected for {quantity} units",
                expected=quantity,
                selected=len(imeis),
            )

        found = device_registry.lock_devices(imeis)
        for imei in imeis:
            device = found.get(imei)
            if imei in claimed:
                reason = "device selected twice in the same issue"
            elif device is None:
                reason = "unknown device"
            elif device.product_id != item.product_id:
                reason = "device is a different product"
            elif device.status != Device.Status.AVAILABLE:
                reason = f"device is {device.status}"
            elif batch is not None and device.batch_id != batch.id:
                reason = "device belongs to another batch"
            elif location is not None and device.location_id != location.id:
                reason = "device is held at another location"
            else:
                continue
            raise DeviceAllocationMismatch(item_id=item_id, reason=reason, imei=imei)

        claimed.update(imeis)
        return [found[imei] for imei in imeis]

    def _plan_devices(self, item, devices, planned) -> List[PlannedAllocation]:
        groups = defaultdict(list)
        for device in devices:
            groups[(device.batch_id, device.location_id)].append(device)

        allocations = []
        for (batch_id, location_id), group in groups.items():
            record = (
                InventoryRecord.objects.select_for_update(of=("self",))
                .select_related('batch', 'location')
                .filter(product_id=item.product_id, batch_id=batch_id, location_id=location_id)
                .first()
            )
            free = (record.quantity_available - planned.get(record.pk, 0)) if record else 0
            if free < len(group):
                raise InsufficientStock(
                    product_id=str(item.product_id),
                    requested=len(group),
                    available=max(free, 0),
                    batch_id=str(batch_id) if batch_id else None,
                    location_id=str(location_id) if location_id else None,
                )
            planned[record.pk] = planned.get(record.pk, 0) + len(group)
            allocations.append(PlannedAllocation(AllocationLine(record=record, quantity=len(group)), group))
        return allocations

    def _plan(self, requisition, lines) -> List[PlannedIssue]:
        items = {str(item.id): item for item in requisition.items.select_related('product')}
        pending = defaultdict(int)
        planned_records: Dict[Any, int] = {}
        claimed = set()
        plan = []

        for line in lines:
            item_id = str(line.get('item_id'))
            item = items.get(item_id)
            if item is None:
                raise ValidationError("Item does not belong to the requisition", item_id=item_id)
            quantity = line.get('quantity') or 0
            if quantity <= 0:
                raise ValidationError("Issue quantity must be positive", item_id=item_id)
            remaining = item.quantity_outstanding - pending[item_id]
            if quantity > remaining:
                raise ValidationError(
                    f"Quantity {quantity} exceeds the {remaining} still outstanding",
                    item_id=item_id,
                    requested=quantity,
                    remaining=remaining,
                )

            product = item.product
            batch = inventory_service.resolve_batch(product, line.get('batch_id'))
            if line.get('location_id'):
                location = Location.objects.get_object_or_404(raise_exception=True, id=line.get('location_id'))
            else:
                location = requisition.location

            if product.is_serialized:
                devices = self._select_devices(item, quantity, line.get('device_imeis'), batch, location, claimed)
                allocations = self._plan_devices(item, devices, planned_records)
            else:
                if line.get('device_imeis'):
                    raise DeviceAllocationMismatch(item_id=item_id, reason="product is not serialized")
                fifo = inventory_service.plan_fifo(
                    product, quantity, location=location, batch=batch, planned=planned_records,
                )
                for allocation in fifo:
                    planned_records[allocation.record.pk] = planned_records.get(allocation.record.pk, 0) + allocation.quantity
                allocations = [PlannedAllocation(allocation) for allocation in fifo]

            pending[item_id] += quantity
            plan.append(PlannedIssue(item=item, quantity=quantity, allocations=allocations))
        return plan

    def issue(self, requisition_id, lines, performed_by=None, idempotency_key=None) -> Requisition:
        """
        Issue stock against requisition lines.

        A line without a batch is split FIFO across batches, one issuance row
        per slice. Serialized lines name their devices, which are bound to the
        requisition's job. Replaying an idempotency key is a no-op.
        """
        if not lines:
            raise ValidationError("At least one issue line is required")

        with transaction.atomic():
            requisition = self._lock(requisition_id)

            if idempotency_key and requisition.issuances.filter(idempotency_key=idempotency_key).exists():
                logger.info(
                    "Issue %s on %s already applied", idempotency_key, requisition.requisition_number,
                )
                return requisition

            if requisition.job.status == Job.Status.CANCELLED:
                raise self._transition_error(
                    requisition, "ISSUED", f"job {requisition.job.job_number} is cancelled",
                )
            if requisition.status not in Requisition.ISSUABLE_STATUSES:
                raise self._transition_error(
                    requisition, "ISSUED", "requisition must be approved before stock is issued",
                )

            plan = self._plan(requisition, lines)

            now = timezone.now()
            issued = []
            for planned in plan:
                item = planned.item
                for allocation in planned.allocations:
                    record, movement = inventory_service.issue_from(
                        allocation.line.record,
                        allocation.line.quantity,
                        performed_by=performed_by,
                        reference=requisition.requisition_number,
                        idempotency_key=idempotency_key,
                    )
                    RequisitionIssuance.objects.create(
                        requisition=requisition,
                        item=item,
                        batch=record.batch,
                        location=record.location,
                        movement=movement,
                        quantity=allocation.line.quantity,
                        unit_cost=allocation.line.unit_cost,
                        idempotency_key=idempotency_key,
                        issued_by=performed_by,
                    )
                    if item.batch_id is None:
                        item.batch = record.batch
                    for device in allocation.devices:
                        device_registry.record_event(
                            device,
                            DeviceLog.EventType.ISSUED,
                            new_status=Device.Status.ISSUED,
                            performed_by=performed_by,
                            notes=requisition.requisition_number,
                            job=requisition.job,
                            requisition_item=item,
                            issued_at=now,
                            issued_by=performed_by,
                        )
                item.quantity_issued += planned.quantity
                item.issued_by = performed_by
                item.issued_at = now
                item.save()
                issued.append({'item_id': str(item.id), 'quantity': planned.quantity})

            previous = requisition.status
            all_issued = all(item.is_fully_issued for item in requisition.items.all())
            requisition.status = (
                Requisition.Status.FULLY_ISSUED if all_issued else Requisition.Status.PARTIALLY_ISSUED
            )
            requisition.save()
            self._log(
                requisition, RequisitionLog.ActionType.ISSUED, previous, performed_by,
                details={'lines': issued, 'idempotency_key': idempotency_key},
            )
            self._changed(requisition, previous, performed_by, 'requisition.issued')
            for product in {planned.item.product for planned in plan}:
                inventory_service.notify_if_low_stock(product)

        logger.info("Issued %s lines on %s -> %s", len(issued), requisition.requisition_number, requisition.status)
        return requisition

    # -------------------------------
    # Returns
    # -------------------------------

    def _return_devices(self, requisition, item, quantity, imeis, location, performed_by, reason):
        imeis = device_registry.normalize_imeis(imeis)
        item_id = str(item.id)
        if len(imeis) != quantity:
            raise DeviceAllocationMismatch(
                item_id=item_id,
                reason=f"{len(imeis)} devices selected for {quantity} units",
                expected=quantity,
                selected=len(imeis),
            )
        found = device_registry.lock_devices(imeis)
        for imei in imeis:
            device = found.get(imei)
            if device is None or device.requisition_item_id != item.id:
                raise DeviceAllocationMismatch(item_id=item_id, reason="device was not issued on this line", imei=imei)
            if device.status != Device.Status.ISSUED:
                raise DeviceAllocationMismatch(item_id=item_id, reason=f"device is {device.status}", imei=imei)

        groups = defaultdict(list)
        for imei in imeis:
            device = found[imei]
            groups[(device.batch_id, (location or device.location).pk)].append(device)

        for (batch_id, location_id), devices in groups.items():
            target = location or devices[0].location
            inventory_service.return_to_stock(
                item.product, devices[0].batch, target, len(devices),
                performed_by=performed_by, reference=requisition.requisition_number, reason=reason,
            )
            self._mark_issuances_returned(item, len(devices), batch_id=batch_id)
            for device in devices:
                device_registry.record_event(
                    device,
                    DeviceLog.EventType.RETURNED,
                    new_status=Device.Status.AVAILABLE,
                    performed_by=performed_by,
                    notes=reason,
                    location=target,
                    job=None,
                    requisition_item=None,
                    issued_at=None,
                    issued_by=None,
                )

    def _mark_issuances_returned(self, item, quantity, batch_id=None, location=None, performed_by=None,
                                 reference=None, reason=None, restock=False):
        """Walk the line's issuances newest first, optionally putting the stock back"""
        issuances = item.issuances.select_related('batch', 'location').order_by('-created_at')
        if batch_id is not None:
            issuances = issuances.filter(batch_id=batch_id)
        remaining = quantity
        for issuance in issuances:
            if remaining <= 0:
                break
            take = min(remaining, issuance.quantity - issuance.quantity_returned)
            if take <= 0:
                continue
            if restock:
                inventory_service.return_to_stock(
                    item.product, issuance.batch, location or issuance.location, take,
                    performed_by=performed_by, reference=reference, reason=reason,
                )
            issuance.quantity_returned += take
            issuance.save(update_fields=['quantity_returned', 'updated_at'])
            remaining -= take

    def return_items(self, requisition_id, lines, reason, location_id=None, performed_by=None) -> Requisition:
        """
        Compensating flow: put issued stock back on the shelf.

        Bulk lines go back to the batches they were issued from, newest issue
        first. Serialized lines name the devices, which become AVAILABLE again
        and are unbound from the job.
        """
        if not reason or not str(reason).strip():
            raise ValidationError("A return reason is required")
        if not lines:
            raise ValidationError("At least one return line is required")

        with transaction.atomic():
            requisition = self._lock(requisition_id)
            if requisition.status not in (Requisition.Status.PARTIALLY_ISSUED, Requisition.Status.FULLY_ISSUED):
                raise self._transition_error(requisition, "RETURNED", "nothing has been issued yet")
            location = Location.objects.get_object_or_404(raise_exception=True, id=location_id) if location_id else None
            items = {str(item.id): item for item in requisition.items.select_related('product')}

            returned = []
            for line in lines:
                item_id = str(line.get('item_id'))
                item = items.get(item_id)
                if item is None:
                    raise ValidationError("Item does not belong to the requisition", item_id=item_id)
                quantity = line.get('quantity') or 0
                returnable = item.quantity_issued - item.quantity_returned
                if quantity <= 0 or quantity > returnable:
                    raise ValidationError(
                        f"Return quantity must be between 1 and {returnable}",
                        item_id=item_id,
                        requested=quantity,
                        returnable=returnable,
                    )
                if item.product.is_serialized:
                    self._return_devices(
                        requisition, item, quantity, line.get('device_imeis'), location, performed_by, reason,
                    )
                else:
                    self._mark_issuances_returned(
                        item, quantity, location=location, performed_by=performed_by,
                        reference=requisition.requisition_number, reason=reason, restock=True,
                    )
                item.quantity_returned += quantity
                item.save(update_fields=['quantity_returned', 'updated_at'])
                returned.append({'item_id': item_id, 'quantity': quantity})

            self._log(
                requisition, RequisitionLog.ActionType.RETURNED, requisition.status, performed_by, reason,
                details={'lines': returned},
            )
            notify_on_commit('requisition.items_returned', {
                'requisition_number': requisition.requisition_number,
                'lines': returned,
            })
        logger.info("Returned %s lines on %s", len(returned), requisition.requisition_number)
        return requisition

    # -------------------------------
    # Queries
    # -------------------------------

    def get_statistics(self, job_id=None) -> Dict[str, Any]:
        queryset = Requisition.objects.all()
        if job_id:
            queryset = queryset.filter(job_id=job_id)
        by_status = {status: 0 for status in Requisition.Status.values}
        for row in queryset.values('status').annotate(total=Count('id')):
            by_status[row['status']] = row['total']
        totals = RequisitionItem.objects.filter(requisition__in=queryset).aggregate(
            requested=Sum('quantity_requested'),
            issued=Sum('quantity_issued'),
            returned=Sum('quantity_returned'),
        )
        return {
            'total': sum(by_status.values()),
            'by_status': by_status,
            'quantity_requested': totals['requested'] or 0,
            'quantity_issued': totals['issued'] or 0,
            'quantity_returned': totals['returned'] or 0,
        }

    def get_job_requisition_facts(self, job) -> Dict[str, Any]:
        """Snapshot of a job's requisitions for the job state machine guards"""
        requisitions = list(job.requisitions.all())
        outstanding = (
            RequisitionItem.objects.filter(
                requisition__job=job,
                is_required_to_start=True,
                requisition__status__in=[
                    Requisition.Status.PENDING,
                    Requisition.Status.APPROVED,
                    Requisition.Status.PARTIALLY_ISSUED,
                ],
            )
            .select_related('product', 'requisition')
        )
        return {
            'count': len(requisitions),
            'statuses': tuple(
                requisition.status for requisition in requisitions
                if requisition.status != Requisition.Status.REJECTED
            ),
            'outstanding_required_items': tuple(
                f"{item.requisition.requisition_number}/{item.product.sku}"
                for item in outstanding if not item.is_fully_issued
            ),
        }


requisition_service = RequisitionService()
