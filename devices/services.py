"""
Device registry operations: attaching IMEIs to stock, lookups and the
device lifecycle after issue (activation, return, damage, deactivation).

Issue and return are driven by requisitions, write-offs of stock devices go
through the inventory ledger so quantities stay in step with device rows.
"""
import logging
from typing import Dict, List

from django.db import transaction
from django.db.models import Count
from django.utils import timezone

from configurations.base_features.exceptions.workflow_exceptions import InvalidTransition, ValidationError
from configurations.tasks import notify_on_commit
from devices import registry
from devices.models import Device, DeviceLog
from inventory.models import AdjustmentType, InventoryRecord
from inventory.services import inventory_service

logger = logging.getLogger(__name__)


class DeviceRegistryService:

    @staticmethod
    def get_by_imei(imei) -> Device:
        return Device.objects.get_object_or_404(raise_exception=True, imei=str(imei).strip())

    @staticmethod
    def get_available_devices(product_id, batch_id=None, location_id=None):
        queryset = Device.objects.select_related('batch', 'location').filter(
            product_id=product_id, status=Device.Status.AVAILABLE,
        )
        if batch_id:
            queryset = queryset.filter(batch_id=batch_id)
        if location_id:
            queryset = queryset.filter(location_id=location_id)
        return queryset.order_by('batch__received_date', 'imei')

    def get_history(self, imei) -> List[DeviceLog]:
        device = self.get_by_imei(imei)
        return list(device.logs.select_related('job', 'location', 'performed_by').order_by('created_at'))

    def register_devices(self, product_id, batch_id, imeis, location_id=None, performed_by=None) -> List[Device]:
        """
        Attach IMEIs to units that were received without them.

        Stock quantities do not change, so the batch must already hold enough
        untracked units at the location.
        """
        with transaction.atomic():
            product = inventory_service.get_product(product_id)
            if not product.is_serialized:
                raise ValidationError("Product is not serialized", product_id=str(product.id))
            batch = inventory_service.resolve_batch(product, batch_id)
            location = inventory_service.resolve_location(location_id)
            imeis = registry.normalize_imeis(imeis)
            if not imeis:
                raise ValidationError("At least one IMEI is required")

            record = InventoryRecord.objects.select_for_update(of=("self",)).filter(
                product=product, batch=batch, location=location,
            ).first()
            available = record.quantity_available if record else 0
            tracked = Device.objects.filter(
                product=product, batch=batch, location=location, status=Device.Status.AVAILABLE,
            ).count()
            untracked = available - tracked
            if len(imeis) > untracked:
                raise ValidationError(
                    "More IMEIs than untracked units in stock",
                    product_id=str(product.id),
                    batch_id=str(batch.id) if batch else None,
                    location_id=str(location.id),
                    untracked=max(untracked, 0),
                    selected=len(imeis),
                )
            devices = registry.register(product, batch, location, imeis, performed_by=performed_by)
        return devices

    def activate(self, imei, sim_card_iccid=None, sim_card_imsi=None, mac_address=None,
                 serial_number=None, performed_by=None) -> Device:
        """ISSUED -> ACTIVE once the unit is installed and talking"""
        with transaction.atomic():
            device = self._lock(imei)
            if device.status != Device.Status.ISSUED:
                raise InvalidTransition(
                    current_state=device.status,
                    requested_state=Device.Status.ACTIVE,
                    unmet_guard="only issued devices can be activated",
                    entity="Device",
                    entity_id=device.imei,
                )
            details = {
                'sim_card_iccid': sim_card_iccid,
                'sim_card_imsi': sim_card_imsi,
                'mac_address': mac_address,
                'serial_number': serial_number,
            }
            registry.record_event(
                device,
                DeviceLog.EventType.ACTIVATED,
                new_status=Device.Status.ACTIVE,
                performed_by=performed_by,
                activated_at=timezone.now(),
                **{name: value for name, value in details.items() if value},
            )
            notify_on_commit('device.activated', {
                'imei': device.imei,
                'job_id': str(device.job_id) if device.job_id else None,
            })
        logger.info("Device %s activated", device.imei)
        return device

    def mark_damaged(self, imei, reason, performed_by=None) -> Device:
        """
        Retire a damaged unit. A unit still in stock is written off through
        the ledger, an issued or active one only changes status.
        """
        if not reason or not str(reason).strip():
            raise ValidationError("A reason is required to mark a device damaged")

        with transaction.atomic():
            device = self._lock(imei)
            if device.status == Device.Status.RETIRED:
                raise InvalidTransition(
                    current_state=device.status,
                    requested_state=Device.Status.RETIRED,
                    unmet_guard="device is already retired",
                    entity="Device",
                    entity_id=device.imei,
                )
            if device.status == Device.Status.AVAILABLE:
                inventory_service.adjust(
                    product_id=device.product_id,
                    adjustment_type=AdjustmentType.DECREASE,
                    quantity=1,
                    reason=reason,
                    batch_id=device.batch_id,
                    location_id=device.location_id,
                    device_imeis=[device.imei],
                    performed_by=performed_by,
                    retire_reason=Device.RetiredReason.DAMAGED,
                )
                device.refresh_from_db()
            else:
                registry.record_event(
                    device,
                    DeviceLog.EventType.RETIRED,
                    new_status=Device.Status.RETIRED,
                    performed_by=performed_by,
                    notes=reason,
                    retired_at=timezone.now(),
                    retired_reason=Device.RetiredReason.DAMAGED,
                )
        logger.info("Device %s marked damaged", device.imei)
        return device

    def return_device(self, imei, reason, location_id=None, performed_by=None) -> Device:
        """
        ISSUED -> AVAILABLE for a single unit, booked as a return against the
        requisition line it was issued on.
        """
        from requisitions.services import requisition_service

        device = self.get_by_imei(imei)
        if device.status != Device.Status.ISSUED or device.requisition_item_id is None:
            raise InvalidTransition(
                current_state=device.status,
                requested_state=Device.Status.AVAILABLE,
                unmet_guard="only devices issued on a requisition can be returned",
                entity="Device",
                entity_id=device.imei,
            )
        requisition_service.return_items(
            device.requisition_item.requisition_id,
            lines=[{'item_id': device.requisition_item_id, 'quantity': 1, 'device_imeis': [device.imei]}],
            reason=reason,
            location_id=location_id,
            performed_by=performed_by,
        )
        device.refresh_from_db()
        return device

    def deactivate(self, imei, reason=None, performed_by=None) -> Device:
        """ACTIVE -> RETIRED when the unit is taken out of service"""
        with transaction.atomic():
            device = self._lock(imei)
            if device.status != Device.Status.ACTIVE:
                raise InvalidTransition(
                    current_state=device.status,
                    requested_state=Device.Status.RETIRED,
                    unmet_guard="only active devices can be deactivated",
                    entity="Device",
                    entity_id=device.imei,
                )
            registry.record_event(
                device,
                DeviceLog.EventType.RETIRED,
                new_status=Device.Status.RETIRED,
                performed_by=performed_by,
                notes=reason,
                retired_at=timezone.now(),
                retired_reason=Device.RetiredReason.DEACTIVATED,
            )
        return device

    def get_status_counts(self, product_id=None) -> Dict[str, int]:
        queryset = Device.objects.all()
        if product_id:
            queryset = queryset.filter(product_id=product_id)
        counts = {status: 0 for status in Device.Status.values}
        for row in queryset.values('status').annotate(total=Count('id')):
            counts[row['status']] = row['total']
        return counts

    def _lock(self, imei) -> Device:
        imei = str(imei).strip()
        device = registry.lock_devices([imei]).get(imei)
        if device is None:
            return self.get_by_imei(imei)
        return device


device_service = DeviceRegistryService()
