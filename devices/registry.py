"""
Row level device helpers shared by the inventory ledger, requisition issuance
and the device service.

Nothing here touches stock quantities: callers post the matching ledger
movement and own the surrounding transaction.
"""
import logging
import re
from collections import OrderedDict
from typing import Dict, Iterable, List, Optional

from configurations.base_features.exceptions.workflow_exceptions import (
    InsufficientDeviceSelection,
    ValidationError,
)
from devices.models import Device, DeviceLog

logger = logging.getLogger(__name__)

IMEI_PATTERN = re.compile(r'^\d{15}$')


def normalize_imeis(imeis: Optional[Iterable]) -> List[str]:
    """Strip blanks and reject malformed or repeated IMEIs, keeping request order."""
    cleaned = [str(imei).strip() for imei in (imeis or []) if str(imei).strip()]
    invalid = [imei for imei in cleaned if not IMEI_PATTERN.match(imei)]
    if invalid:
        raise ValidationError("IMEI must be exactly 15 digits", imeis=invalid)
    duplicates = sorted({imei for imei in cleaned if cleaned.count(imei) > 1})
    if duplicates:
        raise ValidationError("Duplicate IMEI in request", imeis=duplicates)
    return cleaned


def lock_devices(imeis: Iterable[str]) -> Dict[str, Device]:
    devices = (
        Device.objects.select_for_update(of=("self",))
        .select_related("batch", "product")
        .filter(imei__in=list(imeis))
    )
    return {device.imei: device for device in devices}


def common_batch_id(product, imeis):
    """The single batch all the given devices belong to, None when they are spread."""
    batch_ids = set(
        Device.objects.filter(product=product, imei__in=list(imeis)).values_list('batch_id', flat=True)
    )
    if len(batch_ids) == 1:
        return batch_ids.pop()
    return None


def select_stock_devices(product, imeis, expected: int, location=None, batch=None, match_batch=True) -> List[Device]:
    """
    Lock exactly `expected` AVAILABLE devices of `product`.

    With `location` the devices must be held there. With `match_batch` they
    must belong to `batch` (None meaning unbatched stock).
    """
    imeis = normalize_imeis(imeis)
    if len(imeis) != expected:
        raise InsufficientDeviceSelection(
            product_id=str(product.id),
            expected=expected,
            selected=len(imeis),
            imeis=imeis,
        )

    found = lock_devices(imeis)
    batch_id = batch.id if batch is not None else None
    unusable = []
    for imei in imeis:
        device = found.get(imei)
        if (
            device is None
            or device.product_id != product.id
            or device.status != Device.Status.AVAILABLE
            or (location is not None and device.location_id != location.id)
            or (match_batch and device.batch_id != batch_id)
        ):
            unusable.append(imei)

    if unusable:
        raise InsufficientDeviceSelection(
            product_id=str(product.id),
            expected=expected,
            selected=len(imeis) - len(unusable),
            imeis=unusable,
        )
    return [found[imei] for imei in imeis]


def group_by_batch(devices: Iterable[Device]) -> "OrderedDict":
    """Devices keyed by batch id, oldest received batch first, unbatched last."""
    ordered = sorted(
        devices,
        key=lambda d: (d.batch is None, d.batch.received_date if d.batch is not None else None, d.imei),
    )
    groups = OrderedDict()
    for device in ordered:
        groups.setdefault(device.batch_id, []).append(device)
    return groups


def register(product, batch, location, imeis, performed_by=None, notes=None) -> List[Device]:
    imeis = normalize_imeis(imeis)
    if not imeis:
        return []
    if not product.is_serialized:
        raise ValidationError("IMEIs can only be registered for serialized products", product_id=str(product.id))

    existing = sorted(Device.objects.filter(imei__in=imeis).values_list('imei', flat=True))
    if existing:
        raise ValidationError("IMEI already registered", imeis=existing)

    devices = Device.objects.bulk_create([
        Device(imei=imei, product=product, batch=batch, location=location)
        for imei in imeis
    ])
    DeviceLog.objects.bulk_create([
        DeviceLog(
            device=device,
            event_type=DeviceLog.EventType.REGISTERED,
            new_status=device.status,
            location=location,
            performed_by=performed_by,
            notes=notes,
        )
        for device in devices
    ])
    logger.info("Registered %s devices for %s (batch %s)", len(devices), product.sku, getattr(batch, 'batch_number', None))
    return devices


def record_event(device, event_type, new_status=None, performed_by=None, notes=None, **fields):
    """Apply a status change plus field updates and append the history row."""
    previous_status = device.status
    if new_status is not None:
        device.status = new_status
    for name, value in fields.items():
        setattr(device, name, value)
    device.save()
    DeviceLog.objects.create(
        device=device,
        event_type=event_type,
        previous_status=previous_status,
        new_status=device.status,
        job=device.job,
        location=device.location,
        performed_by=performed_by,
        notes=notes,
    )
    return device
