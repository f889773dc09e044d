"""
Inventory Ledger Service

Stock per (product, batch, location) with FIFO allocation, transfers,
adjustments and reservations.

Core Principles:
- Every quantity change is written through `_post`, which records one
  immutable InventoryMovement per change
- Records are locked and version checked, a stale writer retries a bounded
  number of times and then fails with ConcurrentModification
- FIFO by batch received date, unbatched stock is consumed last
- Serialized products move device by device, the device rows always match
  the record they are counted in
"""
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Optional

from django.conf import settings
from django.db import transaction
from django.db.models import DecimalField, ExpressionWrapper, F, Sum, Value
from django.db.models.functions import Coalesce
from django.utils import timezone

from company.models import Location
from configurations.base_features.exceptions.workflow_exceptions import (
    ConcurrentModification,
    InsufficientDeviceSelection,
    InsufficientStock,
    InvalidTransfer,
    ValidationError,
)
from configurations.tasks import notify_on_commit
from devices import registry as device_registry
from devices.models import Device, DeviceLog
from .models import AdjustmentType, Batch, InventoryMovement, InventoryRecord, Product

logger = logging.getLogger(__name__)

MovementType = InventoryMovement.MovementType


@dataclass
class AllocationLine:
    """One slice of a FIFO plan: take `quantity` from `record`"""
    record: InventoryRecord
    quantity: int

    @property
    def batch(self):
        return self.record.batch

    @property
    def location(self):
        return self.record.location

    @property
    def unit_cost(self) -> Decimal:
        return self.record.batch.unit_cost if self.record.batch_id else Decimal('0')


@dataclass(frozen=True)
class NormalizedAdjustment:
    """An adjustment reduced to a direction and a non-negative quantity"""
    direction: str
    quantity: int
    source_type: str
    target: Optional[int] = None

    @property
    def delta(self) -> int:
        return self.quantity if self.direction == AdjustmentType.INCREASE else -self.quantity


@dataclass
class ReceiveResult:
    batch: Batch
    record: InventoryRecord
    movement: InventoryMovement
    devices: List[str]
    message: str


@dataclass
class AdjustmentResult:
    record: InventoryRecord
    requested_delta: int
    applied_delta: int
    movements: List[str]
    devices: List[str]
    warnings: List[str] = field(default_factory=list)


@dataclass
class TransferAllocation:
    batch_id: Optional[str]
    quantity: int
    from_record_id: str
    to_record_id: str


@dataclass
class TransferResult:
    success: bool
    allocations: List[TransferAllocation]
    movements: List[str]
    devices: List[str]
    message: str


def normalize_adjustment(adjustment_type, quantity, current_available) -> NormalizedAdjustment:
    """
    Collapse INCREASE, DECREASE and CORRECTION into one signed change.

    CORRECTION carries the target quantity_available, the change is the
    difference to what the record currently holds.
    """
    if adjustment_type not in AdjustmentType.values:
        raise ValidationError(f"Unknown adjustment type '{adjustment_type}'", adjustment_type=adjustment_type)

    if adjustment_type == AdjustmentType.CORRECTION:
        if quantity < 0:
            raise ValidationError("Correction target cannot be negative", quantity=quantity)
        difference = quantity - current_available
        direction = AdjustmentType.INCREASE if difference >= 0 else AdjustmentType.DECREASE
        return NormalizedAdjustment(direction, abs(difference), adjustment_type, target=quantity)

    if quantity <= 0:
        raise ValidationError("Adjustment quantity must be positive", quantity=quantity)
    return NormalizedAdjustment(adjustment_type, quantity, adjustment_type)


class InventoryService:
    """
    Core service for stock operations.

    Public methods open their own transaction, the `issue_from` and
    `return_to_stock` helpers expect the caller's.
    """

    # -------------------------------
    # Lookups
    # -------------------------------

    @staticmethod
    def get_product(product_id) -> Product:
        return Product.objects.get_object_or_404(raise_exception=True, id=product_id)

    @staticmethod
    def resolve_location(location_id=None) -> Location:
        """The given location, or the configured default stock location"""
        if location_id:
            return Location.objects.get_object_or_404(raise_exception=True, id=location_id)
        location, created = Location.objects.get_or_create(
            code=settings.INVENTORY_DEFAULT_LOCATION_CODE,
            defaults={'name': 'Main Warehouse'},
        )
        if created:
            logger.info("Created default stock location %s", location.code)
        return location

    @staticmethod
    def resolve_batch(product, batch_id=None) -> Optional[Batch]:
        if not batch_id:
            return None
        batch = Batch.objects.get_object_or_404(raise_exception=True, id=batch_id)
        if batch.product_id != product.id:
            raise ValidationError(
                "Batch does not belong to product",
                batch_id=str(batch.id),
                product_id=str(product.id),
            )
        return batch

    @staticmethod
    def get_or_create_record(product, batch, location) -> InventoryRecord:
        record, created = InventoryRecord.objects.get_or_create(product=product, batch=batch, location=location)
        if created:
            logger.debug("Opened inventory record %s", record.pk)
        return record

    @staticmethod
    def fifo_records(product, location=None, batch=None):
        """Records holding stock, oldest batch first and unbatched stock last"""
        queryset = (
            InventoryRecord.objects.select_for_update(of=("self",))
            .select_related('batch', 'location')
            .filter(product=product, quantity_available__gt=0)
        )
        if location is not None:
            queryset = queryset.filter(location=location)
        if batch is not None:
            queryset = queryset.filter(batch=batch)
        return queryset.order_by(
            F('batch__received_date').asc(nulls_last=True),
            'location__code',
            'created_at',
        )

    # -------------------------------
    # Ledger core
    # -------------------------------

    def _compare_and_swap(self, record, quantity_available, quantity_reserved) -> bool:
        """Write the new quantities only if nobody bumped the version since `record` was read"""
        updated = InventoryRecord.objects.filter(pk=record.pk, version=record.version).update(
            quantity_available=quantity_available,
            quantity_reserved=quantity_reserved,
            version=F('version') + 1,
            updated_at=timezone.now(),
        )
        if not updated:
            return False
        record.quantity_available = quantity_available
        record.quantity_reserved = quantity_reserved
        record.version += 1
        return True

    def _post(
        self,
        record: InventoryRecord,
        movement_type: str,
        quantity_delta: int,
        reserved_delta: int = 0,
        performed_by=None,
        reference: str = None,
        reason: str = None,
        idempotency_key: str = None,
    ):
        """
        Apply a signed change to `record` and write its movement.

        Returns the refreshed record and the movement. Must run inside the
        caller's transaction.
        """
        max_attempts = max(1, settings.INVENTORY_CAS_MAX_RETRIES)
        current = None
        for attempt in range(1, max_attempts + 1):
            current = (
                InventoryRecord.objects.select_for_update(of=("self",))
                .select_related('product', 'batch', 'location')
                .get(pk=record.pk)
            )
            new_available = current.quantity_available + quantity_delta
            new_reserved = current.quantity_reserved + reserved_delta
            if new_available < 0:
                raise InsufficientStock(
                    product_id=str(current.product_id),
                    requested=-quantity_delta,
                    available=current.quantity_available,
                    batch_id=str(current.batch_id) if current.batch_id else None,
                    location_id=str(current.location_id),
                )
            if new_reserved < 0:
                raise InsufficientStock(
                    product_id=str(current.product_id),
                    requested=-reserved_delta,
                    available=current.quantity_reserved,
                    batch_id=str(current.batch_id) if current.batch_id else None,
                    location_id=str(current.location_id),
                )
            if self._compare_and_swap(current, new_available, new_reserved):
                break
            logger.warning(
                "Version conflict on inventory record %s (attempt %s/%s)",
                record.pk, attempt, max_attempts,
            )
        else:
            raise ConcurrentModification(record_id=str(record.pk), attempts=max_attempts)

        movement = InventoryMovement.objects.create(
            product_id=current.product_id,
            batch_id=current.batch_id,
            location_id=current.location_id,
            record=current,
            movement_type=movement_type,
            quantity_delta=quantity_delta,
            reserved_delta=reserved_delta,
            reference=reference,
            reason=reason,
            idempotency_key=idempotency_key,
            performed_by=performed_by,
        )
        return current, movement

    def plan_fifo(self, product, quantity, location=None, batch=None, planned=None) -> List[AllocationLine]:
        """
        Split `quantity` across records in FIFO order. Nothing is written.

        `planned` maps record ids to quantities already promised earlier in
        the same operation so one call can plan several lines.
        """
        planned = planned or {}
        lines = []
        remaining = quantity
        total_free = 0
        for record in self.fifo_records(product, location=location, batch=batch):
            free = record.quantity_available - planned.get(record.pk, 0)
            if free <= 0:
                continue
            total_free += free
            if remaining > 0:
                take = min(remaining, free)
                lines.append(AllocationLine(record=record, quantity=take))
                remaining -= take

        if remaining > 0:
            raise InsufficientStock(
                product_id=str(product.id),
                requested=quantity,
                available=total_free,
                batch_id=str(batch.id) if batch is not None else None,
                location_id=str(location.id) if location is not None else None,
            )
        return lines

    def issue_from(self, record, quantity, performed_by=None, reference=None, idempotency_key=None):
        return self._post(
            record, MovementType.ISSUE, -quantity,
            performed_by=performed_by, reference=reference, idempotency_key=idempotency_key,
        )

    def return_to_stock(self, product, batch, location, quantity, performed_by=None, reference=None, reason=None):
        record = self.get_or_create_record(product, batch, location)
        return self._post(
            record, MovementType.RETURN, quantity,
            performed_by=performed_by, reference=reference, reason=reason,
        )

    # -------------------------------
    # Operations
    # -------------------------------

    def receive_batch(
        self,
        product_id,
        quantity: int,
        batch_number: str,
        unit_cost: Decimal = Decimal('0'),
        location_id=None,
        received_date=None,
        expiry_date=None,
        supplier: str = None,
        device_imeis=None,
        performed_by=None,
        idempotency_key: str = None,
    ) -> ReceiveResult:
        """
        Receive a new batch into a location.

        For serialized products the IMEIs may be supplied now (exactly one
        per unit) or registered against the batch later.
        """
        if quantity <= 0:
            raise ValidationError("Quantity must be positive", quantity=quantity)
        if unit_cost is not None and unit_cost < 0:
            raise ValidationError("Unit cost cannot be negative", unit_cost=unit_cost)

        with transaction.atomic():
            product = self.get_product(product_id)
            if not product.is_active:
                raise ValidationError("Product is inactive", product_id=str(product.id))

            if idempotency_key:
                existing = (
                    InventoryMovement.objects.select_related('batch', 'record')
                    .filter(product=product, idempotency_key=idempotency_key, movement_type=MovementType.RECEIVE)
                    .first()
                )
                if existing:
                    return ReceiveResult(
                        batch=existing.batch,
                        record=existing.record,
                        movement=existing,
                        devices=[],
                        message=f"Batch {existing.batch.batch_number} already received (idempotent)",
                    )

            location = self.resolve_location(location_id)
            if Batch.objects.filter(product=product, batch_number=batch_number).exists():
                raise ValidationError(
                    "Batch number already exists for product",
                    batch_number=batch_number,
                    product_id=str(product.id),
                )

            imeis = device_registry.normalize_imeis(device_imeis)
            if imeis and len(imeis) != quantity:
                raise InsufficientDeviceSelection(
                    product_id=str(product.id), expected=quantity, selected=len(imeis), imeis=imeis,
                )

            batch = Batch.objects.create(
                product=product,
                batch_number=batch_number,
                received_date=received_date or timezone.now(),
                quantity_received=quantity,
                unit_cost=unit_cost or Decimal('0'),
                expiry_date=expiry_date,
                supplier=supplier,
            )
            record = self.get_or_create_record(product, batch, location)
            record, movement = self._post(
                record, MovementType.RECEIVE, quantity,
                performed_by=performed_by,
                reference=batch.batch_number,
                idempotency_key=idempotency_key,
            )
            devices = device_registry.register(product, batch, location, imeis, performed_by=performed_by)

        logger.info("Received %s x %s as batch %s at %s", quantity, product.sku, batch.batch_number, location.code)
        return ReceiveResult(
            batch=batch,
            record=record,
            movement=movement,
            devices=[device.imei for device in devices],
            message=f"Received {quantity} of {product.sku} into {location.code}",
        )

    def adjust(
        self,
        product_id,
        adjustment_type: str,
        quantity: int,
        reason: str,
        batch_id=None,
        location_id=None,
        device_imeis=None,
        performed_by=None,
        idempotency_key: str = None,
        retire_reason: str = Device.RetiredReason.WRITTEN_OFF,
    ) -> AdjustmentResult:
        """
        Stock count adjustment on one record.

        A DECREASE larger than what is available is floored at zero and
        reported back as a warning. Serialized decreases retire the selected
        devices, serialized increases may register new IMEIs.
        """
        if not reason or not str(reason).strip():
            raise ValidationError("An adjustment reason is required")

        with transaction.atomic():
            product = self.get_product(product_id)
            location = self.resolve_location(location_id)

            if idempotency_key:
                existing = list(
                    InventoryMovement.objects.select_related('record')
                    .filter(
                        product=product,
                        idempotency_key=idempotency_key,
                        movement_type__in=[MovementType.ADJUST_INCREASE, MovementType.ADJUST_DECREASE],
                    )
                )
                if existing:
                    applied = sum(movement.quantity_delta for movement in existing)
                    return AdjustmentResult(
                        record=existing[0].record,
                        requested_delta=applied,
                        applied_delta=applied,
                        movements=[str(movement.id) for movement in existing],
                        devices=[],
                        warnings=["Adjustment already applied (idempotent)"],
                    )

            imeis = device_registry.normalize_imeis(device_imeis)
            if imeis and not product.is_serialized:
                raise ValidationError("IMEIs can only be supplied for serialized products", product_id=str(product.id))

            if product.is_serialized and not batch_id and imeis:
                batch_id = device_registry.common_batch_id(product, imeis)
            batch = self.resolve_batch(product, batch_id)

            record = self.get_or_create_record(product, batch, location)
            record = InventoryRecord.objects.select_for_update(of=("self",)).get(pk=record.pk)
            change = normalize_adjustment(adjustment_type, quantity, record.quantity_available)

            if change.quantity == 0:
                return AdjustmentResult(
                    record=record,
                    requested_delta=0,
                    applied_delta=0,
                    movements=[],
                    devices=[],
                    warnings=["Stock already at the target quantity"],
                )

            if change.direction == AdjustmentType.INCREASE:
                if imeis and len(imeis) != change.quantity:
                    raise InsufficientDeviceSelection(
                        product_id=str(product.id), expected=change.quantity, selected=len(imeis), imeis=imeis,
                    )
                record, movement = self._post(
                    record, MovementType.ADJUST_INCREASE, change.quantity,
                    performed_by=performed_by, reason=reason, idempotency_key=idempotency_key,
                )
                devices = device_registry.register(product, batch, location, imeis, performed_by=performed_by, notes=reason)
                return AdjustmentResult(
                    record=record,
                    requested_delta=change.delta,
                    applied_delta=change.quantity,
                    movements=[str(movement.id)],
                    devices=[device.imei for device in devices],
                )

            warnings = []
            applied = min(change.quantity, record.quantity_available)
            if applied < change.quantity:
                warnings.append(
                    f"Requested decrease of {change.quantity} floored to {applied}, "
                    f"only {record.quantity_available} available"
                )
                logger.warning(
                    "Adjustment on record %s floored at zero: requested -%s, available %s",
                    record.pk, change.quantity, record.quantity_available,
                )

            # serialized decreases retire exactly the units taken off the record
            devices = []
            if product.is_serialized:
                devices = device_registry.select_stock_devices(
                    product, imeis, applied, location=location, batch=batch,
                )

            movements = []
            if applied:
                record, movement = self._post(
                    record, MovementType.ADJUST_DECREASE, -applied,
                    performed_by=performed_by, reason=reason, idempotency_key=idempotency_key,
                )
                movements.append(str(movement.id))

            for device in devices:
                device_registry.record_event(
                    device,
                    DeviceLog.EventType.RETIRED,
                    new_status=Device.Status.RETIRED,
                    performed_by=performed_by,
                    notes=reason,
                    retired_at=timezone.now(),
                    retired_reason=retire_reason,
                    location=None,
                )

        return AdjustmentResult(
            record=record,
            requested_delta=change.delta,
            applied_delta=-applied,
            movements=movements,
            devices=[device.imei for device in devices],
            warnings=warnings,
        )

    def _transfer_location(self, location_id, from_location_id, to_location_id) -> Location:
        location = Location.objects.get_or_none(id=location_id) if location_id else None
        if location is None or not location.is_active:
            raise InvalidTransfer(
                from_location=str(from_location_id) if from_location_id else None,
                to_location=str(to_location_id) if to_location_id else None,
                reason=f"Unknown or inactive location {location_id}",
            )
        return location

    def _move(self, source, to_location, quantity, performed_by=None, reason=None, idempotency_key=None):
        source, out_movement = self._post(
            source, MovementType.TRANSFER_OUT, -quantity,
            performed_by=performed_by, reference=to_location.code, reason=reason,
            idempotency_key=idempotency_key,
        )
        destination = self.get_or_create_record(source.product, source.batch, to_location)
        destination, in_movement = self._post(
            destination, MovementType.TRANSFER_IN, quantity,
            performed_by=performed_by, reference=source.location.code, reason=reason,
            idempotency_key=idempotency_key,
        )
        allocation = TransferAllocation(
            batch_id=str(source.batch_id) if source.batch_id else None,
            quantity=quantity,
            from_record_id=str(source.pk),
            to_record_id=str(destination.pk),
        )
        return allocation, [str(out_movement.id), str(in_movement.id)]

    def transfer(
        self,
        product_id,
        from_location_id,
        to_location_id,
        quantity: int,
        batch_id=None,
        device_imeis=None,
        performed_by=None,
        reason: str = None,
        idempotency_key: str = None,
    ) -> TransferResult:
        """
        Move stock between locations keeping its batch (and so its cost and
        FIFO position). Without a batch the source is drained oldest first.
        """
        if from_location_id and to_location_id and str(from_location_id) == str(to_location_id):
            raise InvalidTransfer(
                from_location=str(from_location_id),
                to_location=str(to_location_id),
                reason="Source and destination are the same location",
            )
        if quantity <= 0:
            raise ValidationError("Quantity must be positive", quantity=quantity)

        with transaction.atomic():
            product = self.get_product(product_id)
            from_location = self._transfer_location(from_location_id, from_location_id, to_location_id)
            to_location = self._transfer_location(to_location_id, from_location_id, to_location_id)

            if idempotency_key:
                existing = InventoryMovement.objects.filter(
                    product=product,
                    idempotency_key=idempotency_key,
                    movement_type__in=[MovementType.TRANSFER_OUT, MovementType.TRANSFER_IN],
                )
                if existing.exists():
                    return TransferResult(
                        success=True,
                        allocations=[],
                        movements=[str(movement.id) for movement in existing],
                        devices=[],
                        message=f"Transferred {quantity} of {product.sku} (idempotent)",
                    )

            batch = self.resolve_batch(product, batch_id)
            allocations = []
            movements = []
            moved_devices = []

            if product.is_serialized:
                devices = device_registry.select_stock_devices(
                    product, device_imeis, quantity,
                    location=from_location, batch=batch, match_batch=batch is not None,
                )
                for group_batch_id, group in device_registry.group_by_batch(devices).items():
                    source = InventoryRecord.objects.filter(
                        product=product, batch_id=group_batch_id, location=from_location,
                    ).first()
                    if source is None or source.quantity_available < len(group):
                        raise InsufficientStock(
                            product_id=str(product.id),
                            requested=len(group),
                            available=source.quantity_available if source else 0,
                            batch_id=str(group_batch_id) if group_batch_id else None,
                            location_id=str(from_location.id),
                        )
                    allocation, movement_ids = self._move(
                        source, to_location, len(group),
                        performed_by=performed_by, reason=reason, idempotency_key=idempotency_key,
                    )
                    allocations.append(allocation)
                    movements.extend(movement_ids)
                    for device in group:
                        device_registry.record_event(
                            device,
                            DeviceLog.EventType.TRANSFERRED,
                            performed_by=performed_by,
                            notes=f"{from_location.code} -> {to_location.code}",
                            location=to_location,
                        )
                        moved_devices.append(device.imei)
            else:
                if device_registry.normalize_imeis(device_imeis):
                    raise ValidationError("IMEIs can only be supplied for serialized products", product_id=str(product.id))
                for line in self.plan_fifo(product, quantity, location=from_location, batch=batch):
                    allocation, movement_ids = self._move(
                        line.record, to_location, line.quantity,
                        performed_by=performed_by, reason=reason, idempotency_key=idempotency_key,
                    )
                    allocations.append(allocation)
                    movements.extend(movement_ids)

        logger.info("Transferred %s x %s from %s to %s", quantity, product.sku, from_location.code, to_location.code)
        return TransferResult(
            success=True,
            allocations=allocations,
            movements=movements,
            devices=moved_devices,
            message=f"Transferred {quantity} of {product.sku} from {from_location.code} to {to_location.code}",
        )

    def reserve(self, record_id, quantity, performed_by=None, reference=None):
        """Hold available stock back for a future issue"""
        if quantity <= 0:
            raise ValidationError("Quantity must be positive", quantity=quantity)
        with transaction.atomic():
            record = InventoryRecord.objects.get_object_or_404(raise_exception=True, id=record_id)
            return self._post(record, MovementType.RESERVE, -quantity, quantity,
                              performed_by=performed_by, reference=reference)

    def release(self, record_id, quantity, performed_by=None, reference=None):
        if quantity <= 0:
            raise ValidationError("Quantity must be positive", quantity=quantity)
        with transaction.atomic():
            record = InventoryRecord.objects.get_object_or_404(raise_exception=True, id=record_id)
            return self._post(record, MovementType.RELEASE, quantity, -quantity,
                              performed_by=performed_by, reference=reference)

    def commit(self, record_id, quantity, performed_by=None, reference=None):
        """Consume previously reserved stock"""
        if quantity <= 0:
            raise ValidationError("Quantity must be positive", quantity=quantity)
        with transaction.atomic():
            record = InventoryRecord.objects.get_object_or_404(raise_exception=True, id=record_id)
            return self._post(record, MovementType.COMMIT, 0, -quantity,
                              performed_by=performed_by, reference=reference)

    # -------------------------------
    # Queries
    # -------------------------------

    def get_inventory_summary(self, product_id=None, location_id=None) -> Dict[str, Any]:
        """Headline counts and stock value, plus quantities per product summed over batches and locations"""
        queryset = InventoryRecord.objects.all()
        if product_id:
            queryset = queryset.filter(product_id=product_id)
        if location_id:
            queryset = queryset.filter(location_id=location_id)

        rows = queryset.values(
            'product__id', 'product__sku', 'product__name',
            'product__is_serialized', 'product__reorder_level',
        ).annotate(
            total_available=Sum('quantity_available'),
            total_reserved=Sum('quantity_reserved'),
        ).order_by('product__sku')

        products = [
            {
                'product_id': str(row['product__id']),
                'sku': row['product__sku'],
                'name': row['product__name'],
                'is_serialized': row['product__is_serialized'],
                'quantity_available': row['total_available'] or 0,
                'quantity_reserved': row['total_reserved'] or 0,
                'quantity_on_hand': (row['total_available'] or 0) + (row['total_reserved'] or 0),
                'reorder_level': row['product__reorder_level'],
                'is_low_stock': (
                    row['product__reorder_level'] > 0
                    and (row['total_available'] or 0) <= row['product__reorder_level']
                ),
            }
            for row in rows
        ]

        stock_value = queryset.filter(batch__isnull=False).aggregate(
            total=Sum(
                ExpressionWrapper(
                    (F('quantity_available') + F('quantity_reserved')) * F('batch__unit_cost'),
                    output_field=DecimalField(max_digits=18, decimal_places=4),
                )
            )
        )['total'] or Decimal('0')

        return {
            'total_products': len(products),
            'in_stock': sum(1 for product in products if product['quantity_available'] > 0),
            'out_of_stock': sum(1 for product in products if product['quantity_available'] == 0),
            'low_stock': sum(1 for product in products if product['is_low_stock']),
            'total_value': stock_value,
            'products': products,
        }

    def get_stock_levels(self, product_id=None, location_id=None) -> List[Dict[str, Any]]:
        """On hand per product and location"""
        queryset = InventoryRecord.objects.all()
        if product_id:
            queryset = queryset.filter(product_id=product_id)
        if location_id:
            queryset = queryset.filter(location_id=location_id)

        rows = queryset.values(
            'product__id', 'product__sku', 'location__id', 'location__code', 'location__name',
        ).annotate(
            total_available=Sum('quantity_available'),
            total_reserved=Sum('quantity_reserved'),
        ).order_by('product__sku', 'location__code')

        return [
            {
                'product_id': str(row['product__id']),
                'sku': row['product__sku'],
                'location_id': str(row['location__id']),
                'location_code': row['location__code'],
                'location_name': row['location__name'],
                'quantity_available': row['total_available'] or 0,
                'quantity_reserved': row['total_reserved'] or 0,
            }
            for row in rows
        ]

    def notify_if_low_stock(self, product) -> bool:
        """Queue a low_stock notification when `product` dropped to its reorder level"""
        if product.reorder_level <= 0:
            return False
        available = product.inventory_records.aggregate(
            total=Coalesce(Sum('quantity_available'), Value(0))
        )['total']
        if available > product.reorder_level:
            return False
        logger.warning("%s at %s, reorder level %s", product.sku, available, product.reorder_level)
        notify_on_commit('inventory.low_stock', {
            'product_id': str(product.id),
            'sku': product.sku,
            'quantity_available': available,
            'reorder_level': product.reorder_level,
        })
        return True

    def get_low_stock(self) -> List[Dict[str, Any]]:
        """Active products whose summed available quantity is at or under their reorder level"""
        products = (
            Product.objects.filter(is_active=True, reorder_level__gt=0)
            .annotate(total_available=Coalesce(Sum('inventory_records__quantity_available'), Value(0)))
            .filter(total_available__lte=F('reorder_level'))
            .order_by('sku')
        )
        return [
            {
                'product_id': str(product.id),
                'sku': product.sku,
                'name': product.name,
                'quantity_available': product.total_available,
                'reorder_level': product.reorder_level,
            }
            for product in products
        ]


inventory_service = InventoryService()
