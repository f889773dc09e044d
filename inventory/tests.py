from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta
from decimal import Decimal
from unittest import mock

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import connection
from django.test import TestCase, TransactionTestCase, skipUnlessDBFeature
from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase

from company.models import Location
from configurations.base_features.exceptions.workflow_exceptions import (
    ConcurrentModification,
    InsufficientDeviceSelection,
    InsufficientStock,
    InvalidTransfer,
    ValidationError,
)
from devices.models import Device
from inventory.models import AdjustmentType, InventoryMovement, InventoryRecord, Product
from inventory.services import InventoryService, inventory_service
from users.models import User

MovementType = InventoryMovement.MovementType


def imeis(start, count):
    return [f"35000000000{start + i:04d}" for i in range(count)]


class InventoryLedgerTestCase(TestCase):
    """Receive, FIFO planning and reservations on the ledger"""

    @classmethod
    def setUpTestData(cls):
        cls.user = User.objects.create_user(email='store@example.com', name='Store Keeper', password='pass')
        cls.warehouse = Location.objects.create(code='WH1', name='Main Warehouse')
        cls.van = Location.objects.create(code='VAN1', name='Van 1')
        cls.cable = Product.objects.create(sku='CABLE-01', name='Harness cable', reorder_level=3)

    def receive(self, batch_number, quantity, days_ago=0, location=None, unit_cost=Decimal('10')):
        return inventory_service.receive_batch(
            product_id=self.cable.id,
            quantity=quantity,
            batch_number=batch_number,
            unit_cost=unit_cost,
            location_id=(location or self.warehouse).id,
            received_date=timezone.now() - timedelta(days=days_ago),
            performed_by=self.user,
        )

    def test_receive_creates_batch_record_and_movement(self):
        result = self.receive('B-1', 5)

        self.assertEqual(result.record.quantity_available, 5)
        self.assertEqual(result.record.version, 1)
        self.assertEqual(result.movement.movement_type, MovementType.RECEIVE)
        self.assertEqual(result.movement.quantity_delta, 5)
        self.assertEqual(result.batch.quantity_received, 5)

    def test_receive_rejects_duplicate_batch_number(self):
        self.receive('B-1', 5)
        with self.assertRaises(ValidationError):
            self.receive('B-1', 2)

    def test_receive_is_idempotent(self):
        first = inventory_service.receive_batch(
            product_id=self.cable.id, quantity=4, batch_number='B-1', idempotency_key='rcv-1',
        )
        second = inventory_service.receive_batch(
            product_id=self.cable.id, quantity=4, batch_number='B-1', idempotency_key='rcv-1',
        )

        self.assertEqual(first.movement.id, second.movement.id)
        self.assertEqual(InventoryMovement.objects.filter(movement_type=MovementType.RECEIVE).count(), 1)

    def test_receive_without_location_uses_default_location(self):
        result = inventory_service.receive_batch(product_id=self.cable.id, quantity=1, batch_number='B-9')
        self.assertEqual(result.record.location.code, 'WH1')

    def test_fifo_plan_takes_oldest_batch_first(self):
        old = self.receive('B-OLD', 2, days_ago=10)
        new = self.receive('B-NEW', 5, days_ago=1)

        lines = inventory_service.plan_fifo(self.cable, 4)

        self.assertEqual([(line.batch.id, line.quantity) for line in lines], [(old.batch.id, 2), (new.batch.id, 2)])
        # planning never writes
        self.assertEqual(InventoryRecord.objects.get(pk=old.record.pk).quantity_available, 2)

    def test_fifo_plan_respects_quantities_already_planned(self):
        old = self.receive('B-OLD', 2, days_ago=10)
        new = self.receive('B-NEW', 5, days_ago=1)

        lines = inventory_service.plan_fifo(self.cable, 3, planned={old.record.pk: 2})

        self.assertEqual([(line.record.pk, line.quantity) for line in lines], [(new.record.pk, 3)])

    def test_fifo_plan_raises_when_short(self):
        self.receive('B-1', 2)
        with self.assertRaises(InsufficientStock) as ctx:
            inventory_service.plan_fifo(self.cable, 3)
        self.assertEqual(ctx.exception.available, 2)
        self.assertEqual(ctx.exception.requested, 3)

    def test_reserve_release_commit(self):
        record = self.receive('B-1', 10).record

        inventory_service.reserve(record.id, 4)
        record.refresh_from_db()
        self.assertEqual((record.quantity_available, record.quantity_reserved), (6, 4))

        inventory_service.release(record.id, 1)
        record.refresh_from_db()
        self.assertEqual((record.quantity_available, record.quantity_reserved), (7, 3))

        inventory_service.commit(record.id, 3)
        record.refresh_from_db()
        self.assertEqual((record.quantity_available, record.quantity_reserved), (7, 0))
        self.assertEqual(record.quantity_on_hand, 7)

    def test_reserve_more_than_available_fails(self):
        record = self.receive('B-1', 2).record
        with self.assertRaises(InsufficientStock):
            inventory_service.reserve(record.id, 3)

    def test_movements_sum_to_record_quantities(self):
        record = self.receive('B-1', 10).record
        inventory_service.reserve(record.id, 4)
        inventory_service.commit(record.id, 2)
        inventory_service.adjust(self.cable.id, AdjustmentType.DECREASE, 1, 'count', batch_id=record.batch_id)

        record.refresh_from_db()
        movements = InventoryMovement.objects.filter(record=record)
        self.assertEqual(sum(m.quantity_delta for m in movements), record.quantity_available)
        self.assertEqual(sum(m.reserved_delta for m in movements), record.quantity_reserved)

    def test_movements_are_immutable(self):
        movement = self.receive('B-1', 1).movement
        movement.reason = 'changed'
        with self.assertRaises(DjangoValidationError):
            movement.save()
        with self.assertRaises(DjangoValidationError):
            movement.delete()

    def test_movement_sign_must_match_type(self):
        record = self.receive('B-1', 1).record
        with self.assertRaises(DjangoValidationError):
            InventoryMovement.objects.create(
                product=self.cable, location=self.warehouse, record=record,
                movement_type=MovementType.ISSUE, quantity_delta=1,
            )

    def test_version_conflicts_exhaust_retries(self):
        record = self.receive('B-1', 5).record
        movements_before = InventoryMovement.objects.count()

        with mock.patch.object(InventoryService, '_compare_and_swap', return_value=False) as swap:
            with self.assertRaises(ConcurrentModification) as ctx:
                inventory_service.reserve(record.id, 1)

        self.assertEqual(swap.call_count, 3)
        self.assertEqual(ctx.exception.kwargs['attempts'], 3)
        self.assertEqual(InventoryMovement.objects.count(), movements_before)
        record.refresh_from_db()
        self.assertEqual(record.quantity_available, 5)

    def test_single_version_conflict_is_retried(self):
        record = self.receive('B-1', 5).record
        real_swap = InventoryService._compare_and_swap
        calls = []

        def flaky(service, rec, available, reserved):
            calls.append(rec.pk)
            if len(calls) == 1:
                return False
            return real_swap(service, rec, available, reserved)

        with mock.patch.object(InventoryService, '_compare_and_swap', autospec=True, side_effect=flaky):
            inventory_service.reserve(record.id, 2)

        record.refresh_from_db()
        self.assertEqual(len(calls), 2)
        self.assertEqual(record.quantity_reserved, 2)

    def test_summary_and_low_stock(self):
        self.receive('B-1', 2, unit_cost=Decimal('2.5'))

        summary = inventory_service.get_inventory_summary()
        self.assertEqual(summary['total_products'], 1)
        self.assertEqual(summary['in_stock'], 1)
        self.assertEqual(summary['low_stock'], 1)
        self.assertEqual(summary['total_value'], Decimal('5'))
        self.assertEqual([row['sku'] for row in inventory_service.get_low_stock()], ['CABLE-01'])

    def test_notify_if_low_stock(self):
        batch = self.receive('B-1', 10).batch
        self.assertFalse(inventory_service.notify_if_low_stock(self.cable))
        with self.captureOnCommitCallbacks() as callbacks:
            inventory_service.adjust(self.cable.id, AdjustmentType.CORRECTION, 3, 'recount', batch_id=batch.id)
            self.assertTrue(inventory_service.notify_if_low_stock(self.cable))
        self.assertEqual(len(callbacks), 1)


class InventoryAdjustTransferTestCase(TestCase):

    @classmethod
    def setUpTestData(cls):
        cls.warehouse = Location.objects.create(code='WH1', name='Main Warehouse')
        cls.van = Location.objects.create(code='VAN1', name='Van 1')
        cls.closed = Location.objects.create(code='OLD', name='Closed Store', is_active=False)
        cls.cable = Product.objects.create(sku='CABLE-01', name='Harness cable')
        cls.tracker = Product.objects.create(sku='GPS-01', name='GPS tracker', is_serialized=True)

    def test_decrease_is_floored_at_zero_with_warning(self):
        inventory_service.receive_batch(product_id=self.cable.id, quantity=2, batch_number='B-1')
        batch_id = self.cable.batches.get().id

        result = inventory_service.adjust(self.cable.id, AdjustmentType.DECREASE, 5, 'damaged', batch_id=batch_id)

        self.assertEqual(result.requested_delta, -5)
        self.assertEqual(result.applied_delta, -2)
        self.assertEqual(result.record.quantity_available, 0)
        self.assertEqual(len(result.warnings), 1)

    def test_correction_sets_target_quantity(self):
        inventory_service.receive_batch(product_id=self.cable.id, quantity=7, batch_number='B-1')
        batch_id = self.cable.batches.get().id

        result = inventory_service.adjust(self.cable.id, AdjustmentType.CORRECTION, 4, 'recount', batch_id=batch_id)

        self.assertEqual(result.record.quantity_available, 4)
        self.assertEqual(
            InventoryMovement.objects.filter(movement_type=MovementType.ADJUST_DECREASE).get().quantity_delta, -3
        )

    def test_adjustment_requires_reason(self):
        with self.assertRaises(ValidationError):
            inventory_service.adjust(self.cable.id, AdjustmentType.INCREASE, 1, '  ')

    def test_increase_then_decrease_restores_quantity(self):
        inventory_service.receive_batch(product_id=self.cable.id, quantity=3, batch_number='B-1')
        batch_id = self.cable.batches.get().id

        inventory_service.adjust(self.cable.id, AdjustmentType.INCREASE, 4, 'found', batch_id=batch_id)
        result = inventory_service.adjust(self.cable.id, AdjustmentType.DECREASE, 4, 'lost', batch_id=batch_id)

        self.assertEqual(result.record.quantity_available, 3)
        self.assertEqual(result.warnings, [])

    def test_serialized_decrease_needs_one_imei_per_unit(self):
        inventory_service.receive_batch(
            product_id=self.tracker.id, quantity=2, batch_number='T-1', device_imeis=imeis(1, 2),
        )
        batch_id = self.tracker.batches.get().id

        with self.assertRaises(InsufficientDeviceSelection):
            inventory_service.adjust(
                self.tracker.id, AdjustmentType.DECREASE, 2, 'write off',
                batch_id=batch_id, device_imeis=imeis(1, 1),
            )

    def test_serialized_decrease_retires_devices(self):
        inventory_service.receive_batch(
            product_id=self.tracker.id, quantity=2, batch_number='T-1', device_imeis=imeis(1, 2),
        )

        result = inventory_service.adjust(
            self.tracker.id, AdjustmentType.DECREASE, 1, 'write off', device_imeis=imeis(1, 1),
        )

        self.assertEqual(result.record.quantity_available, 1)
        device = Device.objects.get(imei=imeis(1, 1)[0])
        self.assertEqual(device.status, Device.Status.RETIRED)
        self.assertEqual(device.retired_reason, Device.RetiredReason.WRITTEN_OFF)

    def test_floored_serialized_decrease_retires_only_applied_units(self):
        record = inventory_service.receive_batch(
            product_id=self.tracker.id, quantity=2, batch_number='T-1', device_imeis=imeis(1, 2),
        ).record
        inventory_service.reserve(record.id, 1)

        with self.assertRaises(InsufficientDeviceSelection) as raised:
            inventory_service.adjust(
                self.tracker.id, AdjustmentType.DECREASE, 2, 'write off', device_imeis=imeis(1, 2),
            )
        self.assertEqual(raised.exception.kwargs['expected'], 1)
        self.assertFalse(Device.objects.filter(status=Device.Status.RETIRED).exists())

        result = inventory_service.adjust(
            self.tracker.id, AdjustmentType.DECREASE, 2, 'write off', device_imeis=imeis(1, 1),
        )

        self.assertEqual(result.applied_delta, -1)
        self.assertEqual(len(result.warnings), 1)
        record.refresh_from_db()
        self.assertEqual((record.quantity_available, record.quantity_reserved), (0, 1))
        self.assertEqual(Device.objects.filter(status=Device.Status.RETIRED).count(), 1)
        self.assertEqual(Device.objects.get(imei=imeis(2, 1)[0]).status, Device.Status.AVAILABLE)

    def test_adjust_idempotency_key_is_scoped_to_product(self):
        inventory_service.receive_batch(product_id=self.cable.id, quantity=2, batch_number='B-1')
        harness = Product.objects.create(sku='HARNESS-01', name='Relay harness')

        inventory_service.adjust(self.cable.id, AdjustmentType.INCREASE, 1, 'found', idempotency_key='count-7')
        result = inventory_service.adjust(harness.id, AdjustmentType.INCREASE, 4, 'found', idempotency_key='count-7')

        self.assertEqual(result.warnings, [])
        self.assertEqual(result.record.product, harness)
        self.assertEqual(InventoryRecord.objects.get(product=harness).quantity_available, 4)

        replay = inventory_service.adjust(harness.id, AdjustmentType.INCREASE, 4, 'found', idempotency_key='count-7')
        self.assertEqual(replay.applied_delta, 4)
        self.assertEqual(InventoryRecord.objects.get(product=harness).quantity_available, 4)

    def test_transfer_idempotency_key_is_scoped_to_product(self):
        harness = Product.objects.create(sku='HARNESS-01', name='Relay harness')
        inventory_service.receive_batch(
            product_id=self.cable.id, quantity=5, batch_number='B-1', location_id=self.warehouse.id,
        )
        inventory_service.receive_batch(
            product_id=harness.id, quantity=5, batch_number='H-1', location_id=self.warehouse.id,
        )

        inventory_service.transfer(self.cable.id, self.warehouse.id, self.van.id, 2, idempotency_key='load-van')
        inventory_service.transfer(harness.id, self.warehouse.id, self.van.id, 3, idempotency_key='load-van')
        inventory_service.transfer(harness.id, self.warehouse.id, self.van.id, 3, idempotency_key='load-van')

        self.assertEqual(InventoryRecord.objects.get(product=self.cable, location=self.van).quantity_available, 2)
        self.assertEqual(InventoryRecord.objects.get(product=harness, location=self.van).quantity_available, 3)

    def test_receive_serialized_imei_count_must_match(self):
        with self.assertRaises(InsufficientDeviceSelection):
            inventory_service.receive_batch(
                product_id=self.tracker.id, quantity=3, batch_number='T-1', device_imeis=imeis(1, 2),
            )
        self.assertFalse(self.tracker.batches.exists())

    def test_transfer_to_same_location_is_rejected(self):
        with self.assertRaises(InvalidTransfer):
            inventory_service.transfer(self.cable.id, self.warehouse.id, self.warehouse.id, 1)

    def test_transfer_to_inactive_location_is_rejected(self):
        inventory_service.receive_batch(product_id=self.cable.id, quantity=2, batch_number='B-1')
        with self.assertRaises(InvalidTransfer):
            inventory_service.transfer(self.cable.id, self.warehouse.id, self.closed.id, 1)

    def test_transfer_keeps_batch_and_writes_paired_movements(self):
        inventory_service.receive_batch(product_id=self.cable.id, quantity=5, batch_number='B-1')
        batch = self.cable.batches.get()

        result = inventory_service.transfer(self.cable.id, self.warehouse.id, self.van.id, 3)

        self.assertTrue(result.success)
        self.assertEqual(len(result.movements), 2)
        source = InventoryRecord.objects.get(product=self.cable, location=self.warehouse)
        destination = InventoryRecord.objects.get(product=self.cable, location=self.van)
        self.assertEqual(source.quantity_available, 2)
        self.assertEqual(destination.quantity_available, 3)
        self.assertEqual(destination.batch_id, batch.id)

    def test_serialized_transfer_moves_devices(self):
        inventory_service.receive_batch(
            product_id=self.tracker.id, quantity=2, batch_number='T-1', device_imeis=imeis(1, 2),
        )

        inventory_service.transfer(
            self.tracker.id, self.warehouse.id, self.van.id, 1, device_imeis=imeis(2, 1),
        )

        self.assertEqual(Device.objects.get(imei=imeis(2, 1)[0]).location, self.van)
        self.assertEqual(Device.objects.get(imei=imeis(1, 1)[0]).location, self.warehouse)
        self.assertEqual(InventoryRecord.objects.get(product=self.tracker, location=self.van).quantity_available, 1)


class InventoryConcurrencyTestCase(TransactionTestCase):
    """Two writers on the same record never both win against one stale read"""

    @skipUnlessDBFeature('has_select_for_update')
    def test_parallel_reservations_never_oversell(self):
        product = Product.objects.create(sku='CABLE-01', name='Harness cable')
        record = inventory_service.receive_batch(product_id=product.id, quantity=5, batch_number='B-1').record

        def reserve():
            try:
                inventory_service.reserve(record.id, 1)
                return True
            except (InsufficientStock, ConcurrentModification):
                return False
            finally:
                connection.close()

        with ThreadPoolExecutor(max_workers=8) as executor:
            results = list(executor.map(lambda _: reserve(), range(8)))

        record.refresh_from_db()
        self.assertEqual(results.count(True), 5)
        self.assertEqual(record.quantity_available, 0)
        self.assertEqual(record.quantity_reserved, 5)


class InventoryOperationsApiTestCase(APITestCase):

    @classmethod
    def setUpTestData(cls):
        cls.user = User.objects.create_user(email='store@example.com', name='Store Keeper', password='pass')
        cls.warehouse = Location.objects.create(code='WH1', name='Main Warehouse')
        cls.cable = Product.objects.create(sku='CABLE-01', name='Harness cable')

    def setUp(self):
        self.client.force_authenticate(user=self.user)

    def test_requires_authentication(self):
        self.client.force_authenticate(user=None)
        response = self.client.get(reverse('inventory-summary'))
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_receive_endpoint(self):
        response = self.client.post(reverse('inventory-receive'), {
            'product_id': str(self.cable.id),
            'location_id': str(self.warehouse.id),
            'batch_number': 'B-1',
            'quantity': 4,
            'unit_cost': '1.50',
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['data']['record']['quantity_available'], 4)
        self.assertTrue(response.data['meta_data']['success'])

    def test_adjust_endpoint_returns_floor_warning(self):
        inventory_service.receive_batch(product_id=self.cable.id, quantity=1, batch_number='B-1')
        response = self.client.post(reverse('inventory-adjust'), {
            'product_id': str(self.cable.id),
            'batch_id': str(self.cable.batches.get().id),
            'adjustment_type': 'DECREASE',
            'quantity': 3,
            'reason': 'broken',
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['applied_delta'], -1)
        self.assertEqual(len(response.data['warnings']), 1)

    def test_transfer_endpoint_same_location(self):
        response = self.client.post(reverse('inventory-transfer'), {
            'product_id': str(self.cable.id),
            'from_location_id': str(self.warehouse.id),
            'to_location_id': str(self.warehouse.id),
            'quantity': 1,
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['errors']['code'], 'invalid_transfer')

    def test_invalid_payload_is_a_validation_error(self):
        response = self.client.post(reverse('inventory-receive'), {'quantity': 0}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['errors']['code'], 'validation_error')
