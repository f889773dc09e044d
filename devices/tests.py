from django.test import TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from company.models import Location
from configurations.base_features.exceptions.workflow_exceptions import InvalidTransition, ValidationError
from customers.models import Customer
from devices.models import Device, DeviceLog
from devices.services import device_service
from inventory.models import InventoryRecord, Product
from inventory.services import inventory_service
from jobs.models import Job, JobTechnician
from requisitions.services import requisition_service
from users.models import Technician, User

IMEIS = ['356938035643801', '356938035643802', '356938035643803']


class DeviceFixturesMixin:

    @classmethod
    def setUpTestData(cls):
        cls.user = User.objects.create_user(email='store@example.com', name='Store Keeper', password='pass')
        tech_user = User.objects.create_user(email='tech@example.com', name='Field Tech', password='pass')
        cls.technician = Technician.objects.create(user=tech_user, technician_code='T-001')
        cls.customer = Customer.objects.create(customer_code='C-001', name='Acme Logistics', phone='0700000000')
        cls.warehouse = Location.objects.create(code='WH1', name='Main Warehouse')
        cls.van = Location.objects.create(code='VAN1', name='Van 1')
        cls.tracker = Product.objects.create(sku='GPS-01', name='GPS tracker', is_serialized=True)
        cls.batch = inventory_service.receive_batch(
            product_id=cls.tracker.id,
            quantity=3,
            batch_number='T-1',
            location_id=cls.warehouse.id,
            device_imeis=IMEIS,
        ).batch

    def record(self, location=None):
        return InventoryRecord.objects.get(product=self.tracker, batch=self.batch, location=location or self.warehouse)

    def issue_device(self, imei):
        job = Job.objects.create(customer=self.customer, job_type=Job.Type.NEW_INSTALLATION, status=Job.Status.ASSIGNED)
        JobTechnician.objects.create(job=job, technician=self.technician, position=1)
        requisition = requisition_service.create_requisition(
            job.id, [{'product_id': self.tracker.id, 'quantity': 1}], technician_id=self.technician.id,
        )
        requisition_service.approve(requisition.id, performed_by=self.user)
        item = requisition.items.get()
        requisition_service.issue(
            requisition.id,
            [{'item_id': item.id, 'quantity': 1, 'device_imeis': [imei]}],
            performed_by=self.user,
        )
        return job, item


class DeviceRegistryTestCase(DeviceFixturesMixin, TestCase):

    def test_receive_registers_available_devices(self):
        device = device_service.get_by_imei(IMEIS[0])
        self.assertEqual(device.status, Device.Status.AVAILABLE)
        self.assertEqual(device.location, self.warehouse)
        self.assertEqual(device.logs.get().event_type, DeviceLog.EventType.REGISTERED)

    def test_register_devices_against_untracked_units(self):
        batch = inventory_service.receive_batch(product_id=self.tracker.id, quantity=2, batch_number='T-2').batch

        devices = device_service.register_devices(self.tracker.id, batch.id, ['356938035643811'])
        self.assertEqual(len(devices), 1)

        with self.assertRaises(ValidationError):
            device_service.register_devices(self.tracker.id, batch.id, ['356938035643812', '356938035643813'])

    def test_register_rejects_known_imei(self):
        inventory_service.receive_batch(product_id=self.tracker.id, quantity=1, batch_number='T-2')
        batch = self.tracker.batches.get(batch_number='T-2')
        with self.assertRaises(ValidationError):
            device_service.register_devices(self.tracker.id, batch.id, [IMEIS[0]])

    def test_register_rejects_malformed_imei(self):
        with self.assertRaises(ValidationError):
            device_service.register_devices(self.tracker.id, self.batch.id, ['12345'])

    def test_only_issued_devices_can_be_activated(self):
        with self.assertRaises(InvalidTransition):
            device_service.activate(IMEIS[0])

    def test_issue_binds_device_to_job(self):
        job, item = self.issue_device(IMEIS[0])

        device = device_service.get_by_imei(IMEIS[0])
        self.assertEqual(device.status, Device.Status.ISSUED)
        self.assertEqual(device.job, job)
        self.assertEqual(device.requisition_item, item)
        self.assertEqual(self.record().quantity_available, 2)

    def test_activate_then_deactivate(self):
        self.issue_device(IMEIS[0])

        device = device_service.activate(IMEIS[0], sim_card_iccid='8925400000000000001', performed_by=self.user)
        self.assertEqual(device.status, Device.Status.ACTIVE)
        self.assertEqual(device.sim_card_iccid, '8925400000000000001')
        self.assertIsNotNone(device.activated_at)

        device = device_service.deactivate(IMEIS[0], 'vehicle sold')
        self.assertEqual(device.status, Device.Status.RETIRED)
        self.assertEqual(device.retired_reason, Device.RetiredReason.DEACTIVATED)

    def test_mark_damaged_in_stock_writes_off_through_ledger(self):
        device = device_service.mark_damaged(IMEIS[1], 'dropped', performed_by=self.user)

        self.assertEqual(device.status, Device.Status.RETIRED)
        self.assertEqual(device.retired_reason, Device.RetiredReason.DAMAGED)
        self.assertEqual(self.record().quantity_available, 2)

    def test_mark_damaged_after_issue_leaves_stock_alone(self):
        self.issue_device(IMEIS[0])

        device = device_service.mark_damaged(IMEIS[0], 'water damage')

        self.assertEqual(device.status, Device.Status.RETIRED)
        self.assertEqual(self.record().quantity_available, 2)

    def test_mark_damaged_requires_reason(self):
        with self.assertRaises(ValidationError):
            device_service.mark_damaged(IMEIS[0], '')

    def test_return_device_puts_it_back_in_stock(self):
        job, item = self.issue_device(IMEIS[0])

        device = device_service.return_device(IMEIS[0], 'job cancelled', performed_by=self.user)

        self.assertEqual(device.status, Device.Status.AVAILABLE)
        self.assertIsNone(device.job)
        self.assertIsNone(device.requisition_item)
        self.assertEqual(self.record().quantity_available, 3)
        item.refresh_from_db()
        self.assertEqual(item.quantity_issued, 1)
        self.assertEqual(item.quantity_returned, 1)
        self.assertEqual(
            [log.event_type for log in device_service.get_history(IMEIS[0])],
            [DeviceLog.EventType.REGISTERED, DeviceLog.EventType.ISSUED, DeviceLog.EventType.RETURNED],
        )

    def test_return_device_to_another_location(self):
        self.issue_device(IMEIS[0])

        device = device_service.return_device(IMEIS[0], 'spare for van', location_id=self.van.id)

        self.assertEqual(device.location, self.van)
        self.assertEqual(self.record(self.van).quantity_available, 1)
        self.assertEqual(self.record().quantity_available, 2)

    def test_return_of_stock_device_is_rejected(self):
        with self.assertRaises(InvalidTransition):
            device_service.return_device(IMEIS[0], 'nothing to return')

    def test_status_counts(self):
        self.issue_device(IMEIS[0])
        counts = device_service.get_status_counts(self.tracker.id)
        self.assertEqual(counts[Device.Status.AVAILABLE], 2)
        self.assertEqual(counts[Device.Status.ISSUED], 1)
        self.assertEqual(counts[Device.Status.RETIRED], 0)


class DeviceApiTestCase(DeviceFixturesMixin, APITestCase):

    def setUp(self):
        self.client.force_authenticate(user=self.user)

    def test_get_by_imei(self):
        response = self.client.get(reverse('devices-by-imei', kwargs={'imei': IMEIS[0]}))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['imei'], IMEIS[0])

    def test_unknown_imei_is_not_found(self):
        response = self.client.get(reverse('devices-by-imei', kwargs={'imei': '000000000000000'}))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_activate_stock_device_conflicts(self):
        response = self.client.post(reverse('devices-activate', kwargs={'imei': IMEIS[0]}), {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['errors']['code'], 'invalid_transition')

    def test_available_requires_product(self):
        response = self.client.get(reverse('devices-available'))
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.get(reverse('devices-available'), {'product_id': str(self.tracker.id)})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['data']), 3)
