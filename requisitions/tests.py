from datetime import date

from django.test import TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from company.models import Location
from configurations.base_features.exceptions.workflow_exceptions import (
    DeviceAllocationMismatch,
    InsufficientStock,
    InvalidTransition,
    ValidationError,
)
from customers.models import Customer, Vehicle
from devices.models import Device
from inventory.models import InventoryMovement, InventoryRecord, Product
from inventory.services import inventory_service
from jobs.models import Job
from jobs.services import job_service
from requisitions.models import Requisition, RequisitionIssuance, RequisitionLog
from requisitions.services import requisition_service
from users.models import Technician, User

IMEIS = ['356938035643901', '356938035643902']


class RequisitionFixturesMixin:

    @classmethod
    def setUpTestData(cls):
        cls.user = User.objects.create_user(email='store@example.com', name='Store Keeper', password='pass')
        tech_user = User.objects.create_user(email='tech@example.com', name='Field Tech', password='pass')
        other_user = User.objects.create_user(email='other@example.com', name='Other Tech', password='pass')
        cls.technician = Technician.objects.create(user=tech_user, technician_code='T-001')
        cls.other_technician = Technician.objects.create(user=other_user, technician_code='T-002')
        cls.customer = Customer.objects.create(customer_code='C-001', name='Acme Logistics', phone='0700000000')
        cls.vehicle = Vehicle.objects.create(customer=cls.customer, registration='KAA 123A')
        cls.warehouse = Location.objects.create(code='WH1', name='Main Warehouse')
        cls.cable = Product.objects.create(sku='CABLE-01', name='Harness cable')
        cls.tracker = Product.objects.create(sku='GPS-01', name='GPS tracker', is_serialized=True)

        cls.old_batch = inventory_service.receive_batch(
            product_id=cls.cable.id, quantity=2, batch_number='C-OLD',
            location_id=cls.warehouse.id, received_date=date(2024, 1, 1),
        ).batch
        cls.new_batch = inventory_service.receive_batch(
            product_id=cls.cable.id, quantity=5, batch_number='C-NEW',
            location_id=cls.warehouse.id, received_date=date(2024, 6, 1),
        ).batch
        inventory_service.receive_batch(
            product_id=cls.tracker.id, quantity=2, batch_number='T-1',
            location_id=cls.warehouse.id, device_imeis=IMEIS,
        )

    def create_job(self):
        return job_service.create_job(
            self.customer.id,
            Job.Type.NEW_INSTALLATION,
            vehicle_id=self.vehicle.id,
            technician_ids=[self.technician.id],
            created_by=self.user,
        )

    def approved_requisition(self, items, job=None):
        job = job or self.create_job()
        requisition = requisition_service.create_requisition(job.id, items, technician_id=self.technician.id)
        return requisition_service.approve(requisition.id, performed_by=self.user)

    def available(self, batch):
        return InventoryRecord.objects.get(product=batch.product, batch=batch, location=self.warehouse).quantity_available


class RequisitionWorkflowTestCase(RequisitionFixturesMixin, TestCase):

    def test_create_and_approve_advance_the_job(self):
        job = self.create_job()
        self.assertEqual(job.status, Job.Status.ASSIGNED)

        requisition = requisition_service.create_requisition(
            job.id, [{'product_id': self.cable.id, 'quantity': 3}], technician_id=self.technician.id,
        )
        self.assertEqual(requisition.status, Requisition.Status.PENDING)
        self.assertTrue(requisition.requisition_number.startswith('REQ-'))
        job.refresh_from_db()
        self.assertEqual(job.status, Job.Status.REQUISITION_PENDING)

        requisition_service.approve(requisition.id, performed_by=self.user)
        job.refresh_from_db()
        self.assertEqual(job.status, Job.Status.REQUISITION_APPROVED)
        self.assertEqual(
            list(requisition.logs.values_list('action_type', flat=True)),
            [RequisitionLog.ActionType.CREATED, RequisitionLog.ActionType.APPROVED],
        )

    def test_technician_must_be_on_the_job(self):
        job = self.create_job()
        with self.assertRaises(ValidationError):
            requisition_service.create_requisition(
                job.id, [{'product_id': self.cable.id, 'quantity': 1}], technician_id=self.other_technician.id,
            )

    def test_job_must_be_assigned(self):
        job = job_service.create_job(self.customer.id, Job.Type.NEW_INSTALLATION)
        self.assertEqual(job.status, Job.Status.PENDING)
        with self.assertRaises(ValidationError):
            requisition_service.create_requisition(
                job.id, [{'product_id': self.cable.id, 'quantity': 1}], technician_id=self.technician.id,
            )

    def test_product_requested_twice(self):
        job = self.create_job()
        with self.assertRaises(ValidationError):
            requisition_service.create_requisition(
                job.id,
                [{'product_id': self.cable.id, 'quantity': 1}, {'product_id': self.cable.id, 'quantity': 2}],
                technician_id=self.technician.id,
            )

    def test_only_pending_requisitions_are_approved_or_rejected(self):
        requisition = self.approved_requisition([{'product_id': self.cable.id, 'quantity': 1}])

        with self.assertRaises(InvalidTransition):
            requisition_service.approve(requisition.id)
        with self.assertRaises(InvalidTransition):
            requisition_service.reject(requisition.id, 'changed my mind')

    def test_reject_requires_reason(self):
        job = self.create_job()
        requisition = requisition_service.create_requisition(
            job.id, [{'product_id': self.cable.id, 'quantity': 1}], technician_id=self.technician.id,
        )
        with self.assertRaises(ValidationError):
            requisition_service.reject(requisition.id, '  ')

        requisition = requisition_service.reject(requisition.id, 'wrong cable', performed_by=self.user)
        self.assertEqual(requisition.status, Requisition.Status.REJECTED)
        self.assertEqual(requisition.rejection_reason, 'wrong cable')

    def test_required_items_hold_the_job_until_issued(self):
        job = self.create_job()
        requisition = requisition_service.create_requisition(
            job.id,
            [{'product_id': self.cable.id, 'quantity': 2, 'is_required_to_start': True}],
            technician_id=self.technician.id,
        )
        requisition_service.approve(requisition.id)
        job.refresh_from_db()
        self.assertEqual(job.status, Job.Status.REQUISITION_PENDING)

        item = requisition.items.get()
        requisition_service.issue(requisition.id, [{'item_id': item.id, 'quantity': 2}])
        job.refresh_from_db()
        self.assertEqual(job.status, Job.Status.REQUISITION_APPROVED)

    def test_statistics(self):
        self.approved_requisition([{'product_id': self.cable.id, 'quantity': 3}])
        result = requisition_service.get_statistics()
        self.assertEqual(result['total'], 1)
        self.assertEqual(result['by_status'][Requisition.Status.APPROVED], 1)
        self.assertEqual(result['quantity_requested'], 3)


class RequisitionIssueTestCase(RequisitionFixturesMixin, TestCase):

    def test_issue_splits_fifo_across_batches(self):
        requisition = self.approved_requisition([{'product_id': self.cable.id, 'quantity': 4}])
        item = requisition.items.get()

        requisition = requisition_service.issue(requisition.id, [{'item_id': item.id, 'quantity': 4}])

        self.assertEqual(requisition.status, Requisition.Status.FULLY_ISSUED)
        issuances = list(item.issuances.order_by('batch__received_date'))
        self.assertEqual([(i.batch, i.quantity) for i in issuances], [(self.old_batch, 2), (self.new_batch, 2)])
        self.assertEqual(self.available(self.old_batch), 0)
        self.assertEqual(self.available(self.new_batch), 3)
        item.refresh_from_db()
        self.assertEqual(item.quantity_issued, 4)
        self.assertEqual(item.batch, self.old_batch)

    def test_partial_issue(self):
        requisition = self.approved_requisition([{'product_id': self.cable.id, 'quantity': 4}])
        item = requisition.items.get()

        requisition = requisition_service.issue(requisition.id, [{'item_id': item.id, 'quantity': 1}])

        self.assertEqual(requisition.status, Requisition.Status.PARTIALLY_ISSUED)

    def test_over_issue_changes_nothing(self):
        requisition = self.approved_requisition([{'product_id': self.cable.id, 'quantity': 3}])
        item = requisition.items.get()
        movements = InventoryMovement.objects.count()

        with self.assertRaises(ValidationError):
            requisition_service.issue(requisition.id, [{'item_id': item.id, 'quantity': 4}])

        item.refresh_from_db()
        self.assertEqual(item.quantity_issued, 0)
        self.assertEqual(InventoryMovement.objects.count(), movements)
        self.assertEqual(self.available(self.old_batch), 2)

    def test_failing_line_rolls_back_the_whole_issue(self):
        requisition = self.approved_requisition([
            {'product_id': self.cable.id, 'quantity': 2},
            {'product_id': self.tracker.id, 'quantity': 1},
        ])
        cable_item = requisition.items.get(product=self.cable)
        tracker_item = requisition.items.get(product=self.tracker)

        with self.assertRaises(DeviceAllocationMismatch):
            requisition_service.issue(requisition.id, [
                {'item_id': cable_item.id, 'quantity': 2},
                {'item_id': tracker_item.id, 'quantity': 1, 'device_imeis': ['999999999999999']},
            ])

        cable_item.refresh_from_db()
        self.assertEqual(cable_item.quantity_issued, 0)
        self.assertEqual(self.available(self.old_batch), 2)
        self.assertFalse(RequisitionIssuance.objects.exists())

    def test_insufficient_stock(self):
        requisition = self.approved_requisition([{'product_id': self.cable.id, 'quantity': 7}])
        item = requisition.items.get()

        with self.assertRaises(InsufficientStock):
            requisition_service.issue(requisition.id, [{'item_id': item.id, 'quantity': 7, 'batch_id': self.new_batch.id}])

    def test_idempotent_replay(self):
        requisition = self.approved_requisition([{'product_id': self.cable.id, 'quantity': 3}])
        item = requisition.items.get()
        lines = [{'item_id': item.id, 'quantity': 1}]

        requisition_service.issue(requisition.id, lines, idempotency_key='issue-1')
        requisition_service.issue(requisition.id, lines, idempotency_key='issue-1')

        item.refresh_from_db()
        self.assertEqual(item.quantity_issued, 1)
        self.assertEqual(RequisitionIssuance.objects.filter(idempotency_key='issue-1').count(), 1)
        self.assertEqual(self.available(self.old_batch), 1)

    def test_serialized_issue_needs_one_imei_per_unit(self):
        requisition = self.approved_requisition([{'product_id': self.tracker.id, 'quantity': 2}])
        item = requisition.items.get()

        with self.assertRaises(DeviceAllocationMismatch):
            requisition_service.issue(requisition.id, [{'item_id': item.id, 'quantity': 2, 'device_imeis': IMEIS[:1]}])

        requisition_service.issue(requisition.id, [{'item_id': item.id, 'quantity': 2, 'device_imeis': IMEIS}])
        self.assertEqual(
            Device.objects.filter(status=Device.Status.ISSUED, job=requisition.job).count(), 2,
        )

    def test_issued_device_cannot_be_bound_to_a_second_job(self):
        first = self.approved_requisition([{'product_id': self.tracker.id, 'quantity': 1}])
        requisition_service.issue(
            first.id, [{'item_id': first.items.get().id, 'quantity': 1, 'device_imeis': IMEIS[:1]}],
        )
        second = self.approved_requisition([{'product_id': self.tracker.id, 'quantity': 1}])

        with self.assertRaises(DeviceAllocationMismatch) as raised:
            requisition_service.issue(
                second.id, [{'item_id': second.items.get().id, 'quantity': 1, 'device_imeis': IMEIS[:1]}],
            )

        self.assertEqual(raised.exception.kwargs['reason'], "device is ISSUED")
        device = Device.objects.get(imei=IMEIS[0])
        self.assertEqual(device.job, first.job)
        self.assertEqual(second.items.get().quantity_issued, 0)
        self.assertFalse(second.issuances.exists())

    def test_device_repeated_across_lines_is_rejected(self):
        requisition = self.approved_requisition([{'product_id': self.tracker.id, 'quantity': 2}])
        item = requisition.items.get()

        with self.assertRaises(DeviceAllocationMismatch) as raised:
            requisition_service.issue(requisition.id, [
                {'item_id': item.id, 'quantity': 1, 'device_imeis': IMEIS[:1]},
                {'item_id': item.id, 'quantity': 1, 'device_imeis': IMEIS[:1]},
            ])

        self.assertEqual(raised.exception.kwargs['reason'], "device selected twice in the same issue")
        self.assertEqual(Device.objects.get(imei=IMEIS[0]).status, Device.Status.AVAILABLE)
        item.refresh_from_db()
        self.assertEqual(item.quantity_issued, 0)

    def test_bulk_product_rejects_imeis(self):
        requisition = self.approved_requisition([{'product_id': self.cable.id, 'quantity': 1}])
        item = requisition.items.get()
        with self.assertRaises(DeviceAllocationMismatch):
            requisition_service.issue(requisition.id, [{'item_id': item.id, 'quantity': 1, 'device_imeis': IMEIS[:1]}])

    def test_pending_requisition_cannot_be_issued(self):
        job = self.create_job()
        requisition = requisition_service.create_requisition(
            job.id, [{'product_id': self.cable.id, 'quantity': 1}], technician_id=self.technician.id,
        )
        item = requisition.items.get()
        with self.assertRaises(InvalidTransition):
            requisition_service.issue(requisition.id, [{'item_id': item.id, 'quantity': 1}])

    def test_cancelled_job_blocks_issue(self):
        requisition = self.approved_requisition([{'product_id': self.cable.id, 'quantity': 1}])
        item = requisition.items.get()
        job_service.cancel(requisition.job_id, 'customer withdrew')

        with self.assertRaises(InvalidTransition):
            requisition_service.issue(requisition.id, [{'item_id': item.id, 'quantity': 1}])


class RequisitionReturnTestCase(RequisitionFixturesMixin, TestCase):

    def test_returns_walk_issuances_newest_first(self):
        requisition = self.approved_requisition([{'product_id': self.cable.id, 'quantity': 4}])
        item = requisition.items.get()
        requisition_service.issue(requisition.id, [{'item_id': item.id, 'quantity': 2}])
        requisition_service.issue(requisition.id, [{'item_id': item.id, 'quantity': 2}])

        requisition = requisition_service.return_items(
            requisition.id, [{'item_id': item.id, 'quantity': 3}], 'job scaled down', performed_by=self.user,
        )

        self.assertEqual(requisition.status, Requisition.Status.FULLY_ISSUED)
        self.assertEqual(self.available(self.new_batch), 5)
        self.assertEqual(self.available(self.old_batch), 1)
        item.refresh_from_db()
        self.assertEqual(item.quantity_issued, 4)
        self.assertEqual(item.quantity_returned, 3)

    def test_cannot_return_more_than_issued(self):
        requisition = self.approved_requisition([{'product_id': self.cable.id, 'quantity': 2}])
        item = requisition.items.get()
        requisition_service.issue(requisition.id, [{'item_id': item.id, 'quantity': 1}])

        with self.assertRaises(ValidationError):
            requisition_service.return_items(requisition.id, [{'item_id': item.id, 'quantity': 2}], 'too many')

    def test_nothing_issued_nothing_to_return(self):
        requisition = self.approved_requisition([{'product_id': self.cable.id, 'quantity': 2}])
        item = requisition.items.get()
        with self.assertRaises(InvalidTransition):
            requisition_service.return_items(requisition.id, [{'item_id': item.id, 'quantity': 1}], 'unused')

    def test_serialized_return_frees_the_device(self):
        requisition = self.approved_requisition([{'product_id': self.tracker.id, 'quantity': 1}])
        item = requisition.items.get()
        requisition_service.issue(requisition.id, [{'item_id': item.id, 'quantity': 1, 'device_imeis': IMEIS[:1]}])

        requisition_service.return_items(
            requisition.id, [{'item_id': item.id, 'quantity': 1, 'device_imeis': IMEIS[:1]}], 'wrong model',
        )

        device = Device.objects.get(imei=IMEIS[0])
        self.assertEqual(device.status, Device.Status.AVAILABLE)
        self.assertIsNone(device.job)
        self.assertEqual(item.issuances.get().quantity_returned, 1)


class RequisitionOperationsApiTestCase(RequisitionFixturesMixin, APITestCase):

    def setUp(self):
        self.client.force_authenticate(user=self.user)

    def test_create_approve_and_issue(self):
        job = self.create_job()
        response = self.client.post(reverse('requisitions-list'), {
            'job_id': str(job.id),
            'technician_id': str(self.technician.id),
            'items': [{'product_id': str(self.cable.id), 'quantity': 2}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        requisition_id = response.data['data']['id']
        item_id = response.data['data']['items'][0]['id']

        response = self.client.post(reverse('requisitions-approve', kwargs={'pk': requisition_id}), {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['status'], Requisition.Status.APPROVED)

        response = self.client.post(reverse('requisitions-issue', kwargs={'pk': requisition_id}), {
            'lines': [{'item_id': item_id, 'quantity': 2}],
            'idempotency_key': 'api-1',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['status'], Requisition.Status.FULLY_ISSUED)

    def test_issue_beyond_stock_reports_insufficient_stock(self):
        requisition = self.approved_requisition([{'product_id': self.cable.id, 'quantity': 7}])
        item = requisition.items.get()
        response = self.client.post(reverse('requisitions-issue', kwargs={'pk': requisition.id}), {
            'lines': [{'item_id': str(item.id), 'quantity': 7, 'batch_id': str(self.old_batch.id)}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['errors']['code'], 'insufficient_stock')

    def test_reject_without_reason(self):
        job = self.create_job()
        requisition = requisition_service.create_requisition(
            job.id, [{'product_id': self.cable.id, 'quantity': 1}], technician_id=self.technician.id,
        )
        response = self.client.post(reverse('requisitions-reject', kwargs={'pk': requisition.id}), {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
