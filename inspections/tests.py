from django.test import TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from configurations.base_features.exceptions.workflow_exceptions import ValidationError
from customers.models import Customer, Vehicle
from inspections.models import InspectionChecklistItem, InspectionRecord, InspectionStage
from inspections.services import inspection_service
from jobs.models import Job
from jobs.services import job_service, job_state_machine
from users.models import Technician, User

PRE = InspectionStage.PRE_INSTALLATION
POST = InspectionStage.POST_INSTALLATION
CHECKED = InspectionRecord.Status.CHECKED


class InspectionFixturesMixin:

    @classmethod
    def setUpTestData(cls):
        cls.user = User.objects.create_user(email='tech@example.com', name='Field Tech', password='pass')
        cls.technician = Technician.objects.create(user=cls.user, technician_code='T-001')
        cls.customer = Customer.objects.create(customer_code='C-001', name='Acme Logistics', phone='0700000000')
        cls.vehicle = Vehicle.objects.create(customer=cls.customer, registration='KAA 123A')
        cls.body = InspectionChecklistItem.objects.create(name='Body panels', display_order=1)
        cls.lights = InspectionChecklistItem.objects.create(name='Lights', display_order=2)
        cls.mounting = InspectionChecklistItem.objects.create(
            name='Device mounting',
            category=InspectionChecklistItem.Category.DEVICE_COMPONENT,
            is_pre_installation=False,
            requires_photo=True,
            display_order=3,
        )

    def create_job(self, vehicle=True):
        job = job_service.create_job(
            self.customer.id,
            Job.Type.NEW_INSTALLATION,
            vehicle_id=self.vehicle.id if vehicle else None,
            technician_ids=[self.technician.id],
        )
        if vehicle:
            job = job_state_machine.transition(job.id, Job.Status.PRE_INSPECTION_PENDING)
        return job

    def results(self, *items, status=CHECKED):
        return [{'checklist_item_id': item.id, 'status': status} for item in items]


class InspectionServiceTestCase(InspectionFixturesMixin, TestCase):

    def test_checklist_per_stage(self):
        self.assertEqual(list(inspection_service.get_checklist(PRE)), [self.body, self.lights])
        self.assertEqual(list(inspection_service.get_checklist(POST)), [self.body, self.lights, self.mounting])

    def test_submit_records_results(self):
        job = self.create_job()

        records = inspection_service.submit(job.id, PRE, self.results(self.body), performed_by=self.user)

        self.assertEqual(len(records), 1)
        self.assertEqual(records[0].technician, self.technician)
        self.assertEqual(records[0].vehicle, self.vehicle)
        self.assertEqual(inspection_service.missing_items(job, PRE), ['Lights'])

    def test_completing_pre_inspection_advances_the_job(self):
        job = self.create_job()

        inspection_service.submit(job.id, PRE, self.results(self.body, self.lights), performed_by=self.user)

        job.refresh_from_db()
        self.assertEqual(job.status, Job.Status.PRE_INSPECTION_APPROVED)

    def test_not_checked_does_not_count_as_done(self):
        job = self.create_job()
        inspection_service.submit(
            job.id, PRE, self.results(self.body, self.lights, status=InspectionRecord.Status.NOT_CHECKED),
        )
        self.assertEqual(inspection_service.missing_items(job, PRE), ['Body panels', 'Lights'])
        job.refresh_from_db()
        self.assertEqual(job.status, Job.Status.PRE_INSPECTION_PENDING)

    def test_resubmission_needs_edit_mode(self):
        job = self.create_job()
        inspection_service.submit(job.id, PRE, self.results(self.body))

        with self.assertRaises(ValidationError):
            inspection_service.submit(job.id, PRE, self.results(self.body, status=InspectionRecord.Status.ISSUE_FOUND))

        records = inspection_service.submit(
            job.id, PRE, self.results(self.body, status=InspectionRecord.Status.ISSUE_FOUND),
            edit=True, edit_reason='dent missed on first pass', performed_by=self.user,
        )
        record = records[0]
        self.assertEqual(record.status, InspectionRecord.Status.ISSUE_FOUND)
        self.assertEqual(record.revision_count, 1)
        revision = record.revisions.get()
        self.assertEqual(revision.previous_status, CHECKED)
        self.assertEqual(revision.change_reason, 'dent missed on first pass')
        self.assertEqual(InspectionRecord.objects.filter(job=job, stage=PRE).count(), 1)

    def test_photo_required_for_checked_item(self):
        job = self.create_job()
        job.status = Job.Status.IN_PROGRESS
        job.save(update_fields=['status'])

        with self.assertRaises(ValidationError):
            inspection_service.submit(job.id, POST, self.results(self.mounting))

        records = inspection_service.submit(job.id, POST, [{
            'checklist_item_id': self.mounting.id,
            'status': CHECKED,
            'photo_urls': ['https://files.example.com/mount.jpg'],
        }])
        self.assertEqual(records[0].photo_urls, ['https://files.example.com/mount.jpg'])

    def test_only_known_statuses_are_accepted(self):
        job = self.create_job()
        with self.assertRaises(ValidationError):
            inspection_service.submit(job.id, PRE, self.results(self.body, status='NOT_APPLICABLE'))
        self.assertFalse(InspectionRecord.objects.filter(job=job).exists())
        self.assertEqual(
            sorted(InspectionRecord.Status.values),
            sorted([CHECKED, InspectionRecord.Status.ISSUE_FOUND, InspectionRecord.Status.NOT_CHECKED]),
        )

    def test_item_outside_stage_rejected(self):
        job = self.create_job()
        with self.assertRaises(ValidationError):
            inspection_service.submit(job.id, PRE, self.results(self.mounting))

    def test_stage_must_be_open(self):
        job = self.create_job()
        with self.assertRaises(ValidationError):
            inspection_service.submit(job.id, POST, self.results(self.body))

    def test_job_needs_vehicle(self):
        job = self.create_job(vehicle=False)
        job.status = Job.Status.PRE_INSPECTION_PENDING
        job.save(update_fields=['status'])
        with self.assertRaises(ValidationError):
            inspection_service.submit(job.id, PRE, self.results(self.body))

    def test_status_lists_missing_items(self):
        job = self.create_job()
        inspection_service.submit(
            job.id, PRE, self.results(self.body, status=InspectionRecord.Status.ISSUE_FOUND),
        )

        result = inspection_service.get_status(job.id, PRE)

        self.assertFalse(result['is_complete'])
        self.assertEqual(result['missing_items'], ['Lights'])
        self.assertEqual(result['issues_found'], ['Body panels'])
        self.assertFalse(result['is_verified'])

    def test_verify_requires_complete_stage(self):
        job = self.create_job()
        inspection_service.submit(job.id, PRE, self.results(self.body))
        with self.assertRaises(ValidationError):
            inspection_service.verify(job.id, PRE)

        inspection_service.submit(job.id, PRE, self.results(self.lights))
        records = inspection_service.verify(job.id, PRE, performed_by=self.user)
        self.assertTrue(all(record.verified_by == self.user for record in records))
        self.assertTrue(inspection_service.get_status(job.id, PRE)['is_verified'])

    def test_inactive_items_drop_out_of_the_checklist(self):
        job = self.create_job()
        item = inspection_service.toggle_item(self.lights.id)
        self.assertFalse(item.is_active)

        self.assertEqual(inspection_service.missing_items(job, PRE), ['Body panels'])
        with self.assertRaises(ValidationError):
            inspection_service.submit(job.id, PRE, self.results(self.lights))

        self.assertTrue(inspection_service.toggle_item(self.lights.id).is_active)


class InspectionOperationsApiTestCase(InspectionFixturesMixin, APITestCase):

    def setUp(self):
        self.client.force_authenticate(user=self.user)

    def test_submit_and_status(self):
        job = self.create_job()
        response = self.client.post(reverse('inspection-submit'), {
            'job_id': str(job.id),
            'stage': PRE,
            'items': [{'checklist_item_id': str(self.body.id), 'status': CHECKED}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

        response = self.client.get(reverse('inspection-status'), {'job_id': str(job.id), 'stage': PRE})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['missing_items'], ['Lights'])

    def test_toggle(self):
        response = self.client.post(reverse('checklist-items-toggle', kwargs={'pk': self.body.id}))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.data['data']['is_active'])

    def test_unknown_stage(self):
        job = self.create_job()
        response = self.client.get(reverse('inspection-status'), {'job_id': str(job.id), 'stage': 'MIDWAY'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
