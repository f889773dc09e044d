from datetime import date, timedelta

from django.test import SimpleTestCase, TestCase, override_settings
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from company.models import CompanyProfile, Location
from configurations.base_features.exceptions.workflow_exceptions import (
    InvalidTransition,
    LocationRequired,
    ValidationError,
)
from customers.models import Customer, Vehicle
from devices.models import Device
from inspections.models import InspectionChecklistItem, InspectionRecord, InspectionStage
from inspections.services import inspection_service
from inventory.models import Product
from inventory.services import inventory_service
from jobs import transitions
from jobs.models import Job, JobLog
from jobs.services import job_service, job_state_machine
from requisitions.services import requisition_service
from users.models import Technician, User

Status = Job.Status
IMEI = '356938035644001'
PHOTO = 'https://files.example.com/install.jpg'
GPS = '-1.2921,36.8219'


def facts(**kwargs):
    values = {'job_type': Job.Type.NEW_INSTALLATION, 'technician_count': 1}
    values.update(kwargs)
    return transitions.JobFacts(**values)


class JobTransitionRulesTestCase(SimpleTestCase):

    def test_assignment_needs_a_technician(self):
        self.assertEqual(
            transitions.evaluate_transition(Status.PENDING, Status.ASSIGNED, facts(technician_count=0)),
            "no technician assigned",
        )
        self.assertIsNone(transitions.evaluate_transition(Status.PENDING, Status.ASSIGNED, facts()))

    def test_requisitions_ready(self):
        waiting = facts(requisition_statuses=('APPROVED', 'PENDING'))
        self.assertIn(
            "awaiting approval",
            transitions.evaluate_transition(Status.REQUISITION_PENDING, Status.REQUISITION_APPROVED, waiting),
        )
        outstanding = facts(requisition_statuses=('APPROVED',), outstanding_required_items=('REQ-00001/GPS-01',))
        self.assertIn(
            "REQ-00001/GPS-01",
            transitions.evaluate_transition(Status.REQUISITION_PENDING, Status.REQUISITION_APPROVED, outstanding),
        )
        ready = facts(requisition_statuses=('FULLY_ISSUED',))
        self.assertIsNone(
            transitions.evaluate_transition(Status.REQUISITION_PENDING, Status.REQUISITION_APPROVED, ready)
        )

    def test_vehicle_required_by_job_type(self):
        self.assertIsNotNone(transitions.vehicle_attached(facts(vehicle_required=True), {}))
        self.assertIsNone(transitions.vehicle_attached(facts(job_type=Job.Type.REPAIR), {}))

    def test_start_guards(self):
        ready = facts(today=date(2025, 3, 1), scheduled_date=date(2025, 3, 1))
        self.assertEqual(
            transitions.evaluate_transition(Status.PRE_INSPECTION_APPROVED, Status.IN_PROGRESS, ready, {}),
            transitions.START_LOCATION_GUARD,
        )
        self.assertIsNone(
            transitions.evaluate_transition(
                Status.PRE_INSPECTION_APPROVED, Status.IN_PROGRESS, ready, {'gps_coordinates': GPS},
            )
        )
        early = facts(today=date(2025, 3, 1), scheduled_date=date(2025, 3, 2))
        self.assertEqual(
            transitions.evaluate_transition(
                Status.PRE_INSPECTION_APPROVED, Status.IN_PROGRESS, early, {'gps_coordinates': GPS},
            ),
            "job is scheduled for 2025-03-02",
        )

    def test_completion_checklist_names_what_is_missing(self):
        almost = facts(installation_present=True, completion_notes=True)
        unmet = transitions.evaluate_transition(Status.POST_INSPECTION_PENDING, Status.COMPLETED, almost)
        self.assertEqual(unmet, "completion prerequisites not met: customer_acknowledged")

        done = facts(installation_present=True, completion_notes=True, customer_acknowledged=True)
        self.assertIsNone(transitions.evaluate_transition(Status.POST_INSPECTION_PENDING, Status.COMPLETED, done))

    def test_terminal_and_unknown_moves(self):
        self.assertEqual(transitions.next_states(Status.VERIFIED), [])
        self.assertIn("terminal", transitions.evaluate_transition(Status.CANCELLED, Status.PENDING, facts()))
        self.assertIn("no transition", transitions.evaluate_transition(Status.ASSIGNED, Status.COMPLETED, facts()))
        self.assertIsNone(transitions.evaluate_transition(Status.IN_PROGRESS, Status.IN_PROGRESS, facts()))

    def test_cancel_from_any_open_state_needs_reason(self):
        self.assertIn(Status.CANCELLED, transitions.next_states(Status.IN_PROGRESS))
        self.assertIsNotNone(transitions.evaluate_transition(Status.IN_PROGRESS, Status.CANCELLED, facts(), {}))
        self.assertIsNone(
            transitions.evaluate_transition(Status.IN_PROGRESS, Status.CANCELLED, facts(), {'reason': 'no show'})
        )


class JobFixturesMixin:

    @classmethod
    def setUpTestData(cls):
        cls.user = User.objects.create_user(email='supervisor@example.com', name='Supervisor', password='pass')
        cls.technicians = [
            Technician.objects.create(
                user=User.objects.create_user(email=f'tech{i}@example.com', name=f'Tech {i}', password='pass'),
                technician_code=f'T-00{i}',
            )
            for i in range(1, 4)
        ]
        cls.customer = Customer.objects.create(customer_code='C-001', name='Acme Logistics', phone='0700000000')
        cls.vehicle = Vehicle.objects.create(customer=cls.customer, registration='KAA 123A')
        cls.warehouse = Location.objects.create(code='WH1', name='Main Warehouse')
        cls.tracker = Product.objects.create(sku='GPS-01', name='GPS tracker', is_serialized=True)
        inventory_service.receive_batch(
            product_id=cls.tracker.id, quantity=1, batch_number='T-1',
            location_id=cls.warehouse.id, device_imeis=[IMEI],
        )
        cls.body = InspectionChecklistItem.objects.create(name='Body panels', display_order=1)
        cls.mounting = InspectionChecklistItem.objects.create(
            name='Device mounting', is_pre_installation=False, requires_photo=True, display_order=2,
        )

    def create_job(self, technicians=1, **kwargs):
        kwargs.setdefault('vehicle_id', self.vehicle.id)
        return job_service.create_job(
            self.customer.id,
            kwargs.pop('job_type', Job.Type.NEW_INSTALLATION),
            technician_ids=[t.id for t in self.technicians[:technicians]],
            created_by=self.user,
            **kwargs,
        )

    def issue_tracker(self, job):
        requisition = requisition_service.create_requisition(
            job.id,
            [{'product_id': self.tracker.id, 'quantity': 1, 'is_required_to_start': True}],
            technician_id=self.technicians[0].id,
        )
        requisition_service.approve(requisition.id, performed_by=self.user)
        item = requisition.items.get()
        requisition_service.issue(
            requisition.id, [{'item_id': item.id, 'quantity': 1, 'device_imeis': [IMEI]}], performed_by=self.user,
        )
        return requisition

    def job_in_progress(self, **kwargs):
        job = self.create_job(**kwargs)
        self.issue_tracker(job)
        job_state_machine.transition(job.id, Status.PRE_INSPECTION_PENDING)
        inspection_service.submit(job.id, InspectionStage.PRE_INSTALLATION, [
            {'checklist_item_id': self.body.id, 'status': InspectionRecord.Status.CHECKED},
        ])
        return job_service.start(job.id, gps_coordinates=GPS)


class JobStateMachineTestCase(JobFixturesMixin, TestCase):

    def test_full_lifecycle(self):
        job = self.create_job()
        self.assertEqual(job.status, Status.ASSIGNED)
        self.assertTrue(job.job_number.startswith('JOB-'))

        self.issue_tracker(job)
        job.refresh_from_db()
        self.assertEqual(job.status, Status.REQUISITION_APPROVED)

        job_state_machine.transition(job.id, Status.PRE_INSPECTION_PENDING, actor=self.user)
        inspection_service.submit(job.id, InspectionStage.PRE_INSTALLATION, [
            {'checklist_item_id': self.body.id, 'status': InspectionRecord.Status.CHECKED},
        ])
        job.refresh_from_db()
        self.assertEqual(job.status, Status.PRE_INSPECTION_APPROVED)

        with self.assertRaises(LocationRequired):
            job_service.start(job.id)
        job = job_service.start(job.id, gps_coordinates=GPS, performed_by=self.technicians[0].user)
        self.assertEqual(job.status, Status.IN_PROGRESS)
        self.assertEqual(job.start_gps_coordinates, GPS)

        job_service.save_installation(job.id, imei_numbers=[IMEI], photo_urls=[PHOTO])
        job.refresh_from_db()
        self.assertEqual(job.status, Status.POST_INSPECTION_PENDING)

        with self.assertRaises(InvalidTransition) as raised:
            job_service.complete(job.id, completion_notes='Installed under dash', customer_acknowledged=True)
        self.assertIn('Body panels', raised.exception.kwargs['unmet_guard'])

        inspection_service.submit(job.id, InspectionStage.POST_INSTALLATION, [
            {'checklist_item_id': self.body.id, 'status': InspectionRecord.Status.CHECKED},
            {'checklist_item_id': self.mounting.id, 'status': InspectionRecord.Status.CHECKED, 'photo_urls': [PHOTO]},
        ])
        job = job_service.complete(job.id, completion_notes='Installed under dash', customer_acknowledged=True)
        self.assertEqual(job.status, Status.COMPLETED)
        self.assertIsNotNone(job.end_time)
        self.assertIsNotNone(job.customer_acknowledged_at)

        job = job_service.verify(job.id, performed_by=self.user)
        self.assertEqual(job.status, Status.VERIFIED)
        self.assertEqual(job.verified_by, self.user)

        with self.assertRaises(InvalidTransition):
            job_service.cancel(job.id, 'too late')

        statuses = list(
            job.logs.filter(log_type=JobLog.LogType.STATUS_CHANGED).values_list('new_status', flat=True)
        )
        self.assertEqual(statuses, [
            Status.ASSIGNED,
            Status.REQUISITION_PENDING,
            Status.REQUISITION_APPROVED,
            Status.PRE_INSPECTION_PENDING,
            Status.PRE_INSPECTION_APPROVED,
            Status.IN_PROGRESS,
            Status.POST_INSPECTION_PENDING,
            Status.COMPLETED,
            Status.VERIFIED,
        ])

    def test_completion_blocked_without_customer_acknowledgement(self):
        job = self.job_in_progress()
        job_service.save_installation(job.id, imei_numbers=[IMEI], photo_urls=[PHOTO])
        inspection_service.submit(job.id, InspectionStage.POST_INSTALLATION, [
            {'checklist_item_id': self.body.id, 'status': InspectionRecord.Status.CHECKED},
            {'checklist_item_id': self.mounting.id, 'status': InspectionRecord.Status.CHECKED, 'photo_urls': [PHOTO]},
        ])

        with self.assertRaises(InvalidTransition) as raised:
            job_service.complete(job.id, completion_notes='done')

        self.assertIn('customer_acknowledged', raised.exception.kwargs['unmet_guard'])
        job.refresh_from_db()
        self.assertEqual(job.status, Status.POST_INSPECTION_PENDING)

        checklist = job_service.get_completion_checklist(job.id)
        self.assertFalse(checklist['can_complete'])
        unmet = [item['name'] for item in checklist['items'] if not item['satisfied']]
        self.assertEqual(unmet, ['completion_notes', 'customer_acknowledged'])

    def test_cannot_start_before_scheduled_date(self):
        job = self.create_job(scheduled_date=CompanyProfile.local_today() + timedelta(days=3))
        self.issue_tracker(job)
        job_state_machine.transition(job.id, Status.PRE_INSPECTION_PENDING)
        inspection_service.submit(job.id, InspectionStage.PRE_INSTALLATION, [
            {'checklist_item_id': self.body.id, 'status': InspectionRecord.Status.CHECKED},
        ])

        with self.assertRaises(InvalidTransition) as raised:
            job_service.start(job.id, gps_coordinates=GPS)
        self.assertIn('scheduled', raised.exception.kwargs['unmet_guard'])

    def test_skipping_states_is_rejected(self):
        job = self.create_job()
        with self.assertRaises(InvalidTransition):
            job_state_machine.transition(job.id, Status.IN_PROGRESS, {'gps_coordinates': GPS})
        job.refresh_from_db()
        self.assertEqual(job.status, Status.ASSIGNED)

    def test_same_state_is_a_no_op(self):
        job = self.create_job()
        logs = job.logs.count()
        job_state_machine.transition(job.id, Status.ASSIGNED)
        self.assertEqual(job.logs.count(), logs)

    def test_cancel_requires_reason(self):
        job = self.create_job()
        with self.assertRaises(InvalidTransition):
            job_service.cancel(job.id, '')

        job = job_service.cancel(job.id, 'customer withdrew', performed_by=self.user)
        self.assertEqual(job.status, Status.CANCELLED)
        self.assertEqual(job.cancellation_reason, 'customer withdrew')
        self.assertIsNotNone(job.cancelled_at)

    def test_cancel_leaves_issued_devices_with_the_job(self):
        job = self.create_job()
        self.issue_tracker(job)
        job_service.cancel(job.id, 'customer withdrew')
        self.assertEqual(Device.objects.get(imei=IMEI).status, Device.Status.ISSUED)

    def test_unknown_status(self):
        job = self.create_job()
        with self.assertRaises(ValidationError):
            job_state_machine.transition(job.id, 'ON_HOLD')

    @override_settings(JOBS_AUTO_ADVANCE=False)
    def test_auto_advance_can_be_disabled(self):
        job = self.create_job()
        requisition_service.create_requisition(
            job.id, [{'product_id': self.tracker.id, 'quantity': 1}], technician_id=self.technicians[0].id,
        )
        job.refresh_from_db()
        self.assertEqual(job.status, Status.ASSIGNED)


class JobServiceTestCase(JobFixturesMixin, TestCase):

    def test_create_without_technicians_stays_pending(self):
        job = self.create_job(technicians=0)
        self.assertEqual(job.status, Status.PENDING)
        self.assertEqual(job.logs.get().log_type, JobLog.LogType.CREATED)

    def test_vehicle_must_belong_to_customer(self):
        other = Customer.objects.create(customer_code='C-002', name='Other Co', phone='0711111111')
        foreign = Vehicle.objects.create(customer=other, registration='KBB 456B')
        with self.assertRaises(ValidationError):
            self.create_job(vehicle_id=foreign.id)

        job = self.create_job(vehicle_id=None)
        with self.assertRaises(ValidationError):
            job_service.attach_vehicle(job.id, foreign.id)
        job = job_service.attach_vehicle(job.id, self.vehicle.id, performed_by=self.user)
        self.assertEqual(job.vehicle, self.vehicle)
        self.assertTrue(job.logs.filter(log_type=JobLog.LogType.VEHICLE_ATTACHED).exists())

    def test_assign_sets_first_as_primary(self):
        job = self.create_job(technicians=2)
        self.assertEqual(job.primary_technician, self.technicians[0])
        self.assertEqual(
            [a.technician for a in job.assignments.all()], self.technicians[:2],
        )

        job = job_service.assign_technicians(job.id, [self.technicians[2].id])
        self.assertEqual(job.primary_technician, self.technicians[0])
        self.assertEqual(job.assignments.count(), 3)

    def test_inactive_technician_cannot_be_assigned(self):
        self.technicians[2].is_active = False
        self.technicians[2].save()
        job = self.create_job()
        with self.assertRaises(ValidationError):
            job_service.assign_technicians(job.id, [self.technicians[2].id])

    def test_removing_primary_promotes_next(self):
        job = self.create_job(technicians=3)

        job = job_service.remove_technician(job.id, self.technicians[0].id)

        self.assertEqual(job.primary_technician_id, self.technicians[1].id)
        self.assertEqual(job.assignments.count(), 2)

    def test_removing_primary_with_explicit_successor(self):
        job = self.create_job(technicians=3)
        job = job_service.remove_technician(job.id, self.technicians[0].id, new_primary_id=self.technicians[2].id)
        self.assertEqual(job.primary_technician_id, self.technicians[2].id)

    def test_last_technician_stays(self):
        job = self.create_job()
        with self.assertRaises(ValidationError):
            job_service.remove_technician(job.id, self.technicians[0].id)

    def test_set_primary_and_reassign(self):
        job = self.create_job(technicians=2)

        job = job_service.set_primary_technician(job.id, self.technicians[1].id)
        self.assertEqual(job.primary_technician_id, self.technicians[1].id)

        job = job_service.reassign_technician(job.id, self.technicians[1].id, self.technicians[2].id)
        self.assertEqual(job.primary_technician_id, self.technicians[2].id)
        self.assertEqual(
            [a.technician_id for a in job.assignments.all()],
            [self.technicians[0].id, self.technicians[2].id],
        )

    def test_set_primary_requires_assignment(self):
        job = self.create_job()
        with self.assertRaises(ValidationError):
            job_service.set_primary_technician(job.id, self.technicians[2].id)

    def test_installation_only_while_in_progress(self):
        job = self.create_job()
        with self.assertRaises(ValidationError):
            job_service.save_installation(job.id, imei_numbers=[IMEI], photo_urls=[PHOTO])

    def test_installation_rules(self):
        job = self.job_in_progress()

        with self.assertRaises(ValidationError):
            job_service.save_installation(job.id, imei_numbers=[IMEI])
        with self.assertRaises(ValidationError):
            job_service.save_installation(job.id, no_device_change=True, photo_urls=[PHOTO])
        with self.assertRaises(ValidationError):
            job_service.save_installation(job.id, imei_numbers=['356938035649999'], photo_urls=[PHOTO])

        installation = job_service.save_installation(job.id, imei_numbers=[IMEI], photo_urls=[PHOTO, ''])
        self.assertEqual(installation.photo_urls, [PHOTO])
        self.assertTrue(installation.is_complete)

    def test_no_device_change_for_service_jobs(self):
        job = self.create_job(job_type=Job.Type.REPAIR)
        job_state_machine.transition(job.id, Status.PRE_INSPECTION_PENDING)
        inspection_service.submit(job.id, InspectionStage.PRE_INSTALLATION, [
            {'checklist_item_id': self.body.id, 'status': InspectionRecord.Status.CHECKED},
        ])
        job_service.start(job.id, gps_coordinates=GPS)

        installation = job_service.save_installation(job.id, no_device_change=True, photo_urls=[PHOTO])

        self.assertTrue(installation.no_device_change)
        job.refresh_from_db()
        self.assertEqual(job.status, Status.POST_INSPECTION_PENDING)

    def test_statistics(self):
        self.create_job(technicians=0)
        job = self.create_job()
        job_service.cancel(job.id, 'duplicate')

        result = job_service.get_statistics()

        self.assertEqual(result['total'], 2)
        self.assertEqual(result['pending'], 1)
        self.assertEqual(result['cancelled'], 1)


class JobApiTestCase(JobFixturesMixin, APITestCase):

    def setUp(self):
        self.client.force_authenticate(user=self.user)

    def test_create_job(self):
        response = self.client.post(reverse('jobs-list'), {
            'customer_id': str(self.customer.id),
            'job_type': Job.Type.NEW_INSTALLATION,
            'vehicle_id': str(self.vehicle.id),
            'technician_ids': [str(self.technicians[0].id)],
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['data']['status'], Status.ASSIGNED)
        self.assertEqual(response.data['data']['primary_technician_code'], 'T-001')

    def test_allowed_transitions(self):
        job = self.create_job()
        response = self.client.get(reverse('jobs-transition', kwargs={'pk': job.id}))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(
            response.data['data']['next_states'],
            [Status.REQUISITION_PENDING, Status.PRE_INSPECTION_PENDING, Status.CANCELLED],
        )

    def test_transition_conflict(self):
        job = self.create_job()
        response = self.client.post(
            reverse('jobs-transition', kwargs={'pk': job.id}), {'status': Status.COMPLETED}, format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['errors']['context']['current_state'], Status.ASSIGNED)

    def test_start_without_gps(self):
        job = self.create_job()
        self.issue_tracker(job)
        job_state_machine.transition(job.id, Status.PRE_INSPECTION_PENDING)
        inspection_service.submit(job.id, InspectionStage.PRE_INSTALLATION, [
            {'checklist_item_id': self.body.id, 'status': InspectionRecord.Status.CHECKED},
        ])

        response = self.client.post(reverse('jobs-start', kwargs={'pk': job.id}), {}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['errors']['code'], 'location_required')

    def test_cancel(self):
        job = self.create_job()
        response = self.client.post(
            reverse('jobs-cancel', kwargs={'pk': job.id}), {'reason': 'customer withdrew'}, format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['status'], Status.CANCELLED)

    def test_completion_checklist_and_logs(self):
        job = self.create_job()
        response = self.client.get(reverse('jobs-completion-checklist', kwargs={'pk': job.id}))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.data['data']['can_complete'])

        response = self.client.get(reverse('jobs-logs', kwargs={'pk': job.id}))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data'][0]['log_type'], JobLog.LogType.CREATED)

    def test_remove_technician(self):
        job = self.create_job(technicians=2)
        response = self.client.delete(
            reverse('jobs-remove-technician', kwargs={'pk': job.id, 'technician_id': self.technicians[0].id}),
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['primary_technician_code'], 'T-002')
