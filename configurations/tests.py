from django.conf import settings
from django.test import TestCase

from company.models import CompanyProfile, Location
from configurations.system_start_checks import system_start_checks
from inspections.models import InspectionChecklistItem


class SystemStartChecksTestCase(TestCase):

    def test_seeds_defaults_once(self):
        system_start_checks()
        system_start_checks()

        self.assertEqual(CompanyProfile.objects.count(), 1)
        self.assertTrue(Location.objects.filter(code=settings.INVENTORY_DEFAULT_LOCATION_CODE).exists())
        self.assertEqual(InspectionChecklistItem.objects.count(), 6)
        self.assertTrue(
            InspectionChecklistItem.objects.filter(requires_photo=True, is_pre_installation=False).exists()
        )

    def test_existing_checklist_is_left_alone(self):
        InspectionChecklistItem.objects.create(name='Custom item')
        system_start_checks()
        self.assertEqual(InspectionChecklistItem.objects.count(), 1)
