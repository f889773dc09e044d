import logging

from django.conf import settings

from company.models import CompanyProfile, Location
from inspections.models import InspectionChecklistItem

logger = logging.getLogger(__name__)

Category = InspectionChecklistItem.Category


def company_profile_check():
    CompanyProfile.get_or_create_default()


def default_location_check():
    """the location adjustments fall back to must exist"""
    Location.objects.get_or_create(
        code=settings.INVENTORY_DEFAULT_LOCATION_CODE,
        defaults={"name": "Main Warehouse"},
    )


def checklist_catalog_check():
    """
        baseline vehicle checklist, only seeded into an empty catalog
    """
    if InspectionChecklistItem.objects.exists():
        return
    default_items = [
        {"name": "Body panels and paint", "category": Category.VEHICLE_EXTERIOR, "display_order": 1},
        {"name": "Lights and indicators", "category": Category.VEHICLE_EXTERIOR, "display_order": 2},
        {"name": "Dashboard warning lights", "category": Category.VEHICLE_INTERIOR, "display_order": 3},
        {"name": "Battery voltage", "category": Category.VEHICLE_ENGINE, "display_order": 4},
        {
            "name": "Device mounting and wiring",
            "category": Category.DEVICE_COMPONENT,
            "display_order": 5,
            "is_pre_installation": False,
            "requires_photo": True,
        },
        {"name": "Fire extinguisher present", "category": Category.SAFETY_CHECK, "display_order": 6},
    ]
    for item in default_items:
        InspectionChecklistItem.objects.create(**item)


def system_start_checks():
    """
        all project setup steps should be added here
    """
    company_profile_check()
    default_location_check()
    checklist_catalog_check()
    logger.info("system_start_checks succeed")
