from configurations.base_features.db.base_model import BaseModel
from django.db import models
from django.utils import timezone as dj_timezone
from django.utils.translation import gettext_lazy as _
import pytz


class CompanyProfile(BaseModel):
    """Single record containing company-wide settings"""
    name = models.CharField(_("Name"), max_length=255, default="Company")
    timezone = models.CharField(
        _("Timezone"),
        max_length=50,
        default='Africa/Nairobi',
        help_text=_("Timezone name (e.g., Africa/Nairobi, UTC, Europe/London)")
    )
    currency = models.CharField(_("Currency"), max_length=10, default='KES')

    class Meta:
        verbose_name = _("Company Profile")
        verbose_name_plural = _("Company Profiles")

    @classmethod
    def get_or_create_default(cls):
        profile = cls.objects.order_by("created_at").first()
        if profile is None:
            profile = cls.objects.create()
        return profile

    def get_timezone_object(self):
        """Get pytz timezone object, UTC when the stored name is unknown"""
        try:
            return pytz.timezone(self.timezone)
        except pytz.exceptions.UnknownTimeZoneError:
            return pytz.UTC

    @classmethod
    def local_today(cls):
        """Today's date in the company timezone (scheduled dates are local dates)."""
        tz = cls.get_or_create_default().get_timezone_object()
        return dj_timezone.now().astimezone(tz).date()


class Location(BaseModel):
    """A stock holding place: warehouse, branch store or a technician's van."""
    code = models.CharField(_("Code"), max_length=20, unique=True)
    name = models.CharField(_("Name"), max_length=255)
    address = models.CharField(_("Address"), max_length=255, blank=True, null=True)
    is_active = models.BooleanField(_("Is Active"), default=True)

    class Meta:
        ordering = ("code",)

    def __str__(self):
        return f"{self.name} ({self.code})"
