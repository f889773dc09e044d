from django.db import models
from django.utils.translation import gettext_lazy as _

from configurations.base_features.db.base_model import BaseModel


class InspectionStage(models.TextChoices):
    PRE_INSTALLATION = 'PRE_INSTALLATION', _('Pre-Installation')
    POST_INSTALLATION = 'POST_INSTALLATION', _('Post-Installation')


class InspectionChecklistItem(BaseModel):
    """One line of the vehicle checklist, flagged for the stages it applies to"""

    class Category(models.TextChoices):
        VEHICLE_EXTERIOR = 'VEHICLE_EXTERIOR', _('Vehicle Exterior')
        VEHICLE_INTERIOR = 'VEHICLE_INTERIOR', _('Vehicle Interior')
        VEHICLE_ENGINE = 'VEHICLE_ENGINE', _('Vehicle Engine')
        DEVICE_COMPONENT = 'DEVICE_COMPONENT', _('Device Component')
        SAFETY_CHECK = 'SAFETY_CHECK', _('Safety Check')

    name = models.CharField(_("Name"), max_length=255)
    description = models.TextField(_("Description"), blank=True, null=True)
    category = models.CharField(_("Category"), max_length=20, choices=Category.choices, default=Category.VEHICLE_EXTERIOR)
    is_pre_installation = models.BooleanField(_("Pre-Installation"), default=True)
    is_post_installation = models.BooleanField(_("Post-Installation"), default=True)
    requires_photo = models.BooleanField(
        _("Requires Photo"),
        default=False,
        help_text="A CHECKED result must carry at least one photo"
    )
    display_order = models.PositiveIntegerField(_("Display Order"), default=0)
    is_active = models.BooleanField(_("Is Active"), default=True)

    class Meta:
        ordering = ("display_order", "name")
        verbose_name = _("Inspection Checklist Item")
        verbose_name_plural = _("Inspection Checklist Items")

    def applies_to(self, stage):
        if stage == InspectionStage.PRE_INSTALLATION:
            return self.is_pre_installation
        if stage == InspectionStage.POST_INSTALLATION:
            return self.is_post_installation
        return False


class InspectionRecord(BaseModel):
    """Result of one checklist item at one stage of one job"""

    class Status(models.TextChoices):
        CHECKED = 'CHECKED', _('Checked')
        ISSUE_FOUND = 'ISSUE_FOUND', _('Issue Found')
        NOT_CHECKED = 'NOT_CHECKED', _('Not Checked')

    job = models.ForeignKey("jobs.Job", on_delete=models.CASCADE, related_name="inspection_records")
    vehicle = models.ForeignKey(
        "customers.Vehicle",
        on_delete=models.SET_NULL,
        related_name="inspection_records",
        null=True,
        blank=True
    )
    checklist_item = models.ForeignKey(
        InspectionChecklistItem,
        on_delete=models.PROTECT,
        related_name="records"
    )
    stage = models.CharField(_("Stage"), max_length=20, choices=InspectionStage.choices)
    status = models.CharField(_("Status"), max_length=20, choices=Status.choices, default=Status.NOT_CHECKED)
    notes = models.TextField(_("Notes"), blank=True, null=True)
    photo_urls = models.JSONField(_("Photo URLs"), default=list, blank=True)
    technician = models.ForeignKey(
        "users.Technician",
        on_delete=models.SET_NULL,
        related_name="inspection_records",
        null=True,
        blank=True
    )
    checked_at = models.DateTimeField(_("Checked At"), blank=True, null=True)
    revision_count = models.PositiveIntegerField(_("Revision Count"), default=0)
    verified_by = models.ForeignKey(
        "users.User",
        on_delete=models.SET_NULL,
        related_name="verified_inspection_records",
        null=True,
        blank=True
    )
    verified_at = models.DateTimeField(_("Verified At"), blank=True, null=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=['job', 'stage', 'checklist_item'], name='inspection_record_unique'),
        ]
        ordering = ("checklist_item__display_order", "created_at")
        verbose_name = _("Inspection Record")
        verbose_name_plural = _("Inspection Records")

    def __str__(self):
        return f"{self.job.job_number} / {self.stage} / {self.checklist_item.name}: {self.status}"


class InspectionRecordRevision(BaseModel):
    """Previous values of a record, written every time it is edited"""
    record = models.ForeignKey(InspectionRecord, on_delete=models.CASCADE, related_name="revisions")
    previous_status = models.CharField(_("Previous Status"), max_length=20)
    previous_notes = models.TextField(_("Previous Notes"), blank=True, null=True)
    previous_photo_urls = models.JSONField(_("Previous Photo URLs"), default=list, blank=True)
    previous_technician = models.ForeignKey(
        "users.Technician",
        on_delete=models.SET_NULL,
        related_name="+",
        null=True,
        blank=True
    )
    previous_checked_at = models.DateTimeField(_("Previous Checked At"), blank=True, null=True)
    changed_by = models.ForeignKey(
        "users.User",
        on_delete=models.SET_NULL,
        related_name="inspection_revisions",
        null=True,
        blank=True
    )
    change_reason = models.TextField(_("Change Reason"), blank=True, null=True)

    class Meta:
        ordering = ("created_at",)
        verbose_name = _("Inspection Record Revision")
        verbose_name_plural = _("Inspection Record Revisions")
