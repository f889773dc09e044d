from django.db import models
from django.utils.translation import gettext_lazy as _

from configurations.base_features.db.base_model import BaseModel, SequenceNumberMixin


class Job(SequenceNumberMixin, BaseModel):
    """A field service job: installation, replacement, maintenance... for one customer"""

    number_field = "job_number"
    number_prefix = "JOB"

    class Type(models.TextChoices):
        NEW_INSTALLATION = 'NEW_INSTALLATION', _('New Installation')
        REPLACEMENT = 'REPLACEMENT', _('Replacement')
        UPGRADE = 'UPGRADE', _('Upgrade')
        MAINTENANCE = 'MAINTENANCE', _('Maintenance')
        REPAIR = 'REPAIR', _('Repair')
        REMOVAL = 'REMOVAL', _('Removal')

    class Status(models.TextChoices):
        PENDING = 'PENDING', _('Pending')
        ASSIGNED = 'ASSIGNED', _('Assigned')
        REQUISITION_PENDING = 'REQUISITION_PENDING', _('Requisition Pending')
        REQUISITION_APPROVED = 'REQUISITION_APPROVED', _('Requisition Approved')
        PRE_INSPECTION_PENDING = 'PRE_INSPECTION_PENDING', _('Pre-Inspection Pending')
        PRE_INSPECTION_APPROVED = 'PRE_INSPECTION_APPROVED', _('Pre-Inspection Approved')
        IN_PROGRESS = 'IN_PROGRESS', _('In Progress')
        POST_INSPECTION_PENDING = 'POST_INSPECTION_PENDING', _('Post-Inspection Pending')
        COMPLETED = 'COMPLETED', _('Completed')
        VERIFIED = 'VERIFIED', _('Verified')
        CANCELLED = 'CANCELLED', _('Cancelled')

    job_number = models.CharField(_("Job Number"), max_length=20, unique=True, blank=True)
    customer = models.ForeignKey(
        "customers.Customer",
        on_delete=models.PROTECT,
        related_name="jobs"
    )
    vehicle = models.ForeignKey(
        "customers.Vehicle",
        on_delete=models.SET_NULL,
        related_name="jobs",
        null=True,
        blank=True
    )
    job_type = models.CharField(_("Job Type"), max_length=30, choices=Type.choices)
    status = models.CharField(_("Status"), max_length=30, choices=Status.choices, default=Status.PENDING)
    service_description = models.TextField(_("Service Description"), blank=True, null=True)
    required_product_ids = models.JSONField(
        _("Required Products"),
        default=list,
        blank=True,
        help_text="Ordered product ids the job is expected to consume"
    )
    scheduled_date = models.DateField(_("Scheduled Date"), blank=True, null=True)

    primary_technician = models.ForeignKey(
        "users.Technician",
        on_delete=models.SET_NULL,
        related_name="primary_jobs",
        null=True,
        blank=True
    )
    technicians = models.ManyToManyField(
        "users.Technician",
        through="JobTechnician",
        related_name="jobs",
        blank=True
    )
    assigned_at = models.DateTimeField(_("Assigned At"), blank=True, null=True)

    start_time = models.DateTimeField(_("Start Time"), blank=True, null=True)
    start_gps_coordinates = models.CharField(_("Start GPS Coordinates"), max_length=100, blank=True, null=True)
    end_time = models.DateTimeField(_("End Time"), blank=True, null=True)
    completion_notes = models.TextField(_("Completion Notes"), blank=True, null=True)
    customer_acknowledged_at = models.DateTimeField(_("Customer Acknowledged At"), blank=True, null=True)
    customer_signature_url = models.URLField(_("Customer Signature"), max_length=500, blank=True, null=True)
    verified_by = models.ForeignKey(
        "users.User",
        on_delete=models.SET_NULL,
        related_name="verified_jobs",
        null=True,
        blank=True
    )
    verified_at = models.DateTimeField(_("Verified At"), blank=True, null=True)
    cancellation_reason = models.TextField(_("Cancellation Reason"), blank=True, null=True)
    cancelled_at = models.DateTimeField(_("Cancelled At"), blank=True, null=True)
    created_by = models.ForeignKey(
        "users.User",
        on_delete=models.SET_NULL,
        related_name="created_jobs",
        null=True,
        blank=True
    )

    class Meta:
        indexes = [
            models.Index(fields=['status', 'scheduled_date']),
            models.Index(fields=['customer', 'created_at']),
        ]
        ordering = ("-created_at",)
        verbose_name = _("Job")
        verbose_name_plural = _("Jobs")

    def save(self, *args, **kwargs):
        self.assign_number()
        super().save(*args, **kwargs)

    def __str__(self):
        return self.job_number


class JobTechnician(BaseModel):
    """Technician assignment, `position` keeps the assignment order"""
    job = models.ForeignKey(Job, on_delete=models.CASCADE, related_name="assignments")
    technician = models.ForeignKey("users.Technician", on_delete=models.CASCADE, related_name="job_assignments")
    position = models.PositiveIntegerField(_("Position"), default=0)
    assigned_by = models.ForeignKey(
        "users.User",
        on_delete=models.SET_NULL,
        related_name="job_assignments_made",
        null=True,
        blank=True
    )

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=['job', 'technician'], name='job_technician_unique'),
        ]
        ordering = ("position", "created_at")
        verbose_name = _("Job Technician")
        verbose_name_plural = _("Job Technicians")

    def __str__(self):
        return f"{self.job.job_number} - {self.technician.technician_code}"


class JobInstallation(BaseModel):
    """What was fitted on site: the devices bound to the job plus evidence"""
    job = models.OneToOneField(Job, on_delete=models.CASCADE, related_name="installation")
    imei_numbers = models.JSONField(_("IMEI Numbers"), default=list, blank=True)
    no_device_change = models.BooleanField(
        _("No Device Change"),
        default=False,
        help_text="Service visit that did not fit or swap any device"
    )
    photo_urls = models.JSONField(_("Photo URLs"), default=list, blank=True)
    sim_card_iccid = models.CharField(_("SIM ICCID"), max_length=30, blank=True, null=True)
    mac_address = models.CharField(_("MAC Address"), max_length=50, blank=True, null=True)
    device_position = models.CharField(_("Device Position"), max_length=255, blank=True, null=True)
    gps_coordinates = models.CharField(_("GPS Coordinates"), max_length=100, blank=True, null=True)
    notes = models.TextField(_("Notes"), blank=True, null=True)
    recorded_by = models.ForeignKey(
        "users.User",
        on_delete=models.SET_NULL,
        related_name="recorded_installations",
        null=True,
        blank=True
    )
    recorded_at = models.DateTimeField(_("Recorded At"), blank=True, null=True)

    class Meta:
        verbose_name = _("Job Installation")
        verbose_name_plural = _("Job Installations")

    @property
    def is_complete(self):
        """Devices (or an explicit no device change) plus at least one photo"""
        return (bool(self.imei_numbers) or self.no_device_change) and bool(self.photo_urls)

    def __str__(self):
        return f"Installation for {self.job.job_number}"


class JobLog(BaseModel):
    """Audit trail of status changes and assignment actions on a job"""

    class LogType(models.TextChoices):
        CREATED = 'CREATED', _('Created')
        STATUS_CHANGED = 'STATUS_CHANGED', _('Status Changed')
        TECHNICIAN_ASSIGNED = 'TECHNICIAN_ASSIGNED', _('Technician Assigned')
        TECHNICIAN_REMOVED = 'TECHNICIAN_REMOVED', _('Technician Removed')
        TECHNICIAN_REASSIGNED = 'TECHNICIAN_REASSIGNED', _('Technician Reassigned')
        PRIMARY_CHANGED = 'PRIMARY_CHANGED', _('Primary Technician Changed')
        INSTALLATION_SAVED = 'INSTALLATION_SAVED', _('Installation Saved')
        VEHICLE_ATTACHED = 'VEHICLE_ATTACHED', _('Vehicle Attached')

    job = models.ForeignKey(Job, on_delete=models.CASCADE, related_name="logs")
    log_type = models.CharField(_("Log Type"), max_length=30, choices=LogType.choices)
    previous_status = models.CharField(_("Previous Status"), max_length=30, blank=True, null=True)
    new_status = models.CharField(_("New Status"), max_length=30, blank=True, null=True)
    user = models.ForeignKey(
        "users.User",
        on_delete=models.SET_NULL,
        related_name="job_logs",
        null=True,
        blank=True
    )
    description = models.TextField(_("Description"), blank=True, null=True)
    details = models.JSONField(_("Details"), default=dict, blank=True)

    class Meta:
        ordering = ("created_at",)
        verbose_name = _("Job Log")
        verbose_name_plural = _("Job Logs")

    def __str__(self):
        return f"{self.job.job_number} - {self.log_type}"
