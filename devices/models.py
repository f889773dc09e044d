from django.core.validators import RegexValidator
from django.db import models
from django.utils.translation import gettext_lazy as _

from configurations.base_features.db.base_model import BaseModel


imei_validator = RegexValidator(r'^\d{15}$', _("IMEI must be exactly 15 digits"))


class Device(BaseModel):
    """
    One physical unit of a serialized product, identified by IMEI.

    A device counts towards its inventory record's quantity_available only
    while it is AVAILABLE at that record's location and batch.
    """

    class Status(models.TextChoices):
        AVAILABLE = 'AVAILABLE', _('Available')
        ISSUED = 'ISSUED', _('Issued')
        ACTIVE = 'ACTIVE', _('Active')
        RETIRED = 'RETIRED', _('Retired')

    class RetiredReason(models.TextChoices):
        DAMAGED = 'DAMAGED', _('Damaged')
        WRITTEN_OFF = 'WRITTEN_OFF', _('Written Off')
        DEACTIVATED = 'DEACTIVATED', _('Deactivated')

    imei = models.CharField(_("IMEI"), max_length=15, unique=True, validators=[imei_validator])
    serial_number = models.CharField(_("Serial Number"), max_length=100, blank=True, null=True)
    mac_address = models.CharField(_("MAC Address"), max_length=50, blank=True, null=True)
    sim_card_iccid = models.CharField(_("SIM ICCID"), max_length=30, blank=True, null=True)
    sim_card_imsi = models.CharField(_("SIM IMSI"), max_length=30, blank=True, null=True)
    product = models.ForeignKey(
        "inventory.Product",
        on_delete=models.PROTECT,
        related_name="devices"
    )
    batch = models.ForeignKey(
        "inventory.Batch",
        on_delete=models.PROTECT,
        related_name="devices",
        null=True,
        blank=True
    )
    location = models.ForeignKey(
        "company.Location",
        on_delete=models.SET_NULL,
        related_name="devices",
        null=True,
        blank=True,
        help_text="Holding location while the device is in stock"
    )
    status = models.CharField(_("Status"), max_length=20, choices=Status.choices, default=Status.AVAILABLE)
    job = models.ForeignKey(
        "jobs.Job",
        on_delete=models.SET_NULL,
        related_name="devices",
        null=True,
        blank=True
    )
    requisition_item = models.ForeignKey(
        "requisitions.RequisitionItem",
        on_delete=models.SET_NULL,
        related_name="devices",
        null=True,
        blank=True
    )
    issued_at = models.DateTimeField(_("Issued At"), blank=True, null=True)
    issued_by = models.ForeignKey(
        "users.User",
        on_delete=models.SET_NULL,
        related_name="issued_devices",
        null=True,
        blank=True
    )
    activated_at = models.DateTimeField(_("Activated At"), blank=True, null=True)
    retired_at = models.DateTimeField(_("Retired At"), blank=True, null=True)
    retired_reason = models.CharField(
        _("Retired Reason"),
        max_length=20,
        choices=RetiredReason.choices,
        blank=True,
        null=True
    )
    notes = models.TextField(_("Notes"), blank=True, null=True)

    class Meta:
        indexes = [
            models.Index(fields=['product', 'status']),
            models.Index(fields=['batch', 'location', 'status']),
            models.Index(fields=['job']),
        ]
        ordering = ("imei",)
        verbose_name = _("Device")
        verbose_name_plural = _("Devices")

    def __str__(self):
        return f"{self.imei} ({self.status})"


class DeviceLog(BaseModel):
    """Append-only history of everything that happened to a device"""

    class EventType(models.TextChoices):
        REGISTERED = 'REGISTERED', _('Registered')
        TRANSFERRED = 'TRANSFERRED', _('Transferred')
        ISSUED = 'ISSUED', _('Issued')
        ACTIVATED = 'ACTIVATED', _('Activated')
        RETURNED = 'RETURNED', _('Returned')
        RETIRED = 'RETIRED', _('Retired')

    device = models.ForeignKey(Device, on_delete=models.CASCADE, related_name="logs")
    event_type = models.CharField(_("Event Type"), max_length=20, choices=EventType.choices)
    previous_status = models.CharField(_("Previous Status"), max_length=20, blank=True, null=True)
    new_status = models.CharField(_("New Status"), max_length=20)
    job = models.ForeignKey(
        "jobs.Job",
        on_delete=models.SET_NULL,
        related_name="device_logs",
        null=True,
        blank=True
    )
    location = models.ForeignKey(
        "company.Location",
        on_delete=models.SET_NULL,
        related_name="device_logs",
        null=True,
        blank=True
    )
    performed_by = models.ForeignKey(
        "users.User",
        on_delete=models.SET_NULL,
        related_name="device_logs",
        null=True,
        blank=True
    )
    notes = models.TextField(_("Notes"), blank=True, null=True)

    class Meta:
        ordering = ("created_at",)
        verbose_name = _("Device Log")
        verbose_name_plural = _("Device Logs")

    def __str__(self):
        return f"{self.device.imei} - {self.event_type} @ {self.created_at}"
