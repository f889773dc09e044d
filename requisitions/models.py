from django.db import models
from django.utils.translation import gettext_lazy as _

from configurations.base_features.db.base_model import BaseModel, SequenceNumberMixin


class Requisition(SequenceNumberMixin, BaseModel):
    """A technician's request for stock against one job"""

    number_field = "requisition_number"
    number_prefix = "REQ"

    class Status(models.TextChoices):
        PENDING = 'PENDING', _('Pending')
        APPROVED = 'APPROVED', _('Approved')
        REJECTED = 'REJECTED', _('Rejected')
        PARTIALLY_ISSUED = 'PARTIALLY_ISSUED', _('Partially Issued')
        FULLY_ISSUED = 'FULLY_ISSUED', _('Fully Issued')

    ISSUABLE_STATUSES = (Status.APPROVED, Status.PARTIALLY_ISSUED)

    requisition_number = models.CharField(_("Requisition Number"), max_length=20, unique=True, blank=True)
    job = models.ForeignKey(
        "jobs.Job",
        on_delete=models.PROTECT,
        related_name="requisitions"
    )
    technician = models.ForeignKey(
        "users.Technician",
        on_delete=models.PROTECT,
        related_name="requisitions"
    )
    location = models.ForeignKey(
        "company.Location",
        on_delete=models.SET_NULL,
        related_name="requisitions",
        null=True,
        blank=True,
        help_text="Store expected to fulfil the requisition"
    )
    status = models.CharField(_("Status"), max_length=20, choices=Status.choices, default=Status.PENDING)
    requested_date = models.DateTimeField(_("Requested Date"), auto_now_add=True)
    notes = models.TextField(_("Notes"), blank=True, null=True)
    approved_by = models.ForeignKey(
        "users.User",
        on_delete=models.SET_NULL,
        related_name="approved_requisitions",
        null=True,
        blank=True
    )
    approved_at = models.DateTimeField(_("Approved At"), blank=True, null=True)
    rejected_by = models.ForeignKey(
        "users.User",
        on_delete=models.SET_NULL,
        related_name="rejected_requisitions",
        null=True,
        blank=True
    )
    rejected_at = models.DateTimeField(_("Rejected At"), blank=True, null=True)
    rejection_reason = models.TextField(_("Rejection Reason"), blank=True, null=True)

    class Meta:
        indexes = [
            models.Index(fields=['job', 'status']),
            models.Index(fields=['status', 'created_at']),
        ]
        ordering = ("-created_at",)
        verbose_name = _("Requisition")
        verbose_name_plural = _("Requisitions")

    def save(self, *args, **kwargs):
        self.assign_number()
        super().save(*args, **kwargs)

    def __str__(self):
        return self.requisition_number


class RequisitionItem(BaseModel):
    requisition = models.ForeignKey(Requisition, on_delete=models.CASCADE, related_name="items")
    product = models.ForeignKey(
        "inventory.Product",
        on_delete=models.PROTECT,
        related_name="requisition_items"
    )
    quantity_requested = models.PositiveIntegerField(_("Quantity Requested"))
    quantity_issued = models.PositiveIntegerField(_("Quantity Issued"), default=0)
    quantity_returned = models.PositiveIntegerField(_("Quantity Returned"), default=0)
    is_required_to_start = models.BooleanField(
        _("Required To Start"),
        default=False,
        help_text="The job cannot pass requisition approval until this line is fully issued"
    )
    batch = models.ForeignKey(
        "inventory.Batch",
        on_delete=models.SET_NULL,
        related_name="requisition_items",
        null=True,
        blank=True,
        help_text="First batch the line was issued from"
    )
    issued_by = models.ForeignKey(
        "users.User",
        on_delete=models.SET_NULL,
        related_name="issued_requisition_items",
        null=True,
        blank=True
    )
    issued_at = models.DateTimeField(_("Issued At"), blank=True, null=True)

    class Meta:
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity_requested__gt=0),
                name='requisition_item_requested_positive',
            ),
            models.CheckConstraint(
                condition=models.Q(quantity_issued__lte=models.F('quantity_requested')),
                name='requisition_item_not_over_issued',
            ),
            models.CheckConstraint(
                condition=models.Q(quantity_returned__lte=models.F('quantity_issued')),
                name='requisition_item_not_over_returned',
            ),
        ]
        ordering = ("created_at",)
        verbose_name = _("Requisition Item")
        verbose_name_plural = _("Requisition Items")

    @property
    def quantity_outstanding(self):
        return self.quantity_requested - self.quantity_issued

    @property
    def is_fully_issued(self):
        return self.quantity_issued >= self.quantity_requested

    def __str__(self):
        return f"{self.requisition.requisition_number} - {self.product.sku} x {self.quantity_requested}"


class RequisitionIssuance(BaseModel):
    """One FIFO slice of an issue: quantity taken from one batch at one location"""
    requisition = models.ForeignKey(Requisition, on_delete=models.CASCADE, related_name="issuances")
    item = models.ForeignKey(RequisitionItem, on_delete=models.CASCADE, related_name="issuances")
    batch = models.ForeignKey(
        "inventory.Batch",
        on_delete=models.PROTECT,
        related_name="issuances",
        null=True,
        blank=True
    )
    location = models.ForeignKey(
        "company.Location",
        on_delete=models.PROTECT,
        related_name="issuances"
    )
    movement = models.OneToOneField(
        "inventory.InventoryMovement",
        on_delete=models.PROTECT,
        related_name="issuance"
    )
    quantity = models.PositiveIntegerField(_("Quantity"))
    quantity_returned = models.PositiveIntegerField(_("Quantity Returned"), default=0)
    unit_cost = models.DecimalField(_("Unit Cost"), max_digits=12, decimal_places=4, default=0)
    idempotency_key = models.CharField(
        _("Idempotency Key"),
        max_length=100,
        null=True,
        blank=True,
        db_index=True
    )
    issued_by = models.ForeignKey(
        "users.User",
        on_delete=models.SET_NULL,
        related_name="requisition_issuances",
        null=True,
        blank=True
    )

    class Meta:
        ordering = ("created_at",)
        verbose_name = _("Requisition Issuance")
        verbose_name_plural = _("Requisition Issuances")

    def __str__(self):
        return f"{self.item} <- {self.quantity} @ {self.location.code}"


class RequisitionLog(BaseModel):
    """Audit trail for requisition workflow actions"""

    class ActionType(models.TextChoices):
        CREATED = 'CREATED', _('Created')
        APPROVED = 'APPROVED', _('Approved')
        REJECTED = 'REJECTED', _('Rejected')
        ISSUED = 'ISSUED', _('Issued')
        RETURNED = 'RETURNED', _('Returned')

    requisition = models.ForeignKey(Requisition, on_delete=models.CASCADE, related_name="logs")
    action_type = models.CharField(_("Action Type"), max_length=20, choices=ActionType.choices)
    previous_status = models.CharField(_("Previous Status"), max_length=20, blank=True, null=True)
    new_status = models.CharField(_("New Status"), max_length=20)
    performed_by = models.ForeignKey(
        "users.User",
        on_delete=models.SET_NULL,
        related_name="requisition_logs",
        null=True,
        blank=True
    )
    notes = models.TextField(_("Notes"), blank=True, null=True)
    details = models.JSONField(_("Details"), default=dict, blank=True)

    class Meta:
        ordering = ("created_at",)
        verbose_name = _("Requisition Log")
        verbose_name_plural = _("Requisition Logs")

    def __str__(self):
        return f"{self.requisition.requisition_number} - {self.action_type}"
