from django.db import models
from django.core.exceptions import ValidationError
from django.utils.translation import gettext_lazy as _

from configurations.base_features.db.base_model import BaseModel


class Product(BaseModel):
    """Catalog of stocked products, serialized ones are tracked per device (IMEI)"""
    sku = models.CharField(
        _("SKU"),
        max_length=100,
        unique=True,
        help_text="Unique stock keeping unit"
    )
    name = models.CharField(_("Name"), max_length=255)
    description = models.TextField(_("Description"), blank=True, null=True)
    unit_of_measure = models.CharField(_("Unit Of Measure"), max_length=20, default="pcs")
    is_serialized = models.BooleanField(
        _("Is Serialized"),
        default=False,
        help_text="Serialized products are issued by IMEI, one device at a time"
    )
    reorder_level = models.PositiveIntegerField(
        _("Reorder Level"),
        default=0,
        help_text="Low stock threshold on the summed available quantity"
    )
    is_active = models.BooleanField(_("Is Active"), default=True)

    class Meta:
        indexes = [
            models.Index(fields=['sku']),
        ]
        ordering = ("sku",)
        verbose_name = _("Product")
        verbose_name_plural = _("Products")

    def __str__(self):
        return f"[{self.sku}] {self.name}"


class Batch(BaseModel):
    """A received lot of one product. Received date drives FIFO."""
    product = models.ForeignKey(
        Product,
        on_delete=models.PROTECT,
        related_name="batches"
    )
    batch_number = models.CharField(_("Batch Number"), max_length=100)
    received_date = models.DateTimeField(
        _("Received Date"),
        help_text="Date when this batch was received (used for FIFO)"
    )
    quantity_received = models.PositiveIntegerField(_("Quantity Received"), default=0)
    unit_cost = models.DecimalField(
        _("Unit Cost"),
        max_digits=12,
        decimal_places=4,
        default=0
    )
    expiry_date = models.DateField(_("Expiry Date"), blank=True, null=True)
    supplier = models.CharField(_("Supplier"), max_length=255, blank=True, null=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=['product', 'batch_number'], name='inventory_batch_number_unique'),
        ]
        indexes = [
            models.Index(fields=['product', 'received_date']),
        ]
        ordering = ("received_date",)
        verbose_name = _("Batch")
        verbose_name_plural = _("Batches")

    def clean(self):
        if self.unit_cost is not None and self.unit_cost < 0:
            raise ValidationError(_("Unit cost cannot be negative"))

    def __str__(self):
        return f"{self.batch_number} ({self.product.sku})"


class InventoryRecord(BaseModel):
    """
    Stock of one product (optionally one batch) at one location.

    `version` is bumped on every quantity change. Writers compare it before
    updating so two concurrent allocations can never both succeed against
    the same stale read.
    """
    product = models.ForeignKey(
        Product,
        on_delete=models.PROTECT,
        related_name="inventory_records"
    )
    batch = models.ForeignKey(
        Batch,
        on_delete=models.PROTECT,
        related_name="inventory_records",
        null=True,
        blank=True
    )
    location = models.ForeignKey(
        "company.Location",
        on_delete=models.PROTECT,
        related_name="inventory_records"
    )
    quantity_available = models.IntegerField(_("Quantity Available"), default=0)
    quantity_reserved = models.IntegerField(_("Quantity Reserved"), default=0)
    version = models.PositiveIntegerField(_("Version"), default=0)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=['product', 'batch', 'location'],
                condition=models.Q(batch__isnull=False),
                name='inventory_record_batch_location_unique',
            ),
            models.UniqueConstraint(
                fields=['product', 'location'],
                condition=models.Q(batch__isnull=True),
                name='inventory_record_unbatched_location_unique',
            ),
            models.CheckConstraint(
                condition=models.Q(quantity_available__gte=0),
                name='inventory_record_available_non_negative',
            ),
            models.CheckConstraint(
                condition=models.Q(quantity_reserved__gte=0),
                name='inventory_record_reserved_non_negative',
            ),
        ]
        indexes = [
            models.Index(fields=['product', 'location']),
            models.Index(fields=['product'], condition=models.Q(quantity_available__gt=0), name='inventory_available_idx'),
        ]
        verbose_name = _("Inventory Record")
        verbose_name_plural = _("Inventory Records")

    @property
    def quantity_on_hand(self):
        return self.quantity_available + self.quantity_reserved

    def __str__(self):
        batch = self.batch.batch_number if self.batch_id else "unbatched"
        return f"{self.product.sku} / {batch} @ {self.location.code}: {self.quantity_available}"


class InventoryMovement(BaseModel):
    """
    Immutable ledger of every stock change.

    `quantity_delta` is the signed change to quantity_available and
    `reserved_delta` the signed change to quantity_reserved, so summing a
    record's movements reproduces its current quantities.
    """

    class MovementType(models.TextChoices):
        RECEIVE = 'receive', _('Receive')
        ISSUE = 'issue', _('Issue')
        RETURN = 'return', _('Return')
        TRANSFER_OUT = 'transfer_out', _('Transfer Out')
        TRANSFER_IN = 'transfer_in', _('Transfer In')
        ADJUST_INCREASE = 'adjust_increase', _('Adjustment Increase')
        ADJUST_DECREASE = 'adjust_decrease', _('Adjustment Decrease')
        RESERVE = 'reserve', _('Reserve')
        RELEASE = 'release', _('Release')
        COMMIT = 'commit', _('Commit')

    POSITIVE_TYPES = (
        MovementType.RECEIVE, MovementType.RETURN, MovementType.TRANSFER_IN,
        MovementType.ADJUST_INCREASE, MovementType.RELEASE,
    )
    NEGATIVE_TYPES = (
        MovementType.ISSUE, MovementType.TRANSFER_OUT, MovementType.ADJUST_DECREASE,
        MovementType.RESERVE,
    )

    product = models.ForeignKey(
        Product,
        on_delete=models.PROTECT,
        related_name="movements"
    )
    batch = models.ForeignKey(
        Batch,
        on_delete=models.PROTECT,
        related_name="movements",
        null=True,
        blank=True
    )
    location = models.ForeignKey(
        "company.Location",
        on_delete=models.PROTECT,
        related_name="inventory_movements"
    )
    record = models.ForeignKey(
        InventoryRecord,
        on_delete=models.PROTECT,
        related_name="movements"
    )
    movement_type = models.CharField(
        _("Movement Type"),
        max_length=20,
        choices=MovementType.choices
    )
    quantity_delta = models.IntegerField(
        _("Quantity Delta"),
        help_text="Signed change to quantity available"
    )
    reserved_delta = models.IntegerField(
        _("Reserved Delta"),
        default=0,
        help_text="Signed change to quantity reserved"
    )
    reference = models.CharField(
        _("Reference"),
        max_length=100,
        null=True,
        blank=True,
        help_text="Business document behind the change, eg. a requisition number"
    )
    reason = models.TextField(_("Reason"), blank=True, null=True)
    idempotency_key = models.CharField(
        _("Idempotency Key"),
        max_length=100,
        null=True,
        blank=True,
        db_index=True
    )
    performed_by = models.ForeignKey(
        "users.User",
        on_delete=models.SET_NULL,
        related_name="inventory_movements",
        null=True,
        blank=True
    )

    class Meta:
        indexes = [
            models.Index(fields=['product', 'created_at']),
            models.Index(fields=['movement_type', 'created_at']),
            models.Index(fields=['location', 'created_at']),
            models.Index(fields=['record', 'created_at']),
        ]
        verbose_name = _("Inventory Movement")
        verbose_name_plural = _("Inventory Movements")
        ordering = ['-created_at']

    def clean(self):
        if self.movement_type == self.MovementType.COMMIT:
            if self.quantity_delta != 0 or self.reserved_delta >= 0:
                raise ValidationError(_("Commit movements only consume reserved quantity"))
            return

        if self.quantity_delta == 0:
            raise ValidationError(_("Quantity delta cannot be zero"))
        if self.movement_type in self.POSITIVE_TYPES and self.quantity_delta < 0:
            raise ValidationError(_("Receive, return, transfer in, increase and release movements must have positive quantity delta"))
        if self.movement_type in self.NEGATIVE_TYPES and self.quantity_delta > 0:
            raise ValidationError(_("Issue, transfer out, decrease and reserve movements must have negative quantity delta"))

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValidationError(_("Inventory movements are immutable"))
        self.clean()
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError(_("Inventory movements are immutable"))

    def __str__(self):
        return f"{self.product.sku} - {self.movement_type} - {self.quantity_delta} @ {self.created_at}"


class AdjustmentType(models.TextChoices):
    INCREASE = 'INCREASE', _('Increase')
    DECREASE = 'DECREASE', _('Decrease')
    CORRECTION = 'CORRECTION', _('Correction')
