import uuid
from django.db import models
from .base_manager import BaseManager

class BaseModel(models.Model):
    """
    Abstract base model with UUID primary key, timestamps, and custom manager.
    """
    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
        unique=True
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = BaseManager()

    class Meta:
        abstract = True
        ordering = ("-created_at",)

    def __str__(self):
        for field in ["name", "code", "job_number", "requisition_number", "imei"]:
            if hasattr(self, field):
                return str(getattr(self, field))
        return str(self.id)


class SequenceNumberMixin:
    """
    Fills `number_field` with PREFIX-00001 style identifiers on first save.
    """
    number_field = None
    number_prefix = None

    def assign_number(self):
        if getattr(self, self.number_field):
            return
        last = (
            type(self).objects
            .filter(**{f"{self.number_field}__startswith": f"{self.number_prefix}-"})
            .order_by(f"-{self.number_field}")
            .values_list(self.number_field, flat=True)
            .first()
        )
        next_value = int(last.rsplit("-", 1)[1]) + 1 if last else 1
        setattr(self, self.number_field, f"{self.number_prefix}-{next_value:05d}")
