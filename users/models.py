from django.db import models
from django.contrib.auth.models import AbstractUser
from django.utils.translation import gettext_lazy as _

from configurations.base_features.db.base_model import BaseModel
from users.managers import UserManager

class User(BaseModel, AbstractUser):
    username = None
    first_name = None
    last_name = None
    email = models.EmailField(unique=True)
    name = models.CharField(max_length=255)
    phone = models.CharField(max_length=30, blank=True, null=True)

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = ['name']

    objects = UserManager()

    class Meta:
        ordering = ("email",)

    def __str__(self):
        return self.email


class Technician(BaseModel):
    """Field technician profile; jobs and requisitions point here, not at User."""
    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name="technician")
    technician_code = models.CharField(_("Technician Code"), max_length=30, unique=True)
    is_active = models.BooleanField(default=True)

    class Meta:
        ordering = ("technician_code",)

    def __str__(self):
        return f"{self.technician_code} ({self.user.name})"
