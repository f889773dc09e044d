from django.db import models
from django.utils.translation import gettext_lazy as _

from configurations.base_features.db.base_model import BaseModel


class Customer(BaseModel):
    """Customer reference data. Maintained by the CRM side, read here."""
    customer_code = models.CharField(_("Customer Code"), max_length=30, unique=True)
    name = models.CharField(_("Name"), max_length=255)
    phone = models.CharField(_("Phone"), max_length=30)
    email = models.EmailField(_("Email"), blank=True, null=True)

    class Meta:
        ordering = ("customer_code",)


class Vehicle(BaseModel):
    customer = models.ForeignKey(Customer, on_delete=models.CASCADE, related_name="vehicles")
    registration = models.CharField(_("Registration"), max_length=20, unique=True)
    make = models.CharField(_("Make"), max_length=100, blank=True, null=True)
    model = models.CharField(_("Model"), max_length=100, blank=True, null=True)
    chassis_no = models.CharField(_("Chassis No"), max_length=50, blank=True, null=True)

    class Meta:
        ordering = ("registration",)

    def __str__(self):
        return self.registration
