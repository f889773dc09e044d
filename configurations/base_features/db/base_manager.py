from django.core.exceptions import FieldDoesNotExist, ValidationError as DjangoValidationError
from django.db import models
from ..exceptions.base_exceptions import LocalBaseException

# relation lookups are rewritten to <field>__id
RELATION_TYPES = ("ForeignKey", "OneToOneField")

class BaseManager(models.Manager):
    """
    Shared manager for all models.
    FK-aware lookups that raise the API exceptions instead of DoesNotExist.
    """

    def model_field_exists(self, field: str) -> bool:
        try:
            self.model._meta.get_field(field)
            return True
        except FieldDoesNotExist:
            return False

    def model_field_type(self, field: str) -> str:
        return self.model._meta.get_field(field).get_internal_type()

    def get_object_or_404(self, raise_exception=False, *args, **kwargs):
        data = None
        errors = []
        exception_type = None
        exception_kwargs = {}
        exception_debug = None
        status_code = 200

        query_params = {}
        for field, value in kwargs.items():
            base_field = field.split("__")[0]
            if self.model_field_exists(base_field) and self.model_field_type(base_field) in RELATION_TYPES and "__" not in field:
                query_params[f"{base_field}__id"] = value
            else:
                query_params[field] = value

        try:
            data = self.get(*args, **query_params)

        except self.model.MultipleObjectsReturned:
            exception_type = "multiple_objects_returned"
            status_code = 409
            errors = f"Multiple {self.model._meta.object_name} objects found."
            exception_kwargs = {
                "count": self.filter(*args, **query_params).count(),
                "model": self.model._meta.object_name
            }

        except self.model.DoesNotExist:
            exception_type = "not_found"
            status_code = 404
            errors = f"{self.model._meta.object_name} not found."
            exception_kwargs = {"model": self.model._meta.object_name, **{k: str(v) for k, v in kwargs.items()}}

        except (ValueError, DjangoValidationError) as e:
            exception_type = "bad_request"
            status_code = 400
            errors = "Malformed lookup value"
            exception_kwargs = {"model": self.model._meta.object_name}
            exception_debug = str(e)

        if raise_exception:
            if exception_type:
                raise LocalBaseException(
                    exception_type=exception_type,
                    status_code=status_code,
                    kwargs=exception_kwargs,
                    debug_message=exception_debug,
                )
            return data
        else:
            return data, errors, status_code

    def get_or_none(self, *args, **kwargs):
        """
        Returns an object or None if not found.
        """
        try:
            return self.get(*args, **kwargs)
        except self.model.DoesNotExist:
            return None
