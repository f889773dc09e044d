import logging

from rest_framework.permissions import IsAuthenticated
from rest_framework.views import APIView
from django.db.models import ForeignKey, ManyToManyField

from configurations.base_features.exceptions.workflow_exceptions import ValidationError
from configurations.base_features.views.base_exception_handler import BaseExceptionHandlerMixin
from configurations.base_features.views.base_response import ResponseFormatterMixin

logger = logging.getLogger(__name__)


class BaseAPIView(BaseExceptionHandlerMixin, APIView, ResponseFormatterMixin):
    """
        an abstract class for all api views

        by default it accepts all http methods, could be modified by adding http_method_names to your class.
        Only authenticated users can access the api (JWT, see REST_FRAMEWORK settings).

        it's not recommended to override get, post, put or delete, as they act like a middleware to handle exceptions,
        but you can override list, retrieve, create, update and destroy as needed safely.

        model_class and serializer_class are required to be set in your class
    """
    model_class = None
    serializer_class = None
    http_method_names = ["get", "post", "put", "patch", "delete", "head", "options"]
    permission_classes = [IsAuthenticated]
    # query params that are never model filters
    reserved_params = ("page", "pageSize", "ordering", "lang", "_start", "_end")
    # exact match filters, everything else is matched with __icontains
    exact_params = ("status",)

    def get_queryset(self, params=None, ordering=None):
        """Get the queryset based on the given params"""
        params = params or {}
        instances = self.model_class.objects.filter(**params)
        return instances.order_by(ordering or "-created_at")

    def get_instance(self, pk=None, params=None):
        """Get the instance based on the given params"""
        if params is None:
            params = {}
        if pk:
            params["id"] = pk
        return self.model_class.objects.get_object_or_404(raise_exception=True, **params)

    def get_serialized_objects(self, instance, many=False):
        """Get the serialized objects based on the given instance"""
        serializer = self.serializer_class(instance, many=many, context={"request": self.request})
        return serializer.data

    def get_validated_data(self, serializer_class, data=None):
        """Validate an operation payload, bad input raises the platform ValidationError"""
        serializer = serializer_class(
            data=self.request.data if data is None else data,
            context={"request": self.request},
        )
        if not serializer.is_valid():
            raise ValidationError("Invalid request data", errors=serializer.errors)
        return serializer.validated_data

    def get_request_params(self, request):
        """
        Converts query params into Django filter kwargs,
        skipping FK and M2M fields from being wrapped in `__icontains`.
        """
        if self.model_class is None:
            return {}
        model_fields = {f.name: f for f in self.model_class._meta.get_fields()}

        params = {}
        for key, value in request.query_params.items():
            if key in self.reserved_params:
                continue

            field_name = key.split("__")[0]  # e.g., 'product__sku' -> 'product'
            field = model_fields.get(field_name)
            if field is None:
                raise ValidationError(f"Unknown filter '{key}'", param=key)

            is_fk = isinstance(field, ForeignKey)
            is_m2m = isinstance(field, ManyToManyField)

            if is_fk or is_m2m or "__" in key or key in self.exact_params or getattr(field, "choices", None):
                params[key] = value
            else:
                params[f"{key}__icontains"] = value

        return params

    def get(self, request, pk=None, params=None, *args, **kwargs):
        """
            :params: pk - primary key of the object, if provided call retrieve() else call list(), override those 2 methods as needed
            :params: params - params to filter the object, could be added by overriding the method then calling super().get()
        """
        try:
            if params is None:
                params = self.get_request_params(request)
            logger.debug("[%s] GET pk: %s params: %s", self.__class__.__name__, pk, params)
            if pk:
                return self.retrieve(pk, params, *args, **kwargs)
            return self.list(params, *args, **kwargs)
        except Exception as e:
            return self.handle_exception(e)

    def retrieve(self, pk, params, *args, **kwargs):
        """Get single serialized object"""
        instance_object = self.get_instance(pk, params)
        serialized_data = self.get_serialized_objects(instance_object)
        return self.format_response(data=serialized_data, status_code=200)

    def list(self, params, *args, **kwargs):
        """Get list of serialized objects"""
        ordering_by = self.request.query_params.get("ordering")
        instance_objects = self.get_queryset(params=params, ordering=ordering_by)
        serialized_data = self.get_serialized_objects(instance_objects, many=True)
        return self.format_response(data=serialized_data, status_code=200)

    def handle_post_params(self, request, params):
        params['user'] = request.user
        return params

    def handle_post_data(self, request):
        return request.data.copy()

    def post(self, request, *args, **kwargs):
        """
            calls create method, override create() as needed
        """
        try:
            data = self.handle_post_data(request)
            params = self.handle_post_params(request, {})
            return self.create(data, params, *args, **kwargs)
        except Exception as e:
            return self.handle_exception(e)

    def create(self, data, params, *args, **kwargs):
        """Create new object"""
        serializer = self.serializer_class(data=data, context={"request": self.request})
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return self.format_response(data=serializer.data, status_code=201)

    def put(self, request, pk, partial=False, *args, **kwargs):
        """
            :param pk : Primary key of the object to be updated
            :param partial: Whether to update all fields or only the fields provided in the request
            calls update method, override update() as needed"""
        try:
            data = self.handle_post_data(request)
            params = self.handle_post_params(request, {})
            return self.update(data, params, pk, partial, *args, **kwargs)
        except Exception as e:
            return self.handle_exception(e)

    def update(self, data, params, pk, partial, *args, **kwargs):
        """Update an object"""
        instance = self.get_instance(pk)
        serializer = self.serializer_class(instance, data=data, partial=partial, context={"request": self.request})
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return self.format_response(data=serializer.data, status_code=200)

    def patch(self, request, pk, *args, **kwargs):
        """
        Update an object partially
        it calls put method and from there calls update method
        override update method as needed
        """
        return self.put(request, pk, partial=True, *args, **kwargs)

    def delete(self, request, pk, *args, **kwargs):
        """
        it calls destroy method, override destroy as needed
        """
        try:
            return self.destroy(request, pk, *args, **kwargs)
        except Exception as e:
            return self.handle_exception(e)

    def destroy(self, request, pk, *args, **kwargs):
        """Delete an object"""
        instance = self.get_instance(pk)
        instance.delete()
        return self.format_response(data={}, status_code=204)
