from configurations.base_features.views.base_api_view import BaseAPIView
from users.models import Technician, User
from users.platforms.base.serializers import TechnicianBaseSerializer, UserBaseSerializer


class CurrentUserBaseView(BaseAPIView):
    serializer_class = UserBaseSerializer
    model_class = User
    http_method_names = ["get"]

    def get(self, request, *args, **kwargs):
        try:
            return self.format_response(data=self.get_serialized_objects(request.user), status_code=200)
        except Exception as e:
            return self.handle_exception(e)


class TechnicianBaseView(BaseAPIView):
    serializer_class = TechnicianBaseSerializer
    model_class = Technician
    http_method_names = ["get", "post", "patch"]

    def get_queryset(self, params=None, ordering=None):
        return super().get_queryset(params, ordering or "technician_code").select_related("user")
