from configurations.base_features.serializers.base_serializer import BaseSerializer
from users.models import Technician, User


class UserBaseSerializer(BaseSerializer):
    class Meta:
        model = User
        fields = ["id", "email", "name", "phone", "is_active"]
        read_only_fields = ("id",)


class TechnicianBaseSerializer(BaseSerializer):
    class Meta:
        model = Technician
        fields = ["id", "technician_code", "user", "is_active", "created_at"]
        read_only_fields = ("id", "created_at")

    def mod_to_representation(self, instance):
        response = super().mod_to_representation(instance)
        response["user"] = UserBaseSerializer(instance.user).data
        return response
