from rest_framework.serializers import ModelSerializer


class BaseSerializer(ModelSerializer):
    """
    Base serializer for all models. Includes:
    - Clean mod_ override points (mod_create, mod_update, mod_to_representation)
    - Stringified primary keys
    """

    class Meta:
        model = None
        fields = "__all__"
        read_only_fields = ("id", "created_at", "updated_at")  # can be overridden

    # -------------------------------
    # Internal: do not override these
    # -------------------------------

    def create(self, validated_data):
        return self.mod_create(validated_data)

    def update(self, instance, validated_data):
        return self.mod_update(instance, validated_data)

    def to_representation(self, instance):
        representation = self.mod_to_representation(instance)
        if "id" in representation:
            representation["id"] = str(instance.id)
        return representation

    # -------------------------------
    # You should override these below
    # -------------------------------

    def mod_create(self, validated_data):
        return super().create(validated_data)

    def mod_update(self, instance, validated_data):
        return super().update(instance, validated_data)

    def mod_to_representation(self, instance):
        return super().to_representation(instance)
