from users.platforms.base.serializers import TechnicianBaseSerializer, UserBaseSerializer


class UserApiSerializer(UserBaseSerializer):
    pass


class TechnicianApiSerializer(TechnicianBaseSerializer):
    pass
