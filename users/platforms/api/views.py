from users.platforms.base.views import CurrentUserBaseView, TechnicianBaseView
from users.platforms.api.serializers import TechnicianApiSerializer, UserApiSerializer


class CurrentUserApiView(CurrentUserBaseView):
    serializer_class = UserApiSerializer


class TechnicianApiView(TechnicianBaseView):
    serializer_class = TechnicianApiSerializer
