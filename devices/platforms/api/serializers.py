from devices.platforms.base.serializers import DeviceBaseSerializer, DeviceLogBaseSerializer


class DeviceApiSerializer(DeviceBaseSerializer):
    pass


class DeviceLogApiSerializer(DeviceLogBaseSerializer):
    pass
