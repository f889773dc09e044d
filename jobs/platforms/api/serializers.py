from jobs.platforms.base.serializers import JobBaseSerializer


class JobApiSerializer(JobBaseSerializer):
    pass
