from django.contrib import admin

from jobs.models import Job, JobInstallation, JobLog, JobTechnician


class JobTechnicianInline(admin.TabularInline):
    model = JobTechnician
    extra = 0
    fields = ('technician', 'position', 'assigned_by')


class JobLogInline(admin.TabularInline):
    model = JobLog
    extra = 0
    fields = ('created_at', 'log_type', 'previous_status', 'new_status', 'user', 'description')
    readonly_fields = fields
    can_delete = False


@admin.register(Job)
class JobAdmin(admin.ModelAdmin):
    list_display = ('job_number', 'customer', 'vehicle', 'job_type', 'status', 'primary_technician', 'scheduled_date')
    list_select_related = ('customer', 'vehicle', 'primary_technician')
    list_filter = ('status', 'job_type')
    search_fields = ('job_number', 'customer__name', 'vehicle__registration')
    readonly_fields = ('job_number', 'status', 'assigned_at', 'start_time', 'end_time', 'verified_by', 'verified_at',
                       'cancelled_at')
    inlines = [JobTechnicianInline, JobLogInline]


@admin.register(JobInstallation)
class JobInstallationAdmin(admin.ModelAdmin):
    list_display = ('job', 'no_device_change', 'recorded_by', 'recorded_at')
    list_select_related = ('job', 'recorded_by')
    search_fields = ('job__job_number',)
