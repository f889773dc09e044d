from django.contrib import admin

from devices.models import Device, DeviceLog


class DeviceLogInline(admin.TabularInline):
    model = DeviceLog
    extra = 0
    fields = ('created_at', 'event_type', 'previous_status', 'new_status', 'job', 'location', 'performed_by', 'notes')
    readonly_fields = fields
    can_delete = False


@admin.register(Device)
class DeviceAdmin(admin.ModelAdmin):
    list_display = ('imei', 'product', 'batch', 'location', 'status', 'job', 'issued_at')
    list_select_related = ('product', 'batch', 'location', 'job')
    list_filter = ('status', 'retired_reason')
    search_fields = ('imei', 'serial_number', 'sim_card_iccid')
    readonly_fields = ('status', 'job', 'requisition_item', 'issued_at', 'issued_by', 'activated_at', 'retired_at')
    inlines = [DeviceLogInline]
