from django.contrib import admin

from requisitions.models import Requisition, RequisitionIssuance, RequisitionItem, RequisitionLog


class RequisitionItemInline(admin.TabularInline):
    model = RequisitionItem
    extra = 0
    fields = ('product', 'quantity_requested', 'quantity_issued', 'quantity_returned', 'is_required_to_start', 'batch')
    readonly_fields = ('quantity_issued', 'quantity_returned', 'batch')


class RequisitionLogInline(admin.TabularInline):
    model = RequisitionLog
    extra = 0
    fields = ('created_at', 'action_type', 'previous_status', 'new_status', 'performed_by', 'notes')
    readonly_fields = fields
    can_delete = False


@admin.register(Requisition)
class RequisitionAdmin(admin.ModelAdmin):
    list_display = ('requisition_number', 'job', 'technician', 'location', 'status', 'requested_date')
    list_select_related = ('job', 'technician', 'location')
    list_filter = ('status',)
    search_fields = ('requisition_number', 'job__job_number')
    readonly_fields = ('requisition_number', 'status', 'approved_by', 'approved_at', 'rejected_by', 'rejected_at')
    inlines = [RequisitionItemInline, RequisitionLogInline]


@admin.register(RequisitionIssuance)
class RequisitionIssuanceAdmin(admin.ModelAdmin):
    list_display = ('requisition', 'item', 'batch', 'location', 'quantity', 'quantity_returned', 'unit_cost', 'created_at')
    list_select_related = ('requisition', 'batch', 'location')
    search_fields = ('requisition__requisition_number', 'idempotency_key')

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False
