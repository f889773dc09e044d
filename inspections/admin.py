from django.contrib import admin

from inspections.models import InspectionChecklistItem, InspectionRecord, InspectionRecordRevision


@admin.register(InspectionChecklistItem)
class InspectionChecklistItemAdmin(admin.ModelAdmin):
    list_display = ('name', 'category', 'is_pre_installation', 'is_post_installation', 'requires_photo',
                    'display_order', 'is_active')
    list_filter = ('category', 'is_active', 'requires_photo')
    list_editable = ('display_order', 'is_active')
    search_fields = ('name', 'description')


class InspectionRecordRevisionInline(admin.TabularInline):
    model = InspectionRecordRevision
    extra = 0
    fields = ('created_at', 'previous_status', 'previous_notes', 'changed_by', 'change_reason')
    readonly_fields = fields
    can_delete = False


@admin.register(InspectionRecord)
class InspectionRecordAdmin(admin.ModelAdmin):
    list_display = ('job', 'stage', 'checklist_item', 'status', 'technician', 'checked_at', 'revision_count',
                    'verified_at')
    list_select_related = ('job', 'checklist_item', 'technician')
    list_filter = ('stage', 'status')
    search_fields = ('job__job_number', 'checklist_item__name')
    readonly_fields = ('revision_count', 'verified_by', 'verified_at')
    inlines = [InspectionRecordRevisionInline]
