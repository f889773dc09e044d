from company.models import CompanyProfile, Location
from django.contrib import admin


@admin.register(CompanyProfile)
class CompanyProfileAdmin(admin.ModelAdmin):
    list_display = ('name', 'timezone', 'currency', 'created_at', 'updated_at')
    fields = ('name', 'timezone', 'currency')

    def has_add_permission(self, request):
        # Only one CompanyProfile
        return not CompanyProfile.objects.exists()

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(Location)
class LocationAdmin(admin.ModelAdmin):
    list_display = ('code', 'name', 'address', 'is_active', 'created_at')
    list_filter = ('is_active',)
    search_fields = ('code', 'name')
