from django.contrib import admin

from users.models import Technician, User


@admin.register(User)
class UserAdmin(admin.ModelAdmin):
    list_display = ('email', 'name', 'is_active', 'is_staff', 'created_at')
    search_fields = ('email', 'name')
    list_filter = ('is_active', 'is_staff')


@admin.register(Technician)
class TechnicianAdmin(admin.ModelAdmin):
    list_display = ('technician_code', 'user', 'is_active')
    search_fields = ('technician_code', 'user__email', 'user__name')
    list_select_related = ('user',)
