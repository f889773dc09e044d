from django.contrib import admin

from customers.models import Customer, Vehicle


@admin.register(Customer)
class CustomerAdmin(admin.ModelAdmin):
    list_display = ('customer_code', 'name', 'phone', 'email')
    search_fields = ('customer_code', 'name', 'phone')


@admin.register(Vehicle)
class VehicleAdmin(admin.ModelAdmin):
    list_display = ('registration', 'customer', 'make', 'model')
    search_fields = ('registration', 'chassis_no')
    list_select_related = ('customer',)
