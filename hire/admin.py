from django.contrib import admin

from .models import (
    BusinessProfile,
    ContractTemplate,
    Customer,
    HandoverProtocol,
    Invoice,
    PreRegistration,
    ProtocolPhoto,
    Rental,
    ServiceRecord,
    Vehicle,
)


class ServiceRecordInline(admin.TabularInline):
    model = ServiceRecord
    extra = 0


@admin.register(Vehicle)
class VehicleAdmin(admin.ModelAdmin):
    list_display = ("license_plate", "make", "model", "year", "stk_due_date", "price_hour4", "price_hour12", "price_day")
    search_fields = ("license_plate", "make", "model", "vin")
    inlines = [ServiceRecordInline]


@admin.register(Customer)
class CustomerAdmin(admin.ModelAdmin):
    list_display = ("full_name", "email", "phone", "id_number", "driving_license")
    search_fields = ("full_name", "email", "phone", "id_number", "driving_license")


class HandoverProtocolInline(admin.StackedInline):
    model = HandoverProtocol
    extra = 0


@admin.register(Rental)
class RentalAdmin(admin.ModelAdmin):
    list_display = ("contract_number", "vehicle", "customer", "start_at", "end_at", "total_price", "status")
    list_filter = ("status", "start_at", "end_at")
    search_fields = ("contract_number", "vehicle__license_plate", "customer__full_name", "customer__email")
    inlines = [HandoverProtocolInline]


@admin.register(ProtocolPhoto)
class ProtocolPhotoAdmin(admin.ModelAdmin):
    list_display = ("protocol", "image")


@admin.register(Invoice)
class InvoiceAdmin(admin.ModelAdmin):
    list_display = ("number", "rental", "issue_date", "due_date", "amount", "status")
    list_filter = ("status",)
    search_fields = ("number", "variable_symbol")


@admin.register(PreRegistration)
class PreRegistrationAdmin(admin.ModelAdmin):
    list_display = ("email", "full_name", "status", "created_at", "submitted_at")
    list_filter = ("status",)


@admin.register(BusinessProfile)
class BusinessProfileAdmin(admin.ModelAdmin):
    list_display = ("name", "ico", "bank_account")


@admin.register(ContractTemplate)
class ContractTemplateAdmin(admin.ModelAdmin):
    list_display = ("name", "format")
