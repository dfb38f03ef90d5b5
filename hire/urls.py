from django.urls import path

from . import views

app_name = "hire"

urlpatterns = [
    path("dashboard/", views.dashboard, name="dashboard"),
    path("fleet/", views.VehicleListView.as_view(), name="vehicle_list"),
    path("fleet/new/", views.VehicleCreateView.as_view(), name="vehicle_create"),
    path("fleet/export/", views.export_vehicles_csv, name="export_vehicles_csv"),
    path("fleet/<int:pk>/", views.vehicle_detail, name="vehicle_detail"),
    path("fleet/<int:pk>/edit/", views.VehicleUpdateView.as_view(), name="vehicle_update"),
    path("customers/", views.CustomerListView.as_view(), name="customer_list"),
    path("customers/new/", views.CustomerCreateView.as_view(), name="customer_create"),
    path("customers/invite/", views.customer_invite, name="customer_invite"),
    path("customers/export/", views.export_customers_csv, name="export_customers_csv"),
    path("customers/<int:pk>/", views.CustomerDetailView.as_view(), name="customer_detail"),
    path("customers/<int:pk>/edit/", views.CustomerUpdateView.as_view(), name="customer_update"),
    path("rentals/", views.RentalListView.as_view(), name="rental_list"),
    path("rentals/new/", views.rental_create, name="rental_create"),
    path("rentals/availability/", views.rental_availability, name="rental_availability"),
    path("rentals/export/", views.export_rentals_csv, name="export_rentals_csv"),
    path("rentals/<int:pk>/", views.rental_detail, name="rental_detail"),
    path("rentals/<int:pk>/pickup/", views.rental_handover, {"kind": "pickup"}, name="rental_pickup"),
    path("rentals/<int:pk>/return/", views.rental_handover, {"kind": "return"}, name="rental_return"),
    path("rentals/<int:pk>/quick-start/", views.rental_quick_handover, name="rental_quick_handover"),
    path("calendar/", views.calendar_view, name="calendar"),
    path("finances/", views.finance_performance, name="finance_performance"),
    path("finances/invoices/", views.InvoiceListView.as_view(), name="invoice_list"),
    path("finances/invoices/new/", views.invoice_create, name="invoice_create"),
    path("finances/invoices/<int:pk>/", views.invoice_detail, name="invoice_detail"),
    path("finances/invoices/<int:pk>/print/", views.invoice_print, name="invoice_print"),
    path("finances/invoices/<int:pk>/pdf/", views.invoice_pdf, name="invoice_pdf"),
    path("finances/invoices/<int:pk>/paid/", views.invoice_mark_paid, name="invoice_mark_paid"),
    path("finances/settings/", views.business_settings, name="business_settings"),
    path("contracts/", views.ContractListView.as_view(), name="contract_list"),
    path("contracts/<int:pk>/", views.contract_detail, name="contract_detail"),
    path("contracts/<int:pk>/pdf/", views.contract_pdf, name="contract_pdf"),
    path(
        "rentals/<int:rental_id>/contract/<int:template_id>/",
        views.generate_contract,
        name="generate_contract",
    ),
    path(
        "contract-templates/",
        views.ContractTemplateListView.as_view(),
        name="contract_template_list",
    ),
    path(
        "contract-templates/new/",
        views.ContractTemplateCreateView.as_view(),
        name="contract_template_create",
    ),
    path(
        "contract-templates/<int:pk>/edit/",
        views.ContractTemplateUpdateView.as_view(),
        name="contract_template_update",
    ),
    path("pre-registrations/<uuid:pk>/", views.preregistration_review, name="preregistration_review"),
    path("register/done/", views.preregister_done, name="preregister_done"),
    path("register/<uuid:pk>/", views.preregister, name="preregister"),
]
