import calendar
import csv
import logging
from datetime import date

from django.contrib import messages
from django.contrib.auth.decorators import login_required
from django.db.models import Count, Q, Sum
from django.http import Http404, HttpResponse, JsonResponse
from django.shortcuts import get_object_or_404, redirect, render
from django.urls import reverse, reverse_lazy
from django.utils import timezone
from django.utils.dateparse import parse_datetime
from django.utils.decorators import method_decorator
from django.utils.encoding import smart_str
from django.views.decorators.http import require_GET, require_POST
from django.views.generic import CreateView, DetailView, ListView, UpdateView

from .exceptions import ContractRenderError, HireError, PreRegistrationError
from .forms import (
    BusinessProfileForm,
    ContractTemplateForm,
    CustomerForm,
    HandoverForm,
    InviteForm,
    InvoiceCreateForm,
    PreRegistrationForm,
    QuickHandoverForm,
    RentalBookingForm,
    ServiceRecordForm,
    VehicleForm,
    VehiclePricingForm,
)
from .models import BusinessProfile, ContractTemplate, Customer, Invoice, PreRegistration, Rental, Vehicle
from .services import lifecycle
from .services.availability import available_vehicles, calendar_weeks, vehicle_status
from .services.contract_renderer import (
    placeholder_guide,
    render_contract_pdf,
    render_contract_template,
)
from .services.invoicing import issue_invoice, render_invoice_html, render_invoice_pdf, set_invoice_status
from .services.mailto import contract_mailto, invitation_mailto, invoice_mailto
from .services.preregistration import (
    create_invitation,
    customer_from_pre_registration,
    find_submitted,
    get_open_invitation,
    matching_customer,
    submit_pre_registration,
)
from .services.pricing import calculate_rental_price, format_duration, pricing_payload
from .services.stats import (
    customer_summary,
    dashboard_summary,
    monthly_rental_performance,
    rental_status_breakdown,
    vehicle_performance,
)

logger = logging.getLogger(__name__)

CUSTOMER_SORT_FIELDS = {
    "name": "full_name",
    "email": "email",
    "phone": "phone",
    "created": "created_at",
    "rentals": "rental_count",
}


def _parse_local_datetime(value):
    if not value:
        return None
    parsed = parse_datetime(value)
    if parsed is None:
        return None
    if timezone.is_naive(parsed):
        parsed = timezone.make_aware(parsed)
    return parsed


@login_required
def dashboard(request):
    summary = dashboard_summary()
    context = {
        **summary,
        "alerts": [{**alert, "url": reverse(alert["url_name"])} for alert in summary["alerts"]],
        "monthly_trend": monthly_rental_performance(),
    }
    return render(request, "hire/dashboard.html", context)


# Fleet


@method_decorator(login_required, name="dispatch")
class VehicleListView(ListView):
    model = Vehicle
    template_name = "hire/vehicle_list.html"

    def get_queryset(self):
        queryset = super().get_queryset().prefetch_related("rentals")
        self.search_query = (self.request.GET.get("q") or "").strip()
        if self.search_query:
            queryset = queryset.filter(
                Q(license_plate__icontains=self.search_query)
                | Q(make__icontains=self.search_query)
                | Q(model__icontains=self.search_query)
                | Q(vin__icontains=self.search_query)
            )
        return queryset

    def get_context_data(self, **kwargs):
        context = super().get_context_data(**kwargs)
        today = timezone.localdate()
        context["rows"] = [
            {
                "vehicle": vehicle,
                "status": "rented" if any(r.status == "active" for r in vehicle.rentals.all()) else "available",
                "stk_days": (vehicle.stk_due_date - today).days,
            }
            for vehicle in context["object_list"]
        ]
        context["search_query"] = getattr(self, "search_query", "")
        return context


@method_decorator(login_required, name="dispatch")
class VehicleCreateView(CreateView):
    model = Vehicle
    form_class = VehicleForm
    template_name = "hire/vehicle_form.html"
    success_url = reverse_lazy("hire:vehicle_list")

    def form_valid(self, form):
        response = super().form_valid(form)
        logger.info("Added vehicle %s", self.object.license_plate)
        messages.success(self.request, f"Vehicle {self.object.license_plate} added to the fleet.")
        return response


@method_decorator(login_required, name="dispatch")
class VehicleUpdateView(UpdateView):
    model = Vehicle
    form_class = VehicleForm
    template_name = "hire/vehicle_form.html"

    def get_success_url(self):
        return reverse("hire:vehicle_detail", args=[self.object.pk])

    def form_valid(self, form):
        messages.success(self.request, f"Vehicle {form.instance.license_plate} updated.")
        return super().form_valid(form)


@login_required
def vehicle_detail(request, pk: int):
    vehicle = get_object_or_404(Vehicle, pk=pk)
    pricing_form = VehiclePricingForm(instance=vehicle, prefix="pricing")
    service_form = ServiceRecordForm(prefix="service")

    if request.method == "POST":
        action = request.POST.get("action")
        if action == "pricing":
            pricing_form = VehiclePricingForm(request.POST, instance=vehicle, prefix="pricing")
            if pricing_form.is_valid():
                pricing_form.save()
                messages.success(request, "Pricing updated.")
                return redirect("hire:vehicle_detail", pk=vehicle.pk)
        elif action == "service":
            service_form = ServiceRecordForm(request.POST, prefix="service")
            if service_form.is_valid():
                record = service_form.save(commit=False)
                record.vehicle = vehicle
                record.save()
                logger.info("Service record %s added to vehicle %s", record.pk, vehicle.pk)
                messages.success(request, "Service record added.")
                return redirect("hire:vehicle_detail", pk=vehicle.pk)
        messages.error(request, "Please correct the errors below.")

    context = {
        "vehicle": vehicle,
        "status": vehicle_status(vehicle),
        "pricing_form": pricing_form,
        "service_form": service_form,
        "service_records": vehicle.service_records.all(),
        "rentals": vehicle.rentals.select_related("customer").order_by("-start_at")[:20],
    }
    return render(request, "hire/vehicle_detail.html", context)


@login_required
def export_vehicles_csv(request):
    response = HttpResponse(content_type="text/csv")
    response["Content-Disposition"] = 'attachment; filename="vehicles.csv"'

    writer = csv.writer(response)
    writer.writerow(
        ["license_plate", "make", "model", "year", "vin", "stk_due_date", "price_hour4", "price_hour12", "price_day"]
    )
    for vehicle in Vehicle.objects.all():
        writer.writerow(
            [
                smart_str(vehicle.license_plate),
                vehicle.make,
                vehicle.model,
                vehicle.year,
                smart_str(vehicle.vin),
                vehicle.stk_due_date.isoformat(),
                vehicle.price_hour4,
                vehicle.price_hour12,
                vehicle.price_day,
            ]
        )
    return response


# Customers


@method_decorator(login_required, name="dispatch")
class CustomerListView(ListView):
    model = Customer
    template_name = "hire/customer_list.html"
    paginate_by = 25

    def get_queryset(self):
        queryset = super().get_queryset().annotate(rental_count=Count("rentals"))
        self.search_query = (self.request.GET.get("q") or "").strip()
        if self.search_query:
            queryset = queryset.filter(
                Q(full_name__icontains=self.search_query)
                | Q(email__icontains=self.search_query)
                | Q(phone__icontains=self.search_query)
            )

        self.sort_key = self.request.GET.get("sort") or "name"
        if self.sort_key not in CUSTOMER_SORT_FIELDS:
            self.sort_key = "name"
        self.sort_dir = "desc" if self.request.GET.get("dir") == "desc" else "asc"
        order_field = CUSTOMER_SORT_FIELDS[self.sort_key]
        if self.sort_dir == "desc":
            order_field = f"-{order_field}"
        return queryset.order_by(order_field, "id")

    def get_context_data(self, **kwargs):
        context = super().get_context_data(**kwargs)
        context["search_query"] = getattr(self, "search_query", "")
        context["sort_key"] = self.sort_key
        context["sort_dir"] = self.sort_dir
        context["sort_columns"] = [
            ("name", "Jméno"),
            ("email", "Email"),
            ("phone", "Telefon"),
            ("created", "Vytvořeno"),
            ("rentals", "Pronájmy"),
        ]
        return context


@method_decorator(login_required, name="dispatch")
class CustomerCreateView(CreateView):
    model = Customer
    form_class = CustomerForm
    template_name = "hire/customer_form.html"

    def get_success_url(self):
        next_url = self.request.GET.get("next")
        if next_url == "booking":
            return f"{reverse('hire:rental_create')}?customer={self.object.pk}"
        return reverse("hire:customer_detail", args=[self.object.pk])

    def form_valid(self, form):
        response = super().form_valid(form)
        messages.success(self.request, f"Customer {self.object.full_name} created.")
        return response


@method_decorator(login_required, name="dispatch")
class CustomerUpdateView(UpdateView):
    model = Customer
    form_class = CustomerForm
    template_name = "hire/customer_form.html"

    def get_success_url(self):
        return reverse("hire:customer_detail", args=[self.object.pk])

    def form_valid(self, form):
        messages.success(self.request, "Customer details saved.")
        return super().form_valid(form)


@method_decorator(login_required, name="dispatch")
class CustomerDetailView(DetailView):
    model = Customer
    template_name = "hire/customer_detail.html"

    def get_context_data(self, **kwargs):
        context = super().get_context_data(**kwargs)
        context.update(customer_summary(self.object))
        return context


@login_required
def customer_invite(request):
    form = InviteForm(request.POST or None)
    if request.method == "POST" and form.is_valid():
        invitation = create_invitation(form.cleaned_data["email"])
        link = request.build_absolute_uri(reverse("hire:preregister", args=[invitation.pk]))
        messages.success(request, f"Invitation for {invitation.email} created.")
        context = {"invitation": invitation, "link": link, "mailto": invitation_mailto(invitation, link)}
        return render(request, "hire/customer_invite_sent.html", context)
    return render(request, "hire/customer_invite.html", {"form": form})


@login_required
def export_customers_csv(request):
    response = HttpResponse(content_type="text/csv")
    response["Content-Disposition"] = 'attachment; filename="customers.csv"'

    writer = csv.writer(response)
    writer.writerow(["full_name", "email", "phone", "address", "id_number", "driving_license"])
    for customer in Customer.objects.all():
        writer.writerow(
            [
                smart_str(customer.full_name),
                smart_str(customer.email),
                smart_str(customer.phone),
                smart_str(customer.address),
                smart_str(customer.id_number),
                smart_str(customer.driving_license),
            ]
        )
    return response


# Rentals


@method_decorator(login_required, name="dispatch")
class RentalListView(ListView):
    model = Rental
    template_name = "hire/rental_list.html"
    paginate_by = 50

    def get_queryset(self):
        queryset = super().get_queryset().select_related("customer", "vehicle")
        self.status_filter = (self.request.GET.get("status") or "").strip()
        if self.status_filter in dict(Rental.STATUS_CHOICES):
            queryset = queryset.filter(status=self.status_filter)
        else:
            self.status_filter = ""
        return queryset.order_by("-start_at", "-id")

    def get_context_data(self, **kwargs):
        context = super().get_context_data(**kwargs)
        context["status_filter"] = self.status_filter
        context["rental_status_choices"] = Rental.STATUS_CHOICES
        context["status_counts"] = rental_status_breakdown()
        return context


def _booking_initial(request) -> dict:
    initial = {}
    for key in ("customer", "vehicle"):
        if request.GET.get(key):
            initial[key] = request.GET[key]
    for key in ("start_at", "end_at"):
        value = _parse_local_datetime(request.GET.get(key))
        if value:
            initial[key] = timezone.localtime(value)

    pre_registration_id = request.GET.get("pre_registration")
    if pre_registration_id:
        pre_registration = find_submitted(pre_registration_id)
        if pre_registration:
            initial["pre_registration"] = pre_registration.pk
            customer = matching_customer(pre_registration)
            if customer:
                initial["customer"] = customer.pk
    return initial


@login_required
def rental_create(request):
    """Booking wizard: customer, period and vehicle, then the signed contract."""
    if request.method == "POST":
        form = RentalBookingForm(request.POST)
        if form.is_valid():
            data = form.cleaned_data
            try:
                rental = lifecycle.create_rental(
                    customer=data["customer"],
                    vehicle=data["vehicle"],
                    start=data["start_at"],
                    end=data["end_at"],
                    signature_png=data["signature"],
                    pre_registration=data.get("pre_registration"),
                )
            except HireError as exc:
                logger.warning("Booking rejected: %s", exc.message)
                messages.error(request, exc.message)
            else:
                messages.success(request, f"Rental {rental.contract_number} created.")
                return redirect("hire:rental_detail", pk=rental.pk)
        else:
            messages.error(request, "Please correct the errors below.")
    else:
        form = RentalBookingForm(initial=_booking_initial(request))

    context = {
        "form": form,
        "pricing": pricing_payload(Vehicle.objects.all()),
    }
    return render(request, "hire/rental_wizard.html", context)


@login_required
@require_GET
def rental_availability(request):
    """Vehicles free in the requested period, with their quoted price."""
    start = _parse_local_datetime(request.GET.get("start"))
    end = _parse_local_datetime(request.GET.get("end"))
    if not start or not end or start >= end:
        return JsonResponse(
            {"valid": False, "duration": format_duration(start, end), "vehicles": []},
        )

    vehicles = []
    for vehicle in available_vehicles(start, end):
        quote = calculate_rental_price(vehicle, start, end)
        vehicles.append(
            {
                "id": vehicle.pk,
                "label": str(vehicle),
                "tier": quote.tier,
                "total": float(quote.total),
            }
        )
    return JsonResponse({"valid": True, "duration": format_duration(start, end), "vehicles": vehicles})


@login_required
def rental_detail(request, pk: int):
    rental = get_object_or_404(
        Rental.objects.select_related("customer", "vehicle").prefetch_related("protocols__photos"), pk=pk
    )
    context = {
        "rental": rental,
        "duration": format_duration(rental.start_at, rental.end_at),
        "pickup": rental.pickup_protocol,
        "return_protocol": rental.return_protocol,
        "mailto": contract_mailto(rental),
        "invoice": Invoice.objects.filter(rental=rental).first(),
        "contract_templates": ContractTemplate.objects.all(),
    }
    return render(request, "hire/rental_detail.html", context)


@login_required
def rental_handover(request, pk: int, kind: str):
    rental = get_object_or_404(Rental.objects.select_related("customer", "vehicle"), pk=pk)
    if kind not in ("pickup", "return"):
        raise Http404("Unknown protocol type")

    expected_status = "upcoming" if kind == "pickup" else "active"
    if rental.status != expected_status:
        messages.error(request, f"Rental {rental.contract_number} is {rental.get_status_display().lower()}.")
        return redirect("hire:rental_detail", pk=rental.pk)

    if request.method == "POST":
        form = HandoverForm(request.POST, request.FILES, rental=rental, kind=kind)
        if form.is_valid():
            data = form.cleaned_data
            try:
                lifecycle.record_handover(
                    rental,
                    kind,
                    mileage=data["mileage"],
                    fuel_level=data["fuel_level"],
                    notes=data["notes"],
                    signature_png=data["signature"],
                    photos=data["photos"],
                    billing_option=data.get("billing_option", "none"),
                )
            except HireError as exc:
                logger.warning("Handover of rental %s failed: %s", rental.pk, exc.message)
                messages.error(request, exc.message)
            else:
                done = "started" if kind == "pickup" else "completed"
                messages.success(request, f"Protocol saved, rental {done}.")
                return redirect("hire:rental_detail", pk=rental.pk)
        else:
            messages.error(request, "Please correct the errors below.")
    else:
        initial = {}
        if kind == "return" and rental.start_mileage:
            initial["mileage"] = rental.start_mileage
        form = HandoverForm(rental=rental, kind=kind, initial=initial)

    return render(request, "hire/rental_handover.html", {"rental": rental, "kind": kind, "form": form})


@login_required
def rental_quick_handover(request, pk: int):
    rental = get_object_or_404(Rental.objects.select_related("customer", "vehicle"), pk=pk)
    form = QuickHandoverForm(request.POST or None)
    if request.method == "POST" and form.is_valid():
        try:
            lifecycle.start_rental(rental, form.cleaned_data["mileage"])
        except HireError as exc:
            messages.error(request, exc.message)
        else:
            messages.success(request, "Rental started.")
        return redirect("hire:dashboard")
    return render(request, "hire/rental_quick_handover.html", {"rental": rental, "form": form})


@login_required
def export_rentals_csv(request):
    response = HttpResponse(content_type="text/csv")
    response["Content-Disposition"] = 'attachment; filename="rentals.csv"'

    writer = csv.writer(response)
    writer.writerow(
        [
            "contract_number",
            "customer_name",
            "license_plate",
            "start_at",
            "end_at",
            "total_price",
            "status",
            "start_mileage",
            "end_mileage",
        ]
    )
    for rental in Rental.objects.select_related("vehicle", "customer"):
        writer.writerow(
            [
                smart_str(rental.contract_number),
                smart_str(rental.customer.full_name),
                smart_str(rental.vehicle.license_plate),
                timezone.localtime(rental.start_at).isoformat(),
                timezone.localtime(rental.end_at).isoformat(),
                rental.total_price,
                rental.status,
                rental.start_mileage if rental.start_mileage is not None else "",
                rental.end_mileage if rental.end_mileage is not None else "",
            ]
        )
    return response


# Calendar


@login_required
def calendar_view(request):
    today = timezone.localdate()
    try:
        year = int(request.GET.get("year", today.year))
        month = int(request.GET.get("month", today.month))
        date(year, month, 1)
    except (TypeError, ValueError):
        year, month = today.year, today.month

    previous = (year - 1, 12) if month == 1 else (year, month - 1)
    following = (year + 1, 1) if month == 12 else (year, month + 1)
    context = {
        "weeks": calendar_weeks(year, month),
        "year": year,
        "month": month,
        "month_label": f"{month:02d}/{year}",
        "previous": previous,
        "following": following,
        "weekday_labels": ["Po", "Út", "St", "Čt", "Pá", "So", "Ne"],
        "today": today,
        "days_in_month": calendar.monthrange(year, month)[1],
    }
    return render(request, "hire/calendar.html", context)


# Finances


@login_required
def finance_performance(request):
    rows = vehicle_performance()
    max_profit = max([row["profit"] for row in rows] + [0])
    for row in rows:
        row["bar"] = int(row["profit"] / max_profit * 100) if max_profit > 0 and row["profit"] > 0 else 0
    totals = Rental.objects.filter(status="completed").aggregate(revenue=Sum("total_price"))
    context = {
        "rows": rows,
        "total_revenue": totals["revenue"] or 0,
        "monthly": monthly_rental_performance(12),
    }
    return render(request, "hire/finance_performance.html", context)


@method_decorator(login_required, name="dispatch")
class InvoiceListView(ListView):
    model = Invoice
    template_name = "hire/invoice_list.html"
    paginate_by = 50

    def get_queryset(self):
        return super().get_queryset().select_related("rental")

    def get_context_data(self, **kwargs):
        context = super().get_context_data(**kwargs)
        context["today"] = timezone.localdate()
        return context


@login_required
def invoice_create(request):
    form = InvoiceCreateForm(request.POST or None)
    if request.method == "POST":
        if form.is_valid():
            try:
                invoice = issue_invoice(form.cleaned_data["rental"], status=form.cleaned_data["status"])
            except HireError as exc:
                logger.warning("Invoice not created: %s", exc.message)
                messages.error(request, exc.message)
            else:
                messages.success(request, f"Invoice {invoice.number} created.")
                return redirect("hire:invoice_detail", pk=invoice.pk)
        else:
            messages.error(request, "Please choose a completed rental.")
    return render(request, "hire/invoice_create.html", {"form": form})


@login_required
def invoice_detail(request, pk: int):
    invoice = get_object_or_404(Invoice.objects.select_related("rental"), pk=pk)
    context = {
        "invoice": invoice,
        "mailto": invoice_mailto(invoice),
        "overdue": invoice.is_overdue(),
    }
    return render(request, "hire/invoice_detail.html", context)


@login_required
def invoice_print(request, pk: int):
    invoice = get_object_or_404(Invoice, pk=pk)
    return HttpResponse(render_invoice_html(invoice), content_type="text/html; charset=utf-8")


@login_required
def invoice_pdf(request, pk: int):
    invoice = get_object_or_404(Invoice, pk=pk)
    try:
        pdf = render_invoice_pdf(invoice)
    except ContractRenderError as exc:
        logger.exception("Failed to render invoice PDF", extra={"invoice_id": invoice.pk})
        return HttpResponse(f"Could not render PDF: {exc.message}", status=500)
    response = HttpResponse(pdf, content_type="application/pdf")
    response["Content-Disposition"] = f'attachment; filename="faktura_{invoice.number}.pdf"'
    return response


@login_required
@require_POST
def invoice_mark_paid(request, pk: int):
    invoice = get_object_or_404(Invoice, pk=pk)
    set_invoice_status(invoice, "paid")
    messages.success(request, f"Invoice {invoice.number} marked as paid.")
    return redirect("hire:invoice_detail", pk=invoice.pk)


@login_required
def business_settings(request):
    profile = BusinessProfile.load()
    form = BusinessProfileForm(request.POST or None, instance=profile)
    if request.method == "POST":
        if form.is_valid():
            form.save()
            messages.success(request, "Billing details saved.")
            return redirect("hire:business_settings")
        messages.error(request, "Please correct the errors below.")
    return render(request, "hire/business_settings.html", {"form": form})


# Contracts


@method_decorator(login_required, name="dispatch")
class ContractListView(ListView):
    template_name = "hire/contract_list.html"
    context_object_name = "rentals"
    paginate_by = 50

    def get_queryset(self):
        return Rental.objects.exclude(contract_html="").select_related("customer", "vehicle").order_by("-created_at")


@login_required
def contract_detail(request, pk: int):
    rental = get_object_or_404(Rental.objects.select_related("customer", "vehicle"), pk=pk)
    if not rental.contract_html:
        raise Http404("Rental has no stored contract")
    return render(request, "hire/contract_detail.html", {"rental": rental, "mailto": contract_mailto(rental)})


@login_required
def contract_pdf(request, pk: int):
    rental = get_object_or_404(Rental, pk=pk)
    try:
        pdf = render_contract_pdf(rental)
    except ContractRenderError as exc:
        logger.exception("Failed to render contract PDF", extra={"rental_id": rental.id})
        return HttpResponse(f"Could not render PDF: {exc.message}", status=500)
    response = HttpResponse(pdf, content_type="application/pdf")
    response["Content-Disposition"] = f'attachment; filename="smlouva_{rental.contract_number}.pdf"'
    return response


@method_decorator(login_required, name="dispatch")
class ContractTemplateListView(ListView):
    model = ContractTemplate
    template_name = "hire/contract_template_list.html"


@method_decorator(login_required, name="dispatch")
class ContractTemplateCreateView(CreateView):
    model = ContractTemplate
    form_class = ContractTemplateForm
    template_name = "hire/contract_template_form.html"
    success_url = reverse_lazy("hire:contract_template_list")

    def get_context_data(self, **kwargs):
        context = super().get_context_data(**kwargs)
        context["placeholder_guide"] = placeholder_guide()
        return context


@method_decorator(login_required, name="dispatch")
class ContractTemplateUpdateView(UpdateView):
    model = ContractTemplate
    form_class = ContractTemplateForm
    template_name = "hire/contract_template_form.html"
    success_url = reverse_lazy("hire:contract_template_list")

    def get_context_data(self, **kwargs):
        context = super().get_context_data(**kwargs)
        context["placeholder_guide"] = placeholder_guide()
        return context


@login_required
def generate_contract(request, rental_id, template_id):
    rental = get_object_or_404(Rental.objects.select_related("customer", "vehicle"), pk=rental_id)
    contract_template = get_object_or_404(ContractTemplate, pk=template_id)
    try:
        document = render_contract_template(contract_template, rental)
    except ContractRenderError as exc:
        logger.warning("Template %s failed for rental %s: %s", contract_template.pk, rental.pk, exc.message)
        messages.error(request, exc.message)
        return redirect("hire:rental_detail", pk=rental.pk)

    response = HttpResponse(document.content, content_type=document.content_type)
    if not document.is_inline:
        filename = f"smlouva_{rental.contract_number}.{document.extension}"
        response["Content-Disposition"] = f'attachment; filename="{filename}"'
    return response


# Pre-registration


def preregister(request, pk):
    """Public form behind the invitation link; no login."""
    try:
        pre_registration = get_open_invitation(pk)
    except PreRegistrationError as exc:
        return render(request, "hire/preregister_closed.html", {"message": exc.message}, status=404)

    if request.method == "POST":
        form = PreRegistrationForm(request.POST, request.FILES)
        if form.is_valid():
            data = form.cleaned_data
            try:
                submit_pre_registration(
                    pre_registration,
                    data,
                    data["signature"],
                    id_card=data.get("id_card"),
                    license_scan=data.get("license_scan"),
                )
            except HireError as exc:
                logger.warning("Pre-registration %s failed: %s", pre_registration.pk, exc.message)
                messages.error(request, exc.message)
            else:
                return redirect("hire:preregister_done")
    else:
        form = PreRegistrationForm(initial={"email": pre_registration.email})

    context = {"form": form, "business": BusinessProfile.load()}
    return render(request, "hire/preregister_form.html", context)


def preregister_done(request):
    return render(request, "hire/preregister_done.html", {"business": BusinessProfile.load()})


@login_required
def preregistration_review(request, pk):
    pre_registration = get_object_or_404(PreRegistration, pk=pk)
    if request.method == "POST":
        if pre_registration.status != "submitted":
            messages.error(request, "This pre-registration was already processed.")
            return redirect("hire:dashboard")
        customer = customer_from_pre_registration(pre_registration)
        query = f"customer={customer.pk}&pre_registration={pre_registration.pk}"
        return redirect(f"{reverse('hire:rental_create')}?{query}")
    return render(request, "hire/preregistration_review.html", {"pre_registration": pre_registration})
