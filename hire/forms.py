from decimal import Decimal

from django import forms
from django.conf import settings
from django.utils import timezone

from .exceptions import SignatureError
from .models import (
    FUEL_LEVEL_CHOICES,
    VEHICLE_MODELS,
    BusinessProfile,
    ContractTemplate,
    Customer,
    Invoice,
    PreRegistration,
    Rental,
    ServiceRecord,
    Vehicle,
)
from .services.availability import conflicting_rentals
from .services.invoicing import unbilled_rentals
from .services.pricing import extend_period
from .services.signatures import signature_from_payload

BILLING_CHOICES = [
    ("none", "Fakturovat později"),
    ("paid", "Zaplaceno (hotově / kartou)"),
    ("transfer", "Faktura k úhradě převodem"),
]


class StyledModelForm(forms.ModelForm):
    """Apply basic Bootstrap classes to all widgets."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        _style_fields(self.fields)


def _style_fields(fields):
    for field in fields.values():
        widget = field.widget
        if isinstance(widget, (forms.HiddenInput, SignatureWidget)):
            continue
        css = widget.attrs.get("class", "")
        if isinstance(widget, forms.CheckboxInput):
            widget.attrs["class"] = f"form-check-input {css}".strip()
        elif isinstance(widget, forms.Select):
            widget.attrs["class"] = f"form-select {css}".strip()
        else:
            widget.attrs["class"] = f"form-control {css}".strip()
        if isinstance(widget, forms.Textarea):
            widget.attrs.setdefault("rows", 3)


class StyledForm(forms.Form):
    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        _style_fields(self.fields)


class DateInput(forms.DateInput):
    input_type = "date"

    def __init__(self, attrs=None):
        super().__init__(attrs=attrs, format="%Y-%m-%d")


class DateTimeLocalInput(forms.DateTimeInput):
    input_type = "datetime-local"

    def __init__(self, attrs=None):
        super().__init__(attrs=attrs, format="%Y-%m-%dT%H:%M")


class SignatureWidget(forms.MultiWidget):
    """Canvas pad plus two hidden inputs: the PNG data URL and the raw strokes."""

    template_name = "hire/widgets/signature.html"

    def __init__(self, attrs=None):
        widgets = (
            forms.HiddenInput(attrs={"data-signature": "image"}),
            forms.HiddenInput(attrs={"data-signature": "strokes"}),
        )
        super().__init__(widgets, attrs)

    @property
    def is_hidden(self):
        # Both inputs are hidden but the pad itself is a visible field.
        return False

    def decompress(self, value):
        return [None, None]

    def get_context(self, name, value, attrs):
        context = super().get_context(name, value, attrs)
        context["widget"]["canvas_width"] = settings.SIGNATURE_CANVAS_WIDTH
        context["widget"]["canvas_height"] = settings.SIGNATURE_CANVAS_HEIGHT
        return context


class SignatureField(forms.MultiValueField):
    """Cleans to the PNG bytes of a non-blank signature."""

    widget = SignatureWidget
    default_error_messages = {"required": "Prosím, podepište se."}

    def __init__(self, **kwargs):
        fields = (forms.CharField(required=False), forms.CharField(required=False))
        kwargs.setdefault("label", "Podpis")
        super().__init__(fields=fields, require_all_fields=False, **kwargs)

    def compress(self, data_list):
        if not data_list:
            return None
        data_url, strokes = (list(data_list) + [None, None])[:2]
        try:
            return signature_from_payload(
                data_url,
                strokes,
                settings.SIGNATURE_CANVAS_WIDTH,
                settings.SIGNATURE_CANVAS_HEIGHT,
            )
        except SignatureError as exc:
            raise forms.ValidationError(exc.message, code="signature")


class MultipleFileInput(forms.ClearableFileInput):
    allow_multiple_selected = True


class MultipleFileField(forms.FileField):
    def __init__(self, *args, **kwargs):
        kwargs.setdefault("widget", MultipleFileInput(attrs={"accept": "image/*"}))
        super().__init__(*args, **kwargs)

    def clean(self, data, initial=None):
        single_file_clean = super().clean
        if isinstance(data, (list, tuple)):
            return [single_file_clean(item, initial) for item in data]
        if not data:
            return []
        return [single_file_clean(data, initial)]


class VehicleForm(StyledModelForm):
    class Meta:
        model = Vehicle
        fields = [
            "make",
            "model",
            "license_plate",
            "year",
            "vin",
            "stk_due_date",
            "price_hour4",
            "price_hour12",
            "price_day",
        ]
        labels = {
            "make": "Značka",
            "model": "Model",
            "license_plate": "SPZ",
            "year": "Rok výroby",
            "vin": "VIN",
            "stk_due_date": "Příští STK",
            "price_hour4": "Cena do 4 h",
            "price_hour12": "Cena do 12 h",
            "price_day": "Cena za den",
        }
        widgets = {"stk_due_date": DateInput()}

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        # Lets the page script narrow the model list when the make changes.
        self.fields["make"].widget.attrs["data-models"] = ",".join(
            f"{make}:{'|'.join(models_)}" for make, models_ in VEHICLE_MODELS.items()
        )

    def clean_license_plate(self):
        return " ".join(self.cleaned_data["license_plate"].upper().split())


class VehiclePricingForm(StyledModelForm):
    class Meta:
        model = Vehicle
        fields = ["price_hour4", "price_hour12", "price_day"]
        labels = {
            "price_hour4": "Do 4 h",
            "price_hour12": "Do 12 h",
            "price_day": "Za den",
        }

    def clean(self):
        cleaned_data = super().clean()
        for name in self.Meta.fields:
            value = cleaned_data.get(name)
            if value is not None and value < 0:
                self.add_error(name, "Cena nemůže být záporná.")
        return cleaned_data


class ServiceRecordForm(StyledModelForm):
    class Meta:
        model = ServiceRecord
        fields = ["date", "description", "cost"]
        labels = {"date": "Datum", "description": "Popis", "cost": "Cena"}
        widgets = {"date": DateInput()}


class CustomerForm(StyledModelForm):
    class Meta:
        model = Customer
        fields = ["full_name", "email", "phone", "address", "id_number", "driving_license"]
        labels = {
            "full_name": "Jméno a příjmení",
            "email": "Email",
            "phone": "Telefon",
            "address": "Adresa",
            "id_number": "Číslo OP",
            "driving_license": "Číslo ŘP",
        }


class InviteForm(StyledForm):
    email = forms.EmailField(label="Email zákazníka")


class RentalBookingForm(StyledForm):
    customer = forms.ModelChoiceField(queryset=Customer.objects.all(), label="Zákazník")
    vehicle = forms.ModelChoiceField(queryset=Vehicle.objects.all(), label="Vozidlo")
    start_at = forms.DateTimeField(label="Začátek", widget=DateTimeLocalInput())
    end_at = forms.DateTimeField(label="Konec", widget=DateTimeLocalInput())
    pre_registration = forms.ModelChoiceField(
        queryset=PreRegistration.objects.filter(status="submitted"),
        required=False,
        widget=forms.HiddenInput(),
    )
    agree = forms.BooleanField(label="Nájemce souhlasí s podmínkami smlouvy")
    signature = SignatureField()

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        if not self.is_bound:
            start = self.initial.setdefault("start_at", timezone.localtime().replace(second=0, microsecond=0))
            self.initial.setdefault("end_at", extend_period(start, days=1))

    def clean(self):
        cleaned_data = super().clean()
        start = cleaned_data.get("start_at")
        end = cleaned_data.get("end_at")
        vehicle = cleaned_data.get("vehicle")

        if start and end and end <= start:
            self.add_error("end_at", "Konec musí být po začátku pronájmu.")
            return cleaned_data

        if vehicle and start and end and conflicting_rentals(vehicle, start, end).exists():
            self.add_error("vehicle", "Vozidlo je v tomto termínu již rezervováno.")
        return cleaned_data


class HandoverForm(StyledForm):
    mileage = forms.IntegerField(label="Stav tachometru (km)", min_value=1)
    fuel_level = forms.TypedChoiceField(
        label="Palivo",
        choices=[(str(value), label) for value, label in FUEL_LEVEL_CHOICES],
        coerce=Decimal,
        initial="1.00",
    )
    notes = forms.CharField(label="Poznámky", required=False, widget=forms.Textarea)
    photos = MultipleFileField(label="Fotografie", required=False)
    billing_option = forms.ChoiceField(label="Vyúčtování", choices=BILLING_CHOICES, initial="none")
    signature = SignatureField(label="Podpis zákazníka")

    def __init__(self, *args, rental=None, kind="pickup", **kwargs):
        self.rental = rental
        self.kind = kind
        super().__init__(*args, **kwargs)
        if kind != "return":
            del self.fields["billing_option"]
        elif rental is not None and rental.start_mileage:
            self.fields["mileage"].min_value = rental.start_mileage
            self.fields["mileage"].widget.attrs["min"] = rental.start_mileage

    def clean_mileage(self):
        mileage = self.cleaned_data["mileage"]
        if self.kind == "return" and self.rental is not None and self.rental.start_mileage is not None:
            if mileage < self.rental.start_mileage:
                raise forms.ValidationError(
                    f"Stav tachometru nemůže být nižší než při převzetí ({self.rental.start_mileage} km)."
                )
        return mileage


class QuickHandoverForm(StyledForm):
    mileage = forms.IntegerField(label="Počáteční stav tachometru (km)", min_value=1)


class InvoiceCreateForm(StyledForm):
    rental = forms.ModelChoiceField(queryset=Rental.objects.none(), label="Pronájem")
    status = forms.ChoiceField(label="Stav", choices=Invoice.STATUS_CHOICES, initial="unpaid")

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields["rental"].queryset = unbilled_rentals()
        self.fields["rental"].label_from_instance = lambda rental: rental.deal_name


class BusinessProfileForm(StyledModelForm):
    class Meta:
        model = BusinessProfile
        fields = ["name", "address", "ico", "pickup_location", "website", "contact_email", "bank_account"]
        labels = {
            "name": "Název",
            "address": "Adresa",
            "pickup_location": "Místo převzetí",
            "website": "Web",
            "contact_email": "Kontaktní email",
            "bank_account": "Číslo účtu",
        }


class PreRegistrationForm(StyledForm):
    full_name = forms.CharField(label="Jméno a příjmení", max_length=120)
    email = forms.EmailField(label="Email")
    phone = forms.CharField(label="Telefon", max_length=30)
    address = forms.CharField(label="Adresa", max_length=255)
    id_number = forms.CharField(label="Číslo OP", max_length=30)
    driving_license = forms.CharField(label="Číslo ŘP", max_length=30)
    id_card = forms.FileField(label="Sken občanského průkazu", required=False)
    license_scan = forms.FileField(label="Sken řidičského průkazu", required=False)
    agree = forms.BooleanField(label="Souhlasím se zpracováním osobních údajů")
    signature = SignatureField()


class ContractTemplateForm(StyledModelForm):
    class Meta:
        model = ContractTemplate
        fields = "__all__"

    def clean(self):
        cleaned_data = super().clean()
        template_format = cleaned_data.get("format")
        has_file = bool(cleaned_data.get("file"))
        if template_format == "html" and not cleaned_data.get("body_html"):
            self.add_error("body_html", "HTML template needs a body.")
        if template_format == "docx" and not has_file:
            self.add_error("file", "Upload a DOCX file.")
        if template_format == "pdf" and not (has_file or cleaned_data.get("body_html")):
            self.add_error("file", "Upload a PDF form or fill in the HTML body.")
        return cleaned_data
