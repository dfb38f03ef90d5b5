"""
Contract documents: the built-in signed contract plus user-managed templates.

Custom templates come in three formats. HTML bodies are rendered with the
Django template engine, DOCX files get ``{{ customer.full_name }}`` style
tokens substituted, and PDF files either have their AcroForm fields filled
(fields named ``customer_full_name`` and so on) or are produced from an HTML
body through xhtml2pdf.
"""
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from io import BytesIO
from zipfile import BadZipFile
import logging
import re

from django.conf import settings
from django.template import TemplateSyntaxError, engines
from django.template.loader import render_to_string
from django.utils import timezone
from docx import Document
from docx.opc.exceptions import PackageNotFoundError
from pypdf import PdfReader, PdfWriter
from pypdf.errors import PdfReadError, PyPdfError
from xhtml2pdf import pisa

from ..exceptions import ContractRenderError
from ..models import BusinessProfile, ContractTemplate, Rental
from .pricing import format_duration

logger = logging.getLogger(__name__)

CONTRACT_TEMPLATE = "hire/documents/contract.html"

# Readable placeholder descriptions for the custom contract template page.
PLACEHOLDER_GUIDE = [
    (
        "Nájemce",
        {
            "customer.full_name": "Jméno a příjmení",
            "customer.email": "Email",
            "customer.phone": "Telefon",
            "customer.address": "Adresa",
            "customer.id_number": "Číslo OP",
            "customer.driving_license": "Číslo ŘP",
        },
    ),
    (
        "Vozidlo",
        {
            "vehicle.make": "Značka",
            "vehicle.model": "Model",
            "vehicle.license_plate": "SPZ",
            "vehicle.vin": "VIN",
            "vehicle.year": "Rok výroby",
            "vehicle.label": "Značka, model a SPZ",
        },
    ),
    (
        "Smlouva",
        {
            "rental.contract_number": "Číslo smlouvy",
            "rental.start_at": "Začátek nájmu",
            "rental.end_at": "Konec nájmu",
            "rental.duration": "Doba nájmu",
            "rental.total_price": "Celkové nájemné",
            "rental.deal_name": "Název obchodu",
        },
    ),
    (
        "Pronajímatel",
        {
            "business.name": "Název",
            "business.address": "Adresa",
            "business.ico": "IČO",
            "business.bank_account": "Číslo účtu",
        },
    ),
    (
        "Služební",
        {
            "meta.today": "Dnešní datum",
            "meta.generated_at": "Datum a čas vytvoření",
        },
    ),
]


def _fmt_datetime(value) -> str:
    return timezone.localtime(value).strftime("%d.%m.%Y %H:%M") if value else ""


def _fmt_decimal(value) -> str:
    if value is None:
        return ""
    try:
        return format(Decimal(value).quantize(Decimal("0.01")).normalize(), "f")
    except (InvalidOperation, TypeError, ValueError):
        return str(value)


def get_contract_context(rental: Rental, signature_data_url: str | None = None) -> dict:
    return {
        "rental": rental,
        "vehicle": rental.vehicle,
        "customer": rental.customer,
        "business": BusinessProfile.load(),
        "duration": format_duration(rental.start_at, rental.end_at),
        "deposit": settings.CONTRACT_DEPOSIT,
        "currency": settings.CURRENCY_LABEL,
        "signature_data_url": signature_data_url,
        "meta": {
            "generated_at": timezone.localtime(),
            "today": timezone.localdate(),
        },
    }


def render_contract_html(rental: Rental, signature_data_url: str | None = None) -> str:
    """Render the built-in rental contract, embedding the signature image."""
    return render_to_string(CONTRACT_TEMPLATE, get_contract_context(rental, signature_data_url))


def build_placeholder_values(rental: Rental) -> dict[str, str]:
    """Flatten rental/vehicle/customer data into string placeholders."""
    customer = rental.customer
    vehicle = rental.vehicle
    business = BusinessProfile.load()

    values = {
        "customer.full_name": customer.full_name,
        "customer.email": customer.email,
        "customer.phone": customer.phone,
        "customer.address": customer.address,
        "customer.id_number": customer.id_number,
        "customer.driving_license": customer.driving_license,
        "vehicle.make": vehicle.make,
        "vehicle.model": vehicle.model,
        "vehicle.license_plate": vehicle.license_plate,
        "vehicle.vin": vehicle.vin,
        "vehicle.year": vehicle.year,
        "vehicle.label": str(vehicle),
        "rental.contract_number": rental.contract_number or "",
        "rental.start_at": _fmt_datetime(rental.start_at),
        "rental.end_at": _fmt_datetime(rental.end_at),
        "rental.duration": format_duration(rental.start_at, rental.end_at),
        "rental.total_price": _fmt_decimal(rental.total_price),
        "rental.deal_name": rental.deal_name,
        "business.name": business.name,
        "business.address": business.address,
        "business.ico": business.ico,
        "business.bank_account": business.bank_account,
        "meta.today": timezone.localdate().strftime("%d.%m.%Y"),
        "meta.generated_at": timezone.localtime().strftime("%d.%m.%Y %H:%M"),
    }

    return {key: "" if value is None else str(value) for key, value in values.items()}


_META_CHARSET = re.compile(r"(<meta\b[^>]*\bcharset=[\"']?)([\w-]+)", re.IGNORECASE)
_HEAD_OPEN = re.compile(r"<head\b[^>]*>", re.IGNORECASE)
_TOKEN = re.compile(r"\{\{\s*([\w.]+)\s*\}\}")

DOCX_CONTENT_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"


@dataclass(frozen=True)
class RenderedContract:
    content: bytes
    content_type: str
    extension: str

    @property
    def is_inline(self) -> bool:
        return self.extension == "html"


def _normalize_html_charset(html: str) -> str:
    """
    Make the document declare UTF-8.

    Word saves Czech HTML as windows-1250 but responses always go out as
    UTF-8, so an existing declaration is rewritten or a meta tag is added.
    """
    html, count = _META_CHARSET.subn(r"\1utf-8", html, count=1)
    if count:
        return html
    meta = '<meta charset="utf-8">'
    head = _HEAD_OPEN.search(html)
    if head is None:
        return meta + html
    return html[: head.end()] + meta + html[head.end() :]


def fill_placeholders(text: str, values: dict[str, str]) -> str:
    """Substitute ``{{ a.b }}`` and ``{{a_b}}`` tokens; unknown tokens stay."""

    def lookup(match):
        key = match.group(1)
        if key not in values:
            key = key.replace("_", ".", 1)
        return values.get(key, match.group(0))

    return _TOKEN.sub(lookup, text)


def placeholder_guide() -> list[dict]:
    return [
        {
            "title": title,
            "items": [
                {"token": f"{{{{ {key} }}}}", "alt": key.replace(".", "_"), "description": description}
                for key, description in items.items()
            ],
        }
        for title, items in PLACEHOLDER_GUIDE
    ]


def _prepare_html_tokens(body: str, context: dict) -> str:
    """
    Point placeholder tokens at the flattened context keys and turn tokens
    that resolve to nothing into literal text.
    """

    def rewrite(match):
        key = match.group(1)
        flat = key.replace(".", "_")
        if flat in context:
            return f"{{{{ {flat} }}}}"
        if key.split(".", 1)[0] in context:
            return match.group(0)
        inner = match.group(0)[2:-2]
        return f"{{% templatetag openvariable %}}{inner}{{% templatetag closevariable %}}"

    return _TOKEN.sub(rewrite, body)


def render_html_template(contract_template: ContractTemplate, rental: Rental) -> str:
    """
    Render a custom HTML template with the Django engine.

    Both ``{{ customer.full_name }}`` and ``{{customer_full_name}}`` resolve;
    tokens matching nothing are left in the output as written.
    """
    if not contract_template.body_html:
        raise ContractRenderError("The HTML template has no body.")
    context = get_contract_context(rental)
    context.update((key.replace(".", "_"), value) for key, value in build_placeholder_values(rental).items())
    body = _prepare_html_tokens(contract_template.body_html, context)
    try:
        template = engines["django"].from_string(body)
    except TemplateSyntaxError as exc:
        raise ContractRenderError(f"The HTML template is invalid: {exc}") from exc
    return _normalize_html_charset(template.render(context))


def render_html_to_pdf(html: str) -> bytes:
    """Convert HTML to PDF bytes using xhtml2pdf."""
    output = BytesIO()
    result = pisa.CreatePDF(html, dest=output, encoding="utf-8")
    if result.err:
        raise ContractRenderError("Could not render PDF from HTML.")
    return output.getvalue()


def render_contract_pdf(rental: Rental) -> bytes:
    """PDF of the contract stored at signing time."""
    html = rental.contract_html or render_contract_html(rental)
    return render_html_to_pdf(_normalize_html_charset(html))


def _read_template_file(contract_template: ContractTemplate) -> BytesIO:
    if not contract_template.file:
        raise ContractRenderError("The template has no uploaded file.")
    try:
        with contract_template.file.open("rb") as handle:
            return BytesIO(handle.read())
    except OSError as exc:
        logger.exception("Template file %s is unreadable", contract_template.file.name)
        raise ContractRenderError("The template file could not be read.") from exc


def _docx_paragraphs(document):
    yield from document.paragraphs
    for table in document.tables:
        for row in table.rows:
            for cell in row.cells:
                yield from cell.paragraphs
    for section in document.sections:
        yield from section.header.paragraphs
        yield from section.footer.paragraphs


def _fill_paragraph(paragraph, values: dict[str, str]) -> None:
    if "{{" not in paragraph.text:
        return
    # Tokens inside a single run keep that run's formatting.
    for run in paragraph.runs:
        if "{{" in run.text:
            run.text = fill_placeholders(run.text, values)
    filled = fill_placeholders(paragraph.text, values)
    if filled == paragraph.text:
        return
    # Word split a token over several runs; collapse them into the first one.
    runs = paragraph.runs
    if not runs:
        paragraph.text = filled
        return
    runs[0].text = filled
    for run in runs[1:]:
        run.text = ""


def render_docx(contract_template: ContractTemplate, rental: Rental) -> bytes:
    """Fill the tokens in body paragraphs, tables, headers and footers."""
    source = _read_template_file(contract_template)
    try:
        document = Document(source)
    except (BadZipFile, PackageNotFoundError, KeyError) as exc:
        raise ContractRenderError("The uploaded file is not a valid DOCX document.") from exc

    values = build_placeholder_values(rental)
    for paragraph in _docx_paragraphs(document):
        _fill_paragraph(paragraph, values)

    output = BytesIO()
    document.save(output)
    return output.getvalue()


def _fill_pdf_form(contract_template: ContractTemplate, rental: Rental) -> bytes:
    source = _read_template_file(contract_template)
    try:
        reader = PdfReader(source)
        writer = PdfWriter(clone_from=reader)
        has_fields = bool(reader.get_fields())
    except PdfReadError as exc:
        raise ContractRenderError("The uploaded file is not a valid PDF document.") from exc

    if has_fields:
        fields = {key.replace(".", "_"): value for key, value in build_placeholder_values(rental).items()}
        try:
            for page in writer.pages:
                writer.update_page_form_field_values(page, fields)
        except PyPdfError as exc:
            raise ContractRenderError("The PDF form fields could not be filled.") from exc
        writer.set_need_appearances_writer(True)
    else:
        logger.info("PDF template %s has no form fields; returning it unchanged", contract_template.pk)

    output = BytesIO()
    writer.write(output)
    return output.getvalue()


def render_pdf(contract_template: ContractTemplate, rental: Rental) -> bytes:
    if contract_template.file:
        return _fill_pdf_form(contract_template, rental)
    if contract_template.body_html:
        return render_html_to_pdf(render_html_template(contract_template, rental))
    raise ContractRenderError("A PDF template needs an uploaded PDF form or an HTML body.")


def render_contract_template(contract_template: ContractTemplate, rental: Rental) -> RenderedContract:
    """Produce the document for ``rental`` in the template's own format."""
    if contract_template.format == "html":
        html = render_html_template(contract_template, rental)
        return RenderedContract(html.encode("utf-8"), "text/html; charset=utf-8", "html")
    if contract_template.format == "docx":
        return RenderedContract(render_docx(contract_template, rental), DOCX_CONTENT_TYPE, "docx")
    if contract_template.format == "pdf":
        return RenderedContract(render_pdf(contract_template, rental), "application/pdf", "pdf")
    raise ContractRenderError(f"Unknown template format: {contract_template.format}")
