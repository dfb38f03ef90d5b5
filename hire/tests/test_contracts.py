from io import BytesIO

from django.contrib.auth import get_user_model
from django.contrib.messages import get_messages
from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import TestCase
from django.urls import reverse
from docx import Document
from pypdf import PdfReader, PdfWriter
from pypdf.generic import ArrayObject, DictionaryObject, FloatObject, NameObject, TextStringObject

from hire.exceptions import ContractRenderError
from hire.models import ContractTemplate
from hire.services.contract_renderer import (
    _normalize_html_charset,
    build_placeholder_values,
    fill_placeholders,
    placeholder_guide,
    render_contract_html,
    render_contract_template,
    render_html_template,
)
from hire.services.signatures import encode_data_url

from .helpers import TempMediaMixin, make_rental, signature_png


class ContractRendererTests(TestCase):
    def setUp(self):
        self.rental = make_rental()

    def test_built_in_contract_embeds_signature(self):
        data_url = encode_data_url(signature_png())
        html = render_contract_html(self.rental, data_url)
        self.assertIn(self.rental.contract_number, html)
        self.assertIn(self.rental.vehicle.license_plate, html)
        self.assertIn(data_url, html)

    def test_placeholder_values(self):
        values = build_placeholder_values(self.rental)
        self.assertEqual(values["customer.full_name"], "Jan Novák")
        self.assertEqual(values["rental.total_price"], "1200")
        self.assertEqual(values["rental.start_at"], "01.05.2030 09:00")

    def test_fill_placeholders_accepts_both_spellings(self):
        values = build_placeholder_values(self.rental)
        plate = self.rental.vehicle.license_plate
        self.assertEqual(fill_placeholders("SPZ: {{ vehicle.license_plate }}", values), f"SPZ: {plate}")
        self.assertEqual(fill_placeholders("SPZ: {{vehicle_license_plate}}", values), f"SPZ: {plate}")
        self.assertEqual(fill_placeholders("{{ unknown.key }}", values), "{{ unknown.key }}")

    def test_unknown_format_is_rejected(self):
        template = ContractTemplate(name="Divná", format="odt")
        with self.assertRaises(ContractRenderError):
            render_contract_template(template, self.rental)

    def test_empty_html_body_is_rejected(self):
        template = ContractTemplate.objects.create(name="Prázdná", format="html", body_html="")
        with self.assertRaises(ContractRenderError):
            render_html_template(template, self.rental)

    def test_placeholder_guide_groups(self):
        guide = placeholder_guide()
        self.assertEqual(guide[0]["title"], "Nájemce")
        self.assertEqual(guide[0]["items"][0]["token"], "{{ customer.full_name }}")

    def test_custom_html_template(self):
        template = ContractTemplate.objects.create(
            name="Krátká", format="html", body_html="<html><head></head><body>{{ customer.full_name }}</body></html>"
        )
        html = render_html_template(template, self.rental)
        self.assertIn("Jan Novák", html)
        self.assertIn('<meta charset="utf-8">', html)

    def test_html_template_accepts_both_spellings(self):
        template = ContractTemplate.objects.create(
            name="Tokeny",
            format="html",
            body_html="<p>N:{{customer_full_name}}|D:{{ rental.duration }}|X:{{ unknown.key }}</p>",
        )
        html = render_html_template(template, self.rental)
        duration = build_placeholder_values(self.rental)["rental.duration"]
        self.assertIn("N:Jan Novák", html)
        self.assertIn(f"D:{duration}", html)
        self.assertIn("X:{{ unknown.key }}", html)

    def test_charset_is_rewritten(self):
        html = '<html><head><meta http-equiv="Content-Type" content="text/html; charset=windows-1250"></head></html>'
        self.assertIn("charset=utf-8", _normalize_html_charset(html))


class ContractViewTests(TempMediaMixin, TestCase):
    def setUp(self):
        self.user = get_user_model().objects.create_user(username="tester", password="pass")
        self.client.force_login(self.user)
        self.rental = make_rental()

    def test_docx_template_is_filled(self):
        document = Document()
        document.add_paragraph("Nájemce: {{ customer.full_name }}")
        buffer = BytesIO()
        document.save(buffer)
        template = ContractTemplate.objects.create(
            name="Word",
            format="docx",
            file=SimpleUploadedFile("smlouva.docx", buffer.getvalue()),
        )

        response = self.client.get(reverse("hire:generate_contract", args=[self.rental.pk, template.pk]))
        self.assertEqual(response.status_code, 200)
        filled = Document(BytesIO(response.content))
        self.assertEqual(filled.paragraphs[0].text, "Nájemce: Jan Novák")

    def test_docx_token_split_over_runs_is_filled(self):
        document = Document()
        split = document.add_paragraph("Nájemce: ")
        split.add_run("{{ customer.")
        split.add_run("full_name }}").bold = True
        whole = document.add_paragraph()
        whole.add_run("{{ vehicle.license_plate }}").bold = True
        buffer = BytesIO()
        document.save(buffer)
        template = ContractTemplate.objects.create(
            name="Word", format="docx", file=SimpleUploadedFile("smlouva.docx", buffer.getvalue())
        )

        response = self.client.get(reverse("hire:generate_contract", args=[self.rental.pk, template.pk]))
        filled = Document(BytesIO(response.content))
        self.assertEqual(filled.paragraphs[0].text, "Nájemce: Jan Novák")
        plate_run = filled.paragraphs[1].runs[0]
        self.assertEqual(plate_run.text, self.rental.vehicle.license_plate)
        self.assertTrue(plate_run.bold)

    def test_pdf_form_fields_are_filled(self):
        writer = PdfWriter()
        page = writer.add_blank_page(width=300, height=200)
        field = DictionaryObject(
            {
                NameObject("/Type"): NameObject("/Annot"),
                NameObject("/Subtype"): NameObject("/Widget"),
                NameObject("/FT"): NameObject("/Tx"),
                NameObject("/T"): TextStringObject("customer_full_name"),
                NameObject("/V"): TextStringObject(""),
                NameObject("/DA"): TextStringObject("/Helv 10 Tf 0 g"),
                NameObject("/Rect"): ArrayObject([FloatObject(10), FloatObject(10), FloatObject(250), FloatObject(40)]),
            }
        )
        field_ref = writer._add_object(field)
        page[NameObject("/Annots")] = ArrayObject([field_ref])
        writer._root_object[NameObject("/AcroForm")] = DictionaryObject(
            {NameObject("/Fields"): ArrayObject([field_ref])}
        )
        buffer = BytesIO()
        writer.write(buffer)
        template = ContractTemplate.objects.create(
            name="Formulář", format="pdf", file=SimpleUploadedFile("formular.pdf", buffer.getvalue())
        )

        response = self.client.get(reverse("hire:generate_contract", args=[self.rental.pk, template.pk]))
        self.assertEqual(response["Content-Type"], "application/pdf")
        fields = PdfReader(BytesIO(response.content)).get_form_text_fields()
        self.assertEqual(fields["customer_full_name"], "Jan Novák")

    def test_contract_pdf(self):
        self.rental.contract_html = render_contract_html(self.rental)
        self.rental.save()
        response = self.client.get(reverse("hire:contract_pdf", args=[self.rental.pk]))
        self.assertEqual(response["Content-Type"], "application/pdf")
        self.assertTrue(response.content.startswith(b"%PDF"))

    def test_contract_without_html_is_not_found(self):
        response = self.client.get(reverse("hire:contract_detail", args=[self.rental.pk]))
        self.assertEqual(response.status_code, 404)

    def test_pdf_template_without_fields_is_returned(self):
        writer = PdfWriter()
        writer.add_blank_page(width=200, height=200)
        buffer = BytesIO()
        writer.write(buffer)
        template = ContractTemplate.objects.create(
            name="PDF", format="pdf", file=SimpleUploadedFile("smlouva.pdf", buffer.getvalue())
        )

        response = self.client.get(reverse("hire:generate_contract", args=[self.rental.pk, template.pk]))
        self.assertEqual(response["Content-Type"], "application/pdf")
        self.assertIn("attachment", response["Content-Disposition"])
        self.assertEqual(len(PdfReader(BytesIO(response.content)).pages), 1)

    def test_html_template_is_shown_inline(self):
        template = ContractTemplate.objects.create(
            name="HTML", format="html", body_html="<p>{{ vehicle.license_plate }}</p>"
        )
        response = self.client.get(reverse("hire:generate_contract", args=[self.rental.pk, template.pk]))
        self.assertContains(response, self.rental.vehicle.license_plate)
        self.assertFalse(response.has_header("Content-Disposition"))

    def test_broken_docx_redirects_with_message(self):
        template = ContractTemplate.objects.create(
            name="Rozbitá", format="docx", file=SimpleUploadedFile("smlouva.docx", b"not a zip")
        )
        response = self.client.get(reverse("hire:generate_contract", args=[self.rental.pk, template.pk]))
        self.assertRedirects(response, reverse("hire:rental_detail", args=[self.rental.pk]))
        messages = [str(message) for message in get_messages(response.wsgi_request)]
        self.assertIn("The uploaded file is not a valid DOCX document.", messages)
