import fitz  # PyMuPDF
import pytest

from formpilot.config import Config
from formpilot.models import FieldType, FormField, FormSchema


@pytest.fixture(autouse=True)
def offline_config(monkeypatch, tmp_path):
    """No external service is ever reached from the tests."""
    monkeypatch.setattr(Config, "NVIDIA_API_KEY", None)
    monkeypatch.setattr(Config, "AZURE_DOCUMENT_INTELLIGENCE_ENDPOINT", None)
    monkeypatch.setattr(Config, "AZURE_DOCUMENT_INTELLIGENCE_KEY", None)
    monkeypatch.setattr(Config, "UPLOAD_DIR", str(tmp_path / "uploads"))
    monkeypatch.setattr(Config, "OUTPUT_DIR", str(tmp_path / "output"))


def build_text_pdf(lines):
    doc = fitz.open()
    page = doc.new_page(width=612, height=792)
    for index, line in enumerate(lines):
        page.insert_text((72, 100 + index * 30), line, fontsize=12)
    data = doc.tobytes()
    doc.close()
    return data


def build_native_pdf(text_fields=("Email",), checkboxes=(), radios=(), comboboxes=None):
    doc = fitz.open()
    page = doc.new_page(width=612, height=792)
    top = 100
    for name in text_fields:
        widget = fitz.Widget()
        widget.field_type = fitz.PDF_WIDGET_TYPE_TEXT
        widget.field_name = name
        widget.field_value = ""
        widget.rect = fitz.Rect(100, top, 400, top + 20)
        page.add_widget(widget)
        top += 40
    for name in checkboxes:
        widget = fitz.Widget()
        widget.field_type = fitz.PDF_WIDGET_TYPE_CHECKBOX
        widget.field_name = name
        widget.field_value = False
        widget.rect = fitz.Rect(100, top, 115, top + 15)
        page.add_widget(widget)
        top += 40
    for name in radios:
        widget = fitz.Widget()
        widget.field_type = fitz.PDF_WIDGET_TYPE_RADIOBUTTON
        widget.field_name = name
        widget.field_value = False
        widget.rect = fitz.Rect(100, top, 115, top + 15)
        page.add_widget(widget)
        top += 40
    for name, choices in (comboboxes or {}).items():
        widget = fitz.Widget()
        widget.field_type = fitz.PDF_WIDGET_TYPE_COMBOBOX
        widget.field_name = name
        widget.choice_values = list(choices)
        widget.field_value = choices[0]
        widget.rect = fitz.Rect(100, top, 300, top + 20)
        page.add_widget(widget)
        top += 40
    data = doc.tobytes()
    doc.close()
    return data


@pytest.fixture
def text_pdf_bytes():
    return build_text_pdf(["Full Name: ____", "Email Address: ____"])


@pytest.fixture
def text_pdf_path(tmp_path, text_pdf_bytes):
    path = tmp_path / "application.pdf"
    path.write_bytes(text_pdf_bytes)
    return str(path)


@pytest.fixture
def native_pdf_path(tmp_path):
    path = tmp_path / "native.pdf"
    path.write_bytes(build_native_pdf(text_fields=("Email",), checkboxes=("agree",)))
    return str(path)


@pytest.fixture
def choice_pdf_path(tmp_path):
    path = tmp_path / "choices.pdf"
    path.write_bytes(build_native_pdf(text_fields=(), radios=("gender",), comboboxes={"country": ("US", "CA")}))
    return str(path)


@pytest.fixture
def png_path(tmp_path):
    pixmap = fitz.Pixmap(fitz.csRGB, fitz.IRect(0, 0, 200, 100), False)
    pixmap.clear_with(255)
    path = tmp_path / "scan.png"
    pixmap.save(str(path))
    return str(path)


@pytest.fixture
def three_field_schema():
    return FormSchema(fields=(
        FormField(id="field_1", label="Full Name", type=FieldType.NAME),
        FormField(id="field_2", label="Email Address", type=FieldType.EMAIL),
        FormField(id="field_3", label="Date of Birth", type=FieldType.DATE),
    ))
