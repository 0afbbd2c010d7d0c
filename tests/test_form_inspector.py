import pytest

from formpilot.errors import ExtractionFailed
from formpilot.models import ControlKind, NativeControl, SourceDocument
from formpilot.tools.form_inspector import FormInspector


def test_lists_controls_in_order(native_pdf_path):
    controls = FormInspector().inspect(SourceDocument(native_pdf_path, owns_file=False))

    assert controls == [
        NativeControl(name="Email", kind=ControlKind.TEXT),
        NativeControl(name="agree", kind=ControlKind.CHECKBOX),
    ]


def test_flat_pdf_is_not_a_form(text_pdf_path):
    assert FormInspector().inspect(SourceDocument(text_pdf_path, owns_file=False)) is None


def test_images_are_not_inspected(png_path):
    assert FormInspector().inspect(SourceDocument(png_path, owns_file=False)) is None


def test_unreadable_pdf(tmp_path):
    with pytest.raises(ExtractionFailed):
        FormInspector().inspect(SourceDocument(str(tmp_path / "missing.pdf")))
