import pytest

from formpilot.errors import ExtractionFailed
from formpilot.models import FieldType, SourceDocument
from formpilot.workflow import IntakeWorkflow


@pytest.fixture
def workflow():
    return IntakeWorkflow()


async def test_flat_pdf_uses_text_heuristics(workflow, text_pdf_path):
    schema = await workflow.run(SourceDocument(text_pdf_path, owns_file=False))

    assert schema.is_native_form is False
    assert [f.label for f in schema.fields] == ["Full Name", "Email Address"]
    assert [f.type for f in schema.fields] == [FieldType.NAME, FieldType.EMAIL]
    assert (schema.source_width, schema.source_height) == (612, 792)
    assert schema.fields[0].coordinates is not None
    assert "Full Name" in schema.extracted_text


async def test_interactive_pdf_uses_native_controls(workflow, native_pdf_path):
    schema = await workflow.run(SourceDocument(native_pdf_path, owns_file=False))

    assert schema.is_native_form is True
    assert [(f.label, f.type, f.source_field_name) for f in schema.fields] == [
        ("Email", FieldType.EMAIL, "Email"),
        ("Agree", FieldType.CHECKBOX, "agree"),
    ]


async def test_image_without_ocr_fails(workflow, png_path):
    with pytest.raises(ExtractionFailed):
        await workflow.run(SourceDocument(png_path, owns_file=False))


async def test_missing_document_fails(workflow, tmp_path):
    with pytest.raises(ExtractionFailed):
        await workflow.run(SourceDocument(str(tmp_path / "missing.pdf")))
