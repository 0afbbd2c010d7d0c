import pytest

from formpilot import errors


@pytest.mark.parametrize("error, reason", [
    (errors.ExtractionFailed("no text"), "extraction_failed"),
    (errors.EmptySchema(), "empty_schema"),
    (errors.ValidationRejected("field_2", "Please provide a valid email address"), "validation_rejected"),
    (errors.SessionNotFound("abc"), "session_not_found"),
    (errors.FormIncomplete("abc"), "form_incomplete"),
    (errors.DocumentFillFailed("broken"), "document_fill_failed"),
    (errors.InvalidGeometry("zero width"), "invalid_geometry"),
])
def test_stable_reasons(error, reason):
    assert isinstance(error, errors.FormPilotError)
    assert error.reason == reason


def test_cause_is_kept():
    cause = OSError("disk")

    error = errors.DocumentFillFailed("Failed to read source document", cause=cause)

    assert error.cause is cause
    assert str(error) == "Failed to read source document"


def test_session_not_found_message():
    error = errors.SessionNotFound("abc")

    assert error.session_id == "abc"
    assert error.message == "Session not found: abc"


def test_validation_rejected_names_field():
    assert errors.ValidationRejected("field_2", "bad").field_id == "field_2"
