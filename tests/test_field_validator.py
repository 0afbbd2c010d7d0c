import pytest

from formpilot.models import FieldType
from formpilot.tools.field_validator import FieldValidator


@pytest.fixture
def validator():
    return FieldValidator()


def test_email(validator):
    assert validator.validate("email", "a@b.com").valid is True
    result = validator.validate("email", "not-an-email")
    assert result.valid is False
    assert result.reason == "invalid_format"
    assert result.message == "Please provide a valid email address"


@pytest.mark.parametrize("field_type", list(FieldType))
@pytest.mark.parametrize("value", ["", "   ", None])
def test_empty_is_always_rejected(validator, field_type, value):
    result = validator.validate(field_type, value)

    assert result.valid is False
    assert result.reason == "empty"
    assert result.message == "This field cannot be empty"


@pytest.mark.parametrize("value, valid", [
    ("555-123-4567", True),
    ("+1 (555) 123 4567", True),
    ("12345", False),
    ("555-CALL-NOW", False),
])
def test_phone(validator, value, valid):
    assert validator.validate(FieldType.PHONE, value).valid is valid


@pytest.mark.parametrize("value, valid", [
    ("12/31/2024", True),
    ("1-2-24", True),
    ("31/02/2024", True),
    ("2024-12-31", False),
    ("tomorrow", False),
])
def test_date_checks_shape_only(validator, value, valid):
    assert validator.validate(FieldType.DATE, value).valid is valid


@pytest.mark.parametrize("value, valid", [
    ("123-45-6789", True),
    ("123456789", True),
    ("12-345-6789", False),
])
def test_ssn(validator, value, valid):
    assert validator.validate(FieldType.SSN, value).valid is valid


def test_value_is_trimmed_before_matching(validator):
    assert validator.validate(FieldType.EMAIL, "  a@b.com  ").valid is True


@pytest.mark.parametrize("field_type", [FieldType.TEXT, FieldType.NAME, FieldType.SIGNATURE, "unknown"])
def test_free_text_types_accept_anything(validator, field_type):
    assert validator.validate(field_type, "anything at all").valid is True
