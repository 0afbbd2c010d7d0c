"""Syntactic validation of user-supplied field values."""
import re
from typing import Dict, Pattern, Tuple, Union

from formpilot.models import FieldType, ValidationResult

EMPTY_REASON = "empty"
FORMAT_REASON = "invalid_format"


class FieldValidator:
    """
    Accepts or rejects a raw value for a field type.

    Only the shape of the value is checked: a date such as 31/02/2024 is
    accepted. Types without a pattern accept any non-empty string.
    """

    PHONE_MIN_DIGITS = 10

    VALIDATIONS: Dict[FieldType, Tuple[Pattern[str], str]] = {
        FieldType.EMAIL: (
            re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$"),
            "Please provide a valid email address",
        ),
        FieldType.PHONE: (
            re.compile(r"^[\d\s\-+()]+$"),
            "Please provide a valid phone number (at least 10 digits)",
        ),
        FieldType.DATE: (
            re.compile(r"^\d{1,2}[/-]\d{1,2}[/-](?:\d{2}|\d{4})$"),
            "Please provide a date in format MM/DD/YYYY or DD-MM-YYYY",
        ),
        FieldType.SSN: (
            re.compile(r"^\d{3}-?\d{2}-?\d{4}$"),
            "Please provide a valid SSN (XXX-XX-XXXX)",
        ),
    }

    def validate(self, field_type: Union[FieldType, str], raw_value: str) -> ValidationResult:
        """Validate ``raw_value`` against ``field_type``. Never raises."""
        if raw_value is None or not str(raw_value).strip():
            return ValidationResult(valid=False, reason=EMPTY_REASON, message="This field cannot be empty")

        value = str(raw_value).strip()

        try:
            field_type = FieldType(field_type)
        except ValueError:
            field_type = FieldType.TEXT

        validation = self.VALIDATIONS.get(field_type)
        if validation:
            pattern, message = validation
            if not pattern.match(value):
                return ValidationResult(valid=False, reason=FORMAT_REASON, message=message)
            if field_type == FieldType.PHONE and sum(ch.isdigit() for ch in value) < self.PHONE_MIN_DIGITS:
                return ValidationResult(valid=False, reason=FORMAT_REASON, message=message)

        return ValidationResult(valid=True)
