"""Error taxonomy for intake, sessions and export."""
from typing import Optional


class FormPilotError(Exception):
    """Base error carrying a stable reason string."""

    reason = "formpilot_error"

    def __init__(self, message: str = "", cause: Optional[BaseException] = None):
        super().__init__(message or self.reason)
        self.message = message or self.reason
        self.cause = cause


class ExtractionFailed(FormPilotError):
    """Text could not be obtained from the uploaded document. No schema is created."""

    reason = "extraction_failed"


class EmptySchema(FormPilotError):
    """Detection produced no fields. Resolved internally by the generic fallback schema."""

    reason = "empty_schema"


class ValidationRejected(FormPilotError):
    """A value failed its field's syntactic check.

    Exception form of a rejection for callers that want one. The state
    machine never raises it: a rejected answer is reported as a re-prompt.
    """

    reason = "validation_rejected"

    def __init__(self, field_id: str, message: str):
        super().__init__(message)
        self.field_id = field_id


class SessionNotFound(FormPilotError):
    """Unknown or expired session id."""

    reason = "session_not_found"

    def __init__(self, session_id: str):
        super().__init__(f"Session not found: {session_id}")
        self.session_id = session_id


class FormIncomplete(FormPilotError):
    """Export was requested before every field was filled."""

    reason = "form_incomplete"

    def __init__(self, session_id: str):
        super().__init__("Form is not complete yet")
        self.session_id = session_id


class DocumentFillFailed(FormPilotError):
    """Export failed. The session stays intact and export may be retried."""

    reason = "document_fill_failed"


class InvalidGeometry(FormPilotError, ValueError):
    """Coordinate mapping was called with a degenerate source dimension."""

    reason = "invalid_geometry"
