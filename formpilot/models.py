"""Data models for the FormPilot form filling service."""
import os
import logging
from datetime import datetime
from enum import Enum
from typing import Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

logger = logging.getLogger(__name__)


class FieldType(str, Enum):
    """Closed set of field types a detected slot can take."""
    NAME = "name"
    EMAIL = "email"
    PHONE = "phone"
    ADDRESS = "address"
    DATE = "date"
    SSN = "ssn"
    GENDER = "gender"
    AGE = "age"
    GRADE = "grade"
    SCHOOL = "school"
    PARENT = "parent"
    OCCUPATION = "occupation"
    INCOME = "income"
    RELIGION = "religion"
    NATIONALITY = "nationality"
    SIGNATURE = "signature"
    CHECKBOX = "checkbox"
    TEXT = "text"


class ControlKind(str, Enum):
    """Kinds of native interactive form controls."""
    TEXT = "text"
    CHECKBOX = "checkbox"
    RADIO_GROUP = "radio_group"
    DROPDOWN = "dropdown"


class SessionState(str, Enum):
    """States of a fill session."""
    COLLECTING = "collecting"
    COMPLETE = "complete"


class BoundingBox(BaseModel):
    """Axis-aligned box in source space (origin top-left, y grows downward)."""
    model_config = ConfigDict(frozen=True)

    x: float
    y: float
    width: float = 0.0
    height: float = 0.0

    @property
    def right(self) -> float:
        return self.x + self.width


class Coordinates(BaseModel):
    """Anchor box of a label plus the point where its value should be drawn."""
    model_config = ConfigDict(frozen=True)

    x: float
    y: float
    width: float
    height: float
    input_x: float
    input_y: float

    @property
    def input_point(self) -> BoundingBox:
        return BoundingBox(x=self.input_x, y=self.input_y)


class WordBox(BaseModel):
    """A recognized word with its bounding box."""
    model_config = ConfigDict(frozen=True)

    text: str
    bounding_box: BoundingBox


class FormField(BaseModel):
    """One detected fillable slot."""
    model_config = ConfigDict(frozen=True)

    id: str
    label: str
    type: FieldType = FieldType.TEXT
    required: bool = True
    coordinates: Optional[Coordinates] = None
    source_field_name: Optional[str] = None


class FormSchema(BaseModel):
    """Ordered, immutable set of fields detected in one document."""
    model_config = ConfigDict(frozen=True)

    fields: Tuple[FormField, ...]
    is_native_form: bool = False
    source_width: Optional[float] = None
    source_height: Optional[float] = None
    extracted_text: str = ""

    @property
    def total_fields(self) -> int:
        return len(self.fields)

    def field_index(self, field_id: str) -> int:
        """Position of a field in declared order, or -1."""
        for index, field in enumerate(self.fields):
            if field.id == field_id:
                return index
        return -1


class NativeControl(BaseModel):
    """A named control of an interactive PDF form."""
    model_config = ConfigDict(frozen=True)

    name: str
    kind: ControlKind
    options: Tuple[str, ...] = ()
    page_number: int = 1


class ExtractionResult(BaseModel):
    """Output of the text/word extraction collaborator."""
    text: str
    words: Optional[List[WordBox]] = None
    source_width: Optional[float] = None
    source_height: Optional[float] = None
    page_count: int = 1
    extraction_method: str = "unknown"


class ValidationResult(BaseModel):
    """Outcome of checking one candidate value."""
    valid: bool
    reason: Optional[str] = None
    message: str = "Valid"


class HistoryTurn(BaseModel):
    """One exchanged conversational turn."""
    model_config = ConfigDict(frozen=True)

    role: Literal["user", "assistant"]
    content: str
    timestamp: datetime = Field(default_factory=datetime.now)


class QuestionResponse(BaseModel):
    """A question (or completion notice) emitted to the user.

    Uses camelCase aliases on the wire, matching the JSON the question
    generation service is asked to produce.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    question: str
    field_id: Optional[str] = None
    field_label: Optional[str] = None
    field_type: Optional[str] = None
    is_complete: bool = False
    validation_error: bool = False
    source: Literal["llm", "fallback", "engine"] = "engine"


class FillResult(BaseModel):
    """A rendered, serialized document."""
    content: bytes
    strategy: Literal["native_form", "overlay", "summary"]
    filled_fields: Dict[str, str] = {}
    skipped_fields: List[str] = []
    page_count: int = 1


class SourceDocument:
    """Reference to an uploaded document held by a session until export or disposal.

    Releasing deletes the backing file when the reference owns it. Releasing
    twice is a no-op.
    """

    MEDIA_TYPES = {
        ".pdf": "application/pdf",
        ".png": "image/png",
        ".jpg": "image/jpeg",
        ".jpeg": "image/jpeg",
    }

    def __init__(self, path: str, media_type: Optional[str] = None, owns_file: bool = True):
        self.path = path
        self.media_type = media_type or self.guess_media_type(path)
        self.owns_file = owns_file
        self._released = False

    @classmethod
    def guess_media_type(cls, path: str) -> str:
        ext = os.path.splitext(path)[1].lower()
        return cls.MEDIA_TYPES.get(ext, "application/octet-stream")

    @property
    def is_pdf(self) -> bool:
        return "pdf" in self.media_type

    @property
    def is_image(self) -> bool:
        return self.media_type.startswith("image/")

    @property
    def released(self) -> bool:
        return self._released

    def read_bytes(self) -> bytes:
        if self._released:
            raise FileNotFoundError(f"Source document already released: {self.path}")
        with open(self.path, "rb") as f:
            return f.read()

    def release(self) -> None:
        if self._released:
            return
        self._released = True
        if self.owns_file:
            try:
                os.unlink(self.path)
            except FileNotFoundError:
                pass
            except OSError as e:
                logger.warning(f"⚠️ Failed to delete source document {self.path}: {e}")

    def __repr__(self) -> str:
        return f"SourceDocument(path={self.path!r}, media_type={self.media_type!r}, released={self._released})"


class FillSession(BaseModel):
    """Mutable state of one document-filling conversation."""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    session_id: str
    form_schema: FormSchema
    values: Dict[str, str] = {}
    cursor: int = 0
    complete: bool = False
    history: List[HistoryTurn] = []
    source_document: Optional[SourceDocument] = None
    created_at: datetime = Field(default_factory=datetime.now)
    last_activity: datetime = Field(default_factory=datetime.now)

    @property
    def state(self) -> SessionState:
        return SessionState.COMPLETE if self.complete else SessionState.COLLECTING

    @property
    def current_field(self) -> Optional[FormField]:
        if self.cursor >= len(self.form_schema.fields):
            return None
        return self.form_schema.fields[self.cursor]

    @property
    def progress(self) -> Dict[str, int]:
        return {"total": self.form_schema.total_fields, "filled": len(self.values)}


GENERIC_FALLBACK_FIELDS: Tuple[FormField, ...] = (
    FormField(id="field_1", label="Full Name", type=FieldType.NAME, required=True),
    FormField(id="field_2", label="Email Address", type=FieldType.EMAIL, required=True),
    FormField(id="field_3", label="Phone Number", type=FieldType.PHONE, required=True),
    FormField(id="field_4", label="Address", type=FieldType.ADDRESS, required=False),
    FormField(id="field_5", label="Date", type=FieldType.DATE, required=True),
)
