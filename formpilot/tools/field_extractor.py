"""Heuristic detection of fillable fields from extracted document text.

Two passes run over the text. The primary pass looks for lines carrying a
field indicator (colon, underscore run, bracket, trailing blank) and takes the
text before the indicator as the label. When fewer than five fields are found,
a secondary pass rescans every line against the keyword table directly. Types
come from an ordered keyword table where the first matching entry wins.

Interactive PDFs skip the heuristics: each native control becomes one field.
"""

import logging
import re
from dataclasses import dataclass
from typing import List, Optional, Pattern, Sequence, Tuple

from formpilot.errors import EmptySchema
from formpilot.models import (
    ControlKind,
    Coordinates,
    FieldType,
    FormField,
    GENERIC_FALLBACK_FIELDS,
    NativeControl,
    WordBox,
)

logger = logging.getLogger(__name__)


# Evaluated top to bottom, first match wins. More specific types sit above
# the broader ones they overlap with ("Email Address" is email, "School Name"
# is school, "Parent Signature" is signature).
TYPE_PATTERNS: List[Tuple[FieldType, Pattern[str]]] = [
    (FieldType.SIGNATURE, re.compile(r"\b(signature|sign\s*here|signed)\b", re.IGNORECASE)),
    (FieldType.EMAIL, re.compile(r"\b(e-?mail|email\s*address)\b", re.IGNORECASE)),
    (FieldType.PHONE, re.compile(r"\b(phone|telephone|mobile|cell|tel|contact\s*(no|number))\b", re.IGNORECASE)),
    (FieldType.SSN, re.compile(r"\b(ssn|social\s*security|tax\s*id)\b", re.IGNORECASE)),
    (FieldType.PARENT, re.compile(r"\b(parents?|guardian|father|mother)\b", re.IGNORECASE)),
    (FieldType.SCHOOL, re.compile(r"\b(school|college|university|institution|academy)\b", re.IGNORECASE)),
    (FieldType.NAME, re.compile(r"\b(name|full\s*name|first\s*name|last\s*name|surname|forename)\b", re.IGNORECASE)),
    (FieldType.DATE, re.compile(r"\b(date|dob|birth\s*date|date\s*of\s*birth)\b", re.IGNORECASE)),
    (FieldType.AGE, re.compile(r"\bage\b", re.IGNORECASE)),
    (FieldType.GENDER, re.compile(r"\b(gender|sex)\b", re.IGNORECASE)),
    (FieldType.GRADE, re.compile(r"\b(grade|class|standard|year\s*level)\b", re.IGNORECASE)),
    (FieldType.OCCUPATION, re.compile(r"\b(occupation|profession|job|employer|employment|designation)\b", re.IGNORECASE)),
    (FieldType.INCOME, re.compile(r"\b(income|salary|earnings|wages)\b", re.IGNORECASE)),
    (FieldType.RELIGION, re.compile(r"\b(religion|religious|faith)\b", re.IGNORECASE)),
    (FieldType.NATIONALITY, re.compile(r"\b(nationality|citizenship|citizen)\b", re.IGNORECASE)),
    (FieldType.ADDRESS, re.compile(r"\b(address|street|city|state|zip|postal\s*code|country)\b", re.IGNORECASE)),
    (FieldType.CHECKBOX, re.compile(r"\b(check|select|choose|mark|tick)\b", re.IGNORECASE)),
]

# Words that open headings and instructions ("Section B", "Please sign below").
# A label starting with one of these is never a field.
HEADING_WORDS = frozenset({
    "section", "part", "page", "instructions", "instruction", "note", "notes",
    "please", "kindly",
})

# Rejected only as the whole label: "Amount Paid" and "Total Annual Income" are fields.
STRUCTURAL_WORDS = HEADING_WORDS | frozenset({"form", "total", "subtotal", "amount"})

STOP_WORDS = STRUCTURAL_WORDS | frozenset({
    "a", "an", "the", "of", "in", "on", "at", "to", "for", "by", "with", "from",
    "and", "or", "as", "is", "if", "into", "per",
})

FIELD_INDICATOR = re.compile(r"[:_\[\]()]")
SEGMENT_BREAK = re.compile(r"_{2,}|[.\-]{3,}|:")
BLANK_RUN = re.compile(r"[.\-]{3,}")
TRAILING_BLANK = re.compile(r"[._\-]{3,}\s*$")
ENUMERATION_MARKER = re.compile(
    r"^\s*(?:\(?(?:\d{1,3}|[ivxIVX]{2,4})[.)]\s*|\(?[a-zA-Z][.)]\s+|[-•*·)]+\s*)"
)
TRAILING_ASTERISKS = re.compile(r"\s*\*+\s*$")
OPTIONAL_MARKER = re.compile(r"\b(optional|if\s+applicable)\b", re.IGNORECASE)
TRAILING_PUNCTUATION = ".,:;!?*_-()[]\"' "

MIN_LINE_LENGTH = 2
MAX_LINE_LENGTH = 150
MIN_LABEL_LENGTH = 2
MAX_LABEL_LENGTH = 80
SECONDARY_PASS_THRESHOLD = 5
SECONDARY_WINDOW = 3
INPUT_X_OFFSET = 10.0


@dataclass
class _Candidate:
    label: str
    field_type: FieldType
    required: bool = True
    source_field_name: Optional[str] = None


def classify(text: str) -> Optional[FieldType]:
    """Return the first type whose keyword pattern matches ``text``."""
    for field_type, pattern in TYPE_PATTERNS:
        if pattern.search(text):
            return field_type
    return None


def humanize_control_name(name: str) -> str:
    """Turn ``applicantFirst_name`` into ``Applicant First name``."""
    spaced = re.sub(r"([a-z0-9])([A-Z])", r"\1 \2", name)
    spaced = re.sub(r"([A-Z]+)([A-Z][a-z])", r"\1 \2", spaced)
    spaced = " ".join(spaced.replace("_", " ").split())
    if not spaced:
        return name
    return spaced[0].upper() + spaced[1:]


class FieldExtractor:
    """Builds the ordered field list of a document from raw text and optional word boxes."""

    def extract(self, text: str, words: Optional[Sequence[WordBox]] = None) -> List[FormField]:
        """
        Detect fields in ``text``.

        Args:
            text: Plain text of the document
            words: Recognized words with bounding boxes, used to anchor labels

        Returns:
            Fields with contiguous ids ``field_1..field_n``. Never empty: the
            generic five-field fallback is returned when nothing is detected.
        """
        try:
            fields = self._detect(text, words)
        except EmptySchema:
            logger.info("⚠️ No form fields detected, using generic fallback fields")
            return list(GENERIC_FALLBACK_FIELDS)

        logger.info(f"📋 Detected {len(fields)} form fields")
        return fields

    def _detect(self, text: str, words: Optional[Sequence[WordBox]]) -> List[FormField]:
        lines = [line.strip() for line in (text or "").splitlines() if line.strip()]

        candidates = self._primary_pass(lines)
        logger.debug(f"Primary pass detected {len(candidates)} fields")

        if len(candidates) < SECONDARY_PASS_THRESHOLD:
            candidates = self._secondary_pass(lines, candidates)
            logger.debug(f"Secondary pass raised total to {len(candidates)} fields")

        fields = self._build_fields(candidates, words)
        if not fields:
            raise EmptySchema("No form fields detected")
        return fields

    def extract_native(
        self,
        controls: Optional[Sequence[NativeControl]],
        fallback_text: str = "",
        words: Optional[Sequence[WordBox]] = None
    ) -> List[FormField]:
        """
        Build fields from the controls of an interactive form.

        Falls back to :meth:`extract` on ``fallback_text`` when there are no controls.
        """
        if not controls:
            logger.info("📄 No native form controls, using text heuristics")
            return self.extract(fallback_text, words)

        candidates = []
        for control in controls:
            label = humanize_control_name(control.name)
            if control.kind in (ControlKind.CHECKBOX, ControlKind.RADIO_GROUP):
                field_type = FieldType.CHECKBOX
            elif control.kind == ControlKind.DROPDOWN:
                field_type = FieldType.TEXT
            else:
                field_type = classify(label) or FieldType.TEXT
            candidates.append(_Candidate(
                label=label,
                field_type=field_type,
                required=True,
                source_field_name=control.name,
            ))

        fields = self._build_fields(candidates, None)
        logger.info(f"📋 Built {len(fields)} fields from native form controls")
        return fields if fields else list(GENERIC_FALLBACK_FIELDS)

    def _primary_pass(self, lines: List[str]) -> List[_Candidate]:
        """Lines carrying a field indicator."""
        candidates = []

        for line in lines:
            if not MIN_LINE_LENGTH <= len(line) <= MAX_LINE_LENGTH:
                continue

            body = ENUMERATION_MARKER.sub("", line, count=1)
            if not (FIELD_INDICATOR.search(body) or TRAILING_BLANK.search(body)):
                continue

            cut = len(body)
            for pattern in (FIELD_INDICATOR, BLANK_RUN, TRAILING_BLANK):
                match = pattern.search(body)
                if match:
                    cut = min(cut, match.start())

            label = self._clean_label(body[:cut])
            if not self._is_acceptable_label(label):
                continue

            field_type = classify(label) or classify(line) or FieldType.TEXT
            candidates.append(_Candidate(
                label=label,
                field_type=field_type,
                required=not OPTIONAL_MARKER.search(line),
            ))

        return candidates

    def _secondary_pass(self, lines: List[str], candidates: List[_Candidate]) -> List[_Candidate]:
        """
        Keyword scan without indicators, for sparse documents.

        Blank runs and colons split a line into segments, so
        "Signature ____ Date ____" yields two labels.
        """
        result = list(candidates)
        seen = {candidate.label.lower() for candidate in candidates}

        for line in lines:
            for segment in SEGMENT_BREAK.split(line):
                if not segment.strip():
                    continue

                for field_type, pattern in TYPE_PATTERNS:
                    match = pattern.search(segment)
                    if not match:
                        continue

                    label = self._window_label(segment, match.start())
                    if len(label) >= MIN_LABEL_LENGTH and not self._already_seen(label, seen):
                        result.append(_Candidate(
                            label=label,
                            field_type=field_type,
                            required=not OPTIONAL_MARKER.search(segment),
                        ))
                        seen.add(label.lower())
                    break

        return result

    @staticmethod
    def _already_seen(label: str, seen: set) -> bool:
        """Whether ``label`` equals, or is part of, a label found earlier."""
        lowered = f" {label.lower()} "
        return any(lowered in f" {existing} " for existing in seen)

    def _window_label(self, line: str, position: int) -> str:
        """Up to three words centred on the word holding ``position``."""
        tokens = [
            m for m in re.finditer(r"\S+", line)
            if any(ch.isalnum() for ch in m.group())
        ]
        center = 0
        for index, token in enumerate(tokens):
            if token.start() <= position < token.end():
                center = index
                break

        start = max(0, center - (SECONDARY_WINDOW // 2))
        window = tokens[start:start + SECONDARY_WINDOW]
        label = self._clean_label(" ".join(token.group() for token in window))
        return label.rstrip(TRAILING_PUNCTUATION)

    def _clean_label(self, raw: str) -> str:
        label = ENUMERATION_MARKER.sub("", raw.strip(), count=1)
        label = TRAILING_ASTERISKS.sub("", label)
        return " ".join(label.split())

    def _is_acceptable_label(self, label: str) -> bool:
        if not MIN_LABEL_LENGTH <= len(label) <= MAX_LABEL_LENGTH:
            return False

        lowered = label.lower()
        if lowered in STOP_WORDS:
            return False

        first_word = lowered.split()[0].strip(TRAILING_PUNCTUATION)
        return first_word not in HEADING_WORDS

    def _build_fields(
        self,
        candidates: List[_Candidate],
        words: Optional[Sequence[WordBox]]
    ) -> List[FormField]:
        """Deduplicate by label, assign contiguous ids and anchor coordinates."""
        fields: List[FormField] = []
        seen = set()

        for candidate in candidates:
            key = candidate.label.lower()
            if key in seen:
                continue
            seen.add(key)

            fields.append(FormField(
                id=f"field_{len(fields) + 1}",
                label=candidate.label,
                type=candidate.field_type,
                required=candidate.required,
                coordinates=self._locate(candidate.label, words) if words else None,
                source_field_name=candidate.source_field_name,
            ))

        return fields

    def _locate(self, label: str, words: Sequence[WordBox]) -> Optional[Coordinates]:
        """Anchor ``label`` at the first recognized word containing one of its tokens."""
        tokens = [
            token.strip(TRAILING_PUNCTUATION).lower()
            for token in label.split()
        ]
        tokens = [token for token in tokens if len(token) >= 2]
        if not tokens:
            return None

        for word in words:
            text = word.text.lower()
            if any(token in text for token in tokens):
                box = word.bounding_box
                return Coordinates(
                    x=box.x,
                    y=box.y,
                    width=box.width,
                    height=box.height,
                    input_x=box.right + INPUT_X_OFFSET,
                    input_y=box.y,
                )

        return None
