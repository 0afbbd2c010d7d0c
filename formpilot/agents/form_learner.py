"""Form Learning Agent that turns an uploaded document into a field schema.

This agent is the intake step of a fill session: it reads the document
text, looks for native interactive controls, and builds the ordered schema
that the question/answer session will walk through.
"""

import logging
from typing import List, Optional, Sequence

from formpilot.models import ExtractionResult, FormSchema, NativeControl, SourceDocument
from formpilot.tools.document_reader import DocumentReader
from formpilot.tools.field_extractor import FieldExtractor
from formpilot.tools.form_inspector import FormInspector

logger = logging.getLogger(__name__)

EXTRACTED_TEXT_PREVIEW = 500


class FormLearningAgent:
    """
    Form Learning Agent that:
    1. Extracts text and word boxes from the uploaded document
    2. Detects native interactive form controls
    3. Builds the field schema from controls, or from text heuristics
    """

    def __init__(
        self,
        reader: Optional[DocumentReader] = None,
        inspector: Optional[FormInspector] = None,
        extractor: Optional[FieldExtractor] = None
    ):
        self._reader = reader
        self.inspector = inspector or FormInspector()
        self.extractor = extractor or FieldExtractor()

    @property
    def reader(self) -> DocumentReader:
        if self._reader is None:
            self._reader = DocumentReader()
        return self._reader

    def read(self, source: SourceDocument) -> ExtractionResult:
        """Text and word boxes of ``source``. Raises ExtractionFailed."""
        logger.info(f"📚 Reading {source.media_type} document")
        return self.reader.read(source)

    def inspect(self, source: SourceDocument) -> Optional[List[NativeControl]]:
        """Native controls of ``source``, None when it is not an interactive form."""
        return self.inspector.inspect(source)

    def learn_from_text(self, extraction: ExtractionResult) -> FormSchema:
        """Schema inferred from text heuristics."""
        fields = self.extractor.extract(extraction.text, extraction.words)
        return FormSchema(
            fields=tuple(fields),
            is_native_form=False,
            source_width=extraction.source_width,
            source_height=extraction.source_height,
            extracted_text=extraction.text[:EXTRACTED_TEXT_PREVIEW],
        )

    def learn_from_controls(
        self,
        controls: Sequence[NativeControl],
        extraction: Optional[ExtractionResult] = None
    ) -> FormSchema:
        """Schema built from native controls, falling back to text when there are none."""
        if not controls:
            return self.learn_from_text(extraction or ExtractionResult(text=""))

        fields = self.extractor.extract_native(controls)
        text = extraction.text if extraction else ""
        return FormSchema(
            fields=tuple(fields),
            is_native_form=True,
            source_width=extraction.source_width if extraction else None,
            source_height=extraction.source_height if extraction else None,
            extracted_text=text[:EXTRACTED_TEXT_PREVIEW],
        )
