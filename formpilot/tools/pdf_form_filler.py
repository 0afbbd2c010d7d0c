"""PDF rendering of collected values onto the original document."""
import io
import logging
from datetime import datetime
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

import fitz  # PyMuPDF
from reportlab.lib.pagesizes import letter
from reportlab.pdfbase.pdfmetrics import stringWidth
from reportlab.pdfgen import canvas

from formpilot.errors import DocumentFillFailed, InvalidGeometry
from formpilot.models import (
    ControlKind,
    FieldType,
    FillResult,
    FormField,
    FormSchema,
    NativeControl,
    SourceDocument,
)
from formpilot.tools.coordinate_mapper import CoordinateMapper
from formpilot.tools.form_inspector import collect_controls, radio_option

logger = logging.getLogger(__name__)

TRUTHY_VALUES = frozenset({"yes", "true", "1", "checked", "x"})

PAGE_MARGIN = 50
RIGHT_MARGIN = 50
FALLBACK_X = 150
FALLBACK_TOP_OFFSET = 150
FALLBACK_LINE_HEIGHT = 25

BODY_FONT = "Helvetica"
BODY_FONT_SIZE = 10
SIGNATURE_FONT = "Helvetica-Oblique"
SIGNATURE_FONT_SIZE = BODY_FONT_SIZE + 2
SIGNATURE_COLOR = (0, 0, 0.5)
CHECK_FONT = "ZapfDingbats"
CHECK_GLYPH = "4"  # heavy check mark in ZapfDingbats
CHECK_FONT_SIZE = 12
ELLIPSIS = "..."

DOCUMENT_TITLE = "Filled Form"
DOCUMENT_AUTHOR = "Intelligent Form Filler"
DOCUMENT_PRODUCER = "FormPilot"


def is_truthy(value: str) -> bool:
    """Whether ``value`` means "checked"."""
    return str(value).strip().lower() in TRUTHY_VALUES


class DocumentFillEngine:
    """
    Renders collected values onto the source document.

    Supports two strategies:
    - native_form: write into interactive PDF controls (text, checkbox,
      radio group, dropdown), then flatten
    - overlay: draw text at mapped or fixed positions on the first page of a
      flat PDF, or of a letter page built around an uploaded image
    """

    def __init__(self, mapper: Optional[CoordinateMapper] = None):
        self.mapper = mapper or CoordinateMapper()

    def fill(
        self,
        source: SourceDocument,
        schema: FormSchema,
        values: Mapping[str, str]
    ) -> FillResult:
        """
        Fill ``source`` with ``values`` (field id to accepted answer).

        Returns:
            FillResult holding the serialized PDF

        Raises:
            DocumentFillFailed: on any I/O or decode failure of the source
        """
        values = dict(values)

        try:
            data = source.read_bytes()
        except OSError as e:
            raise DocumentFillFailed(f"Failed to read source document: {e}", cause=e)

        doc = self._open_document(source, data)

        try:
            result = None
            if schema.is_native_form and source.is_pdf:
                controls = collect_controls(doc)
                if controls:
                    logger.info(f"📝 Filling {len(controls)} native form controls")
                    filled, skipped = self._fill_native(doc, controls, schema, values)
                    result = ("native_form", filled, skipped)
                else:
                    logger.info("🔄 No interactive fields found, falling back to overlay")

            if result is None:
                logger.info("📝 Filling document with text overlay")
                filled, skipped = self._fill_overlay(doc, schema, values)
                result = ("overlay", filled, skipped)

            self._stamp_metadata(doc)
            strategy, filled, skipped = result
            content = doc.tobytes(garbage=3, deflate=True)
            page_count = doc.page_count
        except DocumentFillFailed:
            raise
        except Exception as e:
            raise DocumentFillFailed(f"Failed to generate filled PDF: {e}", cause=e)
        finally:
            doc.close()

        logger.info(f"✅ Generated filled PDF ({strategy}): {len(filled)} fields written, {len(skipped)} skipped")
        return FillResult(
            content=content,
            strategy=strategy,
            filled_fields=filled,
            skipped_fields=skipped,
            page_count=page_count,
        )

    def _open_document(self, source: SourceDocument, data: bytes) -> "fitz.Document":
        try:
            if source.is_pdf:
                return fitz.open(stream=data, filetype="pdf")
            if source.is_image:
                return self._image_document(data)
        except Exception as e:
            raise DocumentFillFailed(f"Failed to decode source document: {e}", cause=e)
        raise DocumentFillFailed(f"Unsupported source document type: {source.media_type}")

    # ------------------------------------------------------------------
    # Native form strategy
    # ------------------------------------------------------------------

    @staticmethod
    def match_control(field: FormField, controls: Sequence[NativeControl]) -> Optional[NativeControl]:
        """
        Find the control for ``field``.

        The control the field was built from wins. Otherwise the first control
        whose name contains the label, or is contained in it, case-insensitively.
        This loose match can pick "Name" for a "Full Name" field.
        """
        if field.source_field_name:
            for control in controls:
                if control.name == field.source_field_name:
                    return control

        label = field.label.lower()
        for control in controls:
            name = control.name.lower()
            if name in label or label in name:
                return control
        return None

    def _fill_native(
        self,
        doc: "fitz.Document",
        controls: List[NativeControl],
        schema: FormSchema,
        values: Dict[str, str]
    ) -> Tuple[Dict[str, str], List[str]]:
        filled: Dict[str, str] = {}
        skipped: List[str] = []

        for field in schema.fields:
            value = values.get(field.id)
            if value is None or not str(value).strip():
                continue

            control = self.match_control(field, controls)
            if control is None:
                logger.debug(f"No native control matches '{field.label}'")
                skipped.append(field.id)
                continue

            try:
                if self._write_control(doc, control, str(value)):
                    filled[control.name] = str(value)
                    logger.info(f"✅ Filled '{control.name}' with '{value}'")
                else:
                    skipped.append(field.id)
            except Exception as e:
                logger.warning(f"⚠️ Error filling field '{control.name}': {e}")
                skipped.append(field.id)

        # Flattening is irreversible, so it runs once every field was attempted
        doc.bake()
        return filled, skipped

    def _write_control(self, doc: "fitz.Document", control: NativeControl, value: str) -> bool:
        written = False
        for page_num in range(doc.page_count):
            page = doc[page_num]
            widgets = [w for w in page.widgets() if w.field_name == control.name]
            for widget in widgets:
                if self._write_widget(widget, control, value):
                    written = True
        return written

    def _write_widget(self, widget, control: NativeControl, value: str) -> bool:
        if control.kind == ControlKind.TEXT:
            widget.field_value = value
            widget.update()
            return True

        if control.kind == ControlKind.CHECKBOX:
            if not is_truthy(value):
                return False
            on_state = widget.on_state()
            widget.field_value = on_state if isinstance(on_state, str) else True
            widget.update()
            return True

        if control.kind == ControlKind.RADIO_GROUP:
            option = self._matching_option(control.options, value)
            if option is None or radio_option(widget) != option:
                return False
            widget.field_value = option
            widget.update()
            return True

        if control.kind == ControlKind.DROPDOWN:
            option = self._matching_option(control.options, value) if control.options else value
            if option is None:
                return False
            widget.field_value = option
            widget.update()
            return True

        return False

    @staticmethod
    def _matching_option(options: Sequence[str], value: str) -> Optional[str]:
        wanted = value.strip().lower()
        for option in options:
            if option.lower() == wanted:
                return option
        return None

    # ------------------------------------------------------------------
    # Overlay strategy
    # ------------------------------------------------------------------

    @staticmethod
    def image_placement(
        image_width: float,
        image_height: float,
        page_width: float = letter[0],
        page_height: float = letter[1]
    ) -> Tuple[float, float, float, float]:
        """
        Fit an image inside the page margins, preserving aspect ratio.

        Returns:
            (x, y, width, height) with y measured from the bottom of the page
        """
        image_aspect = image_width / image_height
        page_aspect = page_width / page_height

        if image_aspect > page_aspect:
            width = page_width - 2 * PAGE_MARGIN
            height = width / image_aspect
            x = PAGE_MARGIN
            y = (page_height - height) / 2
        else:
            height = page_height - 2 * PAGE_MARGIN
            width = height * image_aspect
            x = (page_width - width) / 2
            y = PAGE_MARGIN

        return x, y, width, height

    def _image_document(self, data: bytes) -> "fitz.Document":
        """New letter-sized document with the image centred on its single page."""
        pixmap = fitz.Pixmap(data)
        page_width, page_height = letter
        x, y, width, height = self.image_placement(pixmap.width, pixmap.height, page_width, page_height)

        doc = fitz.open()
        page = doc.new_page(width=page_width, height=page_height)
        # PyMuPDF rectangles are measured from the top of the page
        rect = fitz.Rect(x, page_height - y - height, x + width, page_height - y)
        page.insert_image(rect, stream=data, keep_proportion=False)
        return doc

    def draw_position(
        self,
        field: FormField,
        index: int,
        schema: FormSchema,
        page_width: float,
        page_height: float
    ) -> Optional[Tuple[float, float]]:
        """
        Where the value of the field at ``index`` is drawn, in page space.

        Fields with coordinates map their input point from source space;
        the others sit in a fixed column, one row per declared field.
        Returns None when no usable position exists.
        """
        if field.coordinates is not None:
            try:
                return self.mapper.map_or_identity(
                    field.coordinates.input_point,
                    schema.source_width,
                    schema.source_height,
                    page_width,
                    page_height,
                )
            except InvalidGeometry as e:
                logger.warning(f"⚠️ Ignoring coordinates of '{field.label}': {e}")

        x = FALLBACK_X
        y = (page_height - FALLBACK_TOP_OFFSET) - index * FALLBACK_LINE_HEIGHT
        if y <= 0 or x >= page_width:
            return None
        return x, y

    @staticmethod
    def fit_text(
        text: str,
        max_width: float,
        font_name: str = BODY_FONT,
        font_size: float = BODY_FONT_SIZE
    ) -> str:
        """Truncate ``text`` one character at a time until it fits with a trailing ellipsis."""
        if stringWidth(text, font_name, font_size) <= max_width:
            return text

        display = text
        while display and stringWidth(display + ELLIPSIS, font_name, font_size) > max_width:
            display = display[:-1]
        return display + ELLIPSIS

    def _fill_overlay(
        self,
        doc: "fitz.Document",
        schema: FormSchema,
        values: Dict[str, str]
    ) -> Tuple[Dict[str, str], List[str]]:
        if doc.page_count == 0:
            raise DocumentFillFailed("Source document has no pages")

        page = doc[0]
        page_width, page_height = page.rect.width, page.rect.height

        buffer = io.BytesIO()
        overlay = canvas.Canvas(buffer, pagesize=(page_width, page_height))
        filled: Dict[str, str] = {}
        skipped: List[str] = []

        for index, field in enumerate(schema.fields):
            value = values.get(field.id)
            if value is None or not str(value).strip():
                continue

            position = self.draw_position(field, index, schema, page_width, page_height)
            if position is None:
                skipped.append(field.id)
                continue

            if self._draw_value(overlay, field, str(value), position, page_width):
                filled[field.id] = str(value)
            else:
                skipped.append(field.id)

        overlay.showPage()
        overlay.save()

        overlay_doc = fitz.open(stream=buffer.getvalue(), filetype="pdf")
        try:
            page.show_pdf_page(page.rect, overlay_doc, 0)
        finally:
            overlay_doc.close()

        return filled, skipped

    def _draw_value(
        self,
        overlay: canvas.Canvas,
        field: FormField,
        value: str,
        position: Tuple[float, float],
        page_width: float
    ) -> bool:
        x, y = position

        if field.type == FieldType.CHECKBOX:
            if not is_truthy(value):
                return False
            overlay.setFillColorRGB(0, 0, 0)
            overlay.setFont(CHECK_FONT, CHECK_FONT_SIZE)
            overlay.drawString(x, y, CHECK_GLYPH)
            return True

        if field.type == FieldType.SIGNATURE:
            overlay.setFillColorRGB(*SIGNATURE_COLOR)
            overlay.setFont(SIGNATURE_FONT, SIGNATURE_FONT_SIZE)
            overlay.drawString(x, y, value)
            return True

        overlay.setFillColorRGB(0, 0, 0)
        overlay.setFont(BODY_FONT, BODY_FONT_SIZE)
        overlay.drawString(x, y, self.fit_text(value, page_width - x - RIGHT_MARGIN))
        return True

    # ------------------------------------------------------------------
    # Summary document and metadata
    # ------------------------------------------------------------------

    def render_summary(self, schema: FormSchema, values: Mapping[str, str]) -> FillResult:
        """Plain PDF listing every field with its value, for when the source is gone."""
        buffer = io.BytesIO()
        page_width, page_height = letter
        summary = canvas.Canvas(buffer, pagesize=letter)
        summary.setTitle(DOCUMENT_TITLE)
        summary.setAuthor(DOCUMENT_AUTHOR)
        summary.setProducer(DOCUMENT_PRODUCER)

        summary.setFont("Helvetica-Bold", 18)
        summary.drawString(50, page_height - 50, "Filled Form Summary")
        summary.setFont(BODY_FONT, BODY_FONT_SIZE)
        summary.setFillColorRGB(0.5, 0.5, 0.5)
        summary.drawString(50, page_height - 75, f"Generated: {datetime.now().strftime('%Y-%m-%d')}")

        y = page_height - 120
        pages = 1
        filled: Dict[str, str] = {}
        for index, field in enumerate(schema.fields):
            if y < 50:
                summary.showPage()
                pages += 1
                y = page_height - 50

            value = values.get(field.id)
            if value:
                filled[field.id] = value

            summary.setFillColorRGB(0, 0, 0)
            summary.setFont("Helvetica-Bold", 11)
            summary.drawString(50, y, f"{index + 1}. {field.label}")
            summary.setFillColorRGB(0, 0, 0.8)
            summary.setFont(BODY_FONT, BODY_FONT_SIZE)
            summary.drawString(70, y - 15, self.fit_text(value or "N/A", page_width - 70 - RIGHT_MARGIN))
            y -= 40

        summary.showPage()
        summary.save()

        return FillResult(
            content=buffer.getvalue(),
            strategy="summary",
            filled_fields=filled,
            skipped_fields=[],
            page_count=pages,
        )

    def _stamp_metadata(self, doc: "fitz.Document"):
        existing = doc.metadata or {}
        now = fitz.get_pdf_now()
        doc.set_metadata({
            "title": DOCUMENT_TITLE,
            "author": DOCUMENT_AUTHOR,
            "subject": existing.get("subject") or "",
            "keywords": existing.get("keywords") or "",
            "creator": existing.get("creator") or DOCUMENT_PRODUCER,
            "producer": DOCUMENT_PRODUCER,
            "creationDate": now,
            "modDate": now,
        })
