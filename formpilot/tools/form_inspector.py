"""Introspection of interactive PDF form controls using PyMuPDF."""
import logging
from typing import Dict, List, Optional

import fitz  # PyMuPDF

from formpilot.errors import ExtractionFailed
from formpilot.models import ControlKind, NativeControl, SourceDocument

logger = logging.getLogger(__name__)

WIDGET_KINDS: Dict[int, ControlKind] = {
    fitz.PDF_WIDGET_TYPE_TEXT: ControlKind.TEXT,
    fitz.PDF_WIDGET_TYPE_CHECKBOX: ControlKind.CHECKBOX,
    fitz.PDF_WIDGET_TYPE_RADIOBUTTON: ControlKind.RADIO_GROUP,
    fitz.PDF_WIDGET_TYPE_COMBOBOX: ControlKind.DROPDOWN,
    fitz.PDF_WIDGET_TYPE_LISTBOX: ControlKind.DROPDOWN,
}


def control_kind(widget) -> Optional[ControlKind]:
    """Kind of a widget, or None for push buttons and signature boxes."""
    return WIDGET_KINDS.get(widget.field_type)


def radio_option(widget) -> Optional[str]:
    """Export value of a radio button (its on-state name)."""
    state = widget.on_state()
    if state in (None, False, True, "Off"):
        return None
    return str(state)


def collect_controls(doc: "fitz.Document") -> List[NativeControl]:
    """Named controls of an open document, one per field name, in first-seen order."""
    controls: Dict[str, dict] = {}

    for page_num in range(doc.page_count):
        for widget in doc[page_num].widgets():
            name = widget.field_name
            kind = control_kind(widget)
            if not name or kind is None:
                continue

            entry = controls.setdefault(name, {
                "name": name,
                "kind": kind,
                "options": [],
                "page_number": page_num + 1,
            })

            if kind == ControlKind.RADIO_GROUP:
                option = radio_option(widget)
                if option and option not in entry["options"]:
                    entry["options"].append(option)
            elif kind == ControlKind.DROPDOWN and not entry["options"]:
                entry["options"] = [str(choice) for choice in (widget.choice_values or [])]

    return [
        NativeControl(
            name=entry["name"],
            kind=entry["kind"],
            options=tuple(entry["options"]),
            page_number=entry["page_number"],
        )
        for entry in controls.values()
    ]


class FormInspector:
    """Lists the native controls of an interactive PDF form."""

    def inspect(self, source: SourceDocument) -> Optional[List[NativeControl]]:
        """
        Inspect ``source`` for an interactive form.

        Returns:
            None when the document is not a PDF or carries no form, otherwise
            the ordered list of controls (possibly empty).

        Raises:
            ExtractionFailed: if the PDF cannot be opened
        """
        if not source.is_pdf:
            return None

        try:
            doc = fitz.open(stream=source.read_bytes(), filetype="pdf")
        except Exception as e:
            raise ExtractionFailed(f"Failed to open PDF: {e}", cause=e)

        try:
            if not doc.is_form_pdf:
                return None
            controls = collect_controls(doc)
        finally:
            doc.close()

        logger.info(f"📋 Found {len(controls)} native form controls")
        return controls
