"""Form filler agent that exports a completed session as a filled PDF."""
import asyncio
import logging
import os
from datetime import datetime
from typing import Optional

from formpilot.config import config
from formpilot.errors import FormIncomplete
from formpilot.models import FillResult
from formpilot.session_store import SessionStore
from formpilot.tools.pdf_form_filler import DocumentFillEngine

logger = logging.getLogger(__name__)


class FormFillerAgent:
    """
    Form Filler agent that:
    1. Checks that the session collected every field
    2. Renders the values onto the original document, or onto a summary
       page when the original is no longer available
    3. Disposes the session once the document was produced
    """

    def __init__(self, store: SessionStore, engine: Optional[DocumentFillEngine] = None):
        self.store = store
        self.engine = engine or DocumentFillEngine()

    async def export(self, session_id: str) -> FillResult:
        """
        Render the filled document of a completed session.

        Raises:
            SessionNotFound: unknown or expired session
            FormIncomplete: the session is still collecting answers
            DocumentFillFailed: the source document could not be rendered;
                the session is left intact so the export can be retried
        """
        async with self.store.lock(session_id):
            session = self.store.require(session_id)
            if not session.complete:
                raise FormIncomplete(session_id)

            values = dict(session.values)
            source = session.source_document

            if source is None or source.released:
                logger.info("📄 Original document unavailable, creating summary PDF")
                result = await asyncio.to_thread(self.engine.render_summary, session.form_schema, values)
            else:
                result = await asyncio.to_thread(self.engine.fill, source, session.form_schema, values)

            self.store.dispose(session_id)

        logger.info(f"📤 Exported session {session_id} ({result.strategy}, {len(result.content)} bytes)")
        return result

    def save(self, result: FillResult, output_path: Optional[str] = None, source_name: Optional[str] = None) -> str:
        """Write ``result`` to ``output_path``, or to a timestamped file in the output directory."""
        if not output_path:
            output_path = self._generate_output_path(source_name)

        directory = os.path.dirname(output_path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        with open(output_path, "wb") as f:
            f.write(result.content)

        logger.info(f"💾 Filled form saved to: {output_path}")
        return output_path

    def _generate_output_path(self, source_name: Optional[str] = None) -> str:
        """Generate an output path for the filled form."""
        output_dir = config.get_output_dir_path()
        base_name = os.path.splitext(os.path.basename(source_name))[0] if source_name else "form"
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        return os.path.join(output_dir, f"{base_name}_filled_{timestamp}.pdf")
