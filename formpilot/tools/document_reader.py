"""Text and word-box extraction from uploaded PDFs and images.

PDFs with a text layer are read with pdfplumber. Images, and PDFs without a
text layer, go through the Azure Document Intelligence ``prebuilt-read``
model when it is configured.
"""

import io
import logging
from typing import List, Optional

import fitz  # PyMuPDF
import pdfplumber
from azure.ai.formrecognizer import DocumentAnalysisClient
from azure.core.credentials import AzureKeyCredential

from formpilot.config import config
from formpilot.errors import ExtractionFailed
from formpilot.models import BoundingBox, ExtractionResult, SourceDocument, WordBox

logger = logging.getLogger(__name__)


class DocumentReader:
    """Extracts plain text and, where available, word bounding boxes."""

    OCR_MODEL_ID = "prebuilt-read"

    def __init__(self, client: Optional[DocumentAnalysisClient] = None):
        """Initialize the reader, creating an OCR client if credentials are available."""
        self.client = client
        if self.client is None:
            self._initialize_client()

    def _initialize_client(self):
        """Initialize the DocumentAnalysisClient if credentials are available."""
        try:
            if config.has_document_intelligence():
                endpoint, key = config.get_azure_doc_intelligence_credentials()
                self.client = DocumentAnalysisClient(
                    endpoint=endpoint,
                    credential=AzureKeyCredential(key)
                )
                logger.info("✅ Azure Document Intelligence client initialized")
            else:
                logger.info("⚠️ Azure Document Intelligence not configured - image OCR unavailable")
        except Exception as e:
            logger.warning(f"⚠️ Failed to initialize Azure Document Intelligence: {str(e)}")
            self.client = None

    def is_ocr_available(self) -> bool:
        """Check if image OCR is available."""
        return self.client is not None

    def read(self, source: SourceDocument) -> ExtractionResult:
        """
        Extract text from ``source``.

        Raises:
            ExtractionFailed: unsupported media type, unreadable file or OCR failure
        """
        try:
            data = source.read_bytes()
        except OSError as e:
            raise ExtractionFailed(f"Failed to read uploaded document: {e}", cause=e)

        if source.is_pdf:
            result = self._read_pdf(data)
            if not result.text.strip() and self.is_ocr_available():
                logger.info("🔍 PDF has no text layer, running OCR")
                return self._read_with_ocr(data)
            return result

        if source.is_image:
            return self._read_image(data)

        raise ExtractionFailed("Unsupported file type. Please upload an image or PDF.")

    def _read_pdf(self, data: bytes) -> ExtractionResult:
        """Full text of every page plus the word boxes of the first page."""
        try:
            with pdfplumber.open(io.BytesIO(data)) as pdf:
                if not pdf.pages:
                    raise ExtractionFailed("PDF has no pages")

                text_parts = [page.extract_text() or "" for page in pdf.pages]
                first_page = pdf.pages[0]
                words = [
                    WordBox(
                        text=word["text"],
                        bounding_box=BoundingBox(
                            x=float(word["x0"]),
                            y=float(word["top"]),
                            width=float(word["x1"]) - float(word["x0"]),
                            height=float(word["bottom"]) - float(word["top"]),
                        ),
                    )
                    for word in first_page.extract_words()
                ]

                result = ExtractionResult(
                    text="\n".join(text_parts),
                    words=words or None,
                    source_width=float(first_page.width),
                    source_height=float(first_page.height),
                    page_count=len(pdf.pages),
                    extraction_method="pdfplumber",
                )
        except ExtractionFailed:
            raise
        except Exception as e:
            raise ExtractionFailed(f"Failed to extract text from PDF: {e}", cause=e)

        logger.info(f"📄 Extracted {len(result.text)} characters from {result.page_count} PDF page(s)")
        return result

    def _read_image(self, data: bytes) -> ExtractionResult:
        if not self.is_ocr_available():
            raise ExtractionFailed(
                "Image OCR requires Azure Document Intelligence. "
                "Set AZURE_DOCUMENT_INTELLIGENCE_ENDPOINT and AZURE_DOCUMENT_INTELLIGENCE_KEY"
            )

        result = self._read_with_ocr(data)
        if result.source_width and result.source_height:
            return result

        try:
            pixmap = fitz.Pixmap(data)
        except Exception as e:
            raise ExtractionFailed(f"Failed to decode image: {e}", cause=e)
        return result.model_copy(update={
            "source_width": float(pixmap.width),
            "source_height": float(pixmap.height),
        })

    def _read_with_ocr(self, data: bytes) -> ExtractionResult:
        """Run the read model and convert first-page word polygons to boxes."""
        try:
            logger.info("📊 Analyzing document with Azure Document Intelligence")
            poller = self.client.begin_analyze_document(self.OCR_MODEL_ID, io.BytesIO(data))
            doc_result = poller.result()
        except Exception as e:
            raise ExtractionFailed(f"Failed to extract text from image: {e}", cause=e)

        pages = doc_result.pages or []
        words: List[WordBox] = []
        width = height = None

        if pages:
            first_page = pages[0]
            width = float(first_page.width) if first_page.width else None
            height = float(first_page.height) if first_page.height else None
            for word in first_page.words or []:
                if not word.polygon:
                    continue
                xs = [point.x for point in word.polygon]
                ys = [point.y for point in word.polygon]
                words.append(WordBox(
                    text=word.content,
                    bounding_box=BoundingBox(
                        x=min(xs),
                        y=min(ys),
                        width=max(xs) - min(xs),
                        height=max(ys) - min(ys),
                    ),
                ))

        text = doc_result.content or ""
        logger.info(f"✅ OCR extracted {len(text)} characters and {len(words)} words")

        return ExtractionResult(
            text=text,
            words=words or None,
            source_width=width,
            source_height=height,
            page_count=max(len(pages), 1),
            extraction_method="azure_document_intelligence",
        )
