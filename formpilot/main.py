"""Terminal interface that fills one form by asking its questions on stdin."""
import argparse
import asyncio
import logging
import os
import sys
from typing import List, Optional

from formpilot.agents.form_filler import FormFillerAgent
from formpilot.agents.question_generator import QuestionGeneratorAgent
from formpilot.config import config
from formpilot.errors import DocumentFillFailed, ExtractionFailed
from formpilot.models import SourceDocument
from formpilot.session_store import SessionStore
from formpilot.state_machine import FillSessionStateMachine
from formpilot.workflow import IntakeWorkflow

logger = logging.getLogger(__name__)

QUIT_WORDS = ("quit", "exit", "q")


class FormPilotApp:
    """
    Main application class that runs a single fill session in the terminal:
    intake, one question per prompt, export on completion.
    """

    def __init__(
        self,
        workflow: Optional[IntakeWorkflow] = None,
        store: Optional[SessionStore] = None,
        question_generator: Optional[QuestionGeneratorAgent] = None
    ):
        self.workflow = workflow or IntakeWorkflow()
        self.store = store or SessionStore()
        self.state_machine = FillSessionStateMachine(self.store, question_generator)
        self.form_filler = FormFillerAgent(self.store)
        self.session_id: Optional[str] = None

    async def start(self, file_path: str, output_path: Optional[str] = None) -> Optional[str]:
        """Fill ``file_path`` interactively. Returns the saved output path, or None."""
        print("🚀 Starting FormPilot")
        print("=" * 50)

        if not os.path.exists(file_path):
            print(f"❌ File not found: {file_path}")
            return None

        self._show_capabilities()

        # The user's own file is never deleted
        source = SourceDocument(file_path, owns_file=False)
        try:
            schema = await self.workflow.run(source)
        except ExtractionFailed as e:
            print(f"❌ Could not read the form: {e.message}")
            return None

        print(f"\n📋 Detected {len(schema.fields)} fields:")
        for index, field in enumerate(schema.fields, 1):
            marker = "" if field.required else " (optional)"
            print(f"   {index}. {field.label} [{field.type.value}]{marker}")

        self.session_id = self.store.create(schema, source)
        response = await self.state_machine.start(self.session_id)
        print(f"\n🤖 {response.question}")

        try:
            while not response.is_complete:
                try:
                    user_input = input("\n👤 Your answer (or 'quit' to exit): ").strip()
                except EOFError:
                    print("\n👋 Input stream ended. Goodbye!")
                    return None

                if user_input.lower() in QUIT_WORDS:
                    print("👋 Goodbye!")
                    return None

                response = await self.state_machine.submit(self.session_id, user_input)
                prefix = "⚠️ " if response.validation_error else "🤖 "
                print(f"\n{prefix}{response.question}")

            return await self._export(file_path, output_path)
        finally:
            # Export disposes on success; this covers quitting and failures
            self.store.dispose(self.session_id)

    async def _export(self, file_path: str, output_path: Optional[str]) -> Optional[str]:
        try:
            result = await self.form_filler.export(self.session_id)
        except DocumentFillFailed as e:
            print(f"❌ Failed to export PDF: {e.message}")
            return None

        saved = self.form_filler.save(result, output_path, source_name=file_path)
        print(f"\n✅ Filled form saved to: {saved}")
        print(f"   Strategy: {result.strategy}, fields written: {len(result.filled_fields)}")
        return saved

    def _show_capabilities(self):
        """Display which external services are configured."""
        print("\n🔧 Available Services:")

        if config.has_document_intelligence():
            print("✅ Azure Document Intelligence - OCR for scanned images")
        else:
            print("⚠️  Azure Document Intelligence - Not configured (image forms unavailable)")
            print("   Set AZURE_DOCUMENT_INTELLIGENCE_ENDPOINT and AZURE_DOCUMENT_INTELLIGENCE_KEY")

        if config.has_llm():
            print(f"✅ Question generation - {config.AI_MODEL}")
        else:
            print("⚠️  Question generation - Not configured, using plain questions")
            print("   Set NVIDIA_API_KEY for conversational questions")

        print("✅ PDF text extraction - pdfplumber")
        print()


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="formpilot",
        description="Fill a PDF or scanned form by answering one question at a time.",
    )
    parser.add_argument("file", help="Form to fill (PDF, PNG or JPEG)")
    parser.add_argument("-o", "--output", help="Where to write the filled PDF")
    return parser.parse_args(argv)


async def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = parse_args(argv)
    app = FormPilotApp()
    saved = await app.start(args.file, args.output)
    return 0 if saved else 1


def main_sync():
    """Synchronous entry point."""
    logging.basicConfig(
        level=getattr(logging, config.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    main_sync()
