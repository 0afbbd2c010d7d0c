"""FastAPI application for the FormPilot form filling service."""

import asyncio
import logging
import os
import uuid
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, File, HTTPException, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from formpilot.agents.form_filler import FormFillerAgent
from formpilot.agents.question_generator import QuestionGeneratorAgent
from formpilot.config import config
from formpilot.errors import ExtractionFailed, FormPilotError
from formpilot.models import SourceDocument
from formpilot.session_store import session_store
from formpilot.state_machine import FillSessionStateMachine
from formpilot.workflow import IntakeWorkflow

logger = logging.getLogger(__name__)

STATUS_BY_REASON = {
    "session_not_found": 404,
    "form_incomplete": 400,
    "extraction_failed": 422,
    "document_fill_failed": 500,
}

MEDIA_TYPE_ALIASES = {"image/jpg": "image/jpeg"}
EXPORT_FILENAME = "filled_form.pdf"

# Global services
intake_workflow = IntakeWorkflow()
question_generator = QuestionGeneratorAgent()
state_machine = FillSessionStateMachine(session_store, question_generator)
form_filler = FormFillerAgent(session_store)


class SessionRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    session_id: Optional[str] = None


class ChatRequest(SessionRequest):
    message: Optional[str] = None


async def expire_sessions(interval: float):
    """Dispose idle sessions every ``interval`` seconds."""
    while True:
        await asyncio.sleep(interval)
        session_store.cleanup_expired()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    logger.info("🚀 Starting FormPilot API...")
    os.makedirs(config.get_upload_dir_path(), exist_ok=True)

    if question_generator.is_available():
        logger.info(f"LLM enabled with model: {config.AI_MODEL}")
    else:
        logger.warning("LLM not available (no NVIDIA_API_KEY). Using plain questions.")

    if not config.has_document_intelligence():
        logger.warning("Azure Document Intelligence not configured. Image uploads will fail.")

    cleanup_task = asyncio.create_task(expire_sessions(config.SESSION_CLEANUP_INTERVAL))

    yield

    logger.info("Application shutting down...")
    cleanup_task.cancel()
    try:
        await cleanup_task
    except asyncio.CancelledError:
        pass


app = FastAPI(
    title="FormPilot",
    description="API for filling PDF and scanned forms through a guided conversation",
    version="1.0.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(FormPilotError)
async def formpilot_error_handler(request: Request, exc: FormPilotError):
    status_code = STATUS_BY_REASON.get(exc.reason, 500)
    if status_code >= 500:
        logger.error(f"❌ {request.url.path} failed: {exc.message}")
    return JSONResponse(
        status_code=status_code,
        content={"error": exc.message, "reason": exc.reason},
    )


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    llm_enabled = question_generator.is_available()
    return {
        "status": "healthy",
        "llm_enabled": llm_enabled,
        "llm_model": config.AI_MODEL if llm_enabled else None,
        "ocr_enabled": config.has_document_intelligence(),
        "active_sessions": len(session_store),
    }


@app.post("/api/upload-form")
async def upload_form(form: UploadFile = File(...)):
    """Upload a form, detect its fields and open a fill session."""
    media_type = MEDIA_TYPE_ALIASES.get(form.content_type, form.content_type)
    if media_type not in config.ALLOWED_MEDIA_TYPES:
        raise HTTPException(status_code=400, detail="Invalid file type. Only PNG, JPEG, and PDF are allowed.")

    try:
        content = await form.read()
    except Exception as e:
        raise HTTPException(status_code=400, detail=f"Error reading file: {str(e)}")

    if not content:
        raise HTTPException(status_code=400, detail="No file uploaded")
    if len(content) > config.MAX_FILE_SIZE:
        raise HTTPException(status_code=413, detail="File too large")

    upload_dir = config.get_upload_dir_path()
    os.makedirs(upload_dir, exist_ok=True)
    extension = os.path.splitext(form.filename or "")[1].lower()
    path = os.path.join(upload_dir, f"{uuid.uuid4()}{extension}")
    with open(path, "wb") as f:
        f.write(content)

    source = SourceDocument(path, media_type=media_type)
    logger.info(f"📥 Processing uploaded file: {form.filename}")

    try:
        schema = await intake_workflow.run(source)
    except ExtractionFailed:
        source.release()
        raise
    except Exception as e:
        source.release()
        logger.error(f"Upload error: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to process form: {str(e)}")

    session_id = session_store.create(schema, source)
    first_question = await state_machine.start(session_id)

    return {
        "success": True,
        "sessionId": session_id,
        "formSchema": schema.model_dump(mode="json"),
        "firstQuestion": first_question.model_dump(by_alias=True, exclude_none=True),
    }


@app.post("/api/chat")
async def chat(request: ChatRequest):
    """Submit one answer and receive the next question."""
    if not request.session_id or not request.message:
        raise HTTPException(status_code=400, detail="Session ID and message are required")

    response = await state_machine.submit(request.session_id, request.message)
    return response.model_dump(by_alias=True, exclude_none=True)


@app.get("/api/form-state/{session_id}")
async def form_state(session_id: str):
    """Current schema, values and progress of a session."""
    session = session_store.require(session_id)
    return {
        "sessionId": session.session_id,
        "formSchema": session.form_schema.model_dump(mode="json"),
        "filledFields": dict(session.values),
        "currentFieldIndex": session.cursor,
        "isComplete": session.complete,
        "progress": session.progress,
    }


@app.post("/api/export-pdf")
async def export_pdf(request: SessionRequest):
    """Download the filled PDF of a completed session."""
    if not request.session_id:
        raise HTTPException(status_code=400, detail="Session ID is required")

    result = await form_filler.export(request.session_id)
    return Response(
        content=result.content,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{EXPORT_FILENAME}"'},
    )


@app.delete("/api/session/{session_id}")
async def delete_session(session_id: str):
    """Delete a session and its uploaded document."""
    session_store.dispose(session_id)
    return {"success": True, "message": "Session deleted"}


def run():
    """Run the API server."""
    import uvicorn

    logging.basicConfig(
        level=getattr(logging, config.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
    uvicorn.run(app, host=config.HOST, port=config.PORT)


if __name__ == "__main__":
    run()
