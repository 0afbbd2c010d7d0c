"""LangGraph workflow turning an uploaded document into a form schema."""
import logging
from typing import Any, Dict, List, Optional

from langgraph.graph import StateGraph, END
from pydantic import BaseModel, ConfigDict

from formpilot.agents.form_learner import FormLearningAgent
from formpilot.errors import ExtractionFailed
from formpilot.models import ExtractionResult, FormSchema, NativeControl, SourceDocument

logger = logging.getLogger(__name__)


class IntakeState(BaseModel):
    """State passed between intake nodes."""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    source: SourceDocument
    extraction: Optional[ExtractionResult] = None
    controls: Optional[List[NativeControl]] = None
    form_schema: Optional[FormSchema] = None


class IntakeWorkflow:
    """
    LangGraph workflow run once per uploaded document.

    Workflow Steps:
    1. Read the document text and word boxes
    2. Inspect the document for native interactive controls
    3. Build the schema from the controls when there are any,
       otherwise from the text heuristics
    """

    def __init__(self, form_learner: Optional[FormLearningAgent] = None):
        self.form_learner = form_learner or FormLearningAgent()

        # Build the workflow graph
        self.workflow = self._build_workflow()
        self.app = None

    def _build_workflow(self) -> StateGraph:
        """Build the LangGraph state graph."""
        workflow = StateGraph(IntakeState)

        workflow.add_node("read_document", self._read_document_node)
        workflow.add_node("inspect_form", self._inspect_form_node)
        workflow.add_node("extract_native", self._extract_native_node)
        workflow.add_node("extract_text", self._extract_text_node)

        workflow.set_entry_point("read_document")
        workflow.add_edge("read_document", "inspect_form")
        workflow.add_conditional_edges(
            "inspect_form",
            self._route_from_inspection,
            {
                "extract_native": "extract_native",
                "extract_text": "extract_text",
            }
        )
        workflow.add_edge("extract_native", END)
        workflow.add_edge("extract_text", END)

        return workflow

    def _read_document_node(self, state: IntakeState) -> Dict[str, Any]:
        return {"extraction": self.form_learner.read(state.source)}

    def _inspect_form_node(self, state: IntakeState) -> Dict[str, Any]:
        return {"controls": self.form_learner.inspect(state.source)}

    def _extract_native_node(self, state: IntakeState) -> Dict[str, Any]:
        return {"form_schema": self.form_learner.learn_from_controls(state.controls, state.extraction)}

    def _extract_text_node(self, state: IntakeState) -> Dict[str, Any]:
        return {"form_schema": self.form_learner.learn_from_text(state.extraction)}

    def _route_from_inspection(self, state: IntakeState) -> str:
        """Native extraction only when the form exposes at least one control."""
        if state.controls:
            logger.info(f"🔀 Interactive form with {len(state.controls)} controls")
            return "extract_native"
        logger.info("🔀 No interactive controls, using text heuristics")
        return "extract_text"

    def compile(self):
        """Compile the workflow."""
        self.app = self.workflow.compile()
        return self.app

    async def run(self, source: SourceDocument) -> FormSchema:
        """
        Run intake for ``source``.

        Raises:
            ExtractionFailed: when the document text cannot be obtained
        """
        if not self.app:
            self.compile()

        final_state = await self.app.ainvoke({"source": source})

        if isinstance(final_state, dict):
            schema = final_state.get("form_schema")
        else:
            schema = getattr(final_state, "form_schema", None)

        if schema is None:
            raise ExtractionFailed("Intake produced no form schema")

        logger.info(f"✅ Intake complete: {len(schema.fields)} fields (native form: {schema.is_native_form})")
        return schema
