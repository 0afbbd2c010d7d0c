"""Sequential question/answer state machine of a fill session.

A session is COLLECTING while its cursor points at a field and COMPLETE once
the cursor has passed the last field. Only a valid answer moves the cursor,
and there is no way back from COMPLETE.
"""

import logging
from typing import Optional

from formpilot.agents.question_generator import QuestionGeneratorAgent
from formpilot.models import FillSession, QuestionResponse, SessionState
from formpilot.session_store import SessionStore
from formpilot.tools.field_validator import FieldValidator

logger = logging.getLogger(__name__)

COMPLETION_MESSAGE = (
    "Great! All fields have been filled successfully. "
    "You can now export your completed form as a PDF."
)


def completion_response() -> QuestionResponse:
    return QuestionResponse(question=COMPLETION_MESSAGE, is_complete=True, source="engine")


class FillSessionStateMachine:
    """Advances one session one field at a time."""

    def __init__(
        self,
        store: SessionStore,
        question_generator: Optional[QuestionGeneratorAgent] = None,
        validator: Optional[FieldValidator] = None
    ):
        self.store = store
        self.question_generator = question_generator or QuestionGeneratorAgent()
        self.validator = validator or FieldValidator()

    def state_of(self, session_id: str) -> SessionState:
        return self.store.require(session_id).state

    async def start(self, session_id: str) -> QuestionResponse:
        """Ask the first question of a fresh session and record it in the history."""
        async with self.store.lock(session_id):
            session = self.store.require(session_id)
            if session.complete or session.current_field is None:
                return completion_response()

            response = await self.question_generator.generate(
                session.form_schema,
                dict(session.values),
                list(session.history),
                utterance=None,
                cursor=session.cursor,
            )
            self.store.append_history(session_id, "assistant", response.question)
            return response

    async def submit(self, session_id: str, answer: str) -> QuestionResponse:
        """
        Apply one user answer.

        Invalid answers leave the cursor and values untouched and re-ask the
        same field; retries are unlimited. Raises SessionNotFound for unknown ids.
        """
        async with self.store.lock(session_id):
            session = self.store.require(session_id)

            if session.complete or session.current_field is None:
                logger.debug(f"Session {session_id} already complete, ignoring answer")
                return completion_response()

            response = await self._transition(session, answer)

            self.store.append_history(session_id, "user", answer)
            self.store.append_history(session_id, "assistant", response.question)
            return response

    async def _transition(self, session: FillSession, answer: str) -> QuestionResponse:
        field = session.current_field
        validation = self.validator.validate(field.type, answer)

        if not validation.valid:
            logger.info(f"❌ Rejected answer for '{field.label}': {validation.reason}")
            return QuestionResponse(
                question=f"{validation.message}. Please try again: {field.label}",
                field_id=field.id,
                field_label=field.label,
                field_type=field.type.value,
                is_complete=False,
                validation_error=True,
                source="engine",
            )

        self.store.record_value(session.session_id, field.id, answer)
        cursor = self.store.advance_cursor(session.session_id)
        logger.info(f"✅ Accepted '{field.label}' ({cursor}/{session.form_schema.total_fields})")

        if cursor >= session.form_schema.total_fields:
            self.store.mark_complete(session.session_id)
            return completion_response()

        return await self.question_generator.generate(
            session.form_schema,
            dict(session.values),
            list(session.history),
            utterance=answer,
            cursor=cursor,
        )
