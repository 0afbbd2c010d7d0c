"""Question generation agent that phrases the next question of a fill session."""
import json
import logging
import re
from typing import Any, Dict, Mapping, Optional, Sequence

from pydantic import ValidationError

from formpilot.config import config
from formpilot.models import FormField, FormSchema, HistoryTurn, QuestionResponse
from formpilot.llm_client import get_llm_client

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """You are an AI form-filling assistant.

Rules:
1. Ask only ONE question at a time.
2. Only ask about extracted form fields.
3. Never guess values.
4. Validate user input.
5. If invalid, re-ask politely.
6. Explain each field simply.
7. Output STRICT JSON only.
8. Do not move to next field until valid.
9. Never hallucinate.

When asking a question, respond with JSON in this exact format:
{
  "question": "Your question here",
  "fieldId": "field_X",
  "fieldLabel": "Field Label",
  "fieldType": "type",
  "isComplete": false
}

When all fields are filled, respond with:
{
  "question": "All fields have been filled! You can now export your form.",
  "isComplete": true
}

Be conversational, friendly, and helpful. Explain why each field is needed if it's not obvious."""

FIRST_QUESTION_PROMPT = "Please ask me the first question to fill out this form."
ALL_FILLED_MESSAGE = "All fields have been filled! You can now export your form."

JSON_BLOCK = re.compile(r"\{[\s\S]*\}")


def fallback_question(field: FormField) -> QuestionResponse:
    """Deterministic question used whenever the service cannot be used."""
    return QuestionResponse(
        question=f"Please provide your {field.label}.",
        field_id=field.id,
        field_label=field.label,
        field_type=field.type.value,
        is_complete=False,
        source="fallback",
    )


class QuestionGeneratorAgent:
    """
    Question generation agent that:
    1. Describes the form and its fill status to the language model
    2. Replays the conversation so far
    3. Parses the model's JSON question for the current field
    4. Substitutes a local question whenever the model is unavailable or unusable
    """

    def __init__(self, llm_client: Any = None):
        self._llm_client = llm_client

    @property
    def llm_client(self):
        """Lazily created client, or None when the service is not configured."""
        if self._llm_client is None and config.has_llm():
            try:
                self._llm_client = get_llm_client()
            except Exception as e:
                logger.warning(f"⚠️ Question generation client unavailable: {e}")
        return self._llm_client

    def is_available(self) -> bool:
        return self.llm_client is not None

    async def generate(
        self,
        schema: FormSchema,
        values: Mapping[str, str],
        history: Sequence[HistoryTurn],
        utterance: Optional[str] = None,
        cursor: Optional[int] = None
    ) -> QuestionResponse:
        """
        Produce the question for the current field.

        Args:
            schema: Field schema of the session
            values: Accepted values so far
            history: Conversation turns so far
            utterance: The user's latest message, None for the first question
            cursor: Index of the field being asked about; defaults to the
                first field without a value

        Returns:
            A question for the current field, or the completion notice when
            every field is filled
        """
        current = self._current_field(schema, values, cursor)
        if current is None:
            return QuestionResponse(question=ALL_FILLED_MESSAGE, is_complete=True, source="fallback")

        client = self.llm_client
        if client is None:
            return fallback_question(current)

        try:
            messages = client.create_messages(
                SYSTEM_PROMPT,
                utterance or FIRST_QUESTION_PROMPT,
                history=history,
                context=self.build_form_context(schema, values),
            )
            response = await client.invoke(messages)
            return self.parse_response(getattr(response, "content", response), current)
        except Exception as e:
            logger.warning(f"⚠️ Question generation failed, using fallback: {e}")
            return fallback_question(current)

    @staticmethod
    def build_form_context(schema: FormSchema, values: Mapping[str, str]) -> str:
        """Numbered field list with fill status and requiredness."""
        lines = [f"Form has {len(schema.fields)} fields:"]
        for index, field in enumerate(schema.fields, 1):
            status = "✓ Filled" if values.get(field.id) else "○ Empty"
            requirement = "[Required]" if field.required else "[Optional]"
            lines.append(f"{index}. {field.label} ({field.type.value}) {requirement} - {status}")
        return "\n".join(lines)

    def parse_response(self, content: Any, current: FormField) -> QuestionResponse:
        """Parse the model's reply, substituting the fallback when it is unusable."""
        payload = self._extract_json(content)
        if payload is None:
            logger.warning("⚠️ Failed to parse question response as JSON, using fallback")
            return fallback_question(current)

        try:
            parsed = QuestionResponse.model_validate(payload)
        except ValidationError as e:
            logger.warning(f"⚠️ Malformed question response, using fallback: {e.error_count()} errors")
            return fallback_question(current)

        if parsed.is_complete or not parsed.question.strip():
            # Completion is decided by the session, not by the model
            return fallback_question(current)

        return QuestionResponse(
            question=parsed.question.strip(),
            field_id=current.id,
            field_label=parsed.field_label or current.label,
            field_type=current.type.value,
            is_complete=False,
            source="llm",
        )

    @staticmethod
    def _extract_json(content: Any) -> Optional[Dict[str, Any]]:
        if not isinstance(content, str):
            return None
        # The model may wrap its JSON in markdown code fences
        match = JSON_BLOCK.search(content)
        if not match:
            return None
        try:
            payload = json.loads(match.group(0))
        except json.JSONDecodeError:
            return None
        return payload if isinstance(payload, dict) else None

    @staticmethod
    def _current_field(
        schema: FormSchema,
        values: Mapping[str, str],
        cursor: Optional[int]
    ) -> Optional[FormField]:
        if cursor is not None:
            return schema.fields[cursor] if 0 <= cursor < len(schema.fields) else None
        for field in schema.fields:
            if field.id not in values:
                return field
        return None
