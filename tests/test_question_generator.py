from types import SimpleNamespace

import pytest

from formpilot.agents.question_generator import ALL_FILLED_MESSAGE, QuestionGeneratorAgent
from formpilot.models import HistoryTurn


class FakeClient:
    """Stands in for LLMClient."""

    def __init__(self, content=None, error=None):
        self.content = content
        self.error = error
        self.messages = None

    def create_messages(self, system_prompt, user_message, history=(), context=None):
        return [system_prompt, context, *[(turn.role, turn.content) for turn in history], user_message]

    async def invoke(self, messages):
        self.messages = messages
        if self.error:
            raise self.error
        return SimpleNamespace(content=self.content)


async def test_parses_fenced_json(three_field_schema):
    client = FakeClient(content=(
        "Sure!\n```json\n"
        '{"question": "What is your full name?", "fieldId": "field_9", '
        '"fieldLabel": "Full Name", "fieldType": "text", "isComplete": false}\n```'
    ))
    agent = QuestionGeneratorAgent(llm_client=client)

    response = await agent.generate(three_field_schema, {}, [])

    assert response.question == "What is your full name?"
    assert response.field_id == "field_1"
    assert response.field_type == "name"
    assert response.source == "llm"


async def test_missing_metadata_comes_from_current_field(three_field_schema):
    agent = QuestionGeneratorAgent(llm_client=FakeClient(content='{"question": "And your email?"}'))

    response = await agent.generate(three_field_schema, {"field_1": "Jane"}, [], utterance="Jane", cursor=1)

    assert response.field_id == "field_2"
    assert response.field_label == "Email Address"
    assert response.is_complete is False


@pytest.mark.parametrize("content", [
    "I cannot answer in JSON today.",
    "{not json at all}",
    '{"question": "", "isComplete": false}',
    '{"question": "All done!", "isComplete": true}',
    '["question"]',
])
async def test_unusable_output_falls_back(three_field_schema, content):
    agent = QuestionGeneratorAgent(llm_client=FakeClient(content=content))

    response = await agent.generate(three_field_schema, {}, [])

    assert response.source == "fallback"
    assert response.question == "Please provide your Full Name."
    assert response.is_complete is False


async def test_transport_error_falls_back(three_field_schema):
    agent = QuestionGeneratorAgent(llm_client=FakeClient(error=RuntimeError("timeout")))

    response = await agent.generate(three_field_schema, {}, [], cursor=2)

    assert response.source == "fallback"
    assert response.field_id == "field_3"


async def test_unconfigured_service_falls_back(three_field_schema):
    agent = QuestionGeneratorAgent()

    assert agent.is_available() is False
    response = await agent.generate(three_field_schema, {}, [])
    assert response.question == "Please provide your Full Name."


async def test_all_fields_filled(three_field_schema):
    values = {"field_1": "Jane", "field_2": "a@b.com", "field_3": "01/01/2000"}
    agent = QuestionGeneratorAgent(llm_client=FakeClient(content="{}"))

    response = await agent.generate(three_field_schema, values, [])

    assert response.is_complete is True
    assert response.question == ALL_FILLED_MESSAGE


async def test_history_and_context_are_sent(three_field_schema):
    client = FakeClient(content='{"question": "Email please?"}')
    agent = QuestionGeneratorAgent(llm_client=client)
    history = [
        HistoryTurn(role="assistant", content="What is your name?"),
        HistoryTurn(role="user", content="Jane"),
    ]

    await agent.generate(three_field_schema, {"field_1": "Jane"}, history, utterance="Jane", cursor=1)

    system_prompt, context, *turns, utterance = client.messages
    assert "Output STRICT JSON only." in system_prompt
    assert "1. Full Name (name) [Required] - ✓ Filled" in context
    assert "2. Email Address (email) [Required] - ○ Empty" in context
    assert turns == [("assistant", "What is your name?"), ("user", "Jane")]
    assert utterance == "Jane"


def test_form_context_marks_optional_fields(three_field_schema):
    schema = three_field_schema.model_copy(update={
        "fields": three_field_schema.fields[:2] + (
            three_field_schema.fields[2].model_copy(update={"required": False}),
        ),
    })

    context = QuestionGeneratorAgent.build_form_context(schema, {})

    assert context.splitlines()[0] == "Form has 3 fields:"
    assert context.splitlines()[3].endswith("[Optional] - ○ Empty")
