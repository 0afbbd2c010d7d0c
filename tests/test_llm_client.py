import pytest
from langchain_core.messages import AIMessage, HumanMessage, SystemMessage

from formpilot.llm_client import LLMClient
from formpilot.models import HistoryTurn


class FakeChatModel:
    def __init__(self, error=None):
        self.error = error

    async def ainvoke(self, messages):
        if self.error:
            raise self.error
        return AIMessage(content=f"{len(messages)} messages")


def test_requires_configuration():
    with pytest.raises(ValueError):
        LLMClient()


def test_create_messages_replays_history():
    client = LLMClient(chat_model=FakeChatModel())
    history = [
        HistoryTurn(role="assistant", content="What is your name?"),
        HistoryTurn(role="user", content="Jane"),
    ]

    messages = client.create_messages("system", "next", history=history, context="Form has 1 fields:")

    assert [type(m) for m in messages] == [SystemMessage, SystemMessage, AIMessage, HumanMessage, HumanMessage]
    assert [m.content for m in messages] == ["system", "Form has 1 fields:", "What is your name?", "Jane", "next"]


def test_create_messages_without_context():
    messages = LLMClient(chat_model=FakeChatModel()).create_messages("system", "hello")

    assert [m.content for m in messages] == ["system", "hello"]


async def test_invoke_returns_reply():
    reply = await LLMClient(chat_model=FakeChatModel()).invoke([HumanMessage(content="hi")])

    assert reply.content == "1 messages"


async def test_invoke_wraps_transport_errors():
    client = LLMClient(chat_model=FakeChatModel(error=ConnectionError("refused")))

    with pytest.raises(RuntimeError, match="refused"):
        await client.invoke([HumanMessage(content="hi")])
