"""Client for the OpenAI-compatible question generation endpoint."""
from typing import Iterable, List, Optional

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage
from langchain_openai import ChatOpenAI

from formpilot.config import config
from formpilot.models import HistoryTurn

ROLE_MESSAGES = {"user": HumanMessage, "assistant": AIMessage}


class LLMClient:
    """NVIDIA NIM chat client wrapper."""

    def __init__(self, chat_model: Optional[ChatOpenAI] = None):
        """Use ``chat_model``, or build one from the configured endpoint."""
        if chat_model is None:
            if not config.validate():
                raise ValueError("Question generation is not configured (NVIDIA_API_KEY not set)")
            chat_model = ChatOpenAI(
                base_url=config.NVIDIA_API_URL,
                api_key=config.NVIDIA_API_KEY,
                model=config.AI_MODEL,
                temperature=config.MODEL_TEMPERATURE,
                max_tokens=config.MODEL_MAX_TOKENS,
                top_p=config.MODEL_TOP_P,
            )
        self.client = chat_model

    async def invoke(self, messages: List[BaseMessage]) -> AIMessage:
        """Send ``messages`` and return the model's reply."""
        try:
            return await self.client.ainvoke(messages)
        except Exception as e:
            raise RuntimeError(f"Error calling question generation service: {str(e)}") from e

    def create_messages(
        self,
        system_prompt: str,
        user_message: str,
        history: Iterable[HistoryTurn] = (),
        context: Optional[str] = None
    ) -> List[BaseMessage]:
        """System prompt, optional form context, replayed turns, then the new user message."""
        messages: List[BaseMessage] = [SystemMessage(content=system_prompt)]

        if context:
            messages.append(SystemMessage(content=context))

        for turn in history:
            messages.append(ROLE_MESSAGES[turn.role](content=turn.content))

        messages.append(HumanMessage(content=user_message))
        return messages


# Global LLM client instance
llm_client = None


def get_llm_client() -> LLMClient:
    """Get or create the LLM client instance."""
    global llm_client
    if llm_client is None:
        llm_client = LLMClient()
    return llm_client
