"""
Language model collaborator. Only used as a fallback and for progress/review prose.
"""

import logging
from typing import Optional, Sequence

import openai
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage
from langchain_openai import ChatOpenAI
from langsmith import traceable

from legianos.config import settings
from legianos.errors import CollaboratorError
from legianos.services.memory import ConversationTurn

logger = logging.getLogger("legianos")

CREDENTIAL_HINT = "Check that OPENAI_API_KEY is set to a valid key."

SYSTEM_PROMPT = """You are LegianOS, a helpful goal management assistant. Help users set and achieve their goals.

When users share goals:
- Ask clarifying questions to understand their goals better
- Help them break goals into actionable milestones
- Provide encouragement and support
- Be concise and helpful

Keep responses short and focused."""


class LLMClient:

    def __init__(self, llm: Optional[ChatOpenAI] = None):
        self._llm = llm

    @property
    def llm(self) -> ChatOpenAI:
        if self._llm is None:
            if not settings.openai_api_key:
                raise CollaboratorError("Language model is not configured", hint=CREDENTIAL_HINT)
            self._llm = ChatOpenAI(
                model=settings.openai_model,
                api_key=settings.openai_api_key,
                temperature=settings.openai_temperature,
            )
        return self._llm

    @staticmethod
    def _messages(prompt: str, history: Sequence[ConversationTurn]) -> list[BaseMessage]:
        messages: list[BaseMessage] = [SystemMessage(content=SYSTEM_PROMPT)]
        for turn in history:
            if turn.role == "assistant":
                messages.append(AIMessage(content=turn.content))
            else:
                messages.append(HumanMessage(content=turn.content))
        messages.append(HumanMessage(content=prompt))
        return messages

    @traceable(run_type="llm", name="legianos_complete")
    async def complete(
        self,
        prompt: str,
        thread_id: str,
        user_id: str,
        history: Sequence[ConversationTurn] = (),
    ) -> str:
        """
        One completion with the thread history as context.
        Raises CollaboratorError; `hint` is set for credential problems.
        """
        try:
            response = await self.llm.ainvoke(self._messages(prompt, history))
        except openai.AuthenticationError as e:
            logger.error("llm_auth_failed", extra={"thread_id": thread_id, "user_id": user_id})
            raise CollaboratorError(f"Language model rejected credentials: {e}", hint=CREDENTIAL_HINT) from e
        except openai.OpenAIError as e:
            logger.error("llm_call_failed", extra={"thread_id": thread_id, "error": str(e)})
            raise CollaboratorError(f"Language model call failed: {e}") from e

        return response.content if isinstance(response.content, str) else str(response.content)


_client: Optional[LLMClient] = None


def get_llm_client() -> LLMClient:
    global _client
    if _client is None:
        _client = LLMClient()
    return _client
