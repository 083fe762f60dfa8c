"""Chat-completion providers."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

from agno.models.message import Message
from agno.models.openai import OpenAIChat

from .constants import APP_NAME, DEFAULT_OPENAI_MODEL
from .errors import CompletionError
from .logging_config import get_logger

if TYPE_CHECKING:
    from collections.abc import Sequence

    from .context import ConversationMessage

logger = get_logger(__name__)


class CompletionProvider(Protocol):
    """Anything that can answer an ordered list of conversation messages."""

    async def complete(self, messages: Sequence[ConversationMessage]) -> str:
        """Return the reply to *messages* or raise CompletionError."""
        ...


class OpenAICompletionProvider:
    """Completion provider backed by the OpenAI chat completions API."""

    def __init__(self, api_key: str, model_id: str = DEFAULT_OPENAI_MODEL, user: str = APP_NAME) -> None:
        self.model = OpenAIChat(id=model_id, api_key=api_key, user=user)

    async def complete(self, messages: Sequence[ConversationMessage]) -> str:
        """Send *messages* in one request and return the text of the first choice."""
        request = [Message(role=message.role.value, content=message.content, name=message.name) for message in messages]
        logger.debug("Requesting completion", model=self.model.id, messages=len(request))
        try:
            response = await self.model.aresponse(messages=request)
        except Exception as e:
            msg = f"Completion request failed: {e}"
            raise CompletionError(msg) from e

        if not response.content:
            msg = "Completion provider returned an empty reply"
            raise CompletionError(msg)
        return str(response.content)
