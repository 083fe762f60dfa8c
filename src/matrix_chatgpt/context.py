"""Rebuild the conversation sent to the completion provider from room history."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

import nio

from .constants import DEFAULT_HISTORY_LIMIT
from .errors import ContextBuildError
from .logging_config import get_logger
from .matrix.client import TRANSPORT_ERRORS

logger = get_logger(__name__)


class Role(StrEnum):
    """Turn-taking tag of a conversation message."""

    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class ConversationMessage:
    """One turn of the conversation, in the shape the provider expects.

    ``name`` is kept for forward compatibility but is never filled in:
    the provider's request validation used to reject Matrix IDs there.
    """

    role: Role
    content: str
    name: str | None = None


def is_original_text_message(event: nio.Event) -> bool:
    """Whether *event* is a plain text message as first written (not an edit)."""
    if not isinstance(event, nio.RoomMessageText):
        return False
    relates_to = event.source.get("content", {}).get("m.relates_to") or {}
    return relates_to.get("rel_type") != "m.replace"


class ContextBuilder:
    """Turns the latest room timeline into an ordered, role-tagged message list."""

    def __init__(self, client: nio.AsyncClient, user_id: str, history_limit: int = DEFAULT_HISTORY_LIMIT) -> None:
        self.client = client
        self.user_id = user_id
        self.history_limit = history_limit

    async def build(self, room_id: str) -> list[ConversationMessage]:
        """Return the recent conversation in *room_id*, oldest message first.

        Every message written by the bot becomes an assistant turn; every
        other sender is folded into the single user role.

        Raises:
            ContextBuildError: If history cannot be fetched or an event cannot be decoded

        """
        chunk = await self._fetch_history(room_id)

        messages: list[ConversationMessage] = []
        # History arrives newest first
        for event in reversed(chunk):
            if isinstance(event, (nio.BadEvent, nio.UnknownBadEvent)):
                msg = f"Could not decode event {event.source.get('event_id')} in {room_id}"
                raise ContextBuildError(msg)
            if not is_original_text_message(event):
                continue
            role = Role.ASSISTANT if event.sender == self.user_id else Role.USER
            messages.append(ConversationMessage(role=role, content=event.body))

        logger.debug("Built conversation context", room_id=room_id, events=len(chunk), messages=len(messages))
        return messages

    async def _fetch_history(self, room_id: str) -> list[nio.Event]:
        try:
            response = await self.client.room_messages(
                room_id,
                start=None,
                limit=self.history_limit,
                direction=nio.MessageDirection.back,
            )
        except TRANSPORT_ERRORS as e:
            msg = f"Failed to fetch history for {room_id}: {e}"
            raise ContextBuildError(msg) from e

        if not isinstance(response, nio.RoomMessagesResponse):
            msg = f"Failed to fetch history for {room_id}: {response}"
            raise ContextBuildError(msg)
        return list(response.chunk)
