"""Decide which room messages get an answer, and answer them."""

from __future__ import annotations

from typing import TYPE_CHECKING

import nio

from .authorization import is_authorized_sender
from .context import is_original_text_message
from .errors import CompletionError, ContextBuildError
from .logging_config import get_logger
from .matrix.client import RoomStatus, build_text_content, room_status, send_message, send_read_receipt
from .matrix.typing import typing_indicator

if TYPE_CHECKING:
    from .completion import CompletionProvider
    from .config import Config
    from .context import ContextBuilder

logger = get_logger(__name__)


class MessageDispatcher:
    """Filters incoming messages and relays admitted ones to the completion provider.

    Failures never reach the room: a turn either ends with a reply or in
    silence, with the reason in the logs.
    """

    def __init__(
        self,
        client: nio.AsyncClient,
        user_id: str,
        config: Config,
        context_builder: ContextBuilder,
        provider: CompletionProvider,
    ) -> None:
        self.client = client
        self.user_id = user_id
        self.config = config
        self.context_builder = context_builder
        self.provider = provider

    async def on_message(self, room: nio.MatrixRoom, event: nio.RoomMessage) -> None:
        """Callback for message events delivered by the sync loop."""
        if not self.should_respond(room, event):
            return
        assert isinstance(event, nio.RoomMessageText)

        logger.debug("Received message", room_id=room.room_id, sender=event.sender, event_id=event.event_id)
        await send_read_receipt(self.client, room.room_id, event.event_id)

        reply = await self._generate_reply(room.room_id)
        if reply is None:
            return

        event_id = await send_message(self.client, room.room_id, build_text_content(reply))
        if event_id is None:
            logger.error("Dropping reply that could not be posted", room_id=room.room_id)
            return
        logger.info("Sent reply", room_id=room.room_id, event_id=event_id, in_reply_to=event.event_id)

    def should_respond(self, room: nio.MatrixRoom, event: nio.RoomMessage) -> bool:
        """Admission filter, checked in order before any side effect."""
        # Never answer ourselves, that would loop forever
        if event.sender == self.user_id:
            return False

        if not is_authorized_sender(event.sender, self.config):
            logger.debug("Ignoring message from unauthorized user", sender=event.sender, room_id=room.room_id)
            return False

        if room_status(self.client, room.room_id) is not RoomStatus.JOINED:
            logger.debug("Ignoring message from room we are not joined to", room_id=room.room_id)
            return False

        # Edits never make it into the context
        return is_original_text_message(event)

    async def _generate_reply(self, room_id: str) -> str | None:
        async with typing_indicator(self.client, room_id):
            try:
                messages = await self.context_builder.build(room_id)
            except ContextBuildError:
                logger.exception("Failed to build conversation context", room_id=room_id)
                return None

            if not messages:
                logger.warning("No text messages in room history, nothing to answer", room_id=room_id)
                return None

            try:
                return await self.provider.complete(messages)
            except CompletionError:
                logger.exception("Completion failed", room_id=room_id)
                return None
