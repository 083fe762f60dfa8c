"""Typing indicator management."""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager, suppress
from typing import TYPE_CHECKING

import nio

from matrix_chatgpt.constants import TYPING_TIMEOUT_MS
from matrix_chatgpt.logging_config import get_logger

from .client import TRANSPORT_ERRORS

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

logger = get_logger(__name__)


async def set_typing(
    client: nio.AsyncClient,
    room_id: str,
    typing: bool = True,
    timeout_ms: int = TYPING_TIMEOUT_MS,
) -> bool:
    """Set typing status in a room. Best-effort: failures are only logged.

    Args:
        client: Matrix client instance
        room_id: Room to show typing indicator in
        typing: Whether to show or hide typing indicator
        timeout_ms: How long the typing indicator should last (in milliseconds)

    Returns:
        True if the homeserver accepted the update

    """
    try:
        response = await client.room_typing(room_id, typing, timeout_ms)
    except TRANSPORT_ERRORS as e:
        logger.warning("Failed to set typing status", room_id=room_id, typing=typing, error=str(e))
        return False
    if isinstance(response, nio.RoomTypingError):
        logger.warning(
            "Failed to set typing status",
            room_id=room_id,
            typing=typing,
            error=response.message,
        )
        return False
    logger.debug("Set typing status", room_id=room_id, typing=typing)
    return True


@asynccontextmanager
async def typing_indicator(
    client: nio.AsyncClient,
    room_id: str,
    timeout_ms: int = TYPING_TIMEOUT_MS,
) -> AsyncGenerator[None, None]:
    """Show a typing indicator while the body of the block runs.

    Usage:
        async with typing_indicator(client, room_id):
            reply = await provider.complete(messages)

    The indicator is refreshed while the block runs and cleared on exit.
    """
    await set_typing(client, room_id, True, timeout_ms)

    # Matrix typing notifications expire after timeout_ms
    refresh_interval = min(timeout_ms / 2, 15000) / 1000

    async def refresh_typing() -> None:
        while True:
            await asyncio.sleep(refresh_interval)
            await set_typing(client, room_id, True, timeout_ms)

    refresh_task = asyncio.create_task(refresh_typing())

    try:
        yield
    finally:
        refresh_task.cancel()
        with suppress(asyncio.CancelledError):
            await refresh_task

        await set_typing(client, room_id, False)
