"""Matrix client operations and utilities."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from enum import Enum
from typing import Any

import aiohttp
import markdown
import nio

from matrix_chatgpt.errors import LoginError
from matrix_chatgpt.logging_config import get_logger

logger = get_logger(__name__)

# Exceptions nio lets through when the homeserver cannot be reached
TRANSPORT_ERRORS = (aiohttp.ClientError, TimeoutError)


class RoomStatus(Enum):
    """Membership of the session in a room, as tracked by the client."""

    INVITED = "invited"
    JOINED = "joined"
    LEFT = "left"


def room_status(client: nio.AsyncClient, room_id: str) -> RoomStatus:
    """Return the session's current membership state for *room_id*."""
    if room_id in client.invited_rooms:
        return RoomStatus.INVITED
    if room_id in client.rooms:
        return RoomStatus.JOINED
    return RoomStatus.LEFT


@asynccontextmanager
async def matrix_client(homeserver: str, user_id: str = "") -> AsyncGenerator[nio.AsyncClient, None]:
    """Context manager for a Matrix client that ensures proper cleanup.

    Example:
        async with matrix_client("https://matrix.org") as client:
            response = await client.discovery_info()

    """
    client = nio.AsyncClient(homeserver, user_id)
    try:
        yield client
    finally:
        await client.close()


async def resolve_homeserver(server_name: str) -> str:
    """Find the homeserver URL for *server_name* through .well-known discovery.

    Falls back to ``https://<server_name>`` when the server publishes no
    discovery document.
    """
    fallback = f"https://{server_name}"
    try:
        async with matrix_client(fallback) as client:
            response = await client.discovery_info()
    except TRANSPORT_ERRORS as e:
        logger.warning("Homeserver discovery failed", server_name=server_name, error=str(e))
        return fallback

    if isinstance(response, nio.DiscoveryInfoResponse) and response.homeserver_url:
        homeserver = response.homeserver_url.rstrip("/")
        logger.info("Discovered homeserver", server_name=server_name, homeserver=homeserver)
        return homeserver
    logger.info("No discovery information, using server name", server_name=server_name, homeserver=fallback)
    return fallback


async def login(homeserver: str, user_id: str, password: str, device_name: str) -> nio.AsyncClient:
    """Login to Matrix and return an authenticated client.

    Args:
        homeserver: The Matrix homeserver URL
        user_id: The full Matrix user ID (e.g., @bot:example.org)
        password: The user's password
        device_name: Display name of the device created for this session

    Returns:
        Authenticated AsyncClient instance

    Raises:
        LoginError: If login fails

    """
    client = nio.AsyncClient(homeserver, user_id)

    try:
        response = await client.login(password, device_name=device_name)
    except TRANSPORT_ERRORS as e:
        await client.close()
        msg = f"Failed to login {user_id}: {e}"
        raise LoginError(msg) from e

    if isinstance(response, nio.LoginResponse):
        logger.info("Successfully logged in", user_id=user_id, device_id=response.device_id)
        return client
    await client.close()
    msg = f"Failed to login {user_id}: {response}"
    raise LoginError(msg)


async def send_read_receipt(client: nio.AsyncClient, room_id: str, event_id: str) -> bool:
    """Mark *event_id* as read. Best-effort: failures are logged, never raised.

    Returns:
        True if the homeserver accepted the receipt

    """
    try:
        response = await client.room_read_markers(room_id, fully_read_event=event_id, read_event=event_id)
    except TRANSPORT_ERRORS as e:
        logger.warning("Failed to send read receipt", room_id=room_id, event_id=event_id, error=str(e))
        return False
    if isinstance(response, nio.RoomReadMarkersError):
        logger.warning("Failed to send read receipt", room_id=room_id, event_id=event_id, error=response.message)
        return False
    return True


async def send_message(client: nio.AsyncClient, room_id: str, content: dict[str, Any]) -> str | None:
    """Send a message to a Matrix room.

    Args:
        client: Authenticated Matrix client
        room_id: The room ID to send the message to
        content: The message content dictionary

    Returns:
        The event ID of the sent message, or None if sending failed

    """
    try:
        response = await client.room_send(
            room_id=room_id,
            message_type="m.room.message",
            content=content,
        )
    except TRANSPORT_ERRORS as e:
        logger.error("Failed to send message", room_id=room_id, error=str(e))
        return None
    if isinstance(response, nio.RoomSendResponse):
        logger.debug("Sent message", room_id=room_id, event_id=response.event_id)
        return str(response.event_id)
    logger.error("Failed to send message", room_id=room_id, error=str(response))
    return None


def markdown_to_html(text: str) -> str:
    """Convert markdown text to HTML for Matrix formatted messages."""
    md = markdown.Markdown(
        extensions=[
            "markdown.extensions.fenced_code",
            "markdown.extensions.tables",
            "markdown.extensions.nl2br",
        ],
    )
    html_text: str = md.convert(text)
    return html_text


def build_text_content(text: str) -> dict[str, Any]:
    """Build ``m.text`` content with an HTML rendering and the raw text as fallback."""
    return {
        "msgtype": "m.text",
        "body": text,
        "format": "org.matrix.custom.html",
        "formatted_body": markdown_to_html(text),
    }
