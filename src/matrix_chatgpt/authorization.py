"""Sender authorization checks."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from matrix_chatgpt.config import Config


def is_authorized_sender(sender_id: str, config: Config) -> bool:
    """Check if a sender may talk to the bot.

    Args:
        sender_id: Matrix ID of the message sender
        config: Application configuration

    Returns:
        True if no allowlist is configured or the sender is on it

    """
    authorization = config.authorization
    if not authorization.is_restricted:
        return True
    return sender_id in authorization.authorized_users
