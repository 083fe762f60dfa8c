"""Exception types raised by the relay."""

from __future__ import annotations


class RelayError(Exception):
    """Base class for all errors raised by matrix_chatgpt."""


class ConfigError(RelayError):
    """Required configuration is missing or invalid. Fatal at startup."""


class LoginError(RelayError):
    """The homeserver rejected the bot's credentials. Fatal at startup."""


class ContextBuildError(RelayError):
    """Room history could not be fetched or decoded into a conversation."""


class CompletionError(RelayError):
    """The completion provider failed or returned no usable reply."""


class SyncError(RelayError):
    """The initial sync with the homeserver failed. Fatal at startup."""
