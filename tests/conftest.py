"""Test configuration and fixtures for matrix_chatgpt tests."""

from __future__ import annotations

import pytest

from matrix_chatgpt.config import Config

from .test_helpers import BOT_ID

__all__ = ["TEST_API_KEY", "TEST_PASSWORD", "make_config"]

# Test credentials constants - not real credentials, safe for testing
TEST_PASSWORD = "mock_test_password"  # noqa: S105
TEST_API_KEY = "mock_test_api_key"


def make_config(authorized_users: str | None = None, **overrides: object) -> Config:
    """Config for the test bot, optionally restricted to *authorized_users*."""
    values: dict[str, object] = {
        "user_id": BOT_ID,
        "password": TEST_PASSWORD,
        "openai_api_key": TEST_API_KEY,
        "homeserver": "https://matrix.example",
        "authorization": {"authorized_users": authorized_users},
    }
    values.update(overrides)
    return Config.model_validate(values)


@pytest.fixture
def config() -> Config:
    """Unrestricted config for @bot:example."""
    return make_config()
