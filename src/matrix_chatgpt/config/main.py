"""Root configuration model and helpers."""

from __future__ import annotations

import os
from collections.abc import Mapping

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from matrix_chatgpt.constants import (
    DEFAULT_HISTORY_LIMIT,
    DEFAULT_OPENAI_MODEL,
    ENV_AUTHORIZED_USERS,
    ENV_HISTORY_LIMIT,
    ENV_MATRIX_HOMESERVER,
    ENV_MATRIX_PASSWORD,
    ENV_MATRIX_USERNAME,
    ENV_OPENAI_API_KEY,
    ENV_OPENAI_MODEL,
)
from matrix_chatgpt.errors import ConfigError
from matrix_chatgpt.matrix.identity import MatrixID, parse_matrix_id

from .auth import AuthorizationConfig

REQUIRED_ENV_VARS = (ENV_MATRIX_USERNAME, ENV_MATRIX_PASSWORD, ENV_OPENAI_API_KEY)


class Config(BaseModel):
    """Process-wide configuration, read once at startup and never mutated."""

    model_config = ConfigDict(frozen=True)

    user_id: str = Field(description="Full Matrix user ID of the bot (e.g., '@bot:example.org')")
    password: str = Field(repr=False)
    openai_api_key: str = Field(repr=False)
    homeserver: str | None = Field(
        default=None,
        description="Homeserver URL; discovered from the user ID's server name when unset",
    )
    openai_model: str = DEFAULT_OPENAI_MODEL
    history_limit: int = Field(default=DEFAULT_HISTORY_LIMIT, ge=1)
    authorization: AuthorizationConfig = Field(default_factory=AuthorizationConfig)

    @field_validator("user_id")
    @classmethod
    def validate_user_id(cls, user_id: str) -> str:
        """Reject anything that is not a full Matrix user ID."""
        return parse_matrix_id(user_id.strip()).full_id

    @field_validator("homeserver")
    @classmethod
    def normalize_homeserver(cls, homeserver: str | None) -> str | None:
        """Strip trailing slashes; treat an empty value as unset."""
        if not homeserver:
            return None
        return homeserver.rstrip("/")

    @property
    def matrix_id(self) -> MatrixID:
        """Parsed identity of the bot."""
        return parse_matrix_id(self.user_id)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Config:
        """Build the configuration from environment variables.

        When *environ* is omitted, a ``.env`` file in the working directory is
        loaded into ``os.environ`` first.

        Raises:
            ConfigError: If a required variable is missing or a value is invalid

        """
        if environ is None:
            load_dotenv()
            environ = os.environ

        missing = [name for name in REQUIRED_ENV_VARS if not environ.get(name)]
        if missing:
            msg = f"Missing required environment variables: {', '.join(missing)}"
            raise ConfigError(msg)

        values: dict[str, object] = {
            "user_id": environ[ENV_MATRIX_USERNAME],
            "password": environ[ENV_MATRIX_PASSWORD],
            "openai_api_key": environ[ENV_OPENAI_API_KEY],
            "homeserver": environ.get(ENV_MATRIX_HOMESERVER),
            "authorization": {"authorized_users": environ.get(ENV_AUTHORIZED_USERS)},
        }
        if environ.get(ENV_OPENAI_MODEL):
            values["openai_model"] = environ[ENV_OPENAI_MODEL]
        if environ.get(ENV_HISTORY_LIMIT):
            values["history_limit"] = environ[ENV_HISTORY_LIMIT]

        try:
            return cls.model_validate(values)
        except ValidationError as e:
            msg = f"Invalid configuration: {e}"
            raise ConfigError(msg) from e
