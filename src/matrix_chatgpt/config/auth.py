"""Authorization configuration models."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator


class AuthorizationConfig(BaseModel):
    """Which senders the bot answers.

    An empty ``authorized_users`` set means everyone is allowed.
    """

    model_config = ConfigDict(frozen=True)

    authorized_users: frozenset[str] = Field(
        default_factory=frozenset,
        description="Matrix user IDs allowed to talk to the bot (e.g., '@user:example.com')",
    )

    @field_validator("authorized_users", mode="before")
    @classmethod
    def split_user_list(cls, value: object) -> object:
        """Accept the comma-separated form used in the environment."""
        if value is None:
            return frozenset()
        if isinstance(value, str):
            return frozenset(user.strip() for user in value.split(",") if user.strip())
        return value

    @property
    def is_restricted(self) -> bool:
        """Whether only listed users may talk to the bot."""
        return bool(self.authorized_users)
