"""Matrix user ID parsing."""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import ClassVar


@dataclass(frozen=True)
class MatrixID:
    """Immutable Matrix user ID representation with parsing and validation."""

    username: str
    domain: str

    MATRIX_ID_PARTS: ClassVar[int] = 2  # Matrix IDs have username:domain

    @classmethod
    def parse(cls, matrix_id: str) -> MatrixID:
        """Parse a Matrix ID like @bot:example.org."""
        if not matrix_id.startswith("@"):
            msg = f"Invalid Matrix ID: {matrix_id}"
            raise ValueError(msg)

        parts = matrix_id[1:].split(":", 1)
        if len(parts) != cls.MATRIX_ID_PARTS or not all(parts):
            msg = f"Invalid Matrix ID format: {matrix_id}"
            raise ValueError(msg)

        return cls(username=parts[0], domain=parts[1])

    @property
    def full_id(self) -> str:
        """Get the full Matrix ID like @bot:example.org."""
        return f"@{self.username}:{self.domain}"

    @property
    def server_name(self) -> str:
        """Server name part of the ID, used for homeserver discovery."""
        return self.domain

    def __str__(self) -> str:
        """Return the full Matrix ID string representation."""
        return self.full_id


@lru_cache(maxsize=256)
def parse_matrix_id(matrix_id: str) -> MatrixID:
    """Parse a Matrix ID with caching."""
    return MatrixID.parse(matrix_id)
