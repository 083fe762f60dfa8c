"""Matrix session helpers built on matrix-nio."""

from .client import RoomStatus, login, resolve_homeserver, room_status
from .identity import MatrixID, parse_matrix_id

__all__ = ["MatrixID", "RoomStatus", "login", "parse_matrix_id", "resolve_homeserver", "room_status"]
