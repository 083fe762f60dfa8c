"""Automatic acceptance of room invitations with exponential backoff.

Synapse can deliver an invite before the invited user is actually able to
join (https://github.com/matrix-org/synapse/issues/4345), so a failed join is
retried until the backoff delay passes its ceiling.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

import nio

from .backoff import BackoffPolicy
from .logging_config import get_logger
from .matrix.client import TRANSPORT_ERRORS, RoomStatus, room_status

logger = get_logger(__name__)

Sleep = Callable[[float], Awaitable[None]]


@dataclass
class RetryState:
    """Progress of the join attempts for one invited room."""

    room_id: str
    attempt: int = 0
    delay: int = 0


class InviteAutoJoiner:
    """Accepts invitations addressed to this session, one retry task per room."""

    def __init__(
        self,
        client: nio.AsyncClient,
        user_id: str,
        policy: BackoffPolicy | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.client = client
        self.user_id = user_id
        self.policy = policy or BackoffPolicy()
        self._sleep = sleep
        # Map of room_id -> live retry task; the entry is the room's claim
        self._tasks: dict[str, asyncio.Task[None]] = {}

    def is_retrying(self, room_id: str) -> bool:
        """Whether a join task for *room_id* is still running."""
        return room_id in self._tasks

    def pending(self) -> list[asyncio.Task[None]]:
        """Retry tasks that have not finished yet."""
        return list(self._tasks.values())

    async def on_invite(self, room: nio.MatrixRoom, event: nio.InviteMemberEvent) -> None:
        """Callback for invite membership events delivered by the sync loop."""
        if event.state_key != self.user_id:
            # The invite we've seen isn't for us, but for someone else
            return

        room_id = room.room_id
        if room_status(self.client, room_id) is not RoomStatus.INVITED:
            logger.debug("Ignoring invite for room not in invited state", room_id=room_id)
            return

        if self.is_retrying(room_id):
            logger.debug("Already joining room", room_id=room_id)
            return

        state = RetryState(room_id=room_id, delay=self.policy.delay_for(0))
        task = asyncio.create_task(self._join_with_retry(state), name=f"autojoin {room_id}")
        self._tasks[room_id] = task
        task.add_done_callback(lambda t: self._forget(room_id, t))

    async def _join_with_retry(self, state: RetryState) -> None:
        logger.info("Autojoining room", room_id=state.room_id)
        while True:
            error = await self._try_join(state.room_id)
            if error is None:
                logger.info("Successfully joined room", room_id=state.room_id, attempts=state.attempt + 1)
                return

            logger.error(
                "Failed to join room, retrying",
                room_id=state.room_id,
                error=error,
                attempt=state.attempt,
                delay=state.delay,
            )
            await self._sleep(state.delay)
            state.delay = self.policy.next_delay(state.delay)
            state.attempt += 1

            if self.policy.exhausted(state.delay):
                logger.error("Can't join room, giving up", room_id=state.room_id, error=error, attempts=state.attempt)
                return

    async def _try_join(self, room_id: str) -> str | None:
        """Attempt one join. Returns None on success, otherwise the failure reason."""
        try:
            response = await self.client.join(room_id)
        except TRANSPORT_ERRORS as e:
            return f"{type(e).__name__}: {e}"
        if isinstance(response, nio.JoinResponse):
            return None
        return str(response)

    def _forget(self, room_id: str, task: asyncio.Task[None]) -> None:
        if self._tasks.get(room_id) is task:
            del self._tasks[room_id]
        if not task.cancelled() and task.exception() is not None:
            logger.error("Autojoin task failed", room_id=room_id, exc_info=task.exception())

    async def close(self) -> None:
        """Cancel every running retry task."""
        tasks = self.pending()
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
