"""Tests for automatic invite acceptance."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import aiohttp
import nio
import pytest
from structlog.testing import capture_logs

from matrix_chatgpt.invites import InviteAutoJoiner

from .test_helpers import ALICE_ID, BOT_ID, ROOM_ID, mock_client


def invite_event(state_key: str = BOT_ID) -> MagicMock:
    """Invite membership event targeting *state_key*."""
    event = MagicMock(spec=nio.InviteMemberEvent)
    event.sender = ALICE_ID
    event.state_key = state_key
    event.membership = "invite"
    return event


def make_joiner(client: AsyncMock) -> tuple[InviteAutoJoiner, AsyncMock]:
    sleep = AsyncMock()
    return InviteAutoJoiner(client, BOT_ID, sleep=sleep), sleep


async def wait_for_joins(joiner: InviteAutoJoiner) -> None:
    await asyncio.gather(*joiner.pending())


@pytest.mark.asyncio
async def test_invite_for_someone_else_is_ignored() -> None:
    """An invite targeting another user never spawns a retry task."""
    client = mock_client(invited=(ROOM_ID,))
    joiner, _ = make_joiner(client)

    await joiner.on_invite(nio.MatrixInvitedRoom(ROOM_ID, BOT_ID), invite_event(state_key=ALICE_ID))

    assert joiner.pending() == []
    client.join.assert_not_called()


@pytest.mark.asyncio
async def test_invite_for_room_not_in_invited_state_is_ignored() -> None:
    """Already joined or rescinded invites are not processed again."""
    client = mock_client(joined=(ROOM_ID,))
    joiner, _ = make_joiner(client)

    await joiner.on_invite(nio.MatrixRoom(ROOM_ID, BOT_ID), invite_event())

    assert joiner.pending() == []
    client.join.assert_not_called()


@pytest.mark.asyncio
async def test_successful_join_on_first_attempt() -> None:
    """A join that succeeds right away does not sleep."""
    client = mock_client(invited=(ROOM_ID,))
    client.join.return_value = nio.JoinResponse(ROOM_ID)
    joiner, sleep = make_joiner(client)

    await joiner.on_invite(nio.MatrixInvitedRoom(ROOM_ID, BOT_ID), invite_event())
    assert joiner.is_retrying(ROOM_ID)
    await wait_for_joins(joiner)

    client.join.assert_awaited_once_with(ROOM_ID)
    sleep.assert_not_called()
    assert not joiner.is_retrying(ROOM_ID)


@pytest.mark.asyncio
async def test_three_failures_then_success() -> None:
    """Three failed joins are retried after 2, 4 and 8 seconds, then the fourth succeeds."""
    client = mock_client(invited=(ROOM_ID,))
    client.join.side_effect = [
        nio.JoinError("not yet"),
        nio.JoinError("not yet"),
        nio.JoinError("not yet"),
        nio.JoinResponse(ROOM_ID),
    ]
    joiner, sleep = make_joiner(client)

    with capture_logs() as logs:
        await joiner.on_invite(nio.MatrixInvitedRoom(ROOM_ID, BOT_ID), invite_event())
        await wait_for_joins(joiner)

    assert client.join.await_count == 4
    assert [call.args[0] for call in sleep.await_args_list] == [2, 4, 8]

    retries = [entry for entry in logs if entry["event"] == "Failed to join room, retrying"]
    assert [entry["delay"] for entry in retries] == [2, 4, 8]
    assert all(entry["room_id"] == ROOM_ID for entry in retries)
    successes = [entry for entry in logs if entry["event"] == "Successfully joined room"]
    assert len(successes) == 1
    assert successes[0]["attempts"] == 4


@pytest.mark.asyncio
async def test_gives_up_when_delay_passes_ceiling() -> None:
    """After waiting 2048 seconds the next delay exceeds 3600 and retrying stops."""
    client = mock_client(invited=(ROOM_ID,))
    client.join.return_value = nio.JoinError("M_FORBIDDEN")
    joiner, sleep = make_joiner(client)

    with capture_logs() as logs:
        await joiner.on_invite(nio.MatrixInvitedRoom(ROOM_ID, BOT_ID), invite_event())
        await wait_for_joins(joiner)

    delays = [call.args[0] for call in sleep.await_args_list]
    assert delays == [2**n for n in range(1, 12)]
    assert client.join.await_count == len(delays)
    assert [entry["event"] for entry in logs].count("Can't join room, giving up") == 1
    assert not any(entry["event"] == "Successfully joined room" for entry in logs)
    assert not joiner.is_retrying(ROOM_ID)


@pytest.mark.asyncio
async def test_transport_errors_are_retried() -> None:
    """A connection error during join is treated like a failed join."""
    client = mock_client(invited=(ROOM_ID,))
    client.join.side_effect = [aiohttp.ClientConnectionError("down"), nio.JoinResponse(ROOM_ID)]
    joiner, sleep = make_joiner(client)

    await joiner.on_invite(nio.MatrixInvitedRoom(ROOM_ID, BOT_ID), invite_event())
    await wait_for_joins(joiner)

    assert client.join.await_count == 2
    sleep.assert_awaited_once_with(2)


@pytest.mark.asyncio
async def test_second_invite_does_not_spawn_duplicate_task() -> None:
    """At most one retry task exists per room."""
    client = mock_client(invited=(ROOM_ID,))
    release = asyncio.Event()

    async def slow_join(room_id: str) -> nio.JoinResponse:
        await release.wait()
        return nio.JoinResponse(room_id)

    client.join.side_effect = slow_join
    joiner, _ = make_joiner(client)
    room = nio.MatrixInvitedRoom(ROOM_ID, BOT_ID)

    await joiner.on_invite(room, invite_event())
    first = joiner.pending()
    await joiner.on_invite(room, invite_event())

    assert joiner.pending() == first
    assert len(first) == 1

    release.set()
    await wait_for_joins(joiner)
    assert client.join.await_count == 1


@pytest.mark.asyncio
async def test_close_cancels_running_tasks() -> None:
    """Shutdown abandons in-flight retry tasks."""
    client = mock_client(invited=(ROOM_ID,))
    client.join.return_value = nio.JoinError("not yet")
    joiner = InviteAutoJoiner(client, BOT_ID, sleep=asyncio.sleep)

    await joiner.on_invite(nio.MatrixInvitedRoom(ROOM_ID, BOT_ID), invite_event())
    await asyncio.sleep(0)
    await joiner.close()

    assert joiner.pending() == []
