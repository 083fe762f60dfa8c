"""The relay bot: session setup and the sync loop."""

from __future__ import annotations

from dataclasses import dataclass, field

import nio

from .completion import CompletionProvider, OpenAICompletionProvider
from .config import Config
from .constants import APP_NAME, SYNC_TIMEOUT_MS
from .context import ContextBuilder
from .dispatcher import MessageDispatcher
from .errors import SyncError
from .invites import InviteAutoJoiner
from .logging_config import get_logger
from .matrix.client import login, resolve_homeserver

logger = get_logger(__name__)


@dataclass
class RelayBot:
    """Wires the Matrix session to the invite joiner and the message dispatcher."""

    config: Config
    provider: CompletionProvider | None = None

    client: nio.AsyncClient | None = field(default=None, init=False)
    joiner: InviteAutoJoiner | None = field(default=None, init=False)
    dispatcher: MessageDispatcher | None = field(default=None, init=False)
    # Resume token from the initial sync, kept in memory only
    since: str | None = field(default=None, init=False)

    async def start(self) -> None:
        """Log in, sync once and register the event callbacks."""
        homeserver = self.config.homeserver or await resolve_homeserver(self.config.matrix_id.server_name)
        self.client = await login(homeserver, self.config.user_id, self.config.password, APP_NAME)
        # The homeserver may canonicalise the login name, e.g. lowercase it
        user_id = self.client.user_id or self.config.user_id
        if user_id != self.config.user_id:
            logger.warning(
                "Homeserver returned a different user ID than configured",
                configured=self.config.user_id,
                user_id=user_id,
            )
        self.attach(self.client, user_id)
        assert self.joiner is not None
        assert self.dispatcher is not None

        # Invites already pending at startup should still be accepted
        self.client.add_event_callback(self.joiner.on_invite, nio.InviteMemberEvent)

        # An initial sync so the bot doesn't respond to old messages
        response = await self.client.sync(timeout=SYNC_TIMEOUT_MS, full_state=True)
        if not isinstance(response, nio.SyncResponse):
            msg = f"Initial sync failed: {response}"
            raise SyncError(msg)
        self.since = response.next_batch

        self.client.add_event_callback(self.dispatcher.on_message, nio.RoomMessage)
        logger.info("Bot started", user_id=user_id, homeserver=homeserver)

    def attach(self, client: nio.AsyncClient, user_id: str | None = None) -> None:
        """Build the joiner and dispatcher around an authenticated *client*.

        *user_id* is the identity the session acts as, defaulting to the configured one.
        """
        self.client = client
        user_id = user_id or self.config.user_id
        if self.provider is None:
            self.provider = OpenAICompletionProvider(self.config.openai_api_key, self.config.openai_model)
        self.joiner = InviteAutoJoiner(client, user_id)
        context_builder = ContextBuilder(client, user_id, self.config.history_limit)
        self.dispatcher = MessageDispatcher(client, user_id, self.config, context_builder, self.provider)

    async def sync_forever(self) -> None:
        """Run the sync loop from the initial sync's token. Never returns normally."""
        assert self.client is not None
        await self.client.sync_forever(timeout=SYNC_TIMEOUT_MS, since=self.since)

    async def stop(self) -> None:
        """Abandon retry tasks and close the session."""
        if self.joiner is not None:
            await self.joiner.close()
        if self.client is not None:
            await self.client.close()
        logger.info("Stopped bot")


async def run(config: Config) -> None:
    """Start the bot and keep syncing until cancelled."""
    bot = RelayBot(config)
    try:
        await bot.start()
        await bot.sync_forever()
    finally:
        await bot.stop()
