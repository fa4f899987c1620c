"""Bot Orchestrator - startup sequencing and shutdown for the seed bot.

Startup:
- Fetch the first access token (failure is retried in the background)
- Start the discovery loop

Shutdown:
- Stop discovery and token refresh
- Close every live room session
- Close the HTTP client
"""

import asyncio
import functools
import logging
from typing import Optional

from seedbot.bot.connection import Connector
from seedbot.bot.credentials import CredentialManager
from seedbot.bot.discovery import DiscoveryLoop, SessionFactory
from seedbot.bot.registry import SessionRegistry
from seedbot.bot.seed import SeedGenerator, generate_seed
from seedbot.bot.session import RoomSession
from seedbot.config import Settings
from seedbot.utils.async_utils import AsyncioScheduler, Scheduler
from seedbot.utils.http_client import AsyncHttpClient

logger = logging.getLogger(__name__)


class BotOrchestrator:
    """Wires the bot components together and owns their lifecycle."""

    def __init__(
        self,
        settings: Settings,
        http_client: Optional[AsyncHttpClient] = None,
        scheduler: Optional[Scheduler] = None,
        connector: Optional[Connector] = None,
        seed_generator: SeedGenerator = generate_seed,
    ):
        self._settings = settings
        self._http = http_client or AsyncHttpClient(timeout=settings.http_timeout_seconds)
        self._scheduler = scheduler or AsyncioScheduler()
        self._running = False

        self.registry = SessionRegistry()
        self.credentials = CredentialManager(settings, self._http, self._scheduler)
        self.discovery = DiscoveryLoop(
            settings=settings,
            credentials=self.credentials,
            registry=self.registry,
            http_client=self._http,
            session_factory=self._session_factory(connector, seed_generator),
            scheduler=self._scheduler,
        )

    def _session_factory(
        self,
        connector: Optional[Connector],
        seed_generator: SeedGenerator,
    ) -> SessionFactory:
        return functools.partial(
            RoomSession,
            settings=self._settings,
            registry=self.registry,
            seed_generator=seed_generator,
            connector=connector,
        )

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Acquire a token, then start discovering races."""
        if self._running:
            logger.warning("[ORCH] Already running")
            return

        self._running = True
        await self._http.open()

        if not await self.credentials.start():
            logger.warning("[ORCH] No access token yet, discovery paused until refresh succeeds")

        self.discovery.start()
        logger.info("[ORCH] Bot up!")

    async def stop(self) -> None:
        """Stop all loops and leave every race room."""
        if not self._running:
            return

        logger.info("[ORCH] Stopping...")
        self._running = False

        self.discovery.stop()
        self.credentials.stop()
        closed = await self.registry.close_all()
        await self._http.close()

        logger.info(f"[ORCH] Stopped ({closed} room session(s) closed)")

    async def run_until(self, stop_event: asyncio.Event) -> None:
        """Run until ``stop_event`` is set."""
        await self.start()
        try:
            await stop_event.wait()
        finally:
            await self.stop()

    def get_status(self) -> dict:
        """Get orchestrator status."""
        return {
            "running": self._running,
            "has_token": self.credentials.has_token,
            "game_tag": self._settings.rtgg_game_tag,
            "discovery_cycles": self.discovery.cycles,
            "tracked_count": len(self.registry),
            "races": [s.get_status_dict() for s in self.registry.sessions()],
        }
