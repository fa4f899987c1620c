"""Race discovery loop.

Polls the category listing, picks the races the bot should be in and opens a
room session for each one not already tracked. Descriptors are processed one
at a time and each detail fetch is awaited before the next descriptor is
looked at, so the registry check is enough to keep one session per race.
"""

import logging
from typing import Callable, Optional
from urllib.parse import urlencode, urljoin

from pydantic import ValidationError

from seedbot.bot.credentials import CredentialManager
from seedbot.bot.protocol import is_terminal_status
from seedbot.bot.registry import SessionRegistry
from seedbot.bot.session import RoomSession
from seedbot.config import Settings
from seedbot.schemas import CategoryListing, RaceDetail, RaceSummary
from seedbot.utils.async_utils import ScheduledCall, Scheduler
from seedbot.utils.errors import DiscoveryError, ErrorCode
from seedbot.utils.http_client import AsyncHttpClient

logger = logging.getLogger(__name__)

# (race_name, join_url) -> RoomSession
SessionFactory = Callable[[str, str], RoomSession]


def build_join_url(websocket_base: str, websocket_bot_url: str, token: str) -> str:
    """Join URL for a race room: the bot endpoint with the token appended."""
    return urljoin(websocket_base, f"{websocket_bot_url}?{urlencode({'token': token})}")


class DiscoveryLoop:
    """Periodically joins newly opened races.

    Features:
    - Skips races already tracked, finished/started/cancelled races,
      goals outside the allow-list and (optionally) custom goals
    - One failing race never stops the rest of the cycle
    - Next cycle is scheduled after the current one completes, even on error
    """

    def __init__(
        self,
        settings: Settings,
        credentials: CredentialManager,
        registry: SessionRegistry,
        http_client: AsyncHttpClient,
        session_factory: SessionFactory,
        scheduler: Scheduler,
    ):
        self._settings = settings
        self._credentials = credentials
        self._registry = registry
        self._http = http_client
        self._session_factory = session_factory
        self._scheduler = scheduler
        self._pending: Optional[ScheduledCall] = None
        self._running = False
        self._cycles = 0

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def cycles(self) -> int:
        """Number of completed cycles (including skipped and failed ones)."""
        return self._cycles

    @property
    def listing_url(self) -> str:
        return f"{self._settings.rtgg_host}/{self._settings.rtgg_game_tag}/data"

    def start(self) -> None:
        """Run the first cycle right away, then every interval."""
        if self._running:
            logger.warning("[DISCOVERY] Already running")
            return
        self._running = True
        self._schedule(0)
        logger.info(
            f"[DISCOVERY] Started for '{self._settings.rtgg_game_tag}' "
            f"(every {self._settings.discovery_interval_seconds}s)"
        )

    def stop(self) -> None:
        self._running = False
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None
        logger.info("[DISCOVERY] Stopped")

    def _schedule(self, delay: float) -> None:
        self._pending = self._scheduler.call_later(
            delay, self._tick, name="race_discovery"
        )

    async def _tick(self) -> None:
        try:
            await self.discover_once()
        except Exception as e:
            logger.error(f"[DISCOVERY] Cycle failed: {e}", exc_info=True)
        finally:
            self._cycles += 1
            if self._running:
                self._schedule(self._settings.discovery_interval_seconds)

    async def discover_once(self) -> list[str]:
        """Run one discovery cycle.

        Returns:
            Names of the races joined in this cycle

        Raises:
            httpx.HTTPError: If the listing request fails
            DiscoveryError: If the listing payload is unusable
        """
        if not self._credentials.has_token:
            logger.debug("[DISCOVERY] No access token, skipping cycle")
            return []

        payload = await self._http.get_json(self.listing_url)
        try:
            listing = CategoryListing.model_validate(payload)
        except ValidationError as e:
            raise DiscoveryError(f"Unexpected race listing from {self.listing_url}") from e

        joined: list[str] = []
        for raw_race in listing.current_races:
            try:
                race = RaceSummary.model_validate(raw_race)
                if not self.is_eligible(race):
                    continue
                await self._join(race)
                joined.append(race.name)
            except Exception as e:
                logger.error(
                    f"[DISCOVERY] Failed to process race "
                    f"{raw_race.get('name', '?')}: {e}"
                )

        if joined:
            logger.info(f"[DISCOVERY] Joined {len(joined)} race(s): {', '.join(joined)}")
        return joined

    def is_eligible(self, race: RaceSummary) -> bool:
        """Whether the bot should join ``race``."""
        if race.name in self._registry:
            return False

        if is_terminal_status(race.status.value):
            return False

        categories = self._settings.rtgg_game_track_categories
        if categories and race.goal.name not in categories:
            return False

        if race.goal.custom and not self._settings.rtgg_game_track_custom:
            return False

        return True

    async def _join(self, race: RaceSummary) -> RoomSession:
        detail_url = urljoin(self._settings.rtgg_host, race.data_url)
        payload = await self._http.get_json(detail_url)
        try:
            detail = RaceDetail.model_validate(payload)
        except ValidationError as e:
            raise DiscoveryError(
                f"Race detail for {race.name} has no websocket_bot_url",
                code=ErrorCode.INVALID_RACE_DETAIL,
            ) from e

        join_url = build_join_url(
            self._settings.rtgg_websocket,
            detail.websocket_bot_url,
            self._credentials.current_token(),
        )
        session = self._session_factory(race.name, join_url)
        self._registry.add(session)
        session.start()
        logger.info(f"[DISCOVERY] Joining {race.name} (goal: {race.goal.name})")
        return session
