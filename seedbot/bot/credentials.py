"""OAuth client-credentials token management.

Holds the single bearer token the bot uses to join race rooms and refreshes
it ahead of expiry:

    refresh() ─ ok ──→ schedule refresh at expires_in - margin
        │
        └── fail ──→ reset to empty, schedule refresh at retry delay
"""

import logging
from dataclasses import dataclass
from typing import Optional

import httpx
from pydantic import ValidationError

from seedbot.config import Settings
from seedbot.schemas import TokenResponse
from seedbot.utils.async_utils import ScheduledCall, Scheduler
from seedbot.utils.errors import BotError, CredentialError, ErrorCode
from seedbot.utils.http_client import AsyncHttpClient

logger = logging.getLogger(__name__)

TOKEN_PATH = "/o/token"


@dataclass(frozen=True)
class Credential:
    """Bearer token plus its lifetime in seconds.

    ``token`` is empty exactly when no valid credential is held.
    """

    token: str = ""
    expires_in: int = 0

    @property
    def is_valid(self) -> bool:
        return bool(self.token)


EMPTY_CREDENTIAL = Credential()


class CredentialManager:
    """Owns the bot's bearer credential.

    The credential is only ever replaced as a whole, so readers never observe
    a new token paired with an old expiry.
    """

    def __init__(
        self,
        settings: Settings,
        http_client: AsyncHttpClient,
        scheduler: Scheduler,
    ):
        self._settings = settings
        self._http = http_client
        self._scheduler = scheduler
        self._credential: Credential = EMPTY_CREDENTIAL
        self._pending: Optional[ScheduledCall] = None
        self._stopped = False

    @property
    def credential(self) -> Credential:
        return self._credential

    @property
    def has_token(self) -> bool:
        return self._credential.is_valid

    @property
    def token_url(self) -> str:
        return f"{self._settings.rtgg_host}{TOKEN_PATH}"

    def current_token(self) -> str:
        """Current bearer token, empty string if none is held."""
        return self._credential.token

    async def start(self) -> bool:
        """Fetch the first token and keep it refreshed.

        Returns:
            True if the first token request succeeded
        """
        self._stopped = False
        return await self.refresh()

    def stop(self) -> None:
        """Cancel the pending refresh."""
        self._stopped = True
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None

    async def refresh(self) -> bool:
        """Request a new token and schedule the next refresh.

        Never raises: failures reset the credential and schedule a retry.

        Returns:
            True if a new token was obtained
        """
        try:
            credential = await self._request_token()
        except Exception as e:
            self._credential = EMPTY_CREDENTIAL
            logger.error(f"[CREDENTIALS] Error while getting access token: {e}")
            self._schedule(self._settings.token_retry_delay_seconds)
            return False

        self._credential = credential
        delay = max(
            credential.expires_in - self._settings.token_refresh_margin_seconds,
            self._settings.token_retry_delay_seconds,
        )
        logger.info(
            f"[CREDENTIALS] Access token refreshed "
            f"(expires in {credential.expires_in}s, next refresh in {delay}s)"
        )
        self._schedule(delay)
        return True

    async def _request_token(self) -> Credential:
        try:
            payload = await self._http.post_form(
                self.token_url,
                data={
                    "client_id": self._settings.bot_client_id,
                    "client_secret": self._settings.bot_client_secret,
                    "grant_type": "client_credentials",
                },
            )
        except httpx.HTTPError as e:
            raise BotError(
                ErrorCode.TOKEN_REQUEST_FAILED,
                f"Token request to {self.token_url} failed: {e}",
            ) from e

        try:
            response = TokenResponse.model_validate(payload)
        except ValidationError as e:
            raise CredentialError(
                "Token response is missing access_token or expires_in",
                details={"errors": e.errors(include_url=False)},
            ) from e

        return Credential(token=response.access_token, expires_in=response.expires_in)

    def _schedule(self, delay: float) -> None:
        if self._stopped:
            return
        self._pending = self._scheduler.call_later(
            delay, self.refresh, name="credential_refresh"
        )
