"""Tests for the credential manager."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from hypothesis import HealthCheck, given, settings as hypothesis_settings, strategies as st

from seedbot.bot.credentials import EMPTY_CREDENTIAL, Credential, CredentialManager
from seedbot.utils.http_client import AsyncHttpClient


def token_payload(token: str = "tok-1", expires_in: int = 3600) -> dict:
    return {"access_token": token, "expires_in": expires_in, "token_type": "Bearer"}


class TestCredential:
    def test_empty_is_invalid(self):
        assert EMPTY_CREDENTIAL.token == ""
        assert EMPTY_CREDENTIAL.expires_in == 0
        assert EMPTY_CREDENTIAL.is_valid is False

    def test_token_is_valid(self):
        assert Credential(token="abc", expires_in=10).is_valid is True


class TestRefresh:
    """refresh() success and failure paths."""

    @pytest.fixture
    def manager(self, settings, http_client, scheduler) -> CredentialManager:
        return CredentialManager(settings, http_client, scheduler)

    def test_starts_empty(self, manager):
        assert manager.current_token() == ""
        assert manager.has_token is False

    @pytest.mark.asyncio
    async def test_success_stores_credential(self, manager, http_client):
        http_client.post_form.return_value = token_payload("tok-1", 3600)

        assert await manager.refresh() is True

        assert manager.current_token() == "tok-1"
        assert manager.credential == Credential(token="tok-1", expires_in=3600)

    @pytest.mark.asyncio
    async def test_posts_client_credentials_form(self, manager, http_client):
        http_client.post_form.return_value = token_payload()

        await manager.refresh()

        http_client.post_form.assert_awaited_once_with(
            "https://racetime.test/o/token",
            data={
                "client_id": "client-id",
                "client_secret": "client-secret",
                "grant_type": "client_credentials",
            },
        )

    @pytest.mark.asyncio
    async def test_success_schedules_before_expiry(self, manager, http_client, scheduler):
        http_client.post_form.return_value = token_payload(expires_in=3600)

        await manager.refresh()

        call = scheduler.last("credential_refresh")
        assert call.delay == 3540

    @pytest.mark.asyncio
    async def test_short_expiry_is_clamped_to_retry_delay(
        self, manager, http_client, scheduler
    ):
        http_client.post_form.return_value = token_payload(expires_in=30)

        await manager.refresh()

        assert scheduler.last("credential_refresh").delay == 3.0

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [
            httpx.ConnectError("connection refused"),
            httpx.ReadTimeout("timed out"),
            httpx.HTTPStatusError(
                "401 Unauthorized",
                request=httpx.Request("POST", "https://racetime.test/o/token"),
                response=httpx.Response(401),
            ),
        ],
    )
    async def test_failure_resets_and_retries(self, manager, http_client, scheduler, error):
        http_client.post_form.return_value = token_payload("tok-1")
        await manager.refresh()

        http_client.post_form.side_effect = error
        assert await manager.refresh() is False

        assert manager.current_token() == ""
        assert manager.credential == EMPTY_CREDENTIAL
        assert scheduler.last("credential_refresh").delay == 3.0

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "payload",
        [
            {},
            {"access_token": "", "expires_in": 3600},
            {"access_token": "tok"},
            {"expires_in": 3600},
            {"access_token": "tok", "expires_in": "soon"},
            ["not", "an", "object"],
        ],
    )
    async def test_malformed_response_is_a_failure(
        self, manager, http_client, scheduler, payload
    ):
        http_client.post_form.return_value = payload

        assert await manager.refresh() is False

        assert manager.credential == EMPTY_CREDENTIAL
        assert scheduler.last("credential_refresh").delay == 3.0

    @pytest.mark.asyncio
    async def test_scheduled_refresh_rotates_token(self, manager, http_client, scheduler):
        http_client.post_form.side_effect = [token_payload("tok-1"), token_payload("tok-2")]
        await manager.start()

        await scheduler.run_next("credential_refresh")

        assert manager.current_token() == "tok-2"
        assert http_client.post_form.await_count == 2

    @pytest.mark.asyncio
    async def test_retry_recovers_after_failure(self, manager, http_client, scheduler):
        http_client.post_form.side_effect = [httpx.ConnectError("down"), token_payload("tok-2")]

        assert await manager.start() is False
        await scheduler.run_next("credential_refresh")

        assert manager.current_token() == "tok-2"
        assert scheduler.last("credential_refresh").delay == 3540

    @pytest.mark.asyncio
    async def test_stop_cancels_pending_refresh(self, manager, http_client, scheduler):
        http_client.post_form.return_value = token_payload()
        await manager.start()
        pending = scheduler.last("credential_refresh")

        manager.stop()

        assert pending.cancelled is True
        assert scheduler.pending("credential_refresh") == []

    @pytest.mark.asyncio
    async def test_no_scheduling_after_stop(self, manager, http_client, scheduler):
        http_client.post_form.return_value = token_payload()
        manager.stop()

        await manager.refresh()

        assert scheduler.calls == []


class TestCredentialAtomicity:
    """Property: the credential is either fully valid or fully empty."""

    @hypothesis_settings(
        max_examples=50,
        deadline=None,
        suppress_health_check=[HealthCheck.function_scoped_fixture],
    )
    @given(outcomes=st.lists(st.booleans(), min_size=1, max_size=10))
    def test_token_empty_exactly_after_failure(self, outcomes, settings):
        async def run() -> list[tuple[bool, Credential, float]]:
            delays: list[float] = []

            class RecordingScheduler:
                def call_later(self, delay, callback, *, name=None):
                    delays.append(delay)
                    return MagicMock()

            http = AsyncMock(spec=AsyncHttpClient)
            http.post_form.side_effect = [
                token_payload(f"tok-{i}", 600) if ok else httpx.ConnectError("down")
                for i, ok in enumerate(outcomes)
            ]
            manager = CredentialManager(settings, http, RecordingScheduler())

            results = []
            for _ in outcomes:
                ok = await manager.refresh()
                results.append((ok, manager.credential, delays[-1]))
            return results

        for ok, credential, delay in asyncio.run(run()):
            if ok:
                assert credential.is_valid and credential.expires_in == 600
                assert delay == 540
            else:
                assert credential == EMPTY_CREDENTIAL
                assert delay == 3.0
