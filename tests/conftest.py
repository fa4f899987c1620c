"""Shared test fixtures: settings, a virtual-time scheduler and fake transports."""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable
from unittest.mock import AsyncMock

import pytest

from seedbot.bot.registry import SessionRegistry
from seedbot.bot.session import RoomSession
from seedbot.config import Settings
from seedbot.utils.http_client import AsyncHttpClient
from seedbot.utils.json_utils import json_dumps, json_loads


# =============================================================================
# Mock Classes
# =============================================================================


class FakeCall:
    """Pending call recorded by FakeScheduler."""

    def __init__(self, delay: float, callback: Callable[[], Awaitable[None]], name: str | None):
        self.delay = delay
        self.callback = callback
        self.name = name
        self.cancelled = False
        self.ran = False

    def cancel(self) -> bool:
        self.cancelled = True
        return True

    def done(self) -> bool:
        return self.cancelled or self.ran


class FakeScheduler:
    """Scheduler that records calls and runs them only when asked."""

    def __init__(self):
        self.calls: list[FakeCall] = []

    def call_later(self, delay, callback, *, name=None) -> FakeCall:
        call = FakeCall(delay, callback, name)
        self.calls.append(call)
        return call

    def pending(self, name: str | None = None) -> list[FakeCall]:
        return [
            c for c in self.calls
            if not c.done() and (name is None or c.name == name)
        ]

    def last(self, name: str | None = None) -> FakeCall:
        matching = [c for c in self.calls if name is None or c.name == name]
        return matching[-1]

    async def run_next(self, name: str | None = None) -> FakeCall:
        """Run the earliest pending call (optionally with a given name)."""
        call = self.pending(name)[0]
        call.ran = True
        await call.callback()
        return call


class FakeConnection:
    """In-memory room connection.

    Also acts as its own async context manager so it can be returned from a
    connector.
    """

    def __init__(self, fail_on_send: bool = False):
        self.sent_raw: list[str] = []
        self.closed = False
        self.entered = False
        self.url: str | None = None
        self.fail_on_send = fail_on_send
        self._inbound: asyncio.Queue[str | None] = asyncio.Queue()

    @property
    def sent(self) -> list[dict[str, Any]]:
        return [json_loads(raw) for raw in self.sent_raw]

    @property
    def sent_messages(self) -> list[str]:
        return [f["data"]["message"] for f in self.sent if f["action"] == "message"]

    async def send(self, message: str) -> None:
        if self.fail_on_send or self.closed:
            raise ConnectionResetError("connection closed")
        self.sent_raw.append(message)

    async def close(self) -> None:
        if not self.closed:
            self.closed = True
            self._inbound.put_nowait(None)

    def feed(self, frame: dict[str, Any] | str) -> None:
        """Queue an inbound frame."""
        raw = frame if isinstance(frame, str) else json_dumps(frame)
        self._inbound.put_nowait(raw)

    def __aiter__(self):
        return self._frames()

    async def _frames(self):
        while True:
            raw = await self._inbound.get()
            if raw is None:
                return
            yield raw

    async def __aenter__(self) -> "FakeConnection":
        self.entered = True
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()


def chat_frame(text: str, is_bot: bool = False, is_system: bool = False) -> str:
    """Text frame for a chat.message."""
    return json_dumps({
        "type": "chat.message",
        "message": {"is_bot": is_bot, "is_system": is_system, "message_plain": text},
    })


def race_data_frame(status: str) -> str:
    """Text frame for a race.data update."""
    return json_dumps({"type": "race.data", "race": {"status": {"value": status}}})


def race_summary(
    name: str,
    status: str = "open",
    goal: str = "Any%",
    custom: bool = False,
) -> dict[str, Any]:
    return {
        "name": name,
        "status": {"value": status, "verbose_value": status.title()},
        "goal": {"name": goal, "custom": custom},
        "data_url": f"/{name}/data",
    }


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def settings_factory(tmp_path, monkeypatch) -> Callable[..., Settings]:
    """Build Settings isolated from the caller's environment and .env."""
    monkeypatch.chdir(tmp_path)

    def factory(**overrides: Any) -> Settings:
        values: dict[str, Any] = {
            "rtgg_host": "https://racetime.test",
            "rtgg_websocket": "wss://racetime.test",
            "rtgg_game_tag": "smr",
            "rtgg_game_track_categories": [],
            "rtgg_game_track_custom": False,
            "bot_client_id": "client-id",
            "bot_client_secret": "client-secret",
            "randomizer_web_host": "https://rando.test",
            "bot_intro_message": "Welcome! Type !seed to roll a seed.",
        }
        values.update(overrides)
        return Settings(**values)

    return factory


@pytest.fixture
def settings(settings_factory) -> Settings:
    return settings_factory()


@pytest.fixture
def scheduler() -> FakeScheduler:
    return FakeScheduler()


@pytest.fixture
def registry() -> SessionRegistry:
    return SessionRegistry()


@pytest.fixture
def http_client() -> AsyncMock:
    return AsyncMock(spec=AsyncHttpClient)


@pytest.fixture
def fake_connection_cls() -> type[FakeConnection]:
    return FakeConnection


@pytest.fixture
def frames():
    """Frame/payload builders."""

    class Frames:
        chat = staticmethod(chat_frame)
        race_data = staticmethod(race_data_frame)
        summary = staticmethod(race_summary)

    return Frames


@pytest.fixture
def make_session(settings, registry) -> Callable[..., RoomSession]:
    """Create a RoomSession with a fixed seed generator, registered."""

    def factory(race_name: str = "smr/lucky-yoshi-1234", **kwargs: Any) -> RoomSession:
        seeds = iter(kwargs.pop("seeds", [1234567890, 9876543210123, 5555555555]))
        session = RoomSession(
            race_name=race_name,
            join_url=f"wss://racetime.test/ws/o/bot/{race_name}?token=tok",
            settings=kwargs.pop("settings", settings),
            registry=registry,
            seed_generator=lambda: next(seeds),
            **kwargs,
        )
        registry.add(session)
        return session

    return factory


@pytest.fixture
def eventually() -> Callable[..., Awaitable[None]]:
    """Poll a predicate while letting background tasks run."""

    async def wait(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while not predicate():
            if loop.time() > deadline:
                raise AssertionError("condition not met before timeout")
            await asyncio.sleep(0.01)

    return wait
