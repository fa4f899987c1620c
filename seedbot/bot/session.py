"""Race room session state machine.

One session per joined race:
CONNECTING → OPEN → CLOSED
     │                 ↑
     └─────────────────┘  (handshake failure)

A session leaves the registry when it reaches CLOSED, which happens when the
race reports a terminal status or the connection ends for any reason.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Awaitable, Callable, Optional

from seedbot.bot.connection import (
    TRANSPORT_ERRORS,
    Connector,
    RoomConnection,
    websocket_connector,
)
from seedbot.bot.protocol import (
    ActionEnvelope,
    ChatMessageFrame,
    Command,
    ErrorFrame,
    RaceDataFrame,
    is_terminal_status,
    parse_frame,
)
from seedbot.bot.registry import SessionRegistry
from seedbot.bot.seed import SeedGenerator, build_seed_url, generate_seed
from seedbot.config import Settings
from seedbot.logging_config import bind_context
from seedbot.utils.async_utils import cancel_task_safe, create_safe_task

logger = logging.getLogger(__name__)

SEED_MESSAGE = "Sure! Here is your seed: {url}"
SEED_INFO = "Seed: {url}"
SEED_ALREADY_ROLLED_MESSAGE = (
    "Sorry, I already created a seed for this race. "
    "Please use !seed --force to roll a new one anyway"
)


class RoomState(Enum):
    """Room session states."""

    CONNECTING = auto()  # Session created, handshake not finished
    OPEN = auto()        # Connected and answering commands
    CLOSED = auto()      # Done; never reopened


@dataclass
class RoomSession:
    """A bot connection to a single race room.

    Dependencies are passed in rather than looked up, so a session can be
    driven in tests by calling ``on_open``/``on_frame`` with a fake
    connection.
    """

    race_name: str
    join_url: str = field(repr=False)
    settings: Settings = field(repr=False)
    registry: SessionRegistry = field(repr=False)
    seed_generator: SeedGenerator = field(default=generate_seed, repr=False)
    connector: Optional[Connector] = field(default=None, repr=False)

    state: RoomState = RoomState.CONNECTING
    seed_url: Optional[str] = None
    connection: Optional[RoomConnection] = field(default=None, repr=False)

    _task: Optional[asyncio.Task] = field(default=None, repr=False)

    @property
    def is_open(self) -> bool:
        return self.state == RoomState.OPEN

    @property
    def is_closed(self) -> bool:
        return self.state == RoomState.CLOSED

    def _set_state(self, new_state: RoomState) -> None:
        old_state = self.state
        if old_state == new_state:
            return
        self.state = new_state
        logger.info(
            f"[ROOM] {self.race_name} state: {old_state.name} → {new_state.name}"
        )

    # -------------------------------------------------------------------------
    # Connection lifecycle
    # -------------------------------------------------------------------------

    def start(self) -> asyncio.Task:
        """Open the room connection in a background task."""
        if self._task is None:
            self._task = create_safe_task(self.run(), name=f"room:{self.race_name}")
        return self._task

    async def stop(self) -> None:
        """Close the session and cancel its connection task."""
        await self.close()
        await cancel_task_safe(self._task)

    async def run(self) -> None:
        """Connect, then feed every inbound frame to ``on_frame`` until closed.

        However the loop ends, the session is closed and leaves the registry.
        """
        bind_context(race_name=self.race_name)
        connector = self.connector or websocket_connector(
            self.settings.ws_open_timeout_seconds
        )

        try:
            async with connector(self.join_url) as connection:
                await self.on_open(connection)
                if self.is_closed:
                    return
                async for raw in connection:
                    await self.on_frame(raw)
                    if self.is_closed:
                        break
        except TRANSPORT_ERRORS as e:
            await self.on_connection_lost(e)
        else:
            await self.on_connection_lost(None)
        finally:
            if not self.is_closed:
                await self.close()

    async def on_open(self, connection: RoomConnection) -> None:
        """Connection established: greet the room."""
        if self.state != RoomState.CONNECTING:
            return

        self.connection = connection
        self._set_state(RoomState.OPEN)
        logger.info(f"[ROOM] WS connection successful: {self.race_name}")
        await self.send_message(self.settings.bot_intro_message)

    async def on_connection_lost(self, error: Optional[BaseException]) -> None:
        """Connection closed or failed; the session is forgotten."""
        if self.is_closed:
            return
        if error is not None:
            logger.warning(
                f"[ROOM] {self.race_name} connection error: "
                f"{type(error).__name__}: {error}"
            )
        else:
            logger.info(f"[ROOM] {self.race_name} connection closed by server")
        await self.close()

    async def close(self) -> None:
        """Move to CLOSED, leave the registry and close the connection.

        Safe to call more than once.
        """
        self.registry.discard(self)
        if self.is_closed:
            return

        self._set_state(RoomState.CLOSED)
        if self.connection is not None:
            try:
                await self.connection.close()
            except TRANSPORT_ERRORS as e:
                logger.warning(f"[ROOM] {self.race_name} error while closing: {e}")

    # -------------------------------------------------------------------------
    # Inbound frames
    # -------------------------------------------------------------------------

    async def on_frame(self, raw: str | bytes) -> None:
        """Handle one inbound frame. Unknown or malformed frames are ignored."""
        if self.is_closed:
            return

        frame = parse_frame(raw)
        if frame is None:
            logger.debug(f"[ROOM] {self.race_name} ignoring frame: {raw[:200]!r}")
            return

        if isinstance(frame, RaceDataFrame):
            await self._handle_race_data(frame)
        elif isinstance(frame, ChatMessageFrame):
            await self._handle_chat_message(frame)
        elif isinstance(frame, ErrorFrame):
            self._handle_error(frame)

    async def _handle_race_data(self, frame: RaceDataFrame) -> None:
        if is_terminal_status(frame.status_value):
            logger.info(
                f"[ROOM] {self.race_name} reached status '{frame.status_value}', leaving"
            )
            await self.close()

    async def _handle_chat_message(self, frame: ChatMessageFrame) -> None:
        message = frame.message
        if message.is_bot or message.is_system:
            return

        command = Command.parse(message.message_plain)
        if command is None:
            return

        handler = self._command_handlers().get(command.name)
        if handler is not None:
            await handler(command)

    def _handle_error(self, frame: ErrorFrame) -> None:
        for error in frame.errors:
            logger.error(f"[ROOM] {self.race_name} server error: {error}")

    # -------------------------------------------------------------------------
    # Commands
    # -------------------------------------------------------------------------

    def _command_handlers(self) -> dict[str, Callable[[Command], Awaitable[None]]]:
        return {
            "!seed": self._command_seed,
            "!help": self._command_help,
        }

    async def _command_seed(self, command: Command) -> None:
        """Roll a seed once per race; ``--force`` rolls a replacement."""
        if self.seed_url is not None and not command.force:
            await self.send_message(SEED_ALREADY_ROLLED_MESSAGE)
            return

        seed_url = build_seed_url(self.settings.randomizer_web_host, self.seed_generator())
        await self.send_message(SEED_MESSAGE.format(url=seed_url))
        self.seed_url = seed_url
        await self.set_info(SEED_INFO.format(url=seed_url))

    async def _command_help(self, command: Command) -> None:
        await self.send_message(self.settings.bot_intro_message)

    # -------------------------------------------------------------------------
    # Outbound frames
    # -------------------------------------------------------------------------

    async def send_message(self, text: str) -> bool:
        """Post a chat message to the room."""
        logger.info(f"[ROOM] {self.race_name} → {text}")
        return await self._send(ActionEnvelope.message(text))

    async def set_info(self, info: str) -> bool:
        """Replace the room's info line."""
        return await self._send(ActionEnvelope.setinfo(info))

    async def _send(self, envelope: ActionEnvelope) -> bool:
        if self.connection is None or self.is_closed:
            logger.debug(
                f"[ROOM] {self.race_name} not connected, dropping {envelope.action.value}"
            )
            return False
        try:
            await self.connection.send(envelope.to_json())
        except TRANSPORT_ERRORS as e:
            logger.warning(
                f"[ROOM] {self.race_name} failed to send {envelope.action.value}: {e}"
            )
            return False
        return True

    def get_status_dict(self) -> dict:
        """Get session status as dictionary."""
        return {
            "race_name": self.race_name,
            "state": self.state.name,
            "seed_url": self.seed_url,
        }
