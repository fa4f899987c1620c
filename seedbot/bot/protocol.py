"""Race room WebSocket protocol.

Inbound frames are JSON objects with a ``type`` field; outbound frames are
JSON objects with an ``action`` field. Only the frame types the bot reacts to
are modelled; anything else parses to ``None``.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from seedbot.utils.json_utils import json_dumps, json_loads

# Race statuses from which nothing more can happen in the room
TERMINAL_RACE_STATES = frozenset({"finished", "in_progress", "cancelled"})

COMMAND_PREFIX = "!"


def is_terminal_status(status_value: str) -> bool:
    """Check a race status value against the terminal set (case-insensitive)."""
    return status_value.lower() in TERMINAL_RACE_STATES


class FrameType(str, Enum):
    """Inbound frame types the bot handles."""

    RACE_DATA = "race.data"
    CHAT_MESSAGE = "chat.message"
    ERROR = "error"


class OutboundAction(str, Enum):
    """Outbound frame actions."""

    MESSAGE = "message"
    SETINFO = "setinfo"


# =============================================================================
# Inbound frames
# =============================================================================


class _Frame(BaseModel):
    model_config = ConfigDict(extra="ignore")


class RaceStatusBlock(_Frame):
    value: str


class RaceBlock(_Frame):
    status: RaceStatusBlock


class RaceDataFrame(_Frame):
    type: Literal["race.data"]
    race: RaceBlock

    @property
    def status_value(self) -> str:
        return self.race.status.value


class ChatMessage(_Frame):
    is_bot: bool = False
    is_system: bool = False
    message_plain: str = ""


class ChatMessageFrame(_Frame):
    type: Literal["chat.message"]
    message: ChatMessage


class ErrorFrame(_Frame):
    type: Literal["error"]
    errors: list[str] = Field(default_factory=list)


InboundFrame = Annotated[
    Union[RaceDataFrame, ChatMessageFrame, ErrorFrame],
    Field(discriminator="type"),
]

_frame_adapter: TypeAdapter[InboundFrame] = TypeAdapter(InboundFrame)
_known_frame_types = frozenset(t.value for t in FrameType)


def parse_frame(raw: str | bytes) -> RaceDataFrame | ChatMessageFrame | ErrorFrame | None:
    """Parse an inbound text frame.

    Returns:
        The typed frame, or None for invalid JSON, unknown frame types and
        frames missing the fields the bot reads.
    """
    try:
        data = json_loads(raw)
    except ValueError:
        return None

    if not isinstance(data, dict):
        return None

    frame_type = data.get("type")
    if not isinstance(frame_type, str) or frame_type not in _known_frame_types:
        return None

    try:
        return _frame_adapter.validate_python(data)
    except ValidationError:
        return None


# =============================================================================
# Commands
# =============================================================================


@dataclass(frozen=True)
class Command:
    """A chat command, lower-cased and split on whitespace."""

    name: str
    args: tuple[str, ...] = ()

    @property
    def force(self) -> bool:
        """``--force`` given as the first argument."""
        return bool(self.args) and self.args[0] == "--force"

    @classmethod
    def parse(cls, text: str) -> Command | None:
        """Parse ``!name arg ...``; None if the text is not a command."""
        if not text.startswith(COMMAND_PREFIX):
            return None
        tokens = text.lower().split()
        if not tokens:
            return None
        return cls(name=tokens[0], args=tuple(tokens[1:]))


# =============================================================================
# Outbound frames
# =============================================================================


@dataclass(frozen=True)
class ActionEnvelope:
    """Outbound frame: ``{"action": ..., "data": {...}}``."""

    action: OutboundAction
    data: dict[str, Any]

    @classmethod
    def message(cls, text: str) -> ActionEnvelope:
        """Chat message with a fresh guid."""
        return cls(
            action=OutboundAction.MESSAGE,
            data={"guid": str(uuid.uuid4()), "message": text},
        )

    @classmethod
    def setinfo(cls, info: str) -> ActionEnvelope:
        """Update the race room's info line."""
        return cls(action=OutboundAction.SETINFO, data={"info": info})

    def to_dict(self) -> dict[str, Any]:
        return {"action": self.action.value, "data": self.data}

    def to_json(self) -> str:
        return json_dumps(self.to_dict())
