"""WebSocket transport for race room sessions.

A room session only needs a connection it can iterate for text frames, send
text frames on and close. ``websockets`` client connections satisfy this;
tests substitute an in-memory fake.
"""

import asyncio
from typing import AsyncContextManager, AsyncIterator, Callable, Protocol

import websockets
from websockets.exceptions import WebSocketException

# Raised by the transport when the handshake fails or the connection drops
TRANSPORT_ERRORS: tuple[type[BaseException], ...] = (
    OSError,
    asyncio.TimeoutError,
    WebSocketException,
)


class RoomConnection(Protocol):
    """Duplex text-frame connection to one race room."""

    async def send(self, message: str) -> None: ...

    async def close(self) -> None: ...

    def __aiter__(self) -> AsyncIterator[str | bytes]: ...


Connector = Callable[[str], AsyncContextManager[RoomConnection]]


def websocket_connector(open_timeout: float = 10.0) -> Connector:
    """Build a connector opening ``websockets`` client connections.

    Args:
        open_timeout: Handshake timeout in seconds
    """

    def connect(url: str) -> AsyncContextManager[RoomConnection]:
        return websockets.connect(url, open_timeout=open_timeout)

    return connect
