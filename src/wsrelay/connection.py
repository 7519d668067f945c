from typing import AsyncIterator, Sequence

from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import ConnectionClosed, WebSocketException

from .logging import get_logger
from .common import Message, MessageKind, SendError, StartupError


LOGGER = get_logger(__name__)


class Sink:
    """Send half of a duplex connection."""

    def __init__(self, websocket: ClientConnection):
        self._websocket = websocket

    async def send(self, message: Message):
        try:
            if message.kind is MessageKind.TEXT:
                await self._websocket.send(str(message.payload))
            elif message.kind is MessageKind.BINARY:
                await self._websocket.send(message.data)
            elif message.kind is MessageKind.PING:
                await self._websocket.ping(message.data)
            elif message.kind is MessageKind.PONG:
                await self._websocket.pong(message.data)
            else:
                assert message.kind is MessageKind.CLOSE
                await self._websocket.close()
        except (ConnectionClosed, OSError) as e:
            raise SendError(f"Failed to send {message.kind.value} message: {e}") from e


class Source:
    """Receive half of a duplex connection. Iterating it yields received messages
    and stops once the connection is closed.

    websockets fails the whole connection on a malformed frame, so this source
    never yields a ReceiveError; the relay still discards them from other sources.
    """

    def __init__(self, websocket: ClientConnection):
        self._websocket = websocket

    def __aiter__(self) -> AsyncIterator[Message]:
        return self._receive()

    async def _receive(self) -> AsyncIterator[Message]:
        while True:
            try:
                data = await self._websocket.recv()
            except ConnectionClosed as e:
                LOGGER.debug("Connection closed: %s", e)
                return

            if isinstance(data, str):
                yield Message.text(data)
            else:
                yield Message.binary(data)


class DuplexConnection:

    def __init__(self, websocket: ClientConnection, url: str):
        self.url = url
        self._websocket = websocket
        self.sink = Sink(websocket)
        self.source = Source(websocket)

    @classmethod
    async def open(
        cls, url: str, *, subprotocols: Sequence[str] | None = None
    ) -> "DuplexConnection":
        """Connects to a WebSocket endpoint.

        Parameters
        ----------
        url : str
            The ``ws://`` or ``wss://`` address of the endpoint.
        subprotocols : Sequence[str] | None
            Subprotocols to offer during the handshake.

        Raises
        ------
        StartupError
            If the connection could not be established.
        """

        LOGGER.info("Connecting to %s.", url)
        try:
            websocket = await connect(url, subprotocols=subprotocols or None)
        except (OSError, TimeoutError, WebSocketException) as e:
            raise StartupError(f"Failed to connect to {url}: {e}") from e

        LOGGER.info("Connected to %s.", url)
        return cls(websocket, url)

    async def close(self):
        await self._websocket.close()
