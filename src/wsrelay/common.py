import asyncio
import collections
import dataclasses
import enum
from .logging import get_logger


LOGGER = get_logger(__name__)


class GenericException(Exception):
    def __init__(self, msg: str):
        super().__init__(msg)
        self._msg = msg

    @property
    def message(self) -> str:
        return self._msg


class StartupError(GenericException):
    """The relay could not be started, e.g. the remote endpoint is unreachable."""


class SendError(GenericException):
    """A message could not be transmitted over the connection."""


class ReceiveError(GenericException):
    """A single inbound frame could not be received or decoded."""


class QueueClosed(GenericException):
    pass


class Constants:

    QUEUE_SIZE = 32

    # Longest accepted line on the local input, in bytes.
    MAX_LINE_LENGTH = 2 ** 20


class MessageKind(enum.Enum):
    TEXT = "text"
    BINARY = "binary"
    PING = "ping"
    PONG = "pong"
    CLOSE = "close"


@dataclasses.dataclass(frozen=True, slots=True)
class Message:
    kind: MessageKind
    payload: str | bytes

    def __post_init__(self):
        expected = str if self.kind is MessageKind.TEXT else bytes
        if not isinstance(self.payload, expected):
            raise TypeError(
                f"A {self.kind.value} message needs a {expected.__name__} payload."
            )

    @classmethod
    def text(cls, payload: str) -> "Message":
        return cls(MessageKind.TEXT, payload)

    @classmethod
    def binary(cls, payload: bytes) -> "Message":
        return cls(MessageKind.BINARY, payload)

    @property
    def is_text(self) -> bool:
        return self.kind is MessageKind.TEXT

    @property
    def data(self) -> bytes:
        if isinstance(self.payload, str):
            return self.payload.encode("utf-8")
        return bytes(self.payload)


class MessageQueue:
    """Fixed-capacity FIFO connecting exactly one producer task to one consumer
    task. Producers suspend while the queue is full, consumers while it is empty.
    """

    def __init__(self, max_size: int = Constants.QUEUE_SIZE):
        if max_size <= 0:
            raise ValueError("Queue capacity must be positive.")

        self._max_size = max_size
        self._closed = False
        self._queue = collections.deque[Message]()
        self._queue_lock = asyncio.Condition()

    @property
    def max_size(self) -> int:
        return self._max_size

    @property
    def closed(self) -> bool:
        return self._closed

    def __len__(self) -> int:
        return len(self._queue)

    async def put(self, message: Message):
        """Adds a message to the queue, waiting for a free slot if needed.

        Parameters
        ----------
        message : Message
            The message to add.

        Raises
        ------
        QueueClosed
            If the queue is, or becomes, closed before a slot frees up.
        """

        async with self._queue_lock:
            await self._queue_lock.wait_for(
                lambda: self._closed or len(self._queue) < self._max_size
            )

            if self._closed:
                raise QueueClosed("Cannot put a message onto a closed queue.")

            self._queue.append(message)
            self._queue_lock.notify_all()

    async def get(self) -> Message | None:
        """Removes and returns the oldest message. This function blocks until a
        message is available.

        Returns
        -------
        Message | None
            The next message, or None once the queue is closed and drained.
        """

        async with self._queue_lock:
            await self._queue_lock.wait_for(lambda: self._closed or len(self._queue) > 0)

            if len(self._queue) == 0:
                return None

            message = self._queue.popleft()
            self._queue_lock.notify_all()
            return message

    async def close(self):
        """Closes the queue. Buffered messages can still be consumed."""

        async with self._queue_lock:
            if not self._closed:
                LOGGER.debug("Closing queue with %d buffered messages.", len(self._queue))
            self._closed = True
            self._queue_lock.notify_all()

    def __aiter__(self) -> "MessageQueue":
        return self

    async def __anext__(self) -> Message:
        message = await self.get()
        if message is None:
            raise StopAsyncIteration
        return message
