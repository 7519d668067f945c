import asyncio
import logging
import os
import stat
import sys
from typing import BinaryIO

from .logging import get_logger
from .common import Constants, Message, MessageQueue


LOGGER = get_logger(__name__)
TRACE = get_logger("wsrelay.trace", fmt="%(message)s", level=logging.INFO)

feeder_tasks: set[asyncio.Task] = set()


class FileWriter:
    """StreamWriter look-alike for outputs that pipe transports reject, such as
    regular files. Writes block, ``drain`` flushes."""

    def __init__(self, file: BinaryIO):
        self._file = file

    def write(self, data: bytes):
        self._file.write(data)

    async def drain(self):
        self._file.flush()


async def _feed_from_file(reader: asyncio.StreamReader, file: BinaryIO):
    loop = asyncio.get_running_loop()
    try:
        while True:
            data = await loop.run_in_executor(None, file.readline)
            if not data:
                break
            reader.feed_data(data)
    except OSError as e:
        reader.set_exception(e)
        return
    reader.feed_eof()


def is_pipe_like(file) -> bool:
    """True for pipes, sockets and terminals. Anything else, such as regular
    files or /dev/null, cannot be watched by the event loop."""

    fd = file.fileno()
    mode = os.fstat(fd).st_mode
    return stat.S_ISFIFO(mode) or stat.S_ISSOCK(mode) or os.isatty(fd)


async def connect_stdin_stdout():
    loop = asyncio.get_running_loop()

    reader = asyncio.StreamReader(limit=Constants.MAX_LINE_LENGTH)
    if is_pipe_like(sys.stdin):
        protocol = asyncio.StreamReaderProtocol(reader)
        await loop.connect_read_pipe(lambda: protocol, sys.stdin)
    else:
        LOGGER.debug("stdin is not a pipe, reading it in a thread.")
        task = asyncio.create_task(_feed_from_file(reader, sys.stdin.buffer))
        feeder_tasks.add(task)
        task.add_done_callback(feeder_tasks.discard)

    if not is_pipe_like(sys.stdout):
        LOGGER.debug("stdout is not a pipe, writing it directly.")
        return reader, FileWriter(sys.stdout.buffer)

    w_transport, w_protocol = await loop.connect_write_pipe(
        asyncio.streams.FlowControlMixin, sys.stdout
    )

    writer = asyncio.StreamWriter(w_transport, w_protocol, reader, loop)
    return reader, writer


class InputReader:
    """Turns every line of the local input into an outbound text message."""

    def __init__(self, reader: asyncio.StreamReader, queue: MessageQueue):
        self._reader = reader
        self._queue = queue

    async def _read_line(self) -> str | None:
        try:
            data = await self._reader.readline()
        except (OSError, ValueError) as e:
            LOGGER.error("Failed to read local input: %s", e)
            return None

        if len(data) <= 0:
            return None

        try:
            return data.decode("utf-8")
        except UnicodeDecodeError as e:
            LOGGER.error("Local input is not valid UTF-8: %s", e)
            return None

    async def serve(self):
        try:
            while True:
                line = await self._read_line()
                if line is None:
                    LOGGER.debug("Local input exhausted.")
                    break

                TRACE.info("outgoing: %s", line.rstrip("\r\n"))
                await self._queue.put(Message.text(line))
        finally:
            await self._queue.close()


class OutputWriter:
    """Writes the payload of every inbound text message to the local output."""

    def __init__(self, writer: asyncio.StreamWriter | FileWriter, queue: MessageQueue):
        self._writer = writer
        self._queue = queue

    async def serve(self):
        async for message in self._queue:

            if not message.is_text:
                LOGGER.debug("Dropping inbound %s message.", message.kind.value)
                continue

            TRACE.info("incoming: %s", message.payload.rstrip("\r\n"))
            try:
                self._writer.write(message.data)
                await self._writer.drain()
            except OSError as e:
                LOGGER.error("Failed to write local output: %s", e)
                # Nobody drains the queue anymore, release the producer.
                await self._queue.close()
                return
