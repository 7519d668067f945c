import tap
import asyncio
import logging
import sys

from wsrelay.logging import get_logger, set_level
from wsrelay.common import Constants, MessageQueue, StartupError
from wsrelay.connection import DuplexConnection
from wsrelay.relay import Relay
from wsrelay.stdio import InputReader, OutputWriter, connect_stdin_stdout

LOGGER = get_logger("wsrelay.main")


class Args(tap.Tap):

    url: str
    """WebSocket endpoint to relay stdin and stdout to, e.g. ws://localhost:8765."""

    queue_size: int = Constants.QUEUE_SIZE
    """Capacity of the inbound and outbound message queues."""

    close_on_eof: bool = False
    """Close the connection once all of stdin has been sent."""

    subprotocol: list[str] = []
    """WebSocket subprotocols to offer."""

    quiet: bool = False
    """Do not trace relayed lines on stderr."""

    verbose: bool = False
    """Enable debug logging."""

    def configure(self):
        self.add_argument("url")

    def process_args(self):
        if self.queue_size <= 0:
            raise ValueError("--queue-size must be positive.")


async def main(args: Args, *, streams=connect_stdin_stdout) -> int:
    if args.verbose:
        set_level(logging.DEBUG)
    if args.quiet:
        set_level(logging.WARN, "wsrelay.trace")

    try:
        connection = await DuplexConnection.open(
            args.url, subprotocols=args.subprotocol
        )
    except StartupError as e:
        LOGGER.error(e.message)
        return 1

    outbound = MessageQueue(args.queue_size)
    inbound = MessageQueue(args.queue_size)

    reader, writer = await streams()
    input_task = asyncio.create_task(InputReader(reader, outbound).serve())
    output_task = asyncio.create_task(OutputWriter(writer, inbound).serve())

    relay = Relay(connection, outbound, inbound, close_on_eof=args.close_on_eof)
    try:
        await relay.serve()
        await output_task
    finally:
        # The input may never reach EOF, e.g. an idle terminal.
        input_task.cancel()
        try:
            await input_task
        except asyncio.CancelledError:
            pass
        await connection.close()

    LOGGER.debug("Both directions finished.")
    return 0


def cli():
    args = Args(underscores_to_dashes=True).parse_args()
    sys.exit(asyncio.run(main(args)))


if __name__ == "__main__":
    cli()
