import asyncio
import dataclasses

from .logging import get_logger
from .common import MessageQueue, ReceiveError
from .connection import DuplexConnection


LOGGER = get_logger(__name__)


@dataclasses.dataclass(slots=True)
class RelayResult:
    outbound: BaseException | None = None
    inbound: BaseException | None = None

    @property
    def ok(self) -> bool:
        return self.outbound is None and self.inbound is None


class Relay:
    def __init__(
        self,
        connection: DuplexConnection,
        outbound: MessageQueue,
        inbound: MessageQueue,
        *,
        close_on_eof: bool = False,
    ):
        self._connection = connection
        self._outbound = outbound
        self._inbound = inbound
        self._close_on_eof = close_on_eof

    async def forward_outbound(self):
        async for message in self._outbound:
            await self._connection.sink.send(message)

        LOGGER.debug("Outbound queue exhausted.")
        if self._close_on_eof:
            LOGGER.info("Closing connection after end of input.")
            await self._connection.close()

    async def forward_inbound(self):
        try:
            async for item in self._connection.source:
                if isinstance(item, ReceiveError):
                    LOGGER.warning("Discarding inbound frame. %s", item.message)
                    continue

                await self._inbound.put(item)
        finally:
            await self._inbound.close()

        LOGGER.debug("Connection source exhausted.")

    async def serve(self) -> RelayResult:
        """Runs both forwarding directions until each of them has ended. A failing
        direction does not stop the other one.

        Returns
        -------
        RelayResult
            The exception that ended each direction, if any.
        """

        outbound, inbound = await asyncio.gather(
            asyncio.create_task(self.forward_outbound()),
            asyncio.create_task(self.forward_inbound()),
            return_exceptions=True,
        )

        result = RelayResult(outbound=outbound, inbound=inbound)
        if result.outbound is not None:
            LOGGER.error("Outbound direction failed: %s", result.outbound)
        if result.inbound is not None:
            LOGGER.error("Inbound direction failed: %s", result.inbound)
        return result
