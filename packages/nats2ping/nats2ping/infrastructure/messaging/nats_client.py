"""NATS client for the bus connection.

The client never reconnects on its own: losing the connection closes it and
the connection supervisor builds a fresh client. Connectivity changes and
received messages are pushed onto queues owned by the supervisor, so no
supervisor code runs inside the library's reader task.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import nats
import nats.errors
from nats.aio.client import Client as NATSConnection
from nats.aio.msg import Msg

from nats2ping.domain.entities import BusMessage
from nats2ping.domain.exceptions import BusConnectionError
from nats2ping.infrastructure.logging import get_logger

if TYPE_CHECKING:
    from nats2ping.config import BusSettings

logger = get_logger(__name__)

KEEP_ALIVE_SECONDS = 61


class NATSClient:
    """Single-use NATS connection.

    Args:
        settings: Bus connection settings
        connectivity: Queue receiving ``True`` once connected and ``False``
            when the connection is lost
        received: Queue receiving every message delivered on a subscription
    """

    def __init__(
        self,
        settings: BusSettings,
        connectivity: asyncio.Queue[bool],
        received: asyncio.Queue[BusMessage],
    ) -> None:
        self.settings = settings
        self._connectivity = connectivity
        self._received = received
        self._nc: NATSConnection | None = None

    @property
    def is_connected(self) -> bool:
        """Check if client is connected."""
        return self._nc is not None and self._nc.is_connected

    def _not_connected(self) -> BusConnectionError:
        return BusConnectionError(
            service="NATS",
            endpoint=self.settings.broker_url,
            reason="Not connected",
        )

    async def connect(self) -> None:
        """Connect to the NATS server and announce it on the connectivity queue.

        Raises:
            BusConnectionError: If the server cannot be reached
        """
        try:
            self._nc = await nats.connect(
                servers=[self.settings.broker_url],
                name=self.settings.client_id or None,
                user=self.settings.bus_user or None,
                password=self.settings.bus_password or None,
                allow_reconnect=False,
                ping_interval=KEEP_ALIVE_SECONDS,
                error_cb=self._error_callback,
                disconnected_cb=self._disconnected_callback,
                closed_cb=self._closed_callback,
            )
        except (OSError, nats.errors.Error) as e:
            raise BusConnectionError(
                service="NATS",
                endpoint=self.settings.broker_url,
                reason=str(e) or type(e).__name__,
            ) from e

        logger.info(
            "Connected to NATS server",
            extra={"broker_url": self.settings.broker_url, "client_name": self.settings.client_id},
        )
        await self._connectivity.put(True)

    async def disconnect(self, quiesce: float) -> None:
        """Drain pending work for at most ``quiesce`` seconds, then close.

        Args:
            quiesce: Drain budget in seconds
        """
        nc, self._nc = self._nc, None
        if nc is None:
            return

        if nc.is_connected:
            try:
                async with asyncio.timeout(quiesce):
                    await nc.drain()
            except TimeoutError:
                logger.debug("Drain did not finish within quiesce budget", extra={"quiesce": quiesce})
            except nats.errors.Error as e:
                logger.debug("Drain failed", extra={"error": str(e)})

        if not nc.is_closed:
            await nc.close()
        logger.info("Disconnected from NATS server")

    async def publish(self, subject: str, payload: str) -> None:
        """Publish a UTF-8 payload and flush it to the server.

        Raises:
            BusConnectionError: If not connected or the server rejects the publish
            TimeoutError: If the flush is not acknowledged in time
        """
        if not self.is_connected or self._nc is None:
            raise self._not_connected()

        try:
            await self._nc.publish(subject, payload.encode("utf-8"))
            await self._nc.flush()
        except TimeoutError:
            raise
        except nats.errors.Error as e:
            raise BusConnectionError(
                service="NATS", endpoint=self.settings.broker_url, reason=str(e)
            ) from e

        logger.debug("Published message", extra={"subject": subject, "payload_size": len(payload)})

    async def subscribe(self, subject: str) -> None:
        """Subscribe to a subject and wait until the server has seen it.

        Raises:
            BusConnectionError: If not connected or the subscription is refused
            TimeoutError: If the server does not confirm in time
        """
        if not self.is_connected or self._nc is None:
            raise self._not_connected()

        try:
            await self._nc.subscribe(subject, cb=self._on_message)
            await self._nc.flush()
        except TimeoutError:
            raise
        except nats.errors.Error as e:
            raise BusConnectionError(
                service="NATS", endpoint=self.settings.broker_url, reason=str(e)
            ) from e

        logger.info("Subscribed to subject", extra={"subject": subject})

    async def _on_message(self, msg: Msg) -> None:
        await self._received.put(
            BusMessage(topic=msg.subject, payload=msg.data.decode("utf-8", errors="replace"))
        )

    async def _error_callback(self, e: Exception) -> None:
        """Handle NATS errors."""
        logger.error("NATS error", exc_info=e)

    async def _disconnected_callback(self) -> None:
        """Handle NATS disconnection."""
        logger.warning("Lost connection to NATS server")
        await self._connectivity.put(False)

    async def _closed_callback(self) -> None:
        """Handle NATS connection closure."""
        logger.info("NATS connection closed")
