"""ICMP echo probes driven by the system ``ping`` utility.

Each probe owns an asyncio task that sends one echo request per interval.
The sent counter moves as soon as a request goes out, so a request still
waiting for its reply shows up as sent but not received.
"""

from __future__ import annotations

import asyncio
import re
import socket

from nats2ping.domain.exceptions import ProbeError
from nats2ping.domain.interfaces import Probe, Prober, ProbeStatistics
from nats2ping.infrastructure.logging import get_logger

logger = get_logger(__name__)

RTT_PATTERN = re.compile(r"time[=<]\s*([\d.]+)\s*ms")


class PingProbe(Probe):
    """Probe one IP address with ``ping -c 1`` every ``interval_seconds``."""

    def __init__(
        self,
        name: str,
        ip_address: str,
        interval_seconds: int,
        command: str = "ping",
    ) -> None:
        self.name = name
        self._ip_address = ip_address
        self.interval_seconds = interval_seconds
        self.command = command
        self._packets_sent = 0
        self._packets_received = 0
        self._rtt_total = 0.0
        self._task: asyncio.Task[None] | None = None

    @property
    def ip_address(self) -> str:
        return self._ip_address

    def start(self) -> None:
        if self._task is not None:
            logger.warning("Probe already started", extra={"destination": self.name})
            return
        self._task = asyncio.get_running_loop().create_task(
            self._run(), name=f"nats2ping-probe-{self.name}"
        )

    def stop(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
            logger.debug("Stopping probe", extra={"destination": self.name})

    def statistics(self) -> ProbeStatistics:
        sent = self._packets_sent
        received = self._packets_received
        return ProbeStatistics(
            packets_sent=sent,
            packets_received=received,
            avg_rtt=self._rtt_total / received if received else 0.0,
            packet_loss=(sent - received) * 100.0 / sent if sent else 0.0,
        )

    def record(self, rtt: float | None) -> None:
        """Account for one echo request and its reply, if any."""
        if rtt is None:
            return
        self._packets_received += 1
        self._rtt_total += rtt

    async def _run(self) -> None:
        loop = asyncio.get_running_loop()
        while True:
            started = loop.time()
            self._packets_sent += 1
            self.record(await self.ping_once())
            await asyncio.sleep(max(0.0, self.interval_seconds - (loop.time() - started)))

    async def ping_once(self) -> float | None:
        """Send one echo request.

        Returns:
            Round-trip time in seconds, or None when no reply came back
        """
        wait_seconds = str(max(1, self.interval_seconds))
        try:
            process = await asyncio.create_subprocess_exec(
                self.command,
                "-n",
                "-c",
                "1",
                "-W",
                wait_seconds,
                self._ip_address,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.DEVNULL,
            )
        except OSError as e:
            logger.error(
                "Unable to run ping for %s", self.name, exc_info=e, extra={"command": self.command}
            )
            return None

        try:
            stdout, _ = await process.communicate()
        except asyncio.CancelledError:
            if process.returncode is None:
                process.kill()
                await asyncio.shield(process.wait())
            raise

        if process.returncode != 0:
            return None
        match = RTT_PATTERN.search(stdout.decode("utf-8", errors="replace"))
        return float(match.group(1)) / 1000.0 if match else 0.0


class PingProber(Prober):
    """Builds ``PingProbe`` instances, resolving host names up front."""

    def __init__(self, command: str = "ping") -> None:
        self.command = command

    async def create(self, name: str, address: str, interval_seconds: int) -> PingProbe:
        loop = asyncio.get_running_loop()
        try:
            infos = await loop.getaddrinfo(address, None, type=socket.SOCK_DGRAM)
        except (socket.gaierror, UnicodeError) as e:
            raise ProbeError(name, address, str(e)) from e
        if not infos:
            raise ProbeError(name, address, "no address found")

        # Prefer IPv4 when a name resolves to both families.
        infos.sort(key=lambda info: info[0] != socket.AF_INET)
        ip_address = str(infos[0][4][0])
        return PingProbe(name, ip_address, interval_seconds, command=self.command)
