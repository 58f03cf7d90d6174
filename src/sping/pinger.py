"""
pinger.py

Event-driven ping engine. A timer on the asyncio event loop sends one
echo request at a time, and a listener task consumes replies from the
raw socket. Each accepted reply is timed, reported, and re-arms the
timer for the next probe.

Author: David Song <davsong@cs.washington.edu>
"""

import asyncio
import logging
from typing import Callable, Optional

from sping.exceptions import (
    PacketParseError,
    PacketTooShortError,
    UnexpectedIdentifierError,
)
from sping.packets import build_echo_request, decode_echo_reply
from sping.report import Measurement, Reporter
from sping.session import Session
from sping.transport import RawSocketTransport
from sping.utils import now_us

logger = logging.getLogger(__name__)


class ProbeScheduler:
    """
    One-shot timer that triggers the next probe. It is either idle or
    armed; arming an armed scheduler replaces the pending deadline.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop, callback: Callable[[], None]):
        self.loop = loop
        self.callback = callback
        self._handle: Optional[asyncio.TimerHandle] = None

    @property
    def armed(self) -> bool:
        return self._handle is not None

    @property
    def deadline(self) -> Optional[float]:
        """Loop time at which the timer fires, or None when idle."""
        return self._handle.when() if self._handle else None

    def arm(self, delay: float) -> None:
        self.cancel()
        self._handle = self.loop.call_later(delay, self._fire)
        logger.debug(f"Probe timer armed for {delay:.3f}s")

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self) -> None:
        self._handle = None
        self.callback()


class Pinger:
    """
    Sends echo requests to the session destination and matches replies
    against the session identifier.
    """

    def __init__(self, host: str, session: Session, transport: RawSocketTransport,
                 reporter: Reporter, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        """
        Initializes the Pinger.

        Args:
            host: The destination as given by the user, used in diagnostics.
            session: The session state (destination, identifier, sequence).
            transport: The raw socket used for sending and receiving.
            reporter: Receives the startup line and each measurement.
            loop: The event loop driving the timer. Defaults to the running loop.
        """
        self.host = host
        self.session = session
        self.transport = transport
        self.reporter = reporter
        self.loop = loop if loop is not None else asyncio.get_running_loop()
        self.scheduler = ProbeScheduler(self.loop, self._on_timer)

        self._started = False
        self._outstanding: Optional[int] = None

    def start(self) -> None:
        """Queues the first probe one interval from now."""
        logger.debug(f"Session id {self.session.identifier} pinging {self.session.dst_ip} "
                     f"every {self.session.interval}s")
        self.scheduler.arm(self.session.interval)

    def _on_timer(self) -> None:
        if self._outstanding is not None:
            logger.warning(f"No reply from {self.host} for icmp_seq={self._outstanding} "
                           f"within {self.session.conf.reply_timeout}s")
            self._outstanding = None
        self.send_probe()

    def send_probe(self) -> bool:
        """
        Builds and transmits one echo request. Returns True if it was sent.

        The sequence number advances even when the send fails. A failed
        send does not re-arm the timer.
        """
        seq = self.session.take_sequence()
        packet = build_echo_request(self.session.identifier, seq, self.session.packet_size)

        try:
            self.transport.send(packet, self.session.dst_ip)
        except OSError as e:
            reason = e.strerror or str(e)
            logger.warning(f"{self.host} error while sending ping [{reason}]")
            return False

        logger.debug(f"Sent icmp_seq={seq} ({len(packet)} bytes) to {self.session.dst_ip}")
        if not self._started:
            self.reporter.handle_start(self.host, self.session.dst_ip,
                                       self.session.conf.data_size, self.session.wire_size)
            self._started = True

        if self.session.conf.reply_timeout is not None:
            self._outstanding = seq
            self.scheduler.arm(self.session.conf.reply_timeout)
        return True

    def handle_packet(self, packet: bytes, addr: str,
                      recv_us: Optional[int] = None) -> Optional[Measurement]:
        """
        Processes one datagram read from the raw socket.

        Returns the measurement if the packet is an echo reply for this
        session, else None.
        """
        if recv_us is None:
            recv_us = now_us()

        try:
            reply = decode_echo_reply(packet, self.session.identifier)
        except PacketTooShortError:
            logger.warning(f"received packet too short for ICMP ({len(packet)} bytes from {addr})")
            return None
        except UnexpectedIdentifierError as e:
            logger.warning(f"received unexpected packet - id {e.observed} != {e.expected} "
                           f"({len(packet)} bytes from {addr})")
            return None
        except PacketParseError as e:
            logger.warning(f"received malformed echo reply ({len(packet)} bytes from {addr}): {e}")
            return None

        if reply is None:
            return None

        measurement = Measurement(
            nbytes=reply.length,
            src=addr,
            sequence=reply.sequence,
            ttl=reply.ttl,
            rtt_us=max(0, recv_us - reply.data.timestamp_us),
        )
        self.reporter.handle_reply(measurement)

        self._outstanding = None
        self.scheduler.arm(self.session.interval)
        return measurement

    async def listen(self) -> None:
        """
        Continuously reads from the raw socket and handles each datagram.
        """
        size = self.session.receive_size
        while True:
            try:
                packet, addr = await self.transport.receive(size)
            except BlockingIOError:
                await asyncio.sleep(0.01)
                continue
            except OSError as e:
                logger.error(f"Socket error receiving ICMP packet: {e}")
                await asyncio.sleep(1)
                continue
            self.handle_packet(packet, addr, now_us())

    async def run(self) -> None:
        """
        Runs the session until cancelled.
        """
        self.start()
        try:
            await self.listen()
        finally:
            self.scheduler.cancel()
