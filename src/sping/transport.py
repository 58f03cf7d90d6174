"""
transport.py

Raw ICMP socket used to send echo requests and receive replies. The
socket is non-blocking; reads are driven by the asyncio event loop.

Author: David Song <davsong@cs.washington.edu>
"""

import asyncio
import logging
import socket
from typing import Optional, Tuple

from sping.exceptions import TransportError

logger = logging.getLogger(__name__)


class RawSocketTransport:
    """Owns the raw ICMP socket shared by the probe sender and the reply listener."""

    def __init__(self, source: Optional[str] = None,
                 sock: Optional[socket.socket] = None) -> None:
        """
        Creates the raw socket, optionally bound to a local address.

        Args:
            source: Local IPv4 address used as the source of outbound probes.
            sock: An already created socket, used instead of opening a new one.

        Raises:
            TransportError: If the protocol is unknown, the socket cannot be
                created, or the source address cannot be bound.
        """
        self.source = source
        self.sock = sock if sock is not None else self._create_raw_socket()
        self.sock.setblocking(False)

        if source:
            self._bind(source)

    def _create_raw_socket(self) -> socket.socket:
        """Creates and configures a raw ICMP socket."""
        try:
            protocol = socket.getprotobyname("icmp")
        except OSError as e:
            raise TransportError(f"unsupported protocol icmp ({e})") from e

        try:
            sock = socket.socket(socket.AF_INET, socket.SOCK_RAW, protocol)
            logger.debug(f"Created raw socket protocol {protocol}.")
            return sock
        except PermissionError as e:
            raise TransportError(
                f"can't create raw socket (errno {e.errno} - {e.strerror}); "
                "root privileges or CAP_NET_RAW are required"
            ) from e
        except OSError as e:
            raise TransportError(
                f"can't create raw socket (errno {e.errno} - {e.strerror})"
            ) from e

    def _bind(self, source: str) -> None:
        """Binds the socket to the given local address."""
        try:
            socket.inet_pton(socket.AF_INET, source)
            self.sock.bind((source, 0))
            logger.debug(f"Bound raw socket to {source}.")
        except OSError as e:
            self.close()
            raise TransportError(
                f"cannot bind source address '{source}' ({e})"
            ) from e

    def fileno(self) -> int:
        return self.sock.fileno()

    def send(self, packet: bytes, dst_ip: str) -> int:
        """
        Sends a packet without blocking.

        Raises:
            OSError: If the packet cannot be handed to the kernel. A short
                write is reported the same way.
        """
        nsent = self.sock.sendto(packet, (dst_ip, 0))
        if nsent != len(packet):
            raise OSError(f"short write ({nsent} of {len(packet)} bytes)")
        return nsent

    async def receive(self, size: int) -> Tuple[bytes, str]:
        """Waits until a datagram is available and returns it with the sender address."""
        loop = asyncio.get_running_loop()
        packet, addr = await loop.sock_recvfrom(self.sock, size)
        return packet, addr[0]

    def close(self) -> None:
        self.sock.close()
