"""
session.py

Configuration and state of a ping session. A session pings exactly one
IPv4 destination at a fixed interval.

Author: David Song <davsong@cs.washington.edu>
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Optional

from sping.constants import (
    DEFAULT_DATA_SIZE,
    DEFAULT_INTERVAL,
    ICMP_HEADER_SIZE,
    IP_HEADER_SIZE,
    IP_MAX_HEADER_SIZE,
    MAX_DATA_SIZE,
    MIN_DATA_SIZE,
)

logger = logging.getLogger(__name__)


@dataclass
class PingConf:
    """
    Represents the configuration for a ping session.

    Attributes:
        destination (str): The host to ping, as given by the user.
        source (str): Optional local address to bind for outbound packets.
        data_size (int): Bytes of data sent after the ICMP header.
        interval (float): Seconds between a reply and the next probe.
        reply_timeout (float): Seconds to wait for a reply before sending
            the next probe anyway. None waits forever.
        numeric (bool): Print addresses without reverse lookups.
    """
    destination: str
    source: Optional[str] = None
    data_size: int = DEFAULT_DATA_SIZE
    interval: float = DEFAULT_INTERVAL
    reply_timeout: Optional[float] = None
    numeric: bool = False

    def __post_init__(self):
        if self.data_size < MIN_DATA_SIZE:
            logger.warning(f"Data size {self.data_size} raised to minimum {MIN_DATA_SIZE}")
            self.data_size = MIN_DATA_SIZE
        elif self.data_size > MAX_DATA_SIZE:
            logger.warning(f"Data size {self.data_size} lowered to maximum {MAX_DATA_SIZE}")
            self.data_size = MAX_DATA_SIZE

        if self.interval <= 0:
            raise ValueError(f"Interval must be positive, got {self.interval}")
        if self.reply_timeout is not None and self.reply_timeout <= 0:
            raise ValueError(f"Reply timeout must be positive, got {self.reply_timeout}")


@dataclass
class Session:
    """
    Identity of the current probing session.

    The identifier is fixed at creation. Sequence numbers start at 1,
    advance on every transmission attempt and wrap to 0 after 65535.
    """
    dst_ip: str
    conf: PingConf
    identifier: int = field(default_factory=lambda: os.getpid() & 0xFFFF)
    next_sequence: int = 1

    def __post_init__(self):
        self.identifier &= 0xFFFF
        self.next_sequence &= 0xFFFF

    @property
    def packet_size(self) -> int:
        """ICMP header plus data, as handed to the socket."""
        return ICMP_HEADER_SIZE + self.conf.data_size

    @property
    def wire_size(self) -> int:
        """Size of an echo request including the IP header."""
        return IP_HEADER_SIZE + self.packet_size

    @property
    def receive_size(self) -> int:
        """Largest reply worth reading: IP header with options plus the echo."""
        return IP_MAX_HEADER_SIZE + self.packet_size

    @property
    def interval(self) -> float:
        return self.conf.interval

    def take_sequence(self) -> int:
        """Returns the sequence number for the next probe and advances the counter."""
        seq = self.next_sequence
        self.next_sequence = (seq + 1) & 0xFFFF
        return seq
