"""
report.py

Measurement records and the interface used to stream them out of the
pinger, with a console implementation mirroring classic ping output.

Author: David Song <davsong@cs.washington.edu>
"""

import sys
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TextIO

from sping.utils import format_rtt, resolve_hostname


@dataclass
class Measurement:
    """
    Represents the result of one accepted echo reply.

    Attributes:
        nbytes (int): ICMP-layer bytes received.
        src (str): The responder address.
        sequence (int): The ICMP sequence number of the reply.
        ttl (int): The TTL of the reply.
        rtt_us (int): Round-trip time in microseconds.
    """
    nbytes: int
    src: str
    sequence: int
    ttl: int
    rtt_us: int

    @property
    def rtt(self) -> str:
        """Round-trip time in milliseconds, three significant digits."""
        return format_rtt(self.rtt_us // 10)


class Reporter(ABC):
    """
    Receives the output of a ping session.
    """

    @abstractmethod
    def handle_start(self, host: str, dst_ip: str, data_size: int, wire_size: int) -> None:
        """
        Handle the first successfully sent probe.
        """
        raise NotImplementedError

    @abstractmethod
    def handle_reply(self, measurement: Measurement) -> None:
        """
        Handle an accepted echo reply.
        """
        raise NotImplementedError


class ConsoleReporter(Reporter):
    """Writes ping style lines to a text stream."""

    def __init__(self, stream: TextIO = None, numeric: bool = False) -> None:
        self.stream = stream if stream is not None else sys.stdout
        self.numeric = numeric

    def _name(self, ip: str) -> str:
        return ip if self.numeric else resolve_hostname(ip)

    def handle_start(self, host, dst_ip, data_size, wire_size):
        print(f"PING {self._name(dst_ip)} ({dst_ip}) {data_size}({wire_size}) bytes of data.",
              file=self.stream, flush=True)

    def handle_reply(self, measurement):
        print(f"{measurement.nbytes} bytes from {self._name(measurement.src)} "
              f"({measurement.src}): icmp_seq={measurement.sequence} "
              f"ttl={measurement.ttl} time={measurement.rtt} ms",
              file=self.stream, flush=True)
