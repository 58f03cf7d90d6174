"""
packets.py

Class representations of the IP and ICMP echo packets, together with
the encoder for echo requests and the decoder for echo replies.

Author: David Song <davsong@cs.washington.edu>
"""

import struct
from dataclasses import dataclass
from typing import Optional

from sping.constants import (
    ECHO_DATA_FORMAT,
    ECHO_MAGIC,
    ICMP_ECHO_REPLY,
    ICMP_ECHO_REQUEST,
    ICMP_HEADER_SIZE,
    IP_HEADER_SIZE,
    IP_MIN_IHL,
    MIN_DATA_SIZE,
)
from sping.exceptions import (
    PacketParseError,
    PacketTooShortError,
    UnexpectedIdentifierError,
)
from sping.utils import now_us


def checksum(data: bytes) -> int:
    """Calculates the Internet checksum (RFC 1071) of the given bytes."""
    if len(data) % 2 == 1:
        data += b"\0"

    words = struct.unpack("!%dH" % (len(data) // 2), data)
    total = sum(words)

    while total >> 16:
        total = (total & 0xFFFF) + (total >> 16)

    return ~total & 0xFFFF


class IP:
    """Read-only view of a received IPv4 header."""

    def __init__(self, raw: bytes):
        self.raw = raw
        self.version = 4
        self.ihl = IP_MIN_IHL
        self.ttl = 0
        self.proto = 0
        self.src = "0.0.0.0"
        self.dst = "0.0.0.0"
        self.payload = b""

        self._parse(raw)

    def _parse(self, raw: bytes) -> None:
        """Parses a raw IP packet."""
        if len(raw) < IP_HEADER_SIZE:
            raise PacketTooShortError(
                f"Packet too short: {len(raw)} bytes (expected at least {IP_HEADER_SIZE})"
            )

        header = struct.unpack("!BBHHHBBH4s4s", raw[:IP_HEADER_SIZE])
        self.version = header[0] >> 4
        self.ihl = header[0] & 0xF
        if self.ihl < IP_MIN_IHL:
            raise PacketTooShortError(
                f"Invalid IHL: {self.ihl} (must be at least {IP_MIN_IHL})"
            )

        if len(raw) < self.header_length + ICMP_HEADER_SIZE:
            raise PacketTooShortError(
                f"Packet too short for ICMP: {len(raw)} bytes "
                f"(expected {self.header_length + ICMP_HEADER_SIZE})"
            )

        self.ttl = header[5]
        self.proto = header[6]
        self.src = self._ip_to_str(header[8])
        self.dst = self._ip_to_str(header[9])
        self.payload = raw[self.header_length:]

    def _ip_to_str(self, ip_bytes: bytes) -> str:
        """Converts an IP address from bytes to string format."""
        return ".".join(map(str, ip_bytes))

    @property
    def header_length(self) -> int:
        """Header length in bytes."""
        return self.ihl * 4

    def __repr__(self) -> str:
        return f"IP(src={self.src}, dst={self.dst}, ttl={self.ttl}, proto={self.proto})"


class ICMP:
    """Represents an ICMP echo packet."""

    def __init__(
        self,
        raw: Optional[bytes] = None,
        type: int = ICMP_ECHO_REQUEST,
        code: int = 0,
        identifier: int = 0,
        sequence: int = 0,
        payload: bytes = b"",
    ):
        self.raw = raw
        self.type = type
        self.code = code
        self.checksum = 0
        self.identifier = identifier
        self.sequence = sequence
        self.payload = payload

        if raw:
            self._parse(raw)

    def _parse(self, raw: bytes) -> None:
        """Parses a raw ICMP packet."""
        if len(raw) < ICMP_HEADER_SIZE:
            raise PacketTooShortError(
                f"ICMP header too short: {len(raw)} bytes (expected {ICMP_HEADER_SIZE})"
            )

        header = struct.unpack("!BBHHH", raw[:ICMP_HEADER_SIZE])
        self.type = header[0]
        self.code = header[1]
        self.checksum = header[2]
        self.identifier = header[3]
        self.sequence = header[4]
        self.payload = raw[ICMP_HEADER_SIZE:]

    def __bytes__(self) -> bytes:
        """Serializes the ICMP packet into bytes."""
        packet = self._pack(0) + self.payload
        self.checksum = checksum(packet)
        return self._pack(self.checksum) + self.payload

    def _pack(self, cksum: int) -> bytes:
        return struct.pack(
            "!BBHHH", self.type, self.code, cksum, self.identifier, self.sequence
        )

    def __len__(self) -> int:
        return ICMP_HEADER_SIZE + len(self.payload)

    def __repr__(self) -> str:
        return (f"ICMP(type={self.type}, code={self.code}, "
                f"id={self.identifier}, seq={self.sequence})")


@dataclass
class EchoData:
    """
    Data carried after the ICMP header to relate a reply to its request.

    Attributes:
        sec (int): Seconds part of the send time.
        usec (int): Microseconds part of the send time.
        magic (int): Fixed marker identifying a well-formed data region.
    """
    sec: int
    usec: int
    magic: int = ECHO_MAGIC

    @classmethod
    def now(cls) -> "EchoData":
        sec, usec = divmod(now_us(), 1_000_000)
        return cls(sec=sec, usec=usec)

    @classmethod
    def from_bytes(cls, raw: bytes) -> "EchoData":
        if len(raw) < MIN_DATA_SIZE:
            raise PacketParseError(
                f"Echo data too short: {len(raw)} bytes (expected {MIN_DATA_SIZE})"
            )
        magic, sec, usec = struct.unpack(ECHO_DATA_FORMAT, raw[:MIN_DATA_SIZE])
        return cls(sec=sec, usec=usec, magic=magic)

    @property
    def timestamp_us(self) -> int:
        """Send time in microseconds since the epoch."""
        return self.sec * 1_000_000 + self.usec

    def __bytes__(self) -> bytes:
        return struct.pack(ECHO_DATA_FORMAT, self.magic, self.sec, self.usec)


@dataclass
class EchoReply:
    """
    A validated echo reply addressed to this session.

    Attributes:
        src (str): The responder address, from the IP header.
        ttl (int): The TTL of the reply, from the IP header.
        sequence (int): The ICMP sequence number.
        length (int): The ICMP-layer length in bytes.
        data (EchoData): The echoed send time.
    """
    src: str
    ttl: int
    sequence: int
    length: int
    data: EchoData


def build_echo_request(identifier: int, sequence: int, packet_size: int,
                       data: Optional[EchoData] = None) -> bytes:
    """
    Creates an ICMP echo request of exactly packet_size bytes.

    The embedded data is stamped with the current time unless given, and
    zero padding fills the rest of the packet. The checksum is computed
    last, over the fully populated packet.
    """
    data_size = packet_size - ICMP_HEADER_SIZE
    if data_size < MIN_DATA_SIZE:
        raise ValueError(
            f"Packet size {packet_size} cannot hold the echo data "
            f"(minimum {ICMP_HEADER_SIZE + MIN_DATA_SIZE})"
        )

    if data is None:
        data = EchoData.now()
    payload = bytes(data).ljust(data_size, b"\0")

    icmp_packet = ICMP(
        type=ICMP_ECHO_REQUEST,
        code=0,
        identifier=identifier,
        sequence=sequence & 0xFFFF,
        payload=payload,
    )
    return bytes(icmp_packet)


def decode_echo_reply(raw: bytes, identifier: int) -> Optional[EchoReply]:
    """
    Decodes a packet read from the raw socket, IP header included.

    Returns None for ICMP traffic other than echo replies.

    Raises:
        PacketTooShortError: If the packet cannot hold the IP and ICMP headers.
        UnexpectedIdentifierError: If the reply belongs to another session.
        PacketParseError: If the echo data cannot be extracted.
    """
    ip_packet = IP(raw)
    icmp_packet = ICMP(ip_packet.payload)

    if icmp_packet.type != ICMP_ECHO_REPLY:
        return None

    if icmp_packet.identifier != identifier:
        raise UnexpectedIdentifierError(icmp_packet.identifier, identifier)

    return EchoReply(
        src=ip_packet.src,
        ttl=ip_packet.ttl,
        sequence=icmp_packet.sequence,
        length=len(icmp_packet),
        data=EchoData.from_bytes(icmp_packet.payload),
    )
