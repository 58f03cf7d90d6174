"""
constants.py

Constants used throughout the application.

Author: David Song <davsong@cs.washington.edu>
"""

import struct

# ICMP message types
ICMP_ECHO_REPLY = 0
ICMP_ECHO_REQUEST = 8

# Header sizes (bytes)
IP_HEADER_SIZE = 20
IP_MIN_IHL = 5  # in 32-bit words
IP_MAX_HEADER_SIZE = 60
ICMP_HEADER_SIZE = 8  # type, code, checksum, identifier, sequence
IP_MAXPACKET = 65535

# Embedded data: magic, 4 pad bytes, seconds, microseconds
ECHO_DATA_FORMAT = "!I4xqq"
ECHO_MAGIC = 0xD4C3D2A1

# Data size limits. The default is chosen to resemble traditional ping.
MIN_DATA_SIZE = struct.calcsize(ECHO_DATA_FORMAT)
DEFAULT_DATA_SIZE = MIN_DATA_SIZE + 44
MAX_DATA_SIZE = IP_MAXPACKET - IP_HEADER_SIZE - ICMP_HEADER_SIZE

DEFAULT_INTERVAL = 0.5  # seconds
