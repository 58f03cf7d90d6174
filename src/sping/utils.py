"""
utils.py

Utility functions used throughout the application.

Author: David Song <davsong@cs.washington.edu>
"""

import socket
import time
from typing import Optional


def now_us() -> int:
    """Wall-clock time in microseconds since the epoch."""
    return time.time_ns() // 1000


def format_rtt(tens_of_us: int) -> str:
    """
    Render a round-trip time, given in tens of microseconds, as
    milliseconds with three significant digits.
    """
    # < 1 ms
    if tens_of_us < 100:
        return f"0.{tens_of_us:02d}"
    # 1.00 - 9.99 ms
    if tens_of_us < 1000:
        return f"{tens_of_us // 100}.{tens_of_us % 100:02d}"
    # 10.0 - 99.9 ms
    if tens_of_us < 10000:
        return f"{tens_of_us // 100}.{(tens_of_us % 100) // 10}"
    return str(tens_of_us // 100)


def resolve_hostname(ip):
    """Resolve the hostname of a given IP address."""
    try:
        return socket.gethostbyaddr(ip)[0]
    except (socket.herror, socket.gaierror):
        return ip


def resolve_ip(hostname) -> Optional[str]:
    """Resolve the IPv4 address of a given hostname or dotted-quad literal."""
    try:
        return socket.gethostbyname(hostname)
    except socket.gaierror:
        pass
    try:
        return socket.inet_ntoa(socket.inet_aton(hostname))
    except OSError:
        return None
