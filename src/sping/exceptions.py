"""
exceptions.py

Exceptions used throughout the application.

Author: David Song <davsong@cs.washington.edu>
"""


class PacketParseError(Exception):
    """Raised when packet parsing fails"""
    pass


class PacketTooShortError(PacketParseError):
    """Raised when a packet cannot hold the headers it declares"""
    pass


class UnexpectedIdentifierError(PacketParseError):
    """Raised when an echo reply belongs to another session"""

    def __init__(self, observed: int, expected: int):
        super().__init__(f"id {observed} != {expected}")
        self.observed = observed
        self.expected = expected


class TransportError(Exception):
    """Raised when the raw socket cannot be set up"""
    pass


class ResolveError(Exception):
    """Raised when the destination host cannot be resolved"""
    pass
