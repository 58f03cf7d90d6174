# src/sping/__init__.py
from sping.pinger import Pinger, ProbeScheduler
from sping.report import ConsoleReporter, Measurement, Reporter
from sping.session import PingConf, Session
from sping.transport import RawSocketTransport

__version__ = "0.1.0"

__all__ = ["Pinger", "ProbeScheduler", "ConsoleReporter", "Measurement", "Reporter",
           "PingConf", "Session", "RawSocketTransport"]
