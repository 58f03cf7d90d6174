import asyncio

import pytest
from scapy.layers.inet import IP as ScapyIP, ICMP as ScapyICMP
from scapy.packet import Raw

from sping.report import Reporter
from sping.session import PingConf, Session


def make_reply(identifier, sequence, payload, src="127.0.0.1", ttl=64, icmp_type=0):
    """Builds an IPv4 + ICMP packet as the raw socket would deliver it."""
    packet = (ScapyIP(src=src, dst="127.0.0.1", ttl=ttl)
              / ScapyICMP(type=icmp_type, id=identifier, seq=sequence)
              / Raw(load=payload))
    return bytes(packet)


def echo_of(request, src="127.0.0.1", ttl=64):
    """Turns an encoded echo request into the reply a peer would send back."""
    icmp = ScapyICMP(request)
    return make_reply(icmp.id, icmp.seq, bytes(icmp.payload), src=src, ttl=ttl)


class FakeTransport:
    """Records sent packets and serves queued datagrams to the listener."""

    def __init__(self, fail_with=None, echo=False):
        self.sent = []
        self.fail_with = fail_with
        self.echo = echo
        self.inbox = None

    def send(self, packet, dst_ip):
        if self.fail_with is not None:
            raise self.fail_with
        self.sent.append((packet, dst_ip))
        if self.echo:
            self.deliver(echo_of(packet, src=dst_ip), dst_ip)
        return len(packet)

    def deliver(self, packet, addr):
        if self.inbox is None:
            self.inbox = asyncio.Queue()
        self.inbox.put_nowait((packet, addr))

    async def receive(self, size):
        if self.inbox is None:
            self.inbox = asyncio.Queue()
        packet, addr = await self.inbox.get()
        return packet[:size], addr

    def close(self):
        pass


class RecordingReporter(Reporter):

    def __init__(self):
        self.starts = []
        self.replies = []

    def handle_start(self, host, dst_ip, data_size, wire_size):
        self.starts.append((host, dst_ip, data_size, wire_size))

    def handle_reply(self, measurement):
        self.replies.append(measurement)


@pytest.fixture
def loop():
    loop = asyncio.new_event_loop()
    yield loop
    loop.close()


@pytest.fixture
def conf():
    return PingConf(destination="localhost", interval=0.5)


@pytest.fixture
def session(conf):
    return Session(dst_ip="127.0.0.1", conf=conf, identifier=0x1234)


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def reporter():
    return RecordingReporter()
