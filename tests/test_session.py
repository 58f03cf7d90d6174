import logging
import os

import pytest

from sping.constants import (
    DEFAULT_DATA_SIZE,
    MAX_DATA_SIZE,
    MIN_DATA_SIZE,
)
from sping.session import PingConf, Session


class TestPingConf:

    def test_defaults(self):
        conf = PingConf(destination="example.com")
        assert conf.data_size == DEFAULT_DATA_SIZE == MIN_DATA_SIZE + 44
        assert conf.interval == 0.5
        assert conf.reply_timeout is None
        assert conf.source is None

    def test_data_size_clamped_low(self, caplog):
        with caplog.at_level(logging.WARNING):
            conf = PingConf(destination="h", data_size=1)
        assert conf.data_size == MIN_DATA_SIZE
        assert "raised to minimum" in caplog.text

    def test_data_size_clamped_high(self):
        conf = PingConf(destination="h", data_size=MAX_DATA_SIZE + 1)
        assert conf.data_size == MAX_DATA_SIZE == 65507

    @pytest.mark.parametrize("interval", [0, -1])
    def test_interval_must_be_positive(self, interval):
        with pytest.raises(ValueError):
            PingConf(destination="h", interval=interval)

    def test_reply_timeout_must_be_positive(self):
        with pytest.raises(ValueError):
            PingConf(destination="h", reply_timeout=0)


class TestSession:

    def test_identifier_from_process(self):
        session = Session(dst_ip="127.0.0.1", conf=PingConf(destination="h"))
        assert session.identifier == os.getpid() & 0xFFFF

    def test_sizes(self):
        session = Session(dst_ip="127.0.0.1", conf=PingConf(destination="h"))
        assert session.packet_size == 8 + DEFAULT_DATA_SIZE
        assert session.wire_size == 20 + 8 + DEFAULT_DATA_SIZE
        assert session.receive_size == 60 + 8 + DEFAULT_DATA_SIZE

    def test_sequence_starts_at_one(self):
        session = Session(dst_ip="127.0.0.1", conf=PingConf(destination="h"))
        assert [session.take_sequence() for _ in range(3)] == [1, 2, 3]

    def test_sequence_wraps_to_zero(self):
        session = Session(dst_ip="127.0.0.1", conf=PingConf(destination="h"),
                          next_sequence=0xFFFF)
        assert session.take_sequence() == 0xFFFF
        assert session.take_sequence() == 0
        assert session.take_sequence() == 1

    def test_sequence_full_cycle(self):
        session = Session(dst_ip="127.0.0.1", conf=PingConf(destination="h"))
        for _ in range(65536):
            session.take_sequence()
        assert session.next_sequence == 1
