"""Tests for the pyserial-backed TiVo session."""
from __future__ import annotations

import os
import queue
import time
from unittest.mock import MagicMock

import pytest
import serial

from tivo_bridge.commands import SetChannel
from tivo_bridge.events import ChannelStatus, MessageReceived, MessageSent, TransportError
from tivo_bridge.tivo_connection import TivoConnection, build_url, create
from tests.fakes import make_config


def collect_events(conn: TivoConnection, count: int, timeout: float = 2.0) -> list:
    events = []
    deadline = time.time() + timeout
    while len(events) < count and time.time() < deadline:
        try:
            events.append(conn.events.get(timeout=0.05))
        except queue.Empty:
            continue
    return events


class TestBuildUrl:
    def test_host_and_port(self):
        assert build_url({'host': '10.0.0.5', 'port': 31339}) == "socket://10.0.0.5:31339"

    def test_default_port(self):
        assert build_url({'host': '10.0.0.5'}) == "socket://10.0.0.5:31339"

    def test_url_overrides_host(self):
        assert build_url({'host': '10.0.0.5', 'url': '/dev/ttyUSB0'}) == "/dev/ttyUSB0"

    def test_missing_address(self):
        with pytest.raises(ValueError):
            build_url({})


class TestCreate:
    def test_not_connected(self):
        conn = create(make_config(tivo={'url': 'loop://'}))
        assert conn.url == "loop://"
        assert not conn.is_open


class TestLoopback:
    """pyserial's loop:// echoes writes back, standing in for the TiVo."""

    def test_send_writes_wire_format(self):
        conn = TivoConnection("loop://", timeout=0.05)
        conn.connect()
        try:
            conn.send_command(SetChannel(5, 1))
            events = collect_events(conn, 2)
        finally:
            conn.close()

        assert MessageSent("SETCH 5 1") in events
        assert MessageReceived("SETCH 5 1") in events

    def test_status_line_parsed(self):
        conn = TivoConnection("loop://", timeout=0.05)
        conn.connect()
        try:
            conn._port.write(b"CH_STATUS 0007 LOCAL\r")
            events = collect_events(conn, 2)
        finally:
            conn.close()

        assert events == [MessageReceived("CH_STATUS 0007 LOCAL"), ChannelStatus(7, None, "LOCAL")]

    def test_close_does_not_report_error(self):
        conn = TivoConnection("loop://", timeout=0.05)
        conn.connect()
        conn.close()
        time.sleep(0.2)
        assert not conn.is_open
        assert all(not isinstance(e, TransportError) for e in collect_events(conn, 1, timeout=0.1))


class TestReader:
    def _conn_with_port(self, port: MagicMock) -> TivoConnection:
        conn = TivoConnection("loop://")
        conn._port = port
        return conn

    def test_partial_lines_buffered(self):
        port = MagicMock()
        port.read_until.side_effect = [b"CH_STA", b"TUS 0005 0002 REMOTE\r"]
        conn = self._conn_with_port(port)

        assert conn.read_lines() == []
        assert conn.read_lines() == ["CH_STATUS 0005 0002 REMOTE"]

    def test_timeout_returns_nothing(self):
        port = MagicMock()
        port.read_until.return_value = b""
        conn = self._conn_with_port(port)
        assert conn.read_lines() == []

    def test_read_error_reported_as_transport_error(self):
        port = MagicMock()
        port.read_until.side_effect = serial.SerialException("socket disconnected")
        conn = self._conn_with_port(port)

        conn._read_loop()

        event = conn.events.get_nowait()
        assert isinstance(event, TransportError)
        assert isinstance(event.error, serial.SerialException)

    def test_send_error_propagates(self):
        port = MagicMock()
        port.write.side_effect = serial.SerialException("write failed")
        conn = self._conn_with_port(port)

        with pytest.raises(serial.SerialException):
            conn.send_command(SetChannel(2))
        assert conn.events.empty()


@pytest.mark.e2e
def test_real_tivo_reports_channel():
    host = os.environ.get("TIVOTOMQTT_TIVO_HOST", "")
    if not host:
        pytest.skip("Set TIVOTOMQTT_TIVO_HOST to the TiVo's address")
    conn = create({'tivo': {'host': host}})
    conn.connect()
    try:
        events = collect_events(conn, 2, timeout=10)
    finally:
        conn.close()
    assert any(isinstance(e, ChannelStatus) for e in events)
