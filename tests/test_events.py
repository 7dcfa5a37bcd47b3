"""Tests for TiVo response parsing."""
from __future__ import annotations

from tivo_bridge.events import (
    ChannelFailed,
    ChannelStatus,
    InvalidCommand,
    LiveTvReady,
    MissingTeleportName,
    UnknownResponse,
    parse_response,
)


class TestChannelStatus:
    def test_channel_only(self):
        assert parse_response("CH_STATUS 0012 LOCAL") == ChannelStatus(12, None, "LOCAL")

    def test_with_subchannel(self):
        assert parse_response("CH_STATUS 0012 0003 REMOTE") == ChannelStatus(12, 3, "REMOTE")

    def test_without_reason(self):
        assert parse_response("CH_STATUS 0007") == ChannelStatus(7, None, "")

    def test_garbled(self):
        assert isinstance(parse_response("CH_STATUS LOCAL"), UnknownResponse)


class TestOtherResponses:
    def test_channel_failed(self):
        assert parse_response("CH_FAILED NO_LIVE") == ChannelFailed("NO_LIVE")

    def test_live_tv_ready(self):
        assert parse_response("LIVETV_READY") == LiveTvReady()

    def test_invalid_command(self):
        assert parse_response("INVALID_COMMAND") == InvalidCommand()

    def test_missing_teleport_name(self):
        assert parse_response("MISSING_TELEPORT_NAME") == MissingTeleportName()

    def test_unknown(self):
        assert parse_response("SOMETHING_NEW 1") == UnknownResponse("SOMETHING_NEW 1")

    def test_blank_line(self):
        assert parse_response("  \r") is None
