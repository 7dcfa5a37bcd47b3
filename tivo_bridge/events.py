"""Events emitted by a TiVo session and parsing of TiVo response lines."""
from __future__ import annotations

import re
from dataclasses import dataclass

DIGITS = re.compile(r"[0-9]+")


# Status events reported by the TiVo

@dataclass(frozen=True)
class ChannelStatus:
    channel: int
    subchannel: int | None = None
    reason: str = ""


@dataclass(frozen=True)
class ChannelFailed:
    reason: str


@dataclass(frozen=True)
class LiveTvReady:
    pass


@dataclass(frozen=True)
class InvalidCommand:
    pass


@dataclass(frozen=True)
class MissingTeleportName:
    pass


@dataclass(frozen=True)
class UnknownResponse:
    line: str


StatusEvent = ChannelStatus | ChannelFailed | LiveTvReady | InvalidCommand | MissingTeleportName | UnknownResponse
STATUS_EVENT_TYPES = (ChannelStatus, ChannelFailed, LiveTvReady, InvalidCommand, MissingTeleportName, UnknownResponse)


# Session-level notifications

@dataclass(frozen=True)
class MessageSent:
    message: str


@dataclass(frozen=True)
class MessageReceived:
    message: str


@dataclass(frozen=True)
class TransportError:
    error: BaseException


DeviceEvent = MessageSent | MessageReceived | TransportError | StatusEvent


def parse_response(line: str) -> StatusEvent | None:
    """Parse one line received from the TiVo into a status event."""
    line = line.strip()
    if not line:
        return None

    parts = line.split()
    code = parts[0]

    if code == "CH_STATUS":
        return _parse_channel_status(line, parts[1:])
    if code == "CH_FAILED":
        return ChannelFailed(parts[1] if len(parts) > 1 else "")
    if code == "LIVETV_READY":
        return LiveTvReady()
    if code == "INVALID_COMMAND":
        return InvalidCommand()
    if code == "MISSING_TELEPORT_NAME":
        return MissingTeleportName()
    return UnknownResponse(line)


def _parse_channel_status(line: str, values: list[str]) -> StatusEvent:
    # CH_STATUS <channel> [<subchannel>] <reason>
    if not values or not DIGITS.fullmatch(values[0]):
        return UnknownResponse(line)

    channel = int(values[0])
    subchannel = None
    rest = values[1:]
    if rest and DIGITS.fullmatch(rest[0]):
        subchannel = int(rest[0])
        rest = rest[1:]

    reason = rest[0] if rest else ""
    return ChannelStatus(channel, subchannel, reason)
