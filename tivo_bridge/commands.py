"""TiVo commands and decoding of MQTT command payloads."""
from __future__ import annotations

import re
from dataclasses import dataclass

INT_PATTERN = re.compile(r"\s*[+-]?[0-9]+\s*")


@dataclass(frozen=True)
class SetChannel:
    channel: int
    subchannel: int | None = None

    def to_wire(self) -> str:
        return _channel_wire("SETCH", self.channel, self.subchannel)


@dataclass(frozen=True)
class ForceChannel:
    channel: int
    subchannel: int | None = None

    def to_wire(self) -> str:
        return _channel_wire("FORCECH", self.channel, self.subchannel)


@dataclass(frozen=True)
class InfraredKey:
    code: str

    def to_wire(self) -> str:
        return f"IRCODE {self.code}"


@dataclass(frozen=True)
class Teleport:
    code: str

    def to_wire(self) -> str:
        return f"TELEPORT {self.code}"


@dataclass(frozen=True)
class KeyboardKey:
    code: str

    def to_wire(self) -> str:
        return f"KEYBOARD {self.code}"


Command = SetChannel | ForceChannel | InfraredKey | Teleport | KeyboardKey


def _channel_wire(verb: str, channel: int, subchannel: int | None) -> str:
    if subchannel is None:
        return f"{verb} {channel}"
    return f"{verb} {channel} {subchannel}"


def parse_int(token: str) -> int | None:
    """Parse a plain decimal integer, or None if the token isn't one."""
    if not INT_PATTERN.fullmatch(token):
        return None
    return int(token)


def parse_channel(payload: str) -> tuple[int, int | None] | None:
    """Parse '<channel>' or '<channel>.<subchannel>'.

    Both tokens must be integers; a bad subchannel never falls back to
    channel-only.
    """
    parts = payload.split('.')
    if len(parts) not in (1, 2):
        return None

    channel = parse_int(parts[0])
    if channel is None:
        return None
    if len(parts) == 1:
        return channel, None

    subchannel = parse_int(parts[1])
    if subchannel is None:
        return None
    return channel, subchannel


def decode_command(command_type: str, payload: str | None) -> Command | None:
    """Map a command-type token and its payload to a Command.

    Unknown tokens and malformed payloads yield None.
    """
    if payload is None:
        return None

    if command_type in ("setCh", "forceCh"):
        parsed = parse_channel(payload)
        if parsed is None:
            return None
        channel, subchannel = parsed
        if command_type == "setCh":
            return SetChannel(channel, subchannel)
        return ForceChannel(channel, subchannel)

    if command_type == "irCode":
        return InfraredKey(payload)
    if command_type == "teleport":
        return Teleport(payload)
    if command_type == "keyboard":
        return KeyboardKey(payload)

    return None
