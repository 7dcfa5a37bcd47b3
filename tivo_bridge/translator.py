"""Translate TiVo status events into MQTT publications."""
from __future__ import annotations

from dataclasses import dataclass

from . import topics
from .events import ChannelStatus

QOS_AT_LEAST_ONCE = 1


@dataclass(frozen=True)
class Publication:
    topic: str
    payload: str
    qos: int = QOS_AT_LEAST_ONCE
    retain: bool = True


def format_channel(channel: int, subchannel: int | None) -> str:
    if subchannel is None:
        return str(channel)
    return f"{channel}.{subchannel}"


def translate_event(topic_root: str, event: object) -> Publication | None:
    """Return the publication for a status event, or None if it isn't published."""
    if isinstance(event, ChannelStatus):
        return Publication(
            topic=topics.current_channel_topic(topic_root),
            payload=format_channel(event.channel, event.subchannel),
            qos=QOS_AT_LEAST_ONCE,
            retain=True,
        )
    return None
