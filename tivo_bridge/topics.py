"""Topic layout for a single TiVo instance."""
from __future__ import annotations

import re

TOPIC_PREFIX = "tivo"


def build_topic_root(name: str) -> str:
    """Build the topic namespace for a TiVo from its configured name."""
    name = (name or "").strip()
    if not name:
        raise ValueError("TiVo name must not be empty")
    if any(c in name for c in "+#/"):
        raise ValueError(f"TiVo name may not contain MQTT wildcards or '/': {name!r}")
    return f"{TOPIC_PREFIX}/{name}"


def command_subscription(topic_root: str) -> str:
    return f"{topic_root}/controls/+/set"


def current_channel_topic(topic_root: str) -> str:
    return f"{topic_root}/currentChannel"


def connected_topic(topic_root: str) -> str:
    return f"{topic_root}/connected"


def command_type_from_topic(topic_root: str, topic: str) -> str | None:
    """Extract the command-type segment from '<root>/controls/<type>/set'.

    Returns None when the topic does not have that shape.
    """
    prefix = f"{topic_root}/controls/"
    suffix = "/set"
    if not topic.startswith(prefix) or not topic.endswith(suffix):
        return None

    command_type = topic[len(prefix):len(topic) - len(suffix)]
    if not command_type or '/' in command_type:
        return None
    return command_type


def sanitize_client_id(name: str, prefix: str = "tivo_") -> str:
    """Convert a name to a valid MQTT client ID."""
    client_id = prefix + name.replace(" ", "_")
    client_id = re.sub(r"[^a-zA-Z0-9_-]", "", client_id)
    return client_id[:23]
