"""MQTT publishing helpers."""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from . import topics

if TYPE_CHECKING:
    from .state import BridgeState
    from .translator import Publication

logger = logging.getLogger(__name__)


def safe_publish(state: BridgeState, topic: str, payload: str, qos: int = 0, retain: bool = False) -> bool:
    """Publish to the broker; failures are logged and counted, never raised."""
    client = state.mqtt_client
    if client is None or not state.mqtt_connected:
        logger.warning(f"Not connected - skipping publish to {topic}")
        state.stats['publish_failures'] += 1
        return False

    try:
        result = client.publish(topic, payload, qos=qos, retain=retain)
    except Exception as e:
        logger.error(f"[MQTT] Publish error to {topic}: {str(e)}")
        state.stats['publish_failures'] += 1
        return False

    if not result:
        logger.error(f"[MQTT] Publish failed to {topic}")
        state.stats['publish_failures'] += 1
        return False

    logger.debug(f"[MQTT] Published {payload} to {topic}")
    return True


def publish_publication(state: BridgeState, publication: Publication) -> bool:
    return safe_publish(state, publication.topic, publication.payload,
                        qos=publication.qos, retain=publication.retain)


def publish_connected(state: BridgeState, connected: bool) -> bool:
    """Publish the retained availability flag."""
    payload = "true" if connected else "false"
    return safe_publish(state, topics.connected_topic(state.topic_root), payload, qos=1, retain=True)
