"""Background thread loop for periodic statistics logging."""
from __future__ import annotations

import logging
import time
from time import sleep
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .state import BridgeState

logger = logging.getLogger(__name__)

STATS_INTERVAL = 300


def format_uptime(seconds: int) -> str:
    hours = seconds // 3600
    minutes = (seconds % 3600) // 60
    if hours > 0:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"


def format_stats(state: BridgeState) -> str:
    """Build the one-line service summary."""
    stats = state.stats
    uptime_str = format_uptime(int(time.time() - stats['start_time']))

    # Prune reconnect timestamps older than 24 hours
    cutoff_time = time.time() - 86400
    stats['reconnects'] = [ts for ts in stats['reconnects'] if ts > cutoff_time]

    session_state = state.session.state.value if state.session else "none"
    mqtt_str = "connected" if state.mqtt_connected else "disconnected"

    return (
        f"[SERVICE] Uptime: {uptime_str} | "
        f"Session: {session_state} | "
        f"Commands: {stats['commands_dispatched']} (failed: {stats['command_failures']}, ignored: {stats['ignored_messages']}) | "
        f"Events: {stats['events_received']} | "
        f"Published: {stats['publishes']} | "
        f"MQTT: {mqtt_str} | "
        f"Reconnects/24h: {len(stats['reconnects'])} | "
        f"Failures: {stats['publish_failures']}"
    )


def stats_logging_loop(state: BridgeState, interval: float = STATS_INTERVAL) -> None:
    """Log statistics every 5 minutes."""
    while not state.should_exit:
        sleep(interval)

        if state.should_exit:
            break

        logger.info(format_stats(state))
        state.stats['last_stats_log'] = time.time()
