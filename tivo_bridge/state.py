"""Shared mutable state container for the TiVo bridge."""
from __future__ import annotations

import logging
import threading
import time
from typing import Any, TYPE_CHECKING

from . import topics

if TYPE_CHECKING:
    from .broker_client import BrokerClient
    from .session import BridgeSession

logger = logging.getLogger(__name__)


class BridgeState:
    """All shared mutable state for the bridge."""

    def __init__(self, config: dict[str, Any], debug: bool = False) -> None:
        self.config = config
        self.debug = debug
        self.client_version: str = ""

        # Identity
        tivo_cfg = config.get('tivo', {})
        self.tivo_name: str = tivo_cfg.get('name', '')
        self.topic_root: str = topics.build_topic_root(self.tivo_name)

        # Bridge session (set during startup)
        self.session: BridgeSession | None = None

        # MQTT state
        self.mqtt_client: BrokerClient | None = None
        self.mqtt_connected: bool = False
        self.connection_event = threading.Event()
        self.mqtt_manager: Any = None  # Set by tivo_bridge.__init__

        # Lifecycle
        self.should_exit: bool = False
        self.exit_code: int = 0

        # Reconnect params
        self.reconnect_delay: float = 1.0
        self.max_reconnect_delay: float = 120.0
        self.reconnect_backoff: float = 1.5
        self.max_reconnect_attempts: int = 12
        self.reconnect_at: float = 0.0
        self.connecting_since: float = 0.0
        self.connect_time: float = 0.0
        self.failed_attempts: int = 0

        # Statistics tracking
        self.stats: dict[str, Any] = {
            'start_time': time.time(),
            'commands_dispatched': 0,
            'command_failures': 0,
            'events_received': 0,
            'publishes': 0,
            'publish_failures': 0,
            'ignored_messages': 0,
            'reconnects': [],
            'last_stats_log': time.time(),
        }

        logger.info(f"Configuration loaded for {self.topic_root}")
