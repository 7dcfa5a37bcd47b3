"""MQTT connection manager: owns the BrokerClient and its callbacks."""
from __future__ import annotations

import logging
import random
import time
from typing import Any, TYPE_CHECKING

from . import topics
from .broker_client import BrokerClient, PahoBrokerClient
from .mqtt_publish import publish_connected

if TYPE_CHECKING:
    from .state import BridgeState

logger = logging.getLogger(__name__)


class MqttManager:
    """Connects to the configured broker and routes command messages to the session."""

    def __init__(self, state: BridgeState) -> None:
        self.state = state

    # ------------------------------------------------------------------
    # Connection lifecycle
    # ------------------------------------------------------------------

    def connect(self, wait: float = 10) -> bool:
        """Initial connection to the configured MQTT broker."""
        state = self.state
        state.connection_event.clear()

        if not self._create_and_connect():
            return False

        # Wait for the initial connection attempt to complete
        state.connection_event.wait(timeout=wait)

        if not state.mqtt_connected:
            logger.error("[MQTT] Not connected after initial connection attempt")
            return False

        return True

    def reconnect_if_disconnected(self) -> None:
        """Recreate the client after a disconnect, with backoff."""
        state = self.state
        if state.mqtt_connected:
            return

        current_time = time.time()
        if state.connecting_since > 0 and (current_time - state.connecting_since) < 10:
            return
        if current_time < state.reconnect_at:
            return

        if state.failed_attempts >= state.max_reconnect_attempts:
            logger.critical(f"[MQTT] {state.max_reconnect_attempts} consecutive failures - exiting for service restart")
            state.exit_code = 1
            state.should_exit = True
            return

        logger.info(f"[MQTT] Reconnecting (attempt #{state.failed_attempts + 1})")
        self.disconnect()

        if self._create_and_connect():
            logger.debug("[MQTT] Recreated client successfully")
        else:
            state.failed_attempts += 1
            jitter = random.uniform(-0.5, 0.5)
            delay = max(0, state.reconnect_delay + jitter)
            state.reconnect_at = current_time + delay
            state.reconnect_delay = min(state.reconnect_delay * state.reconnect_backoff, state.max_reconnect_delay)
            logger.warning(f"[MQTT] Failed to recreate client (attempt #{state.failed_attempts}/{state.max_reconnect_attempts})")

    def disconnect(self) -> None:
        client = self.state.mqtt_client
        if client is None:
            return
        try:
            client.loop_stop()
            client.disconnect()
        except Exception as e:
            logger.debug(f"[MQTT] Error stopping client: {e}")

    # ------------------------------------------------------------------
    # MQTT callbacks
    # ------------------------------------------------------------------

    def on_mqtt_connect(self, client: Any, userdata: Any, flags: Any, rc: int, properties: Any = None) -> None:
        state = self.state
        state.connection_event.set()

        if rc != 0:
            logger.error(f"[MQTT] Connection failed with code: {rc}")
            return

        state.reconnect_delay = 1.0
        is_first_connect = state.connect_time == 0
        state.connecting_since = 0
        state.connect_time = time.time()
        state.mqtt_connected = True

        if is_first_connect:
            logger.info("[MQTT] Connected to broker")
        else:
            logger.info("[MQTT] Reconnected to broker")

        publish_connected(state, True)

        # Subscriptions don't survive a clean session, so re-issue them on every connect
        subscription = topics.command_subscription(state.topic_root)
        try:
            state.mqtt_client.subscribe(subscription, qos=1)
            logger.info(f"[MQTT] Subscribed to {subscription}")
        except Exception as e:
            logger.error(f"[MQTT] Failed to subscribe to {subscription}: {e}")

    def on_mqtt_disconnect(self, client: Any, userdata: Any, disconnect_flags: Any, reason_code: Any, properties: Any) -> None:
        state = self.state
        was_connected = state.mqtt_connected
        state.mqtt_connected = False

        if state.should_exit:
            logger.debug("[MQTT] Disconnected (shutdown)")
            return

        state.connecting_since = 0
        state.reconnect_at = time.time() + state.reconnect_delay

        if state.connect_time > 0 and (time.time() - state.connect_time) < 120:
            state.failed_attempts += 1
            logger.warning(f"[MQTT] Short-lived connection detected (failed_attempts: {state.failed_attempts})")
        elif state.connect_time > 0 and state.failed_attempts > 0:
            logger.info(f"[MQTT] Stable connection ended after {int(time.time() - state.connect_time)}s - resetting failure counter")
            state.failed_attempts = 0

        if was_connected:
            logger.warning(f"[MQTT] Disconnected (code: {reason_code}, flags: {disconnect_flags}, properties: {properties})")
            state.stats['reconnects'].append(time.time())

    def on_mqtt_message(self, client: Any, userdata: Any, msg: Any) -> None:
        """Hand command messages to the bridge session without blocking the network loop."""
        session = self.state.session
        if session is None:
            logger.debug(f"[MQTT] No session yet, ignoring message on {msg.topic}")
            return
        session.submit_message(msg.topic, msg.payload)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _create_broker_client(self) -> BrokerClient:
        """Create and configure a BrokerClient (doesn't connect)."""
        state = self.state
        mqtt_cfg = state.config.get('mqtt', {})
        prefix = mqtt_cfg.get('client_id_prefix', 'tivo_')
        client_id = topics.sanitize_client_id(state.tivo_name, prefix)

        auth = mqtt_cfg.get('auth', {})
        username = auth.get('username', '')
        password = auth.get('password', '')

        tls_cfg = mqtt_cfg.get('tls', {})
        tls_enabled = tls_cfg.get('enabled', False)
        tls_verify = tls_cfg.get('verify', True)
        if tls_enabled and not tls_verify:
            logger.warning("[MQTT] TLS verification disabled")

        return PahoBrokerClient(
            client_id=client_id,
            transport=mqtt_cfg.get('transport', 'tcp'),
            username=username if username else None,
            password=password if password else None,
            lwt_topic=topics.connected_topic(state.topic_root),
            lwt_payload="false",
            lwt_qos=1,
            lwt_retain=True,
            tls_enabled=tls_enabled,
            tls_verify=tls_verify,
            on_connect=self.on_mqtt_connect,
            on_disconnect=self.on_mqtt_disconnect,
            on_message=self.on_mqtt_message,
        )

    def _create_and_connect(self) -> bool:
        """Create a fresh broker client and start connecting it."""
        state = self.state
        mqtt_cfg = state.config.get('mqtt', {})

        server = mqtt_cfg.get('server', '')
        if not server:
            logger.error("[MQTT] No server configured")
            return False

        port = mqtt_cfg.get('port', 1883)
        keepalive = mqtt_cfg.get('keepalive', 60)

        logger.debug("[MQTT] Creating fresh client")
        broker_client = self._create_broker_client()
        state.mqtt_client = broker_client

        try:
            broker_client.connect(server, port, keepalive=keepalive)
            broker_client.loop_start()
        except Exception as e:
            logger.error(f"[MQTT] Failed to connect to {server}:{port}: {e}")
            return False

        state.connecting_since = time.time()
        logger.info(f"[MQTT] Connecting to {server}:{port} (keepalive={keepalive}s)")
        return True
