"""Main run loop and startup orchestration."""
from __future__ import annotations

import json
import logging
import os
import threading
from functools import partial
from time import sleep
from typing import Any, TYPE_CHECKING

from config_loader import log_config_sources

from . import background
from . import tivo_connection
from .mqtt_publish import publish_connected, publish_publication
from .session import BridgeSession

if TYPE_CHECKING:
    from .state import BridgeState

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FATAL = 1


def load_client_version(version: str) -> str:
    """Load client version from provided version string, optionally append git hash."""
    try:
        script_dir = os.path.dirname(os.path.abspath(__file__))
        parent_dir = os.path.dirname(script_dir)  # tivo_bridge/ → project root
        version_file = os.path.join(parent_dir, '.version_info')
        if os.path.exists(version_file):
            with open(version_file, 'r') as f:
                version_data = json.load(f)
                git_hash = version_data.get('git_hash', '')
                if git_hash and git_hash != 'unknown':
                    return f"tivotomqtt/{version}-{git_hash}"
    except (OSError, ValueError) as e:
        logger.debug(f"Could not load version info: {e}")
    return f"tivotomqtt/{version}"


def handle_signal(state: BridgeState, signum: int, frame: Any) -> None:
    """Signal handler to trigger graceful shutdown."""
    logger.info(f"Received signal {signum}, shutting down...")
    state.should_exit = True


def exit_code_for(state: BridgeState) -> int:
    """Map the final bridge state to the process exit status."""
    if state.session is not None and state.session.is_faulted:
        return EXIT_FATAL
    return state.exit_code


def connect_mqtt(state: BridgeState, max_retries: int = 10) -> bool:
    """Initial MQTT connection with linear backoff."""
    retry_count = 0
    while retry_count < max_retries and not state.should_exit:
        if state.mqtt_manager.connect():
            return True
        retry_count += 1
        wait_time = min(retry_count * 2, 30)
        logger.warning(f"[MQTT] Initial connection failed. Retrying in {wait_time}s... (attempt {retry_count}/{max_retries})")
        sleep(wait_time)

    logger.error("[MQTT] Failed to establish initial connection after maximum retries")
    return False


def run(state: BridgeState) -> int:
    """Main orchestration: connect MQTT, start the TiVo session, wait for exit.

    Returns the process exit status.
    """
    log_config_sources(state.config)
    logger.info(f"Client version: {state.client_version}")

    device = tivo_connection.create(state.config)
    state.session = BridgeSession(
        device,
        state.topic_root,
        publish=partial(publish_publication, state),
        stats=state.stats,
    )

    if not connect_mqtt(state):
        state.session.stop()
        state.should_exit = True
        return EXIT_FATAL

    stats_thread = threading.Thread(
        target=background.stats_logging_loop,
        args=(state,),
        daemon=True,
        name="Stats-Logger"
    )
    stats_thread.start()
    logger.debug("[STATS] Started statistics logging thread")

    try:
        with state.session as session:
            session.start()
            while not state.should_exit and not session.is_faulted:
                state.mqtt_manager.reconnect_if_disconnected()
                sleep(0.1)
    except KeyboardInterrupt:
        logger.info("\nExiting...")
    finally:
        _cleanup(state)

    return exit_code_for(state)


def _cleanup(state: BridgeState) -> None:
    """Publish offline status and disconnect from the broker."""
    logger.info("Cleaning up...")
    state.should_exit = True

    if state.mqtt_connected:
        publish_connected(state, False)

    if state.mqtt_manager:
        state.mqtt_manager.disconnect()
