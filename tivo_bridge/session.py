"""Bridge session: owns the TiVo session and moves messages between it and MQTT.

Inbound MQTT messages and TiVo events are each queued and consumed by one
dispatch thread, so ordering within each stream is preserved. Nothing here
exits the process: a transport fault moves the session to FAULTED and the
runner turns that into the exit status.
"""
from __future__ import annotations

import enum
import logging
import queue
import threading
from typing import Any, Callable, TYPE_CHECKING

from . import topics
from .commands import decode_command
from .events import MessageReceived, MessageSent, TransportError, STATUS_EVENT_TYPES
from .translator import Publication, translate_event

if TYPE_CHECKING:
    from .tivo_connection import DeviceSession

logger = logging.getLogger(__name__)

_STOP = object()


class SessionState(enum.Enum):
    CREATED = "created"
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"
    STOPPED = "stopped"
    FAULTED = "faulted"


class BridgeSession:
    """Translate MQTT commands to a TiVo and TiVo status back to MQTT."""

    def __init__(
        self,
        device: DeviceSession,
        topic_root: str,
        publish: Callable[[Publication], bool],
        stats: dict[str, Any] | None = None,
    ) -> None:
        self._device: DeviceSession | None = device
        self._topic_root = topic_root
        self._publish = publish
        self.stats = stats if stats is not None else {}
        for key in ('commands_dispatched', 'command_failures', 'events_received',
                    'publishes', 'ignored_messages'):
            self.stats.setdefault(key, 0)

        self.state = SessionState.CREATED
        self.fatal_error: BaseException | None = None
        self.inbound: queue.Queue[Any] = queue.Queue()
        self._lock = threading.Lock()
        self._released = False
        self._threads: list[threading.Thread] = []

    @property
    def topic_root(self) -> str:
        return self._topic_root

    @property
    def subscription(self) -> str:
        return topics.command_subscription(self._topic_root)

    @property
    def is_faulted(self) -> bool:
        return self.state is SessionState.FAULTED

    def __enter__(self) -> BridgeSession:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.stop()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Connect the TiVo session and begin dispatching both streams."""
        with self._lock:
            if self.state is not SessionState.CREATED:
                raise RuntimeError(f"Cannot start session in state {self.state.value}")
            self.state = SessionState.STARTING

        device = self._device
        self._start_thread(self._device_loop, (device,), "TiVo-Events")

        try:
            device.connect()
        except Exception as e:
            self.fault(e)
            return

        self._start_thread(self._inbound_loop, (), "MQTT-Commands")

        with self._lock:
            if self.state is SessionState.STARTING:
                self.state = SessionState.RUNNING
                logger.info(f"[TIVO] Bridge running for {self._topic_root}")

    def stop(self) -> None:
        """Release the TiVo session. In-flight sends are not awaited."""
        with self._lock:
            if self.state in (SessionState.STOPPED, SessionState.STOPPING):
                return
            faulted = self.state is SessionState.FAULTED
            if not faulted:
                self.state = SessionState.STOPPING

        self.inbound.put(_STOP)
        self._release_device()

        if not faulted:
            with self._lock:
                self.state = SessionState.STOPPED
            logger.info("[TIVO] Bridge stopped")

    def fault(self, error: BaseException) -> None:
        """Enter FAULTED once; later faults are ignored."""
        with self._lock:
            if self.state not in (SessionState.STARTING, SessionState.RUNNING):
                logger.debug(f"[TIVO] Ignoring transport error in state {self.state.value}: {error}")
                return
            self.state = SessionState.FAULTED
            self.fatal_error = error

        logger.error(f"[TIVO] Fatal transport error: {error}", exc_info=error)
        self.inbound.put(_STOP)
        self._release_device()

    def _release_device(self) -> None:
        with self._lock:
            if self._released:
                return
            self._released = True
            device = self._device
            self._device = None

        if device is not None:
            device.close()
            device.events.put(_STOP)

    def _start_thread(self, target: Callable[..., None], args: tuple[Any, ...], name: str) -> None:
        thread = threading.Thread(target=target, args=args, daemon=True, name=name)
        self._threads.append(thread)
        thread.start()

    # ------------------------------------------------------------------
    # MQTT -> TiVo
    # ------------------------------------------------------------------

    def submit_message(self, topic: str, payload: bytes | str | None) -> None:
        """Queue an inbound MQTT message; called from the MQTT network thread."""
        self.inbound.put((topic, payload))

    def _inbound_loop(self) -> None:
        while True:
            item = self.inbound.get()
            try:
                if item is _STOP:
                    return
                topic, payload = item
                self.handle_message(topic, payload)
            finally:
                self.inbound.task_done()

    def handle_message(self, topic: str, payload: bytes | str | None) -> None:
        if isinstance(payload, bytes):
            payload = payload.decode('utf-8', errors='replace')

        if self.state is not SessionState.RUNNING:
            logger.debug(f"[MQTT] Session {self.state.value}, dropping message on {topic}")
            return

        logger.info(f"[MQTT] Message received for topic {topic}: {payload}")

        command_type = topics.command_type_from_topic(self._topic_root, topic)
        command = decode_command(command_type, payload) if command_type else None
        if command is None:
            logger.debug(f"[MQTT] No command for {topic}: {payload!r}")
            self.stats['ignored_messages'] += 1
            return

        device = self._device
        if device is None:
            return

        try:
            device.send_command(command)
            self.stats['commands_dispatched'] += 1
        except Exception as e:
            logger.error(f"[TIVO] Failed to send {command}: {e}")
            self.stats['command_failures'] += 1

    # ------------------------------------------------------------------
    # TiVo -> MQTT
    # ------------------------------------------------------------------

    def _device_loop(self, device: DeviceSession) -> None:
        while True:
            event = device.events.get()
            try:
                if event is _STOP:
                    return
                self.handle_event(event)
                if self.is_faulted:
                    return
            finally:
                device.events.task_done()

    def handle_event(self, event: object) -> None:
        if self.state not in (SessionState.STARTING, SessionState.RUNNING):
            logger.debug(f"[TIVO] Session {self.state.value}, dropping event {event}")
            return

        if isinstance(event, TransportError):
            self.fault(event.error)
        elif isinstance(event, MessageSent):
            logger.info(f"[TIVO] Message sent: {event.message}")
        elif isinstance(event, MessageReceived):
            logger.info(f"[TIVO] Message received: {event.message}")
        elif isinstance(event, STATUS_EVENT_TYPES):
            self.stats['events_received'] += 1
            logger.info(f"[TIVO] Event received: {event}")
            self._publish_event(event)
        else:
            logger.warning(f"[TIVO] Unexpected event: {event!r}")

    def _publish_event(self, event: object) -> None:
        publication = translate_event(self._topic_root, event)
        if publication is None:
            return

        try:
            published = self._publish(publication)
        except Exception as e:
            logger.error(f"[MQTT] Publish error to {publication.topic}: {e}")
            published = False

        if published:
            self.stats['publishes'] += 1
        else:
            logger.warning(f"[MQTT] Could not publish {publication.payload} to {publication.topic}")
