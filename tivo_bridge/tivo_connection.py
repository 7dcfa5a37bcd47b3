"""TiVo session abstraction over the TiVo remote-control line protocol."""
from __future__ import annotations

import logging
import queue
import re
import threading
from abc import ABC, abstractmethod
from typing import Any, TYPE_CHECKING

import serial

from .events import MessageReceived, MessageSent, TransportError, parse_response

if TYPE_CHECKING:
    from .commands import Command
    from .events import DeviceEvent

logger = logging.getLogger(__name__)

DEFAULT_PORT = 31339
LINE_SPLIT = re.compile(rb"[\r\n]")


class DeviceSession(ABC):
    """Abstract interface for a TiVo control session.

    Events (sent/received messages, status events, transport errors) are
    delivered in order on the ``events`` queue.
    """

    events: queue.Queue[DeviceEvent]

    @abstractmethod
    def connect(self) -> None: ...

    @abstractmethod
    def send_command(self, command: Command) -> None: ...

    @abstractmethod
    def close(self) -> None: ...

    @property
    @abstractmethod
    def is_open(self) -> bool: ...


class TivoConnection(DeviceSession):
    """Concrete session on a pyserial port (``socket://`` for network TiVos)."""

    def __init__(self, url: str, timeout: float = 1.0) -> None:
        self.url = url
        self.events = queue.Queue()
        self._port = serial.serial_for_url(url, do_not_open=True, timeout=timeout)
        self._lock = threading.Lock()
        self._buffer = b""
        self._closing = False
        self._reader: threading.Thread | None = None

    def connect(self) -> None:
        """Open the port and start delivering events. Does not wait for the TiVo."""
        self._port.open()
        logger.info(f"[TIVO] Connected to {self.url}")

        self._reader = threading.Thread(
            target=self._read_loop,
            daemon=True,
            name="TiVo-Reader"
        )
        self._reader.start()

    def send_command(self, command: Command) -> None:
        message = command.to_wire()
        with self._lock:
            self._port.write(f"{message}\r".encode('utf-8'))
        self.events.put(MessageSent(message))

    def read_lines(self) -> list[str]:
        """Read whatever is available and return the complete lines."""
        chunk = self._port.read_until(b'\r')
        if not chunk:
            return []

        self._buffer += chunk
        *lines, self._buffer = LINE_SPLIT.split(self._buffer)
        return [line.decode(errors='replace').strip() for line in lines if line.strip()]

    def _read_loop(self) -> None:
        while not self._closing:
            try:
                lines = self.read_lines()
            except (serial.SerialException, OSError) as e:
                if not self._closing:
                    self.events.put(TransportError(e))
                return

            for line in lines:
                self.events.put(MessageReceived(line))
                event = parse_response(line)
                if event is not None:
                    self.events.put(event)

    def close(self) -> None:
        self._closing = True
        try:
            if self._port.is_open:
                logger.debug("[TIVO] Closing connection")
                self._port.close()
        except (serial.SerialException, OSError) as e:
            logger.debug(f"[TIVO] Error closing connection: {e}")

    @property
    def is_open(self) -> bool:
        return getattr(self._port, 'is_open', False)


def build_url(tivo_cfg: dict[str, Any]) -> str:
    """Resolve the pyserial URL for the configured TiVo."""
    url = tivo_cfg.get('url', '')
    if url:
        return url

    host = tivo_cfg.get('host', '')
    if not host:
        raise ValueError("No TiVo host or url configured")
    port = tivo_cfg.get('port', DEFAULT_PORT)
    return f"socket://{host}:{port}"


def create(config: dict[str, Any]) -> TivoConnection:
    """Build an unconnected TiVo session from config."""
    tivo_cfg = config.get('tivo', {})
    return TivoConnection(build_url(tivo_cfg), timeout=tivo_cfg.get('timeout', 1.0))
