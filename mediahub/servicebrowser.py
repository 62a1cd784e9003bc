"""Models of remote media hubs: a file-backed static list and a UDP ping/pong browser."""

from __future__ import annotations

import logging
import os
import re
import socket
from enum import IntEnum
from pathlib import Path
from typing import Iterator

_log = logging.getLogger(__name__)

SERVICES_FILE_NAME = "services.conf"
_SERVICES_HEADER = "# Static configuration file auto-created by mediahub remotecontrol"
_WORD_PATTERN = re.compile(r"\S+")

DISCOVERY_PORT = 52109
IDENTIFIER = b"QtMediaHub:"
PING = b"Ping:"
PONG = b"Pong:"
DEVICE_PORT = 1234
_MAX_DEVICES = 33
_MAX_NAME_LENGTH = 30


class Role(IntEnum):
    """Data roles a browser model answers."""

    DISPLAY = 0
    ADDRESS = 257
    PORT = 258


class _WordReader:
    """Reads whitespace-separated words, with the option to drop the rest of a line."""

    def __init__(self, text: str) -> None:
        self._text = text
        self._pos = 0

    def at_end(self) -> bool:
        return self._pos >= len(self._text)

    def word(self) -> str:
        match = _WORD_PATTERN.search(self._text, self._pos)
        if match is None:
            self._pos = len(self._text)
            return ""
        self._pos = match.end()
        return match.group(0)

    def skip_line(self) -> None:
        end = self._text.find("\n", self._pos)
        self._pos = len(self._text) if end < 0 else end + 1


def _parse_services(text: str) -> Iterator[tuple[str, str, str]]:
    reader = _WordReader(text)
    while not reader.at_end():
        host_name = reader.word()
        if not host_name or host_name.startswith("#"):
            reader.skip_line()
            continue
        ip = reader.word()
        port = reader.word()
        yield host_name, ip, port


class StaticServiceBrowserModel:
    """Services listed by hand in ``<data_path>/services.conf``; every change is saved."""

    editable = True

    def __init__(self, data_path: str | os.PathLike[str]) -> None:
        self.data_path = Path(data_path)
        self.services_file = self.data_path / SERVICES_FILE_NAME
        self._services: list[tuple[str, str, str]] = []
        self._initializing = True
        self.data_path.mkdir(parents=True, exist_ok=True)
        if self.services_file.exists():
            self._load(self.services_file)
        else:
            self.save()
        self._initializing = False

    def _load(self, path: Path) -> None:
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as exc:
            _log.warning("Failed to open static services file: %s", exc)
            return
        for host_name, ip, port in _parse_services(text):
            self.add_service(host_name, ip, port)

    def count(self) -> int:
        return len(self._services)

    def __len__(self) -> int:
        return len(self._services)

    def data(self, row: int, role: Role | int) -> str | None:
        """The name, address or port of the service in ``row``; ``None`` when there is none."""
        if not 0 <= row < len(self._services):
            return None
        host_name, ip, port = self._services[row]
        if role == Role.DISPLAY:
            return host_name
        if role == Role.ADDRESS:
            return ip
        if role == Role.PORT:
            return port
        return None

    def add_service(self, host_name: str, ip: str, port: str) -> None:
        self._services.append((host_name, ip, port))
        if not self._initializing:
            self.save()

    def remove_service(self, index: int) -> None:
        """Remove the service at ``index``; an index out of range is ignored."""
        if not 0 <= index < len(self._services):
            return
        del self._services[index]
        self.save()

    def save(self) -> None:
        lines = [_SERVICES_HEADER]
        lines.extend(f"{host_name} {ip} {port}" for host_name, ip, port in self._services)
        self.services_file.write_text("\n".join(lines) + "\n", encoding="utf-8")
        _log.debug("saved services to %s", self.services_file)


class SimpleServiceBrowserModel:
    """Devices found through ``Ping:``/``Pong:`` datagrams exchanged on the local network.

    The model builds and interprets datagrams; sending them on
    :data:`DISCOVERY_PORT` is left to the caller.
    """

    def __init__(self, host_name: str | None = None) -> None:
        self.host_name = host_name if host_name is not None else socket.gethostname()
        self._devices: dict[str, str] = {}

    @property
    def _host_bytes(self) -> bytes:
        return self.host_name.encode("latin-1", errors="replace")

    def count(self) -> int:
        return len(self._devices)

    def __len__(self) -> int:
        return len(self._devices)

    def data(self, row: int, role: Role | int) -> str | int | None:
        """Name, address or port of the device in ``row`` (ordered by name)."""
        if not 0 <= row < len(self._devices):
            return None
        name = sorted(self._devices)[row]
        if role == Role.DISPLAY:
            return name
        if role == Role.ADDRESS:
            return self._devices[name]
        if role == Role.PORT:
            return DEVICE_PORT
        return None

    def add_device(self, name: str, ip: str) -> None:
        """Record a device; once the model holds 33 devices further ones are ignored."""
        if len(self._devices) < _MAX_DEVICES:
            self._devices[name] = ip

    def ping_datagram(self) -> bytes:
        """The datagram announcing this host to the network."""
        return IDENTIFIER + PING + self._host_bytes

    def process_datagram(self, datagram: bytes, address: str) -> bytes | None:
        """Handle a datagram from ``address``; returns the reply to send back, if any."""
        if not datagram.startswith(IDENTIFIER):
            return None
        received = datagram[len(IDENTIFIER):]
        if (
            received.startswith(PING)
            and len(received) > len(PING)
            and received.find(self._host_bytes, len(PING)) < 0
        ):
            self.add_device(self._name(received, PING), address)
            return IDENTIFIER + PONG + self._host_bytes
        if received.startswith(PONG) and len(received) > len(PONG):
            self.add_device(self._name(received, PONG), address)
        return None

    @staticmethod
    def _name(received: bytes, prefix: bytes) -> str:
        raw = received[len(prefix):len(prefix) + _MAX_NAME_LENGTH]
        return raw.decode("utf-8", errors="replace")