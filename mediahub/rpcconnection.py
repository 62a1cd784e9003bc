"""Length-prefixed JSON-RPC 2.0 over TCP, dispatching calls to registered objects."""

from __future__ import annotations

import itertools
import json
import logging
import re
import socket
import struct
import threading
from enum import Enum, IntEnum
from typing import Any, Callable, Iterable

_log = logging.getLogger(__name__)

_HEADER = struct.Struct(">i")
_MAX_CALL_ARGS = 10
_RESERVED_PREFIX = "rpc."
_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


class Mode(Enum):
    """Whether a connection accepts peers or connects to one."""

    SERVER = "server"
    CLIENT = "client"


class ErrorCode(IntEnum):
    """Error codes defined by JSON-RPC 2.0."""

    PARSE_ERROR = -32700
    INVALID_REQUEST = -32600
    METHOD_NOT_FOUND = -32601
    INVALID_PARAMETERS = -32602
    INTERNAL_ERROR = -32603
    SERVER_ERROR_BASE = -32099
    SERVER_ERROR_END = -32000


def encode_message(payload: Any) -> bytes:
    """Serialise ``payload`` as JSON behind a 4-byte big-endian length header."""
    body = json.dumps(payload, ensure_ascii=False, separators=(",", ":")).encode("utf-8")
    return _HEADER.pack(len(body)) + body


def decode_messages(buffer: bytes | bytearray) -> tuple[list[bytes], bytes]:
    """Split complete length-prefixed messages off the front of ``buffer``.

    Returns the message bodies and the bytes of any incomplete trailing message.
    Raises ``ValueError`` on a negative length header.
    """
    data = bytes(buffer)
    messages: list[bytes] = []
    offset = 0
    while len(data) - offset >= _HEADER.size:
        (length,) = _HEADER.unpack_from(data, offset)
        if length < 0:
            raise ValueError(f"invalid message length {length}")
        end = offset + _HEADER.size + length
        if end > len(data):
            break
        messages.append(data[offset + _HEADER.size:end])
        offset = end
    return messages, data[offset:]


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8", errors="replace")
    if isinstance(value, (str, int, float)):
        return str(value)
    return ""


def _snake_case(name: str) -> str:
    return _CAMEL_BOUNDARY.sub("_", name).lower()


def _error(ident: str | None, code: ErrorCode, message: str, data: str = "") -> dict[str, Any]:
    return {
        "jsonrpc": "2.0",
        "id": ident,
        "error": {"code": int(code), "message": message, "data": data},
    }


def _shutdown(sock: socket.socket) -> None:
    try:
        sock.shutdown(socket.SHUT_RDWR)
    except OSError:
        pass


class RpcConnection:
    """A JSON-RPC 2.0 endpoint.

    Calls named ``object.method`` are dispatched to objects registered under
    ``object``. A method may be named as in Python or in camelCase. An object
    may restrict what it exposes with an ``RPC_METHODS`` collection of names;
    otherwise every public callable attribute is callable remotely.
    """

    def __init__(self, mode: Mode = Mode.CLIENT) -> None:
        self.mode = mode
        self.on_client_connected: Callable[[], None] | None = None
        self.on_client_disconnected: Callable[[], None] | None = None
        self._objects: dict[str, Any] = {}
        self._next_id = 1
        self._lock = threading.RLock()
        self._write_lock = threading.Lock()
        self._buffer = bytearray()
        self._server: socket.socket | None = None
        self._socket: socket.socket | None = None
        self._clients: list[socket.socket] = []
        self._threads: list[threading.Thread] = []
        self._stopping = threading.Event()

    # -- registry -----------------------------------------------------------

    def register_object(self, name: str, obj: Any) -> None:
        """Expose ``obj`` to remote calls under ``name``."""
        if name.startswith(_RESERVED_PREFIX):
            raise ValueError("Method names starting with 'rpc.' are reserved by the specification")
        with self._lock:
            self._objects[name] = obj

    def unregister_object(self, name: str) -> None:
        with self._lock:
            self._objects.pop(name, None)

    # -- message handling ---------------------------------------------------

    def handle_message(self, raw: bytes) -> dict[str, Any] | None:
        """Process one message body and return the reply payload, if any."""
        try:
            message = json.loads(bytes(raw).decode("utf-8"))
        except ValueError as exc:
            _log.warning("Not a JSON %r", raw)
            if self.mode is Mode.SERVER:
                return _error(None, ErrorCode.PARSE_ERROR, "Not JSON", str(exc))
            return None

        if not isinstance(message, dict):
            message = {}
        ident = _text(message.get("id"))

        version = message.get("jsonrpc")
        if not isinstance(version, str) or version != "2.0":
            _log.warning("Version mismatch, expecting 2.0 JSON-RPC")
            if self.mode is Mode.SERVER:
                return _error(ident, ErrorCode.INVALID_REQUEST, "Version mismatch",
                              "Expecting JSON-RPC 2.0")
            return None

        if "method" in message:
            return self._handle_call(message, ident)
        if "result" in message:
            return None
        if "error" in message:
            _log.debug("ERROR %r", message)
            return None
        _log.warning("No idea what to do with this message %r", raw)
        return _error(ident, ErrorCode.INVALID_REQUEST,
                      "Invalid request. Not a method call, result or error")

    def _lookup(self, obj: Any, method: str) -> tuple[Any, str | None]:
        exposed = getattr(obj, "RPC_METHODS", None)
        for name in dict.fromkeys((method, _snake_case(method))):
            if not name:
                continue
            attr = getattr(obj, name, None)
            if attr is None or not callable(attr):
                continue
            if name.startswith("_") or (exposed is not None and name not in exposed):
                return None, "Method is private or is a signal"
            return attr, None
        return None, "No such method"

    def _handle_call(self, message: dict[str, Any], ident: str) -> dict[str, Any]:
        params = message.get("params")
        if not isinstance(params, list):
            params = []

        rpc_method = _text(message.get("method"))
        obj_name, sep, method = rpc_method.partition(".")
        if not sep:
            method = rpc_method

        with self._lock:
            obj = self._objects.get(obj_name)
        if obj is None:
            _log.warning("RPC object %s not found", rpc_method)
            return _error(ident, ErrorCode.METHOD_NOT_FOUND, "No such object")

        target, problem = self._lookup(obj, method)
        if target is None:
            _log.warning("Object %r cannot run method %s: %s", obj_name, method, problem)
            return _error(ident, ErrorCode.METHOD_NOT_FOUND, problem or "No such method")

        try:
            result = target(*params)
        except TypeError as exc:
            _log.warning("Object %r has no method %s taking these parameters: %s",
                         obj_name, method, exc)
            return _error(ident, ErrorCode.METHOD_NOT_FOUND, "No such method")
        except Exception as exc:  # the remote peer gets the failure, not this process
            _log.warning("RPC method %s failed: %s", rpc_method, exc)
            return _error(ident, ErrorCode.INTERNAL_ERROR, "Internal error", str(exc))
        try:
            json.dumps(result)
        except (TypeError, ValueError) as exc:
            _log.warning("RPC method %s returned an unserialisable result: %s", rpc_method, exc)
            return _error(ident, ErrorCode.INTERNAL_ERROR, "Internal error", str(exc))
        return {"jsonrpc": "2.0", "result": result, "id": ident}

    def _consume(self, buffer: bytearray, data: bytes) -> bytes:
        buffer.extend(data)
        messages, rest = decode_messages(buffer)
        buffer[:] = rest
        replies = (self.handle_message(message) for message in messages)
        return b"".join(encode_message(reply) for reply in replies if reply is not None)

    def feed(self, data: bytes) -> bytes:
        """Accept incoming stream bytes and return the framed replies to send back."""
        return self._consume(self._buffer, data)

    # -- networking ---------------------------------------------------------

    def _require(self, mode: Mode) -> None:
        if self.mode is not mode:
            raise RuntimeError(f"operation requires {mode.value} mode")

    def _start(self, target: Callable[..., None], *args: Any) -> None:
        thread = threading.Thread(target=target, args=args, daemon=True)
        with self._lock:
            self._threads = [t for t in self._threads if t.is_alive()]
            self._threads.append(thread)
        thread.start()

    @property
    def server_port(self) -> int | None:
        server = self._server
        return server.getsockname()[1] if server is not None else None

    @property
    def client_count(self) -> int:
        with self._lock:
            return len(self._clients)

    @property
    def is_connected(self) -> bool:
        return self._socket is not None

    def listen(self, address: str = "0.0.0.0", port: int = 0) -> bool:
        """Start accepting peers; returns ``False`` when the address cannot be bound."""
        self._require(Mode.SERVER)
        if self._server is not None:
            return False
        try:
            server = socket.create_server((address, port))
        except OSError as exc:
            _log.debug("RPC server failed to listen on %s:%s: %s", address, port, exc)
            return False
        server.settimeout(0.2)
        self._stopping.clear()
        self._server = server
        _log.debug("RPC server listening on %s:%s", address, self.server_port)
        self._start(self._accept_loop, server)
        return True

    def _accept_loop(self, server: socket.socket) -> None:
        while not self._stopping.is_set():
            try:
                client, _ = server.accept()
            except socket.timeout:
                continue
            except OSError:
                break
            client.settimeout(None)
            with self._lock:
                self._clients.append(client)
            self._start(self._serve, client)

    def _serve(self, sock: socket.socket) -> None:
        buffer = bytearray()
        try:
            while True:
                try:
                    chunk = sock.recv(4096)
                except OSError:
                    break
                if not chunk:
                    break
                try:
                    reply = self._consume(buffer, chunk)
                except ValueError as exc:
                    _log.warning("dropping peer: %s", exc)
                    break
                if reply:
                    try:
                        with self._write_lock:
                            sock.sendall(reply)
                    except OSError:
                        break
        finally:
            with self._lock:
                if sock in self._clients:
                    self._clients.remove(sock)
                was_client_socket = sock is self._socket
                if was_client_socket:
                    self._socket = None
            sock.close()
            if was_client_socket and self.on_client_disconnected is not None:
                self.on_client_disconnected()

    def connect_to_host(self, address: str, port: int) -> None:
        """Connect to a server; raises ``OSError`` when the connection fails."""
        self._require(Mode.CLIENT)
        sock = socket.create_connection((address, port))
        self._stopping.clear()
        with self._lock:
            self._socket = sock
        if self.on_client_connected is not None:
            self.on_client_connected()
        self._start(self._serve, sock)

    def disconnect_from_host(self) -> None:
        self._require(Mode.CLIENT)
        sock = self._socket
        if sock is not None:
            _shutdown(sock)

    def close(self) -> None:
        """Stop listening, drop every connection and wait for the worker threads."""
        self._stopping.set()
        server, self._server = self._server, None
        if server is not None:
            server.close()
        with self._lock:
            peers = list(self._clients)
            if self._socket is not None:
                peers.append(self._socket)
            threads = list(self._threads)
        for peer in peers:
            _shutdown(peer)
        current = threading.current_thread()
        for thread in threads:
            if thread is not current:
                thread.join(timeout=2)

    def __enter__(self) -> "RpcConnection":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def call(self, method: str | bytes, *args: Any) -> int:
        """Send a call to the peer (or to every client, as a server).

        Arguments after the first ``None`` are dropped. Returns the id the next
        call will use.
        """
        if len(args) > _MAX_CALL_ARGS:
            raise TypeError(f"call() takes at most {_MAX_CALL_ARGS} arguments")
        params = list(itertools.takewhile(lambda arg: arg is not None, args))
        with self._lock:
            ident = self._next_id
            self._next_id += 1
            following = self._next_id
            targets: Iterable[socket.socket | None] = (
                [self._socket] if self.mode is Mode.CLIENT else list(self._clients)
            )
        frame = encode_message(
            {"jsonrpc": "2.0", "method": _text(method), "params": params, "id": ident}
        )
        for sock in targets:
            if sock is None:
                continue
            try:
                with self._write_lock:
                    sock.sendall(frame)
            except OSError as exc:
                _log.debug("could not send call %s: %s", method, exc)
        return following