"""Remote trigger that asks the user interface to reload itself."""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Callable

from mediahub.rpcconnection import Mode, RpcConnection

_log = logging.getLogger(__name__)

OBJECT_NAME = "pushqml"
SIGNALS = frozenset({"refreshed", "port_changed"})


class PushQml:
    """Exposes ``pushqml.refresh`` over RPC and notifies listeners when it is called."""

    RPC_METHODS = frozenset({"refresh"})

    def __init__(self, connection: RpcConnection | None = None) -> None:
        self.connection = connection if connection is not None else RpcConnection(Mode.SERVER)
        self._port: int | None = None
        self._callbacks: dict[str, list[Callable[..., Any]]] = defaultdict(list)
        self.connection.register_object(OBJECT_NAME, self)

    def connect(self, signal: str, callback: Callable[..., Any]) -> None:
        """Call ``callback`` whenever ``signal`` is emitted."""
        if signal not in SIGNALS:
            raise ValueError(f"unknown signal {signal!r}")
        self._callbacks[signal].append(callback)

    def _emit(self, signal: str, *args: Any) -> None:
        for callback in list(self._callbacks.get(signal, ())):
            callback(*args)

    @property
    def port(self) -> int | None:
        return self._port

    @port.setter
    def port(self, value: int) -> None:
        if value == self._port:
            return
        self._port = value
        if not self.connection.listen("0.0.0.0", value):
            _log.debug("push connection could not listen on port %s", value)
        self._emit("port_changed")

    def refresh(self) -> None:
        _log.debug("refresh ui")
        self._emit("refreshed")