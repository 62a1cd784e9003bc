"""Remote-control requests for the media player, exposed over RPC."""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Callable

_log = logging.getLogger(__name__)

SIGNALS = frozenset(
    {
        "stop_requested",
        "pause_requested",
        "resume_requested",
        "toggle_play_pause_requested",
        "next_requested",
        "previous_requested",
        "volume_up_requested",
        "volume_down_requested",
        "play_remote_source_requested",
    }
)


class MediaPlayerRpc:
    """Turns remote player commands into notifications for connected callbacks."""

    RPC_METHODS = frozenset(
        {
            "play_remote_source",
            "stop",
            "pause",
            "resume",
            "toggle_play_pause",
            "next",
            "previous",
            "volume_up",
            "volume_down",
        }
    )

    def __init__(self) -> None:
        self._callbacks: dict[str, list[Callable[..., Any]]] = defaultdict(list)

    def connect(self, signal: str, callback: Callable[..., Any]) -> None:
        """Call ``callback`` whenever ``signal`` is emitted."""
        if signal not in SIGNALS:
            raise ValueError(f"unknown signal {signal!r}")
        self._callbacks[signal].append(callback)

    def _emit(self, signal: str, *args: Any) -> None:
        for callback in list(self._callbacks.get(signal, ())):
            callback(*args)

    def play_remote_source(self, uri: str, position: int) -> None:
        _log.debug("play remote source %s %s", uri, position)
        self._emit("play_remote_source_requested", uri, position)

    def stop(self) -> None:
        self._emit("stop_requested")

    def pause(self) -> None:
        self._emit("pause_requested")

    def resume(self) -> None:
        self._emit("resume_requested")

    def toggle_play_pause(self) -> None:
        self._emit("toggle_play_pause_requested")

    def next(self) -> None:
        self._emit("next_requested")

    def previous(self) -> None:
        self._emit("previous_requested")

    def volume_up(self) -> None:
        self._emit("volume_up_requested")

    def volume_down(self) -> None:
        self._emit("volume_down_requested")