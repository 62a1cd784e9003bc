"""Discovery of the skins installed in a set of skin directories."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterable

from mediahub.skin import Skin, create_skin

_log = logging.getLogger(__name__)


def _subdirectories(directory: str) -> list[str]:
    try:
        entries = list(Path(directory).iterdir())
    except OSError:
        return []
    return sorted(
        entry.name
        for entry in entries
        if entry.is_dir() and not entry.name.startswith(".")
    )


class SkinManager:
    """Finds skins in its skin paths; a later path's skin wins over an earlier one of the same name."""

    def __init__(self, skin_paths: Iterable[str | os.PathLike[str]]) -> None:
        self.skin_paths = [os.fspath(path) for path in skin_paths]
        self.monitored_paths = [path for path in self.skin_paths if Path(path).is_dir()]
        self._skins: dict[str, Skin] = {}
        self.discover_skins()

    def skins(self) -> dict[str, Skin]:
        return dict(self._skins)

    def skins_model(self) -> list[Skin]:
        return list(self._skins.values())

    def discover_skins(self) -> None:
        """Forget the known skins and scan every skin path again."""
        for skin in self._skins.values():
            skin.close()
        self._skins.clear()

        for skin_path in self.skin_paths:
            for entry in _subdirectories(skin_path):
                skin = create_skin(f"{skin_path}/{entry}")
                if skin is not None:
                    self._skins[skin.name] = skin

        if not self._skins:
            _log.warning(
                "No skins are found in your skin paths: %s. "
                "Please specify the '-skinsPath <path>' startup argument.",
                ", ".join(self.skin_paths),
            )
        else:
            _log.debug("Available skins: %s", ",".join(self._skins))

    def handle_dir_changed(self, directory: str | os.PathLike[str]) -> None:
        """Rescan when ``directory`` is one of the skin paths."""
        if os.fspath(directory) in self.skin_paths:
            _log.warning("Changes in skin path, repopulating skins")
            self.discover_skins()