"""Skins: directories holding a JSON manifest, resolution-specific entry files and options."""

from __future__ import annotations

import json
import logging
import os
import sys
from enum import Enum
from pathlib import Path, PurePath
from typing import Any, Sequence
from urllib.parse import quote, urlsplit

from mediahub.settings import Settings

_log = logging.getLogger(__name__)

MANIFEST_NAME = "skin.manifest"


class SkinType(Enum):
    """Kind of entry file a skin provides."""

    INVALID = 0
    QML = 1


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (str, int, float)):
        return str(value)
    return ""


def _default_config_dir() -> Path:
    base = os.environ.get("XDG_CONFIG_HOME") or str(Path.home() / ".config")
    return Path(base) / "mediahub"


def _file_url(path: str) -> str:
    quoted = quote(path, safe="/")
    return f"file://{quoted}" if path.startswith("/") else f"file:{quoted}"


class Skin:
    """A skin directory and what its manifest declares.

    Call :meth:`parse_manifest` before relying on anything but the name, path and config.
    """

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self.path = os.fspath(path)
        self.name = PurePath(self.path).name
        self.config = f"{self.path}/{MANIFEST_NAME}"
        self.version = ""
        self.screenshot = ""
        self.website = ""
        self.authors: dict[str, Any] = {}
        self.resolutions: dict[str, Any] = {}
        self.default_resolution = ""
        self.settings = Settings()

    def parse_manifest(
        self,
        config_dir: str | os.PathLike[str] | None = None,
        arguments: Sequence[str] | None = None,
    ) -> None:
        """Read the manifest, declare its options and apply the user's config and arguments.

        Raises ``OSError`` when the manifest cannot be read and ``ValueError``
        when it is not JSON.
        """
        try:
            text = Path(self.config).read_text(encoding="utf-8")
        except OSError:
            _log.warning("Can't read %s of skin %s", self.config, self.name)
            raise
        try:
            root = json.loads(text)
        except ValueError as exc:
            _log.warning("Failed to parse config file %s: %s", self.config, exc)
            raise
        if not isinstance(root, dict):
            root = {}

        self.version = _text(root.get("version"))
        if not self.version:
            _log.warning("Skin has no version")

        self.default_resolution = _text(root.get("default_resolution"))
        if not self.default_resolution:
            _log.warning("Skin has no default resolution")

        resolutions = root.get("resolutions")
        self.resolutions = resolutions if isinstance(resolutions, dict) else {}
        if not self.resolutions:
            _log.warning("Skin does not declare any supported resolutions")

        self.screenshot = _text(root.get("screenshot"))
        if not self.screenshot:
            _log.warning("Skin does not have any screenshot")

        self.website = _text(root.get("website"))
        if not self.website:
            _log.warning("Skin does not have any website")

        entries = root.get("settings")
        for entry in entries if isinstance(entries, list) else ():
            if not isinstance(entry, dict):
                entry = {}
            self.settings.add_option_entry(
                _text(entry.get("name")),
                _text(entry.get("default_value")),
                _text(entry.get("doc")),
            )

        directory = Path(config_dir) if config_dir is not None else _default_config_dir()
        self.settings.load_config_file(directory / f"{self.name}.conf")
        self.settings.parse_arguments(sys.argv if arguments is None else arguments)

    def url_for_resolution(self, width: int, height: int) -> str:
        """File URL of the entry file for ``width``x``height``, else of the default resolution."""
        wanted = f"{width}x{height}"
        key = wanted if wanted in self.resolutions else self.default_resolution
        entry = self.resolutions.get(key)
        file_name = _text(entry.get("file")) if isinstance(entry, dict) else ""
        return _file_url(f"{self.path}/{file_name}")

    def is_remote_control(self) -> bool:
        return "remote" in self.name

    def type(self, url: str) -> SkinType:
        if urlsplit(url).path[-3:] == "qml":
            return SkinType.QML
        return SkinType.INVALID

    def close(self) -> None:
        """Persist the skin's options."""
        self.settings.save()

    def __enter__(self) -> "Skin":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"Skin(name={self.name!r}, path={self.path!r})"


def create_skin(skin_path: str | os.PathLike[str]) -> Skin | None:
    """Return a :class:`Skin` for ``skin_path``, or ``None`` when it holds no manifest."""
    path = os.fspath(skin_path)
    if not Path(f"{path}/{MANIFEST_NAME}").exists():
        return None
    return Skin(path)