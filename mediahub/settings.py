"""Typed option registry fed from defaults, INI config files and command-line arguments."""

from __future__ import annotations

import configparser
import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Iterable, Sequence

_log = logging.getLogger(__name__)

_RECT_PATTERN = re.compile(r"[0-9]*x[0-9]*", re.IGNORECASE)
_GENERAL_SECTION = "General"

Listener = Callable[[str, Any], None]


@dataclass(frozen=True)
class Rect:
    """An axis-aligned rectangle, as produced from ``WIDTHxHEIGHT`` option values."""

    x: int
    y: int
    width: int
    height: int

    @property
    def size(self) -> tuple[int, int]:
        return (self.width, self.height)

    def is_empty(self) -> bool:
        return self.width <= 0 or self.height <= 0

    def __str__(self) -> str:
        return f"{self.width}x{self.height}"


def _to_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _to_int(text: str) -> int:
    try:
        return int(text)
    except ValueError:
        return 0


def _to_bool(value: Any) -> bool:
    if value is None or isinstance(value, Rect):
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.lower() not in ("", "0", "false")
    return bool(value)


def check_special_argument_types(argument: Any) -> Any:
    """Turn ``WxH`` into a :class:`Rect` and ``true``/``false`` into booleans.

    Anything else is returned as its text form.
    """
    text = _to_text(argument)
    if _RECT_PATTERN.fullmatch(text):
        width, height = re.split("x", text, flags=re.IGNORECASE)
        return Rect(0, 0, _to_int(width), _to_int(height))
    if text.lower() == "false":
        return False
    if text.lower() == "true":
        return True
    return text


def value_from_command_line(key: str, arguments: Sequence[str]) -> Any:
    """Find the value of ``key`` in ``arguments``, or ``None`` when it is absent.

    ``--key=value`` (or ``-key=value``) yields the raw text after ``=``;
    ``--key value`` yields the following argument with special types applied.
    The key is matched case-insensitively.
    """
    escaped = re.escape(key)
    assignment = re.compile(rf"--?{escaped}=(.*)", re.IGNORECASE | re.DOTALL)
    for argument in arguments:
        match = assignment.fullmatch(argument)
        if match:
            return match.group(1)

    flag = re.compile(rf"--?{escaped}", re.IGNORECASE)
    for position, argument in enumerate(arguments):
        if flag.fullmatch(argument):
            if position + 1 < len(arguments):
                return check_special_argument_types(arguments[position + 1])
            return None
    return None


def _default_config_path() -> Path:
    base = os.environ.get("XDG_CONFIG_HOME") or str(Path.home() / ".config")
    return Path(base) / "mediahub" / "mediahub.conf"


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] == '"':
        return value[1:-1]
    return value


def _load_parser(path: Path) -> configparser.ConfigParser:
    parser = configparser.ConfigParser(interpolation=None, strict=False)
    parser.optionxform = str  # keep keys case-sensitive
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        text = ""
    parser.read_string(f"[{_GENERAL_SECTION}]\n{text}", source=str(path))
    return parser


def _read_ini(path: Path) -> dict[str, str]:
    parser = _load_parser(path)
    entries: dict[str, str] = {}
    for section in parser.sections():
        for option, raw in parser.items(section):
            key = option if section == _GENERAL_SECTION else f"{section}/{option}"
            entries[key] = _unquote(raw)
    return entries


def _split_key(key: str) -> tuple[str, str]:
    section, sep, option = key.partition("/")
    if sep and section and option:
        return section, option
    return _GENERAL_SECTION, key


def _is_writable(path: Path) -> bool:
    if path.exists():
        return os.access(path, os.W_OK)
    parent = path.parent
    while not parent.exists():
        parent = parent.parent
    return os.access(parent, os.W_OK)


class Settings:
    """A set of named options with documentation, defaults and persistence."""

    def __init__(self) -> None:
        self._values: dict[str, Any] = {}
        self._docs: dict[str, str] = {}
        self._config_path: Path | None = None
        self._listeners: list[Listener] = []

    def keys(self) -> list[str]:
        return list(self._values)

    def value(self, name: str) -> Any:
        return self._values.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._values

    def __getitem__(self, name: str) -> Any:
        return self._values[name]

    def add_listener(self, callback: Listener) -> None:
        """Call ``callback(key, value)`` whenever an option value is set."""
        self._listeners.append(callback)

    def _set(self, name: str, value: Any) -> None:
        self._values[name] = value
        for callback in self._listeners:
            callback(name, value)

    def is_enabled(self, name: str) -> bool:
        return _to_bool(self.value(name))

    def doc(self, name: str) -> str:
        return self._docs.get(name, "")

    def add_option_entry(self, name: str, value: Any, doc: str) -> None:
        converted = check_special_argument_types(_to_text(value))
        self._docs[name] = doc
        self._set(name, converted)

    def load_config_file(self, file_name: str | os.PathLike[str] = "") -> None:
        """Read declared options from an INI file; an empty name selects the default file.

        Does nothing while no options are declared.
        """
        if not self._values:
            return
        path = Path(file_name) if file_name else _default_config_path()
        self._config_path = path
        for key, raw in _read_ini(path).items():
            if key in self._values:
                self._set(key, check_special_argument_types(raw))

    def parse_arguments(self, arguments: Iterable[str]) -> None:
        """Override declared options from command-line arguments."""
        if not self._values:
            return
        arguments = list(arguments)
        for key in self.keys():
            found = value_from_command_line(key, arguments)
            if found is not None:
                self._set(key, found)

    def save(self) -> bool:
        """Write all options to the loaded config file.

        Returns ``False`` when no file was loaded or it is not writable.
        """
        path = self._config_path
        if path is None:
            return False
        if not _is_writable(path):
            _log.warning("settings file is not writeable: %s", path)
            return False

        parser = _load_parser(path)
        for key, value in self._values.items():
            section, option = _split_key(key)
            if not parser.has_section(section):
                parser.add_section(section)
            parser.set(section, option, _to_text(value))

        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8") as handle:
            parser.write(handle)
        return True

    def __repr__(self) -> str:
        return f"Settings({self._values!r}, file={self._config_path})"