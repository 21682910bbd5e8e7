"""KeyFile: INI-style key file reader with typed accessors that report absent keys as None."""

import configparser
import logging
from pathlib import Path
from typing import Optional

from .errors import ConfigFileError, KeyFileValueError

logger = logging.getLogger(__name__)

LIST_SEPARATOR = ";"


def _new_parser() -> configparser.ConfigParser:
    parser = configparser.ConfigParser(
        delimiters=("=",),
        comment_prefixes=("#", ";"),
        interpolation=None,
        strict=False,
        empty_lines_in_values=False,
        default_section="\x00",  # no implicit DEFAULT section
    )
    parser.optionxform = str  # type: ignore[assignment,method-assign]  # keys are case-sensitive
    return parser


def _strip_lines(text: str) -> str:
    """Drop leading whitespace on every line; indentation never continues a value."""
    return "\n".join(line.lstrip() for line in text.splitlines())


def _split_list(raw: str) -> list[str]:
    """Split 'a;b;c;' into items; a trailing separator is allowed, an empty value is an empty list."""
    if not raw.strip():
        return []
    items = [item.strip() for item in raw.split(LIST_SEPARATOR)]
    if items and items[-1] == "":
        items.pop()
    return items


class KeyFile:
    """
    Read-only view over a parsed key file. Sections keep file order.

    Scalar and list getters return None when the section or key is absent, so
    callers can tell 'missing' from an explicit empty list.
    """

    def __init__(self, parser: configparser.ConfigParser, source: str = "<string>") -> None:
        self._parser = parser
        self._source = source

    @classmethod
    def load(cls, path: Path | str) -> "KeyFile":
        """Load and parse a key file; raise ConfigFileError on I/O or syntax errors."""
        parser = _new_parser()
        try:
            with open(path, encoding="utf-8") as f:
                text = f.read()
        except (OSError, UnicodeDecodeError) as e:
            raise ConfigFileError(path, f"Cannot read config file {str(path)!r}: {e}") from e
        try:
            parser.read_string(_strip_lines(text), source=str(path))
        except configparser.Error as e:
            raise ConfigFileError(path, f"Cannot parse config file {str(path)!r}: {e}") from e
        logger.debug("KeyFile loaded from %s: %d sections", path, len(parser.sections()))
        return cls(parser, source=str(path))

    @classmethod
    def from_string(cls, text: str) -> "KeyFile":
        parser = _new_parser()
        try:
            parser.read_string(_strip_lines(text))
        except configparser.Error as e:
            raise ConfigFileError("<string>", f"Cannot parse config: {e}") from e
        return cls(parser)

    @property
    def source(self) -> str:
        return self._source

    def sections(self) -> list[str]:
        return self._parser.sections()

    def _raw(self, section: str, key: str) -> Optional[str]:
        if not self._parser.has_option(section, key):
            return None
        return self._parser.get(section, key)

    def get_string(self, section: str, key: str) -> Optional[str]:
        raw = self._raw(section, key)
        return raw.strip() if raw is not None else None

    def get_int(self, section: str, key: str) -> Optional[int]:
        raw = self._raw(section, key)
        if raw is None:
            return None
        try:
            return int(raw.strip())
        except ValueError:
            raise KeyFileValueError(section, key, raw, "integer") from None

    def get_bool(self, section: str, key: str) -> Optional[bool]:
        raw = self._raw(section, key)
        if raw is None:
            return None
        try:
            return self._parser.getboolean(section, key)
        except ValueError:
            raise KeyFileValueError(section, key, raw, "boolean") from None

    def get_int_list(self, section: str, key: str) -> Optional[tuple[int, ...]]:
        raw = self._raw(section, key)
        if raw is None:
            return None
        try:
            return tuple(int(item) for item in _split_list(raw))
        except ValueError:
            raise KeyFileValueError(section, key, raw, "integer list") from None

    def get_string_list(self, section: str, key: str) -> Optional[tuple[str, ...]]:
        raw = self._raw(section, key)
        if raw is None:
            return None
        return tuple(_split_list(raw))
