"""Option merging: fold command-line overrides over [settings] values over defaults."""

import logging
from collections.abc import Mapping
from dataclasses import fields, replace
from typing import Any, Optional

from .keyfile import KeyFile
from .types import Mode, Options

logger = logging.getLogger(__name__)

SETTINGS_SECTION = "settings"

# Options field -> [settings] key
_INT_KEYS: dict[str, str] = {
    "id": "id",
    "baud": "baud",
    "data_bit": "databit",
    "stop_bit": "stopbit",
    "interval": "interval",
    "port": "port",
}
_STRING_KEYS: dict[str, str] = {
    "device": "device",
    "parity": "parity",
    "ip": "ip",
    "socket_file": "socketfile",
    "pid_file": "pidfile",
}
_BOOL_KEYS: dict[str, str] = {
    "daemon": "daemon",
    "verbose": "verbose",
}

_OPTION_FIELDS = frozenset(f.name for f in fields(Options))


def _as_mode(value: Any) -> Mode:
    """Accept a Mode or its name in any case; unknown text raises ValueError."""
    if isinstance(value, Mode):
        return value
    if not isinstance(value, str):
        raise ValueError(f"Unknown mode: {value!r}")
    mode = Mode.parse(value)
    if mode == Mode.UNDEFINED and value.strip().lower() not in ("", Mode.UNDEFINED.value):
        raise ValueError(f"Unknown mode: {value!r}")
    return mode


def is_already_set(overrides: Mapping[str, Any], field_name: str) -> bool:
    """True when the command line already provided a value the file must not replace."""
    if field_name not in overrides:
        return False
    value = overrides[field_name]
    if field_name == "mode":
        return isinstance(value, str) and Mode.parse(value) != Mode.UNDEFINED
    if field_name in _BOOL_KEYS:
        return bool(value)
    return value is not None


def _from_file(store: KeyFile, overrides: Mapping[str, Any]) -> dict[str, Any]:
    values: dict[str, Any] = {}

    if not is_already_set(overrides, "mode"):
        values["mode"] = Mode.parse(store.get_string(SETTINGS_SECTION, "mode"))

    for name, key in _INT_KEYS.items():
        if is_already_set(overrides, name):
            continue
        value = store.get_int(SETTINGS_SECTION, key)
        # 0 means unset, as for an absent key
        if value:
            values[name] = value

    for name, key in _STRING_KEYS.items():
        if is_already_set(overrides, name):
            continue
        text = store.get_string(SETTINGS_SECTION, key)
        if text is not None:
            values[name] = text

    for name, key in _BOOL_KEYS.items():
        if is_already_set(overrides, name):
            continue
        flag = store.get_bool(SETTINGS_SECTION, key)
        if flag is not None:
            values[name] = flag

    return values


def merge_options(store: Optional[KeyFile], overrides: Optional[Mapping[str, Any]] = None) -> Options:
    """
    Build the resolved Options: defaults, then file values, then command-line overrides.

    `overrides` holds only the fields given on the command line. A file value never
    replaces one of them. Unknown override names raise ValueError.
    """
    overrides = dict(overrides or {})
    unknown = set(overrides) - _OPTION_FIELDS
    if unknown:
        raise ValueError(f"Unknown option(s): {', '.join(sorted(unknown))}")
    if "mode" in overrides and overrides["mode"] is not None:
        overrides["mode"] = _as_mode(overrides["mode"])

    options = Options()
    if store is not None:
        options = replace(options, **_from_file(store, overrides))
    options = replace(options, **{k: v for k, v in overrides.items() if is_already_set(overrides, k)})
    logger.debug("Options resolved: %s", options.as_dict())
    return options
