"""Core data model: gateway mode, section headers, endpoints, endpoint table, options."""

from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Iterator, Optional

DEFAULT_REGISTER_TYPE = "int"


class Mode(str, Enum):
    """Gateway role. Only MASTER and CLIENT poll remote endpoints."""

    UNDEFINED = "undefined"
    MASTER = "master"
    SLAVE = "slave"
    CLIENT = "client"
    SERVER = "server"

    @classmethod
    def parse(cls, text: Optional[str]) -> "Mode":
        """Map 'master', 'slave', 'client' or 'server' (any case) to a Mode; anything else is UNDEFINED."""
        if not text:
            return cls.UNDEFINED
        try:
            mode = cls(text.strip().lower())
        except ValueError:
            return cls.UNDEFINED
        return mode


class SectionKind(str, Enum):
    """Kind of a key file section, selected by the keyword its name starts with."""

    SLAVE = "slave"
    SERVER = "server"
    SETTINGS = "settings"
    UNKNOWN = "unknown"


_KEYWORDS = (SectionKind.SLAVE, SectionKind.SERVER, SectionKind.SETTINGS)


@dataclass(frozen=True)
class SectionHeader:
    """A section name split once into its keyword kind and optional quoted name."""

    kind: SectionKind
    name: Optional[str]
    raw: str

    @classmethod
    def parse(cls, raw: str) -> "SectionHeader":
        """
        Parse a section declaration such as 'slave "Pump1"' or 'server'.

        The keyword is matched as a prefix. The name is whatever sits between the
        separator plus opening delimiter and the closing delimiter, so it needs at
        least one character of payload.
        """
        for kind in _KEYWORDS:
            keyword = kind.value
            if raw.startswith(keyword):
                name = None
                # keyword + separator + two delimiters
                if len(raw) > len(keyword) + 3:
                    name = raw[len(keyword) + 2 : -1]
                return cls(kind=kind, name=name, raw=raw)
        return cls(kind=SectionKind.UNKNOWN, name=None, raw=raw)


@dataclass
class Endpoint:
    """
    A remote Modbus node to poll: a slave in master mode, a server in client mode.

    Only `connection` and `connected` change after load, and only from the poller.
    """

    id: int
    name: str
    addresses: tuple[int, ...]
    lengths: tuple[int, ...]
    types: Optional[tuple[str, ...]] = None
    ip: Optional[str] = None
    port: Optional[int] = None
    connection: Any = field(default=None, repr=False, compare=False)
    connected: bool = field(default=False, compare=False)

    def register_type(self, index: int) -> str:
        """Type of the block at index; 'int' when no types were configured."""
        if self.types is None:
            return DEFAULT_REGISTER_TYPE
        return self.types[index]

    def blocks(self) -> Iterator[tuple[int, int, str]]:
        """Yield (address, length, type) for each configured block."""
        for i, (address, length) in enumerate(zip(self.addresses, self.lengths)):
            yield address, length, self.register_type(i)


class EndpointTable(Sequence[Endpoint]):
    """Ordered endpoints in section discovery order; torn down as a whole."""

    def __init__(self, endpoints: Sequence[Endpoint] = (), mode: Mode = Mode.UNDEFINED) -> None:
        self._endpoints = tuple(endpoints)
        self._mode = mode

    def __getitem__(self, index):  # type: ignore[override]
        return self._endpoints[index]

    def __len__(self) -> int:
        return len(self._endpoints)

    def __repr__(self) -> str:
        return f"EndpointTable(mode={self._mode.value!r}, endpoints={list(self._endpoints)!r})"

    @property
    def mode(self) -> Mode:
        return self._mode

    def by_name(self, name: str) -> Endpoint:
        """Return the first endpoint with this name; raise KeyError if none."""
        for endpoint in self._endpoints:
            if endpoint.name == name:
                return endpoint
        raise KeyError(name)

    def close(self) -> None:
        """Release every endpoint connection."""
        for endpoint in self._endpoints:
            connection = endpoint.connection
            if connection is not None and hasattr(connection, "close"):
                connection.close()
            endpoint.connection = None
            endpoint.connected = False


@dataclass(frozen=True)
class Options:
    """Fully resolved gateway settings; built once and never mutated."""

    ini_file: Optional[Path] = None
    mode: Mode = Mode.UNDEFINED
    id: Optional[int] = None
    device: Optional[str] = None
    baud: Optional[int] = None
    parity: Optional[str] = None
    data_bit: Optional[int] = None
    stop_bit: Optional[int] = None
    interval: Optional[int] = None
    ip: Optional[str] = None
    port: Optional[int] = None
    socket_file: Optional[str] = None
    daemon: bool = False
    pid_file: Optional[str] = None
    verbose: bool = False

    def as_dict(self) -> dict[str, Any]:
        """Plain mapping for display and JSON output."""
        return {
            "ini_file": str(self.ini_file) if self.ini_file is not None else None,
            "mode": self.mode.value,
            "id": self.id,
            "device": self.device,
            "baud": self.baud,
            "parity": self.parity,
            "data_bit": self.data_bit,
            "stop_bit": self.stop_bit,
            "interval": self.interval,
            "ip": self.ip,
            "port": self.port,
            "socket_file": self.socket_file,
            "daemon": self.daemon,
            "pid_file": self.pid_file,
            "verbose": self.verbose,
        }
