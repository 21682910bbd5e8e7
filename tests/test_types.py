"""Tests for Mode parsing, section header parsing and the endpoint table."""

from unittest.mock import MagicMock

import pytest

from pymbgw.types import Endpoint, EndpointTable, Mode, SectionHeader, SectionKind


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("master", Mode.MASTER),
        ("MASTER", Mode.MASTER),
        (" client ", Mode.CLIENT),
        ("slave", Mode.SLAVE),
        ("server", Mode.SERVER),
        ("", Mode.UNDEFINED),
        (None, Mode.UNDEFINED),
        ("gateway", Mode.UNDEFINED),
    ],
)
def test_mode_parse(text: str | None, expected: Mode) -> None:
    assert Mode.parse(text) == expected


@pytest.mark.parametrize(
    ("raw", "kind", "name"),
    [
        ('slave "Pump1"', SectionKind.SLAVE, "Pump1"),
        ('server "Boiler room"', SectionKind.SERVER, "Boiler room"),
        ('slave "X"', SectionKind.SLAVE, "X"),
        ("slave", SectionKind.SLAVE, None),
        ('slave ""', SectionKind.SLAVE, None),
        ("server", SectionKind.SERVER, None),
        ("settings", SectionKind.SETTINGS, None),
        ("slaves", SectionKind.SLAVE, None),
        ("logging", SectionKind.UNKNOWN, None),
    ],
)
def test_section_header_parse(raw: str, kind: SectionKind, name: str | None) -> None:
    header = SectionHeader.parse(raw)
    assert header.kind == kind
    assert header.name == name
    assert header.raw == raw


def test_endpoint_blocks_default_to_int() -> None:
    endpoint = Endpoint(id=1, name="a", addresses=(10, 20), lengths=(1, 2))
    assert list(endpoint.blocks()) == [(10, 1, "int"), (20, 2, "int")]


def test_endpoint_blocks_with_types() -> None:
    endpoint = Endpoint(id=1, name="a", addresses=(10, 20), lengths=(2, 4), types=("float", "int"))
    assert endpoint.register_type(0) == "float"
    assert list(endpoint.blocks()) == [(10, 2, "float"), (20, 4, "int")]


def test_table_sequence_and_lookup() -> None:
    a = Endpoint(id=1, name="a", addresses=(), lengths=())
    b = Endpoint(id=2, name="b", addresses=(), lengths=())
    table = EndpointTable([a, b], mode=Mode.MASTER)
    assert len(table) == 2
    assert table[1] is b
    assert list(table) == [a, b]
    assert table.by_name("b") is b
    assert table.mode == Mode.MASTER
    with pytest.raises(KeyError):
        table.by_name("c")


def test_table_close_releases_connections() -> None:
    conn = MagicMock()
    a = Endpoint(id=1, name="a", addresses=(), lengths=(), connection=conn, connected=True)
    table = EndpointTable([a], mode=Mode.CLIENT)
    table.close()
    conn.close.assert_called_once()
    assert a.connection is None
    assert a.connected is False
