"""Tests for the endpoint table builder: role selection, naming, defaults and list arity."""

import logging

import pytest

from pymbgw import KeyFile, build_endpoint_table
from pymbgw.errors import EndpointArityError
from pymbgw.types import Mode

MASTER_CONFIG = """
[settings]
mode=master

[slave "Pump1"]
id=1
addresses=100;200
lengths=2;1

[slave]
id=7
addresses=10
lengths=4
types=float

[server "Remote"]
ip=10.0.0.9
addresses=1
lengths=1
"""

CLIENT_CONFIG = """
[server "X"]
addresses=1;2
lengths=1;1

[server]
ip=10.0.0.5
port=503
addresses=3
lengths=2

[server "Zero"]
port=0

[slave "Ignored"]
id=2
"""


def test_master_reads_slave_sections_in_file_order() -> None:
    table = build_endpoint_table(KeyFile.from_string(MASTER_CONFIG), Mode.MASTER)
    assert len(table) == 2
    assert [e.name for e in table] == ["Pump1", "7"]
    pump = table[0]
    assert pump.id == 1
    assert pump.addresses == (100, 200)
    assert pump.lengths == (2, 1)
    assert pump.types is None
    assert list(pump.blocks()) == [(100, 2, "int"), (200, 1, "int")]
    assert table[1].types == ("float",)


def test_master_endpoints_have_no_tcp_address() -> None:
    table = build_endpoint_table(KeyFile.from_string(MASTER_CONFIG), Mode.MASTER)
    assert table[0].ip is None
    assert table[0].port is None


def test_client_reads_server_sections_with_defaults() -> None:
    table = build_endpoint_table(KeyFile.from_string(CLIENT_CONFIG), Mode.CLIENT)
    assert [e.name for e in table] == ["X", "10.0.0.5:503", "Zero"]
    x = table.by_name("X")
    assert x.ip == "127.0.0.1"
    assert x.port == 502
    assert x.id == 0
    assert table[1].port == 503


def test_explicit_zero_port_means_default() -> None:
    table = build_endpoint_table(KeyFile.from_string(CLIENT_CONFIG), Mode.CLIENT)
    assert table.by_name("Zero").port == 502


def test_unnamed_server_without_ip_uses_default_address() -> None:
    store = KeyFile.from_string("[server]\naddresses=1\nlengths=1\n")
    table = build_endpoint_table(store, Mode.CLIENT)
    assert table[0].name == "127.0.0.1:502"


def test_unnamed_slave_without_id_is_named_zero() -> None:
    store = KeyFile.from_string("[slave]\naddresses=1\nlengths=1\n")
    table = build_endpoint_table(store, Mode.MASTER)
    assert table[0].id == 0
    assert table[0].name == "0"


def test_connection_state_starts_unset() -> None:
    table = build_endpoint_table(KeyFile.from_string(CLIENT_CONFIG), Mode.CLIENT)
    for endpoint in table:
        assert endpoint.connection is None
        assert endpoint.connected is False


@pytest.mark.parametrize("mode", [Mode.UNDEFINED, Mode.SLAVE, Mode.SERVER])
def test_other_modes_give_empty_table_without_scanning(mode: Mode) -> None:
    class _Store:
        def sections(self) -> list[str]:
            raise AssertionError("sections must not be scanned")

    table = build_endpoint_table(_Store(), mode)  # type: ignore[arg-type]
    assert len(table) == 0
    assert table.mode == mode


def test_no_matching_sections_warns(caplog: pytest.LogCaptureFixture) -> None:
    store = KeyFile.from_string("[settings]\nmode=master\n[server]\nip=1.2.3.4\n")
    with caplog.at_level(logging.WARNING, logger="pymbgw.endpoints"):
        table = build_endpoint_table(store, Mode.MASTER)
    assert len(table) == 0
    assert "No slaves or servers found!" in caplog.text


def test_address_length_mismatch_is_fatal() -> None:
    store = KeyFile.from_string('[server "A"]\naddresses=1;2;3\nlengths=1;1\n')
    with pytest.raises(EndpointArityError) as exc_info:
        build_endpoint_table(store, Mode.CLIENT)
    err = exc_info.value
    assert err.section == 'server "A"'
    assert err.field == "lengths"
    assert err.addresses == 3
    assert err.actual == 2


def test_addresses_without_lengths_is_fatal() -> None:
    store = KeyFile.from_string('[slave "A"]\naddresses=1\n')
    with pytest.raises(EndpointArityError):
        build_endpoint_table(store, Mode.MASTER)


def test_types_mismatch_is_fatal() -> None:
    store = KeyFile.from_string('[slave "A"]\naddresses=1;2\nlengths=1;1\ntypes=int\n')
    with pytest.raises(EndpointArityError, match="types"):
        build_endpoint_table(store, Mode.MASTER)


def test_failure_in_later_section_aborts_whole_load() -> None:
    store = KeyFile.from_string('[slave "ok"]\naddresses=1\nlengths=1\n[slave "bad"]\naddresses=1\nlengths=\n')
    with pytest.raises(EndpointArityError):
        build_endpoint_table(store, Mode.MASTER)


def test_empty_lists_are_valid() -> None:
    store = KeyFile.from_string('[slave "idle"]\nid=9\n')
    table = build_endpoint_table(store, Mode.MASTER)
    assert table[0].addresses == ()
    assert table[0].lengths == ()


def test_prefix_match_is_not_whole_word() -> None:
    store = KeyFile.from_string("[slaves]\nid=5\n")
    table = build_endpoint_table(store, Mode.MASTER)
    assert len(table) == 1
    assert table[0].name == "5"


def test_verbose_logs_identity_and_blocks(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.INFO, logger="pymbgw.endpoints"):
        build_endpoint_table(KeyFile.from_string(MASTER_CONFIG), Mode.MASTER, verbose=True)
    messages = [r.getMessage() for r in caplog.records]
    assert "Slave name Pump1, ID 1" in messages
    assert "Address 100 => 2 values (int)" in messages
    assert "Address 10 => 4 values (float)" in messages


def test_verbose_logs_server_identity(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.INFO, logger="pymbgw.endpoints"):
        build_endpoint_table(KeyFile.from_string(CLIENT_CONFIG), Mode.CLIENT, verbose=True)
    assert "Server name 10.0.0.5:503, IP 10.0.0.5:503" in caplog.text


def test_quiet_by_default(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.INFO, logger="pymbgw.endpoints"):
        build_endpoint_table(KeyFile.from_string(MASTER_CONFIG), Mode.MASTER)
    assert caplog.records == []
