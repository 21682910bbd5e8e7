"""Endpoint table builder: select slave/server sections, derive names, validate register lists."""

import logging
from typing import Optional

from .errors import EndpointArityError
from .keyfile import KeyFile
from .types import Endpoint, EndpointTable, Mode, SectionHeader, SectionKind

logger = logging.getLogger(__name__)

DEFAULT_IP = "127.0.0.1"
DEFAULT_PORT = 502

_ROLE_SECTION: dict[Mode, SectionKind] = {
    Mode.MASTER: SectionKind.SLAVE,
    Mode.CLIENT: SectionKind.SERVER,
}


def _check_arity(section: str, field: str, addresses: int, actual: int) -> None:
    if addresses != actual:
        logger.error("Not same number of addresses (%d) and %s (%d) in [%s]", addresses, field, actual, section)
        raise EndpointArityError(section, field, addresses, actual)


def _build_endpoint(store: KeyFile, header: SectionHeader, mode: Mode) -> Endpoint:
    section = header.raw

    # 0 when absent; an ID may also be given to TCP servers
    endpoint_id = store.get_int(section, "id") or 0

    ip: Optional[str] = None
    port: Optional[int] = None
    if mode == Mode.CLIENT:
        ip = store.get_string(section, "ip")
        if ip is None:
            ip = DEFAULT_IP
        # an explicit 0 is indistinguishable from a missing port
        port = store.get_int(section, "port") or DEFAULT_PORT

    if header.name is not None:
        name = header.name
    elif mode == Mode.MASTER:
        name = str(endpoint_id)
    else:
        name = f"{ip}:{port}"

    addresses = store.get_int_list(section, "addresses") or ()
    lengths = store.get_int_list(section, "lengths") or ()
    # optional, but one per address when given
    types = store.get_string_list(section, "types")

    _check_arity(section, "lengths", len(addresses), len(lengths))
    if types is not None:
        _check_arity(section, "types", len(addresses), len(types))

    return Endpoint(
        id=endpoint_id,
        name=name,
        addresses=addresses,
        lengths=lengths,
        types=types,
        ip=ip,
        port=port,
    )


def _log_endpoint(endpoint: Endpoint, mode: Mode) -> None:
    if mode == Mode.MASTER:
        logger.info("Slave name %s, ID %d", endpoint.name, endpoint.id)
    else:
        logger.info("Server name %s, IP %s:%d", endpoint.name, endpoint.ip, endpoint.port)
    for address, length, register_type in endpoint.blocks():
        logger.info("Address %d => %d values (%s)", address, length, register_type)


def build_endpoint_table(store: KeyFile, mode: Mode, verbose: bool = False) -> EndpointTable:
    """
    Build the table of endpoints to poll for the active role.

    MASTER reads 'slave ...' sections, CLIENT reads 'server ...' sections; any other
    mode gives an empty table without looking at the file. Endpoints keep the
    order of their sections. Raises EndpointArityError when an endpoint's
    addresses, lengths or types lists disagree in length.
    """
    kind = _ROLE_SECTION.get(mode)
    if kind is None:
        return EndpointTable(mode=mode)

    endpoints: list[Endpoint] = []
    for section in store.sections():
        header = SectionHeader.parse(section)
        if header.kind != kind:
            continue
        endpoint = _build_endpoint(store, header, mode)
        if verbose:
            _log_endpoint(endpoint, mode)
        endpoints.append(endpoint)

    if not endpoints:
        logger.warning("No slaves or servers found!")

    return EndpointTable(endpoints, mode=mode)
