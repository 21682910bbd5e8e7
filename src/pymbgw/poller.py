"""EndpointPoller: open pymodbus connections for a loaded endpoint table and read its register blocks."""

import logging
import struct
import time
from typing import Any, Iterator

from pymodbus.client import ModbusSerialClient, ModbusTcpClient
from pymodbus.exceptions import ModbusException as PymodbusException

from .errors import ModbusIOError
from .types import Endpoint, EndpointTable, Mode, Options

logger = logging.getLogger(__name__)

DEFAULT_BAUD = 19200
DEFAULT_PARITY = "N"
DEFAULT_DATA_BIT = 8
DEFAULT_STOP_BIT = 1

Value = int | float


def _decode_floats(registers: list[int]) -> list[float]:
    """Decode big-endian register pairs as IEEE 754 single precision floats."""
    out: list[float] = []
    for i in range(0, len(registers), 2):
        raw = struct.pack(">HH", registers[i], registers[i + 1])
        out.append(struct.unpack(">f", raw)[0])
    return out


class EndpointPoller:
    """
    Polls every endpoint of a table with holding register reads.

    Master mode shares one serial RTU client and addresses each slave by ID.
    Client mode opens one TCP client per server, stored on the endpoint.
    """

    def __init__(
        self,
        options: Options,
        table: EndpointTable,
        timeout: float = 3.0,
        retries: int = 3,
    ) -> None:
        self._options = options
        self._table = table
        self._timeout = timeout
        self._retries = retries
        self._serial: ModbusSerialClient | None = None

    @property
    def table(self) -> EndpointTable:
        return self._table

    def _serial_client(self) -> ModbusSerialClient:
        if self._serial is None:
            device = self._options.device
            if not device:
                raise ModbusIOError("No serial device configured for master mode")
            self._serial = ModbusSerialClient(
                port=device,
                baudrate=self._options.baud or DEFAULT_BAUD,
                parity=(self._options.parity or DEFAULT_PARITY)[0].upper(),
                bytesize=self._options.data_bit or DEFAULT_DATA_BIT,
                stopbits=self._options.stop_bit or DEFAULT_STOP_BIT,
                timeout=self._timeout,
                retries=self._retries,
            )
            if not self._serial.connect():
                self._serial.close()
                self._serial = None
                raise ModbusIOError(f"Failed to open serial device {device}")
        return self._serial

    def _release(self, endpoint: Endpoint) -> None:
        """Close an endpoint's own TCP connection; the shared serial client stays open."""
        connection = endpoint.connection
        endpoint.connection = None
        endpoint.connected = False
        if connection is None or connection is self._serial:
            return
        try:
            connection.close()
        except Exception as e:
            logger.warning("Error closing connection to %s: %s", endpoint.name, e)

    def _get_client(self, endpoint: Endpoint) -> Any:
        if endpoint.connected and endpoint.connection is not None:
            return endpoint.connection
        self._release(endpoint)
        if self._table.mode == Mode.MASTER:
            client = self._serial_client()
        else:
            client = ModbusTcpClient(
                host=endpoint.ip,
                port=endpoint.port,
                timeout=self._timeout,
                retries=self._retries,
            )
            if not client.connect():
                client.close()
                raise ModbusIOError(
                    f"Failed to connect to {endpoint.ip}:{endpoint.port}",
                    endpoint=endpoint.name,
                )
        endpoint.connection = client
        endpoint.connected = True
        logger.debug("Endpoint %s connected", endpoint.name)
        return client

    def _device_id(self, endpoint: Endpoint) -> int:
        # 0 means no explicit ID; let TCP servers see unit 1
        if endpoint.id == 0 and self._table.mode == Mode.CLIENT:
            return 1
        return endpoint.id

    def _read_block(self, endpoint: Endpoint, address: int, length: int, register_type: str) -> list[Value]:
        if register_type == "float" and length % 2 != 0:
            raise ModbusIOError(
                f"Float block needs an even number of registers, got {length}",
                endpoint=endpoint.name,
                address=address,
            )
        client = self._get_client(endpoint)
        try:
            rr = client.read_holding_registers(address, count=length, device_id=self._device_id(endpoint))
        except PymodbusException as e:
            self._release(endpoint)
            raise ModbusIOError(str(e), endpoint=endpoint.name, address=address, cause=e) from e
        if rr.isError():
            raise ModbusIOError(
                str(rr),
                endpoint=endpoint.name,
                address=address,
                cause=getattr(rr, "exception", None),
            )
        registers = getattr(rr, "registers", None)
        if registers is None or len(registers) < length:
            raise ModbusIOError("Short register response", endpoint=endpoint.name, address=address)
        registers = [int(r) for r in registers[:length]]
        if register_type == "float":
            return _decode_floats(registers)
        return registers

    def read_endpoint(self, endpoint: Endpoint) -> dict[int, list[Value]]:
        """Read every (address, length, type) block of one endpoint; keyed by address."""
        out: dict[int, list[Value]] = {}
        for address, length, register_type in endpoint.blocks():
            out[address] = self._read_block(endpoint, address, length, register_type)
        return out

    def poll_once(self) -> dict[str, dict[int, list[Value]]]:
        """Read all endpoints once; keyed by endpoint name."""
        return {endpoint.name: self.read_endpoint(endpoint) for endpoint in self._table}

    def poll_iter(self, interval_s: float) -> Iterator[dict[str, dict[int, list[Value]]]]:
        """Yield poll_once() every interval_s seconds indefinitely."""
        while True:
            yield self.poll_once()
            time.sleep(interval_s)

    def close(self) -> None:
        """Close every connection opened by this poller."""
        try:
            self._table.close()
        finally:
            if self._serial is not None:
                try:
                    self._serial.close()
                except Exception as e:
                    logger.warning("Error closing serial client: %s", e)
                self._serial = None

    def __enter__(self) -> "EndpointPoller":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()
