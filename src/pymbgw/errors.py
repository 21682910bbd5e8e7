"""Clear exceptions for pymbgw: config file loading, bad values, list arity and Modbus I/O."""

from pathlib import Path


class GatewayError(Exception):
    """Base exception for pymbgw."""

    pass


class ConfigFileError(GatewayError):
    """Raised when the key file cannot be read or parsed."""

    def __init__(self, path: Path | str, message: str | None = None) -> None:
        self.path = path
        self._msg = message or f"Cannot load config file: {str(path)!r}"
        super().__init__(self._msg)


class KeyFileValueError(GatewayError):
    """Raised when a key is present but its value does not have the expected type."""

    def __init__(self, section: str, key: str, value: str, expected: str) -> None:
        self.section = section
        self.key = key
        self.value = value
        super().__init__(f"Invalid {expected} for key {key!r} in [{section}]: {value!r}")


class EndpointArityError(GatewayError):
    """
    Raised when an endpoint's register lists disagree in length.

    Fatal: a table is never returned with mismatched addresses/lengths/types.
    """

    def __init__(self, section: str, field: str, addresses: int, actual: int) -> None:
        self.section = section
        self.field = field
        self.addresses = addresses
        self.actual = actual
        super().__init__(
            f"Not same number of addresses ({addresses}) and {field} ({actual}) in [{section}]"
        )


class ModbusIOError(GatewayError):
    """Raised when a Modbus read fails (wraps pymodbus or connection errors)."""

    def __init__(
        self,
        message: str,
        *,
        endpoint: str | None = None,
        address: int | None = None,
        cause: BaseException | None = None,
    ) -> None:
        self.endpoint = endpoint
        self.address = address
        self.cause = cause
        super().__init__(message)
