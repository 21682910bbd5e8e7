"""pymbgw: Modbus gateway configuration loading (master/client endpoint tables) and polling."""

__version__ = "0.1.0"

from .config import GatewayConfig, load_config
from .endpoints import build_endpoint_table
from .errors import ConfigFileError, EndpointArityError, GatewayError, KeyFileValueError, ModbusIOError
from .keyfile import KeyFile
from .options import is_already_set, merge_options
from .poller import EndpointPoller
from .types import Endpoint, EndpointTable, Mode, Options, SectionHeader, SectionKind

__all__ = [
    "__version__",
    "GatewayConfig",
    "load_config",
    "build_endpoint_table",
    "ConfigFileError",
    "EndpointArityError",
    "GatewayError",
    "KeyFileValueError",
    "ModbusIOError",
    "KeyFile",
    "is_already_set",
    "merge_options",
    "EndpointPoller",
    "Endpoint",
    "EndpointTable",
    "Mode",
    "Options",
    "SectionHeader",
    "SectionKind",
]
