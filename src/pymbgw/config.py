"""load_config: read the key file, resolve options and build the endpoint table in one call."""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from .endpoints import build_endpoint_table
from .keyfile import KeyFile
from .options import merge_options
from .types import EndpointTable, Options

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GatewayConfig:
    """Resolved options plus the endpoint table built from them."""

    options: Options
    endpoints: EndpointTable = field(default_factory=EndpointTable)

    def close(self) -> None:
        self.endpoints.close()


def load_config(
    ini_file: Optional[Path | str] = None,
    overrides: Optional[Mapping[str, Any]] = None,
) -> GatewayConfig:
    """
    Load gateway configuration.

    Without a file, options come from `overrides` and defaults only and the table
    is empty. With a file, [settings] fills whatever the command line left unset,
    then slave/server sections are read for the resolved mode.
    """
    overrides = dict(overrides or {})
    if ini_file is None:
        return GatewayConfig(options=merge_options(None, overrides))

    path = Path(ini_file)
    overrides["ini_file"] = path
    if overrides.get("verbose"):
        logger.info("Loading of %s config file.", path)

    store = KeyFile.load(path)
    options = merge_options(store, overrides)
    endpoints = build_endpoint_table(store, options.mode, options.verbose)
    return GatewayConfig(options=options, endpoints=endpoints)
