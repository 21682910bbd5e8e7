#!/usr/bin/env python3
"""Command-line interface for pymbgw using Typer."""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

import typer
from typing_extensions import Annotated

from . import __version__  # type: ignore
from .config import load_config
from .errors import ConfigFileError, EndpointArityError, KeyFileValueError, ModbusIOError
from .poller import EndpointPoller
from .types import Endpoint, Mode

app = typer.Typer(
    name="mbgw",
    help="Modbus gateway: load master/client configuration and poll slaves or servers.",
    no_args_is_help=True,
)

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_MS = 1000

# ============================================================================
# Shared options and helpers
# ============================================================================

ConfigOption = Annotated[
    Optional[Path],
    typer.Option("--config", "-c", help="INI-style config file", envvar="PYMBGW_CONFIG"),
]
ModeOption = Annotated[
    Optional[str],
    typer.Option("--mode", "-m", help="master, slave, client or server", envvar="PYMBGW_MODE"),
]
IdOption = Annotated[Optional[int], typer.Option("--id", help="Modbus ID of this gateway")]
DeviceOption = Annotated[
    Optional[str],
    typer.Option("--device", help="Serial device (master/slave mode)", envvar="PYMBGW_DEVICE"),
]
BaudOption = Annotated[Optional[int], typer.Option("--baud", help="Serial baud rate")]
ParityOption = Annotated[Optional[str], typer.Option("--parity", help="Serial parity: none, even or odd")]
DataBitOption = Annotated[Optional[int], typer.Option("--databit", help="Serial data bits")]
StopBitOption = Annotated[Optional[int], typer.Option("--stopbit", help="Serial stop bits")]
IntervalOption = Annotated[Optional[int], typer.Option("--interval", help="Polling interval in milliseconds")]
IpOption = Annotated[Optional[str], typer.Option("--ip", help="IP address (server mode)", envvar="PYMBGW_IP")]
PortOption = Annotated[Optional[int], typer.Option("--port", "-p", help="TCP port (server mode)", envvar="PYMBGW_PORT")]
SocketFileOption = Annotated[Optional[str], typer.Option("--socketfile", help="Local socket file")]
DaemonOption = Annotated[bool, typer.Option("--daemon", help="Run as a daemon")]
PidFileOption = Annotated[Optional[str], typer.Option("--pidfile", help="PID file")]
VerboseOption = Annotated[
    bool,
    typer.Option("--verbose", "-v", help="Enable debug logging"),
]
JsonOption = Annotated[
    bool,
    typer.Option("--json", help="Output as JSON"),
]


def setup_logging(verbose: bool) -> None:
    """Configure logging based on verbose flag."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(message)s" if not verbose else "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def build_overrides(**values: Any) -> dict[str, Any]:
    """
    Keep only options given on the command line. The mode string is parsed and
    an unknown mode raises ValueError.
    """
    overrides = {name: value for name, value in values.items() if value is not None and value is not False}
    if "mode" in overrides:
        mode = Mode.parse(overrides["mode"])
        if mode == Mode.UNDEFINED:
            raise ValueError(f"Invalid mode: {overrides['mode']!r}")
        overrides["mode"] = mode
    return overrides


def endpoint_dict(endpoint: Endpoint) -> dict[str, Any]:
    """Serializable view of an endpoint."""
    data: dict[str, Any] = {
        "name": endpoint.name,
        "id": endpoint.id,
        "blocks": [
            {"address": address, "length": length, "type": register_type}
            for address, length, register_type in endpoint.blocks()
        ],
    }
    if endpoint.ip is not None:
        data["ip"] = endpoint.ip
        data["port"] = endpoint.port
    return data


def format_endpoint(endpoint: Endpoint, mode: Mode) -> list[str]:
    """Text lines for one endpoint: identity, then one line per block."""
    if mode == Mode.MASTER:
        lines = [f"Slave {endpoint.name} (ID {endpoint.id})"]
    else:
        lines = [f"Server {endpoint.name} ({endpoint.ip}:{endpoint.port})"]
    for address, length, register_type in endpoint.blocks():
        lines.append(f"  Address {address} => {length} values ({register_type})")
    return lines


# ============================================================================
# Commands
# ============================================================================

@app.command()
def show(
    config: ConfigOption = None,
    mode: ModeOption = None,
    gateway_id: IdOption = None,
    device: DeviceOption = None,
    baud: BaudOption = None,
    parity: ParityOption = None,
    databit: DataBitOption = None,
    stopbit: StopBitOption = None,
    interval: IntervalOption = None,
    ip: IpOption = None,
    port: PortOption = None,
    socketfile: SocketFileOption = None,
    daemon: DaemonOption = False,
    pidfile: PidFileOption = None,
    verbose: VerboseOption = False,
    json_output: JsonOption = False,
) -> None:
    """
    Show resolved options and the endpoint table.

    Command-line options win over the [settings] section of the config file.
    """
    setup_logging(verbose)

    try:
        overrides = build_overrides(
            mode=mode, id=gateway_id, device=device, baud=baud, parity=parity, data_bit=databit,
            stop_bit=stopbit, interval=interval, ip=ip, port=port, socket_file=socketfile,
            daemon=daemon, pid_file=pidfile, verbose=verbose,
        )
        cfg = load_config(config, overrides)
    except ValueError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(2)
    except (ConfigFileError, KeyFileValueError, EndpointArityError) as e:
        typer.echo(f"Error: Configuration error: {e}", err=True)
        raise typer.Exit(2)
    except Exception as e:
        typer.echo(f"Error: Unexpected error: {e}", err=True)
        if verbose:
            import traceback
            traceback.print_exc()
        raise typer.Exit(4)

    options = cfg.options
    if json_output:
        data = {
            "options": options.as_dict(),
            "endpoints": [endpoint_dict(e) for e in cfg.endpoints],
        }
        typer.echo(json.dumps(data, indent=2))
        return

    typer.echo(f"Mode: {options.mode.value}")
    for key, value in options.as_dict().items():
        if key != "mode" and value is not None:
            typer.echo(f"{key}: {value}")
    typer.echo(f"Endpoints: {len(cfg.endpoints)}")
    for endpoint in cfg.endpoints:
        for line in format_endpoint(endpoint, options.mode):
            typer.echo(line)


@app.command()
def poll(
    config: ConfigOption = None,
    mode: ModeOption = None,
    gateway_id: IdOption = None,
    device: DeviceOption = None,
    baud: BaudOption = None,
    parity: ParityOption = None,
    databit: DataBitOption = None,
    stopbit: StopBitOption = None,
    interval: IntervalOption = None,
    ip: IpOption = None,
    port: PortOption = None,
    socketfile: SocketFileOption = None,
    daemon: DaemonOption = False,
    pidfile: PidFileOption = None,
    verbose: VerboseOption = False,
    once: Annotated[bool, typer.Option("--once", help="Poll once and exit")] = False,
    format: Annotated[str, typer.Option("--format", "-f", help="Output format: text, json")] = "text",
) -> None:
    """
    Poll every configured slave (master mode) or server (client mode).

    Outputs format:
    - text: timestamp + endpoint/address=values per line
    - json: NDJSON with {"timestamp": "...", "values": {...}} per line

    Use --once to poll once and exit.
    Press Ctrl+C to stop gracefully.
    """
    setup_logging(verbose)

    if format not in ("text", "json"):
        typer.echo(f"Error: Invalid format '{format}'. Must be text or json.", err=True)
        raise typer.Exit(2)

    try:
        overrides = build_overrides(
            mode=mode, id=gateway_id, device=device, baud=baud, parity=parity, data_bit=databit,
            stop_bit=stopbit, interval=interval, ip=ip, port=port, socket_file=socketfile,
            daemon=daemon, pid_file=pidfile, verbose=verbose,
        )
        cfg = load_config(config, overrides)
    except ValueError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(2)
    except (ConfigFileError, KeyFileValueError, EndpointArityError) as e:
        typer.echo(f"Error: Configuration error: {e}", err=True)
        raise typer.Exit(2)
    except Exception as e:
        typer.echo(f"Error: Unexpected error: {e}", err=True)
        if verbose:
            import traceback
            traceback.print_exc()
        raise typer.Exit(4)

    if cfg.options.mode not in (Mode.MASTER, Mode.CLIENT):
        typer.echo(f"Error: Polling needs master or client mode, got {cfg.options.mode.value}", err=True)
        raise typer.Exit(2)
    if len(cfg.endpoints) == 0:
        typer.echo("Error: No slaves or servers to poll", err=True)
        raise typer.Exit(2)

    interval_ms = cfg.options.interval or DEFAULT_INTERVAL_MS
    if interval_ms <= 0:
        typer.echo(f"Error: Interval must be positive, got {interval_ms}", err=True)
        raise typer.Exit(2)

    try:
        with EndpointPoller(cfg.options, cfg.endpoints) as poller:
            for snapshot in poller.poll_iter(interval_ms / 1000.0):
                timestamp = datetime.now(timezone.utc).isoformat()
                if format == "json":
                    values = {
                        name: {str(address): block for address, block in blocks.items()}
                        for name, blocks in snapshot.items()
                    }
                    typer.echo(json.dumps({"timestamp": timestamp, "values": values}))
                else:
                    for name, blocks in snapshot.items():
                        pairs = " ".join(
                            f"{address}=" + ",".join(str(v) for v in block) for address, block in blocks.items()
                        )
                        typer.echo(f"{timestamp} {name} {pairs}")
                if once:
                    break
    except ModbusIOError as e:
        typer.echo(f"Error: Connection/Modbus error: {e}", err=True)
        raise typer.Exit(3)
    except KeyboardInterrupt:
        typer.echo("\nStopped by user", err=True)
        raise typer.Exit(0)
    except Exception as e:
        typer.echo(f"Error: Unexpected error: {e}", err=True)
        if verbose:
            import traceback
            traceback.print_exc()
        raise typer.Exit(4)


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        typer.echo(f"pymbgw {__version__}")
        raise typer.Exit(0)


@app.callback()
def main(
    version: Annotated[
        Optional[bool],
        typer.Option("--version", callback=version_callback, is_eager=True, help="Show version and exit"),
    ] = None,
) -> None:
    """mbgw - Modbus gateway configuration and polling."""
    pass


if __name__ == "__main__":
    app()
