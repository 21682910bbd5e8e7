#!/usr/bin/env python3
"""Example: load gateway.ini and poll every endpoint on its interval; graceful shutdown on Ctrl+C."""

import sys
from pathlib import Path

from pymbgw import EndpointPoller, load_config
from pymbgw.errors import ConfigFileError, EndpointArityError, KeyFileValueError, ModbusIOError


def main() -> None:
    ini_file = Path(__file__).with_name("gateway.ini")

    try:
        cfg = load_config(ini_file, {"verbose": True})
        interval_s = (cfg.options.interval or 1000) / 1000.0
        with EndpointPoller(cfg.options, cfg.endpoints) as poller:
            print(f"Polling {len(cfg.endpoints)} endpoint(s) every {interval_s}s (Ctrl+C to stop)...")
            for snapshot in poller.poll_iter(interval_s):
                print(snapshot)
    except KeyboardInterrupt:
        print("\nStopped.")
    except (ConfigFileError, KeyFileValueError, EndpointArityError) as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(2)
    except ModbusIOError as e:
        print(f"Modbus/connection error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
