from __future__ import annotations

import argparse
import asyncio
import logging
import signal
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from walletrelay.server.runtime import RelayRuntime

log = logging.getLogger("walletrelay.cmd.server")


def load_config(config_path: Optional[Path]) -> Dict[str, Any]:
    if config_path is None:
        return {}
    return yaml.safe_load(config_path.read_text()) or {}


async def _run(config: Dict[str, Any]) -> None:
    runtime = RelayRuntime(config)
    await runtime.start()

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    try:
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, stop_event.set)
    except NotImplementedError:
        pass

    log.info("Relay running. Press Ctrl+C to stop.")
    try:
        await stop_event.wait()
    finally:
        await runtime.stop()


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Wallet-addressed WebRTC signaling relay")
    parser.add_argument("--config", help="Path to relay YAML config")
    parser.add_argument("--listen", help="host:port to bind (overrides config)")
    parser.add_argument("--log-level", help="Logging level (overrides config)")
    args = parser.parse_args(argv)

    config = load_config(Path(args.config) if args.config else None)
    if args.listen:
        config["listen"] = args.listen
    if args.log_level:
        config["log_level"] = args.log_level

    level = str(config.get("log_level", "INFO")).upper()
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    asyncio.run(_run(config))


if __name__ == "__main__":
    main()
