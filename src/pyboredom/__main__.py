"""Command-line entry point: ``python -m pyboredom`` / ``pyboredom``."""

from __future__ import annotations

import argparse
import logging
import sys

from pyboredom._constants import CACHE_MODE_PUSH, CACHE_MODE_TTL, STORE_BACKEND_MEMORY, STORE_BACKEND_MONGO
from pyboredom.config import BoredomConfig
from pyboredom.exceptions import BoredomConfigError, StoreError
from pyboredom.server import run

_logger = logging.getLogger("pyboredom")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pyboredom",
        description="Serve the boredom level HTTP API. Unset options fall back to environment variables.",
    )
    parser.add_argument("--host", help="listen address (env HOST)")
    parser.add_argument("--port", type=int, help="listen port (env PORT)")
    parser.add_argument(
        "--store",
        choices=(STORE_BACKEND_MONGO, STORE_BACKEND_MEMORY),
        help="state store backend (env BOREDOM_STORE)",
    )
    parser.add_argument(
        "--cache",
        choices=(CACHE_MODE_TTL, CACHE_MODE_PUSH),
        help="cache strategy (env BOREDOM_CACHE_MODE)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="enable DEBUG logging")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    overrides = {
        "host": args.host,
        "port": args.port,
        "store_backend": args.store,
        "cache_mode": args.cache,
    }
    try:
        config = BoredomConfig.from_env(**{k: v for k, v in overrides.items() if v is not None}).validate()
    except BoredomConfigError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 2

    try:
        run(config)
    except StoreError as exc:
        _logger.error("Error initializing state store: %s", exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
