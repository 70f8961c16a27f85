"""Check that the configured routing backend answers a fixed test route.

Usage:
  python -m src.check_routing [--mode local|external]

Exits 0 when the backend answered, 1 otherwise.
"""

from __future__ import annotations

import argparse
import json
import logging
import os
from dataclasses import asdict, replace

from src.adapters.bootstrap import build_routing_backend
from src.app.config import BackendKind, EngineConfig
from src.domain.exceptions import ConfigurationError


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    ap = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    ap.add_argument(
        "--mode",
        choices=[kind.value for kind in BackendKind],
        default=None,
        help="Override ROUTING_USE_EXTERNAL_API for this check.",
    )
    return ap.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    logging.basicConfig(level=os.getenv("LOG_LEVEL", "WARNING").upper())
    args = _parse_args(argv)

    try:
        config = EngineConfig.from_env()
        if args.mode is not None:
            config = replace(config, backend=BackendKind(args.mode))
        backend = build_routing_backend(config)
    except ConfigurationError as exc:
        print(json.dumps({"success": False, "error": str(exc)}, indent=2))
        return 1

    report = backend.test_connectivity()
    print(json.dumps(asdict(report), indent=2))
    return 0 if report.success else 1


if __name__ == "__main__":
    raise SystemExit(main())
