#!/usr/bin/env python3
"""Serve the live dashboard from environment configuration.

Configuration sourcing:
- DASHBOARD_APP_ID (default: default-app-id)
- DASHBOARD_FIREBASE_CONFIG (JSON web config, required)
- DASHBOARD_AUTH_TOKEN (optional custom token; anonymous sign-in otherwise)
- DASHBOARD_INCOME_MIDPOINTS (optional JSON bracket -> midpoint map)
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from livedash import DashboardConfig, DashboardConfigError  # noqa: E402
from livedash.web import run  # noqa: E402


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8080)
    parser.add_argument("--debug", action="store_true", help="Enable DEBUG logging")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = DashboardConfig.from_env()
    except DashboardConfigError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 2

    run(config, host=args.host, port=args.port)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
