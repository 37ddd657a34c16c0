# =============================================================================
# portico/__main__.py - Command Line Entry Point
# =============================================================================
# Usage:
#   python -m portico site/config.py
#   python -m portico site/config.py --port 8080 --env production
#   python -m portico site/config.py --list-routes
# =============================================================================

import argparse
import sys

from portico.exceptions import ConfigurationError
from portico.server import iter_routes, start


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="portico",
        description="Serve a portico site from its configuration file",
    )
    parser.add_argument("config", help="Path to the configuration file (.py or .json)")
    parser.add_argument("--host", help="Host to bind (overrides config)")
    parser.add_argument("--port", type=int, help="Port to listen on (overrides config)")
    parser.add_argument("--env", help="Environment name, e.g. production (overrides config)")
    parser.add_argument("--debug", action="store_true", help="Verbose logging")
    parser.add_argument(
        "--list-routes",
        action="store_true",
        help="Print the injected routes and exit without serving",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)

    overrides = {
        key: value
        for key, value in (("host", args.host), ("port", args.port), ("env", args.env))
        if value is not None
    }
    if args.debug:
        overrides["debug"] = True

    try:
        app = start(args.config, overrides, run=not args.list_routes)
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    if args.list_routes:
        for method, path in iter_routes(app):
            print(f"{method:7} {path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
