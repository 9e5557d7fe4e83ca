"""
PlantGate CLI
=============

Command line entry point.

Examples:
  python -m plantgate serve                 Run the API server
  python -m plantgate serve --workers 4     Run several worker processes
  python -m plantgate migrate               Create the tables on the default connection
  python -m plantgate routes                List registered routes
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from typing import List, Optional

from plantgate import __version__


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser."""
    parser = argparse.ArgumentParser(
        prog="plantgate",
        description="PlantGate API server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "-v", "--version",
        action="version",
        version=f"PlantGate {__version__}",
    )
    parser.add_argument(
        "--config",
        default="config",
        help="Directory holding app.py and <env>.py",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    serve_parser = subparsers.add_parser("serve", help="Run the API server")
    serve_parser.add_argument("--host", default=None, help="Host to bind to (server.host)")
    serve_parser.add_argument("--port", type=int, default=None, help="Port to bind to (server.port)")
    serve_parser.add_argument("--reload", action="store_true", help="Enable auto-reload")
    serve_parser.add_argument("--workers", type=int, default=None, help="Number of worker processes")

    migrate_parser = subparsers.add_parser("migrate", help="Create database tables")
    migrate_parser.add_argument(
        "--connection",
        default=None,
        help="Connection name (database.default when omitted)",
    )

    subparsers.add_parser("routes", help="List registered routes")

    return parser


def cli(args: Optional[List[str]] = None) -> int:
    """
    Main CLI entry point.

    Args:
        args: Command line arguments (uses sys.argv if None)

    Returns:
        Exit code
    """
    parser = create_parser()
    parsed = parser.parse_args(args)

    if not parsed.command:
        parser.print_help()
        return 0

    handlers = {
        "serve": handle_serve,
        "migrate": handle_migrate,
        "routes": handle_routes,
    }

    try:
        return handlers[parsed.command](parsed)
    except KeyboardInterrupt:
        print("\nAborted.")
        return 130
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def handle_serve(args: argparse.Namespace) -> int:
    import uvicorn

    from plantgate.core.config import Config

    config = Config.load(args.config)
    host = args.host or config.get("server.host", "127.0.0.1")
    port = args.port or config.get_int("server.port", 8000)
    workers = args.workers or config.get_int("server.workers", 1)
    reload = args.reload or config.get_bool("server.reload")

    print("Starting PlantGate server...")
    print(f"  URL: http://{host}:{port}")
    print(f"  Reload: {'enabled' if reload else 'disabled'}")
    print()

    # Reload and workers need an import string; the factory reads ./config
    uvicorn.run(
        "plantgate.core.application:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        workers=None if reload else workers,
        log_level=str(config.get("logging.level", "info")).lower(),
        lifespan="on",
    )
    return 0


def handle_migrate(args: argparse.Namespace) -> int:
    return asyncio.run(run_migration(args.config, args.connection))


async def run_migration(config_path: str, connection: Optional[str] = None) -> int:
    from plantgate.core.config import Config
    from plantgate.models import ALL_MODELS
    from plantgate.orm import ConnectionRegistry, create_tables

    registry = ConnectionRegistry.from_config(Config.load(config_path))
    try:
        database = await registry.get(connection)
        created = await create_tables(database, ALL_MODELS)
    finally:
        await registry.close()

    for table in created:
        print(f"✓ {table}")
    return 0


def handle_routes(args: argparse.Namespace) -> int:
    from plantgate.core.application import PlantGateApp

    app = PlantGateApp(config_path=args.config)
    for route in app.router.routes():
        middleware = ", ".join(str(m) for m in route.middleware)
        print(f"{route.method:<8} {route.template:<55} {route.reference or route.handler.__name__:<55} {middleware}")
    return 0


def main() -> None:
    """Main entry point."""
    sys.exit(cli())
