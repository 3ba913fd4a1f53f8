"""CLI argument parsing and main entry point.

``mcp-conduit server`` loads the configuration, builds the Starlette app and
runs it under Uvicorn until interrupted.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import socket
import sys
from typing import Optional

import uvicorn

from mcp_conduit.config import ConduitConfig, load_config
from mcp_conduit.config.loader import CONFIG_ENV_VAR
from mcp_conduit.constants import DEFAULT_LOG_LEVEL, SERVER_NAME, SERVER_VERSION
from mcp_conduit.errors import ConfigurationError
from mcp_conduit.logging_config import secret_redaction_filter, setup_logging

module_logger = logging.getLogger(__name__)

uvicorn_svr_inst: Optional[uvicorn.Server] = None


def _port_available(host: str, port: int) -> bool:
    probe = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        probe.bind((host, port))
    except OSError as e_bind:
        module_logger.error("Port %s on %s is already in use: %s", port, host, e_bind)
        return False
    finally:
        probe.close()
    return True


# ── ``mcp-conduit server`` ──────────────────────────────────────────────


async def _run_server(config: ConduitConfig, log_lvl: str) -> None:
    """Async main for the server subcommand."""
    global uvicorn_svr_inst

    from mcp_conduit.server.app import create_app

    host = config.server.host
    port = config.server.port
    app = create_app(config)

    uvicorn_cfg = uvicorn.Config(
        app=app,
        host=host,
        port=port,
        log_config=None,
        log_level=log_lvl.lower() if log_lvl == "DEBUG" else "warning",
    )
    uvicorn_svr_inst = uvicorn.Server(uvicorn_cfg)
    # Handlers are installed by _cmd_server; keep uvicorn from replacing them.
    uvicorn_svr_inst.install_signal_handlers = lambda: None  # type: ignore[method-assign]

    if not _port_available(host, port):
        print(
            f"\nError: Port {port} on {host} is already in use.\n"
            f"   Release the port or choose a different one with --port.\n"
        )
        return

    module_logger.info("Preparing to start Uvicorn server: http://%s:%s", host, port)
    try:
        await uvicorn_svr_inst.serve()
    except (KeyboardInterrupt, SystemExit) as e_exit:
        module_logger.info("Server stopped due to '%s'.", type(e_exit).__name__)
    except Exception as e_serve:
        module_logger.exception("Unexpected error while running Uvicorn server: %s", e_serve)
        raise
    finally:
        module_logger.info("%s has shut down or is shutting down.", SERVER_NAME)


def _load_server_config(args: argparse.Namespace) -> ConduitConfig:
    """Load the config file, then apply ``--host``/``--port`` on top."""
    config = load_config(args.config)
    updates = {}
    if args.host is not None:
        updates["host"] = args.host
    if args.port is not None:
        updates["port"] = args.port
    if updates:
        config = config.model_copy(update={"server": config.server.model_copy(update=updates)})
    return config


def _cmd_server(args: argparse.Namespace) -> None:
    """Entry-point for ``mcp-conduit server``."""
    _, log_lvl = setup_logging(args.log_level)
    module_logger.info("---- %s v%s starting (log level: %s) ----", SERVER_NAME, SERVER_VERSION, log_lvl)

    try:
        config = _load_server_config(args)
    except ConfigurationError as e_cfg:
        module_logger.error("Configuration error: %s", e_cfg)
        print(f"Configuration error: {e_cfg}", file=sys.stderr)
        sys.exit(1)

    secret_redaction_filter.register_all(
        (config.server.api_key, config.backend.api_key, config.backend.api_secret)
    )
    module_logger.info(
        "Configuration loaded (mode=%s, backend=%s).", config.server.mode, config.backend.url
    )

    def _shutdown_handler(sig: int, frame: object) -> None:
        module_logger.info("%s received - shutting down gracefully...", signal.Signals(sig).name)
        if uvicorn_svr_inst is not None:
            if uvicorn_svr_inst.should_exit:
                uvicorn_svr_inst.force_exit = True
            uvicorn_svr_inst.should_exit = True

    signal.signal(signal.SIGINT, _shutdown_handler)
    signal.signal(signal.SIGTERM, _shutdown_handler)

    try:
        asyncio.run(_run_server(config, log_lvl))
    except KeyboardInterrupt:
        module_logger.info("%s main program interrupted by KeyboardInterrupt.", SERVER_NAME)
    except Exception as e_main:
        module_logger.critical("Server terminated abnormally: %s", e_main)
        sys.exit(1)


def _build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser with the server subcommand."""
    parser = argparse.ArgumentParser(
        prog="mcp-conduit",
        description=f"{SERVER_NAME} v{SERVER_VERSION}",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {SERVER_VERSION}")

    subparsers = parser.add_subparsers(dest="command")

    # ── server ──────────────────────────────────────────────────
    sp_server = subparsers.add_parser(
        "server",
        help="Run the MCP server (Uvicorn + Starlette)",
    )
    sp_server.add_argument(
        "--host",
        type=str,
        default=None,
        help="Host address (default: server.host from config)",
    )
    sp_server.add_argument(
        "--port",
        type=int,
        default=None,
        help="Port (default: server.port from config)",
    )
    sp_server.add_argument(
        "--log-level",
        type=str,
        default=DEFAULT_LOG_LEVEL.lower(),
        choices=["debug", "info", "warning", "error", "critical"],
        help="Set logging level (default: info)",
    )
    sp_server.add_argument(
        "--config",
        type=str,
        default=None,
        metavar="PATH",
        help=(
            "Path to configuration file (YAML). "
            f"Default: ${CONFIG_ENV_VAR}, else auto-detect config.yaml/config.yml"
        ),
    )
    sp_server.set_defaults(func=_cmd_server)

    return parser


def main(argv: Optional[list[str]] = None) -> None:
    """Program entry point: parse arguments and dispatch to subcommand."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(1)
    args.func(args)
