"""
Entry point for the log monitor.

Usage:
    python -m arbwatch
    arbwatch  # if installed via pip
"""

import asyncio
import logging
import socket
import sys

import uvicorn


logger = logging.getLogger("arbwatch")


def bind_socket(host: str, port: int) -> socket.socket:
    """
    Bind the listening socket up front.

    Raises:
        OSError: If the port is already in use or not permitted.
    """
    family = socket.AF_INET6 if ":" in host else socket.AF_INET
    sock = socket.socket(family, socket.SOCK_STREAM)
    sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
    try:
        sock.bind((host, port))
    except OSError:
        sock.close()
        raise
    sock.set_inheritable(True)
    return sock


def main() -> int:
    """
    Main entry point.

    Returns:
        Exit code (0 for success).
    """
    from arbwatch import __version__
    from arbwatch.config.settings import get_settings
    from arbwatch.dashboard.server import create_app
    from arbwatch.telemetry.logger import setup_logging

    print(
        f"""
╔═══════════════════════════════════════════════════════════════╗
║     BOT LOG MONITOR v{__version__:<34}      ║
║                                                               ║
║     Live dashboard feed for the arbitrage bot                 ║
╚═══════════════════════════════════════════════════════════════╝
    """
    )

    try:
        settings = get_settings()
    except Exception as e:
        print(f"Configuration error: {e}")
        return 1

    uvloop_enabled = False
    if settings.use_uvloop:
        try:
            import uvloop

            uvloop.install()
            uvloop_enabled = True
        except ImportError:
            pass

    print("Configuration:")
    print(f"  Mode:           {settings.mode}")
    print(f"  Listening on:   {settings.host}:{settings.port}")
    if settings.mode == "direct":
        print(f"  Log file:       {settings.log_path}")
        print(f"  Watch:          {settings.watch_strategy} ({settings.poll_interval}s)")
    else:
        print(f"  Bot stream:     {settings.bridge_url}")
    print(f"  Block updates:  {'Enabled' if settings.ethereum_ws_url else 'Disabled'}")
    print(f"  uvloop:         {'Enabled' if uvloop_enabled else 'Disabled'}")
    print()

    async_logger = setup_logging(level=settings.log_level, log_file=settings.log_file)

    try:
        try:
            sock = bind_socket(settings.host, settings.port)
        except OSError as e:
            logger.critical(f"Port {settings.port} is already in use or unavailable: {e}")
            return 1

        config = uvicorn.Config(
            create_app(settings),
            log_level=settings.log_level.lower(),
            log_config=None,
        )
        server = uvicorn.Server(config)

        try:
            asyncio.run(server.serve(sockets=[sock]))
        except KeyboardInterrupt:
            print("\nInterrupted by user")
        except Exception as e:
            logger.critical(f"Fatal error: {e}", exc_info=True)
            return 1
        finally:
            sock.close()

        return 0

    finally:
        async_logger.stop()


if __name__ == "__main__":
    sys.exit(main())
