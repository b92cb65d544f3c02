"""
dyn-form Session API Entry Point.

Usage:
    python run_server.py
    python run_server.py --port 9110 --log-level DEBUG

    # Use environment variables
    DYN_FORM_SERVER_PORT=9110 python run_server.py
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add src to path for local development
sys.path.insert(0, str(Path(__file__).parent / "src"))

from dyn_form.api import run_server
from dyn_form.config import get_config, update_config


def main():
    """Main entry point."""
    config = get_config()

    parser = argparse.ArgumentParser(
        description="dyn-form Session API",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Environment Variables:
  DYN_FORM_SERVER_HOST       Host to bind to (default: 0.0.0.0)
  DYN_FORM_SERVER_PORT       Port to listen on (default: 9110)
  DYN_FORM_LOG_LEVEL         Logging level (default: INFO)
  DYN_FORM_PERSISTENCE_URL   Item service used by HttpCollaborator
        """,
    )

    parser.add_argument(
        "--host",
        default=config.server_host,
        help=f"Host to bind to (default: {config.server_host})",
    )

    parser.add_argument(
        "--port",
        type=int,
        default=config.server_port,
        help=f"Port to listen on (default: {config.server_port})",
    )

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=config.log_level,
        help=f"Logging level (default: {config.log_level})",
    )

    args = parser.parse_args()
    update_config(log_level=args.log_level)

    print("=" * 60)
    print("dyn-form Session API")
    print("=" * 60)
    print(f"Host: {args.host}")
    print(f"Port: {args.port}")
    print(f"Log level: {args.log_level}")
    print("=" * 60)

    try:
        asyncio.run(run_server(host=args.host, port=args.port))
    except KeyboardInterrupt:
        print("\nServer stopped.")
    except Exception as e:
        print(f"Error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
