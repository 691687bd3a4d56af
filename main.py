#!/usr/bin/env python3
"""
Dealership backend -- command-line entry point.

Usage:
  python main.py serve
  python main.py serve --host 0.0.0.0 --port 8000 --reload
  python main.py check-media

Environment variables (see core/config.py for the full list):
  SECRET_KEY              JWT signing key (required unless DEBUG=true)
  DATABASE_URL            SQLAlchemy URL, SQLite file by default
  CLOUDINARY_CLOUD_NAME   Image host account
  CLOUDINARY_API_KEY
  CLOUDINARY_API_SECRET
"""

import argparse
import sys

from core.config import get_settings
from media.client import CloudinaryClient, MediaClient, MediaError


def check_media(client: MediaClient, folder: str) -> int:
    """Print a connectivity report for the image host. Returns a process exit code."""
    print("\nImage host check")
    print("-" * 40)

    if not getattr(client, "is_configured", True):
        print("  [!] Cloudinary credentials are missing.")
        print("      Set CLOUDINARY_CLOUD_NAME, CLOUDINARY_API_KEY and CLOUDINARY_API_SECRET.\n")
        return 1
    print("  Credentials ........ set")

    try:
        status = client.ping()
    except MediaError as exc:
        print(f"  [!] Ping failed: {exc.message}\n")
        return 1
    print(f"  Ping ............... {status.get('status', 'ok')}")

    try:
        resources = client.list_resources(prefix=folder, max_results=1)
    except MediaError as exc:
        print(f"  [!] Could not list '{folder}': {exc.message}\n")
        return 1
    if resources:
        print(f"  Folder ............. {folder} (contains images)")
    else:
        print(f"  Folder ............. {folder} (empty or not created yet)")
    print("\n  Image host is reachable.\n")
    return 0


def main(argv: list[str] | None = None) -> int:
    settings = get_settings()
    parser = argparse.ArgumentParser(
        prog="dealership",
        description="Vehicle dealership backend.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py serve
  python main.py serve --port 8000 --reload
  CLOUDINARY_CLOUD_NAME=demo python main.py check-media
        """,
    )
    sub = parser.add_subparsers(dest="command")

    serve = sub.add_parser("serve", help="Run the HTTP API with uvicorn")
    serve.add_argument("--host", default=settings.host, help=f"Bind address (default: {settings.host})")
    serve.add_argument("--port", type=int, default=settings.port, help=f"Port (default: {settings.port})")
    serve.add_argument("--reload", action="store_true", help="Restart on code changes (development only)")

    sub.add_parser("check-media", help="Verify image host credentials and folder access")

    args = parser.parse_args(argv)

    if args.command == "serve":
        import uvicorn

        uvicorn.run("api.main:app", host=args.host, port=args.port, reload=args.reload)
        return 0
    if args.command == "check-media":
        return check_media(CloudinaryClient.from_settings(settings), settings.media_folder)

    parser.print_help()
    return 2


if __name__ == "__main__":
    sys.exit(main())
