#!/usr/bin/env python3
"""
Sistema ITLA academic portal: launch the web UI.

Usage:
    python main.py                                     # http://localhost:3000
    python main.py --port 8080                         # http://localhost:8080
    python main.py --host 0.0.0.0                      # listen on all interfaces
    python main.py --api-url http://api:8000/internal  # remote REST API
    python main.py --reload                            # auto-reload on code changes
"""

from __future__ import annotations

import argparse
import os
import sys
import webbrowser


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Launch the Sistema ITLA academic portal.",
    )
    parser.add_argument(
        "--host", default=os.getenv("APP_HOST", "127.0.0.1"),
        help="Bind address (default: 127.0.0.1 or APP_HOST env var)",
    )
    parser.add_argument(
        "--port", type=int, default=int(os.getenv("APP_PORT", "3000")),
        help="Port to listen on (default: 3000 or APP_PORT env var)",
    )
    parser.add_argument(
        "--api-url", default=None,
        help="Base URL of the academic REST API "
             "(default: PORTAL_API_BASE_URL env var or http://127.0.0.1:8000/internal)",
    )
    parser.add_argument(
        "--reload", action="store_true",
        help="Enable auto-reload on file changes (development mode)",
    )
    parser.add_argument(
        "--no-browser", action="store_true",
        help="Don't open a browser window automatically",
    )
    args = parser.parse_args()

    # The app reads its settings from the environment at import time
    if args.api_url:
        os.environ["PORTAL_API_BASE_URL"] = args.api_url
    if not os.getenv("PORTAL_SESSION_SECRET"):
        print("Warning: PORTAL_SESSION_SECRET is not set; using the development key.")
        print()

    try:
        import uvicorn
    except ImportError:
        print("Error: uvicorn is not installed.")
        print("  pip install uvicorn[standard]")
        sys.exit(1)

    url = f"http://{'localhost' if args.host == '0.0.0.0' else args.host}:{args.port}"
    print(f"Starting Sistema ITLA at {url}")
    print(f"API: {os.getenv('PORTAL_API_BASE_URL', 'http://127.0.0.1:8000/internal')}")
    print()

    if not args.no_browser:
        # Open browser after a short delay to let the server start
        import threading
        threading.Timer(1.5, webbrowser.open, args=(url,)).start()

    uvicorn.run(
        "portal.app:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level="info",
    )


if __name__ == "__main__":
    main()
