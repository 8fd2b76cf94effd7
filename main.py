"""Desktop launcher: runs the trips API in this process and opens its page."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
import webbrowser
from pathlib import Path
from typing import Sequence

import uvicorn

from project_settings import AppSettings
from utils import setup_logging
from webapp import create_app

logger = logging.getLogger(__name__)


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Start the corporate trips server and open it in a browser window.",
    )
    parser.add_argument("--data-dir", type=Path, help="Directory holding trips_data.json and backups.")
    parser.add_argument("--host", help="Interface to bind (default from HOST or 127.0.0.1).")
    parser.add_argument("--port", type=int, help="Port to listen on (default from PORT or 3001).")
    parser.add_argument(
        "--no-browser",
        action="store_true",
        help="Only run the server; do not open the UI.",
    )
    return parser.parse_args(argv)


def build_settings(args: argparse.Namespace) -> AppSettings:
    settings = AppSettings.from_env()
    changes: dict[str, object] = {}
    if args.data_dir is not None:
        changes["data_dir"] = args.data_dir.expanduser()
    if args.host:
        changes["host"] = args.host
    if args.port is not None:
        changes["port"] = args.port
    return settings.with_updates(**changes) if changes else settings


async def serve(settings: AppSettings, *, open_browser: bool) -> None:
    app = create_app(settings)
    config = uvicorn.Config(app, host=settings.host, port=settings.port, log_config=None)
    server = uvicorn.Server(config)
    task = asyncio.create_task(server.serve())
    url = f"http://{settings.host}:{settings.port}/"
    while not server.started and not task.done():
        await asyncio.sleep(0.1)
    if server.started:
        logger.info("Corporate trips running at %s (data: %s)", url, settings.data_file)
        if open_browser:
            await asyncio.to_thread(webbrowser.open, url)
    await task


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    try:
        settings = build_settings(args)
        settings.ensure_directories()
    except (OSError, ValueError) as exc:
        logging.basicConfig(level=logging.ERROR)
        logging.error("Cannot start: %s", exc)
        return 1
    setup_logging(settings.data_dir / "logs")
    asyncio.run(serve(settings, open_browser=not args.no_browser))
    return 0


if __name__ == "__main__":
    sys.exit(main())
