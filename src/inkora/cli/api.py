"""Command line entrypoint that serves the Inkora web application."""

from __future__ import annotations

import argparse
import os

import uvicorn

from inkora.adapters.observability import configure_runtime_logging

APP_IMPORT_PATH = "inkora.api.app:app"


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Serve the Inkora web application.")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)
    parser.add_argument("--reload", action="store_true")
    parser.add_argument(
        "--db-path",
        default="",
        help="SQLite file for the local preview backend (default: work/local/inkora.db).",
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    """Configure logging, export CLI settings to the environment, and run uvicorn."""
    configure_runtime_logging()
    parsed = build_arg_parser().parse_args(argv)
    db_path = str(parsed.db_path).strip()
    if db_path:
        os.environ["INKORA_DB_PATH"] = db_path
    uvicorn.run(
        APP_IMPORT_PATH,
        host=str(parsed.host),
        port=int(parsed.port),
        reload=bool(parsed.reload),
    )


if __name__ == "__main__":
    main()
