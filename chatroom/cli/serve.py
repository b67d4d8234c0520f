from __future__ import annotations

import argparse
from pathlib import Path

import uvicorn

from ..config import get_settings, update_runtime_overrides
from ..log import setup_logging


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run the chatroom server.")
    parser.add_argument("--host", help="Interface to bind (default: HOST or 127.0.0.1)")
    parser.add_argument("--port", type=int, help="Port to bind (default: PORT or 8000)")
    parser.add_argument(
        "--long-polling-timeout",
        type=float,
        dest="long_polling_timeout_seconds",
        help="Seconds a long-poll request is held open before returning no events",
    )
    parser.add_argument(
        "--waiter-conflict-policy",
        choices=("replace", "reject"),
        help="What happens when a second long-poll arrives for the same nick",
    )
    parser.add_argument("--log-level", help="Logging level (default: LOG_LEVEL or INFO)")
    parser.add_argument("--log-dir", type=Path, help="Also write JSON-lines logs to this directory")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    update_runtime_overrides(
        {
            "host": args.host,
            "port": args.port,
            "long_polling_timeout_seconds": args.long_polling_timeout_seconds,
            "waiter_conflict_policy": args.waiter_conflict_policy,
            "log_level": args.log_level.upper() if args.log_level else None,
        }
    )
    settings = get_settings()
    # Without a log file stderr is the only sink, so it takes the full level.
    stderr_level = "WARNING" if args.log_dir else settings.log_level
    setup_logging(args.log_dir, level=settings.log_level, stderr_level=stderr_level)

    from ..main import create_app

    uvicorn.run(create_app(settings), host=settings.host, port=settings.port, log_config=None)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
