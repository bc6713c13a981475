# taghub/cli/args.py
from __future__ import annotations

import argparse
from pathlib import Path
from typing import Optional

DEFAULT_CONFIG = Path("fleet.yml")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="taghub")
    sub = parser.add_subparsers(dest="cmd", required=True)

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--config",
        type=Path,
        default=DEFAULT_CONFIG,
        help=f"Fleet configuration YAML (default: {DEFAULT_CONFIG}).",
    )
    common.add_argument("--verbose", "-v", action="store_true", help="Debug logging.")

    p_run = sub.add_parser("run", parents=[common], help="Connect tags and publish telemetry.")
    p_run.add_argument(
        "--dry-run",
        action="store_true",
        help="Print payloads instead of sending them to the hub.",
    )
    p_run.add_argument(
        "--secs",
        type=float,
        default=None,
        help="Stop after this many seconds (default: run until interrupted).",
    )
    p_run.add_argument("--log-file", type=Path, default=None, help="Also log to this file.")
    p_run.add_argument(
        "--status-every",
        type=float,
        default=30.0,
        help="Print fleet status every N seconds (0 = never).",
    )

    sub.add_parser("channels", parents=[common], help="Show channel flags.")
    sub.add_parser("devices", parents=[common], help="Show configured devices.")

    return parser


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    args = build_parser().parse_args(argv)
    if getattr(args, "secs", None) is not None and args.secs <= 0:
        raise SystemExit("--secs must be > 0")
    return args
