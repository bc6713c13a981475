# taghub/cli/main.py
from __future__ import annotations

from typing import Optional

from taghub.core.errors import TagHubError

from taghub.cli.args import parse_args
from taghub.cli.commands import (
    cmd_channels,
    cmd_devices,
    cmd_run,
)


def main(argv: Optional[list[str]] = None) -> int:
    try:
        args = parse_args(argv)

        if args.cmd == "channels":
            return cmd_channels(args)
        if args.cmd == "devices":
            return cmd_devices(args)
        if args.cmd == "run":
            return cmd_run(args)

        return 2
    except TagHubError as e:
        print(f"ERROR: {e.message}")
        if e.hint:
            print(f"Hint: {e.hint}")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
