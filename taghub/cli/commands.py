# taghub/cli/commands.py
from __future__ import annotations

import argparse
import time
from typing import Dict, List

from taghub.app.coordinator import FleetCoordinator
from taghub.app.runner import load_config, start_run
from taghub.common.logging_config import configure_logging
from taghub.messaging.credentials import hub_host_name
from taghub.runtime.state import PublisherStats, SessionStatus

# Hub-side schema caching delays a changed channel set reaching dashboards.
CHANNEL_CHANGE_SETTLE_MIN = 15


# ---------------- Status printing ----------------

def print_status(statuses: List[SessionStatus], stats: Dict[str, PublisherStats]) -> None:
    if not statuses:
        print("Devices:   (none)")
        return

    print("Devices:")
    for s in statuses:
        st = stats.get(s.device_id)
        pub = f" sent={st.sent} skipped={st.skipped} failed={st.failed}" if st else ""
        err = f" err={s.last_error}" if s.last_error else ""
        print(
            f"  - {s.name} id={s.device_id} state={s.state.value} "
            f"variant={s.variant or '-'} reconnects={s.reconnects}{pub}{err}"
        )


def _print_failures(coordinator: FleetCoordinator) -> None:
    for device_id, exc in sorted(coordinator.failures().items()):
        hint = getattr(exc, "hint", None)
        print(f"FAILED: {device_id}: {exc}" + (f" ({hint})" if hint else ""))


def _mask(key: str) -> str:
    if len(key) <= 8:
        return "*" * len(key)
    return f"{key[:4]}...{key[-4:]}"


# ---------------- Commands ----------------

def cmd_channels(args: argparse.Namespace) -> int:
    config, _ = load_config(args.config)
    registry = config.channel_registry()

    print("Channels (configuration order):\n")
    for ch in registry:
        state = "ON " if ch.enabled else "off"
        only = ""
        if not ch.supported_by(None):
            variants = [v for v in ("cc2540", "cc2650") if ch.supported_by(v)]
            only = f" [only: {', '.join(variants)}]"
        print(f"  {state} {ch.key:<20} fields={list(ch.fields)} unit={ch.unit or '-'}{only}")

    print(
        f"\nNote: after changing channel flags, allow ~{CHANNEL_CHANGE_SETTLE_MIN} min "
        "before the hub reports the new field set."
    )
    return 0


def cmd_devices(args: argparse.Namespace) -> int:
    config, config_hash = load_config(args.config)

    print(f"Hub:       {hub_host_name(config.hub_name)}")
    print(f"Config:    {args.config} sha256={config_hash}")
    print(f"Interval:  {config.tx_interval_ms} ms  retry: {config.retry_delay_ms} ms")
    print(f"Driver:    {config.driver}")
    print("Devices:")
    for d in config.devices:
        print(f"  - id={d.device_id} name={d.name} key={_mask(d.key)}")
    return 0


def cmd_run(args: argparse.Namespace) -> int:
    configure_logging(verbose=args.verbose, log_file=args.log_file)

    run = start_run(args.config, dry_run=args.dry_run)
    coordinator = run.coordinator

    print(f"Hub:       {hub_host_name(run.config.hub_name)}" + (" (dry run)" if args.dry_run else ""))
    print(f"Devices:   {[d.name for d in run.config.devices]}")
    print(f"Channels:  {[ch.key for ch in coordinator.registry if ch.enabled]}")

    t0 = time.time()
    last_status = t0
    try:
        with coordinator:
            while args.secs is None or time.time() - t0 < args.secs:
                time.sleep(0.2)
                if args.status_every and time.time() - last_status >= args.status_every:
                    last_status = time.time()
                    print_status(coordinator.status(), coordinator.publisher_stats())
    except KeyboardInterrupt:
        print("Interrupted.")

    print_status(coordinator.status(), coordinator.publisher_stats())
    _print_failures(coordinator)
    return 0
