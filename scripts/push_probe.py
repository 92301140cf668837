#!/usr/bin/env python3
"""Passive push-channel probe for a running tabsync server.

This script:
1) asks the server for its push-channel port via ``GET /ip``,
2) connects to the push channel,
3) optionally sends one full-replace update for a fake device,
4) prints every snapshot it receives.

Use this to verify that updates from other devices fan out as expected.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
import time
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import urlsplit

import aiohttp

# Allow running from repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from tabsync.models import DiscoveryInfo  # noqa: E402

_LOG = logging.getLogger("push_probe")


@dataclass
class ProbeStats:
    started_at: float
    snapshots: int = 0
    last_device_count: int = 0


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Passive push-channel probe for a tabsync server.",
    )
    parser.add_argument(
        "--server",
        default="http://127.0.0.1:3210",
        help="HTTP base URL of the server.",
    )
    parser.add_argument(
        "--duration",
        type=int,
        default=0,
        help="Maximum runtime in seconds (0 = run until Ctrl+C).",
    )
    parser.add_argument(
        "--send",
        metavar="URL",
        action="append",
        default=[],
        help="Send a full-replace update with this URL (repeatable).",
    )
    parser.add_argument(
        "--device-id",
        default="push-probe",
        help="Device id used with --send.",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Pretty-print each snapshot.",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logs.",
    )
    return parser.parse_args()


def _print_snapshot(snapshot: dict[str, list[dict[str, str]]], *, pretty: bool) -> None:
    if pretty:
        print(json.dumps(snapshot, indent=2, ensure_ascii=False))
        return
    for device_id, tabs in snapshot.items():
        print(f"[probe]   {device_id}: {len(tabs)} tab(s)")
        for tab in tabs:
            print(f"[probe]     - {tab.get('title')} <{tab.get('url')}>")


async def _run(args: argparse.Namespace, stats: ProbeStats) -> None:
    base = args.server.rstrip("/")
    async with aiohttp.ClientSession() as http:
        async with http.get(f"{base}/ip") as resp:
            resp.raise_for_status()
            info = DiscoveryInfo.model_validate(await resp.json())
        host = urlsplit(base).hostname or info.ip
        ws_url = f"ws://{host}:{info.ws_port}/"
        print(f"[probe] Server advertises {info.ip}, push channel {ws_url}")

        async with http.ws_connect(ws_url) as ws:
            if args.send:
                update = {"deviceId": args.device_id, "tabs": [{"url": url} for url in args.send]}
                await ws.send_str(json.dumps(update))
                _LOG.debug("Sent %d tab(s) as %s", len(args.send), args.device_id)

            async for msg in ws:
                if msg.type != aiohttp.WSMsgType.TEXT:
                    continue
                snapshot = json.loads(msg.data)
                stats.snapshots += 1
                stats.last_device_count = len(snapshot)
                print(f"[probe] Snapshot #{stats.snapshots} ({len(snapshot)} device(s))")
                _print_snapshot(snapshot, pretty=args.json)


def _main() -> int:
    args = _parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    stats = ProbeStats(started_at=time.time())

    async def _bounded() -> None:
        if args.duration > 0:
            try:
                await asyncio.wait_for(_run(args, stats), timeout=args.duration)
            except TimeoutError:
                pass
        else:
            await _run(args, stats)

    try:
        asyncio.run(_bounded())
    except KeyboardInterrupt:
        pass
    except aiohttp.ClientError as exc:  # pragma: no cover - network/system interaction
        print(f"[probe] Connection failed: {exc}", file=sys.stderr)
        return 2

    runtime = time.time() - stats.started_at
    print("[probe] Summary")
    print(f"[probe]   runtime_s    : {runtime:.1f}")
    print(f"[probe]   snapshots    : {stats.snapshots}")
    print(f"[probe]   last_devices : {stats.last_device_count}")
    return 0


if __name__ == "__main__":
    raise SystemExit(_main())
