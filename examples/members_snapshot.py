#!/usr/bin/env python3
"""Pull every CalAIM member and print the health-plan distribution.

Reads CASPIO_BASE_URL, CASPIO_CLIENT_ID and CASPIO_CLIENT_SECRET from the
environment (or a .env file).
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from datetime import datetime, timedelta, timezone

from calaim.records import DiscoverThenPartition, credentials_from_env, fetch_all_members


def parse_args() -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Snapshot CalAIM members")
    p.add_argument("--since-days", type=int, default=None, help="Only members modified in the last N days")
    p.add_argument("--discover", action="store_true", help="Discover health plans instead of enumerating them")
    p.add_argument("-v", "--verbose", action="store_true")
    return p.parse_args()


async def main() -> None:
    args = parse_args()
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)

    since = None
    if args.since_days is not None:
        since = datetime.now(timezone.utc) - timedelta(days=args.since_days)

    result = await fetch_all_members(
        credentials_from_env(),
        strategy=DiscoverThenPartition() if args.discover else None,
        updated_since=since,
    )

    diagnostics = result.diagnostics
    print(f"Members: {result.count} (estimated {diagnostics.estimated_total})")
    print(f"{'Health plan':20} | {'Members':>8}")
    print("-" * 31)
    for plan, count in sorted(diagnostics.value_counts.items(), key=lambda kv: -kv[1]):
        print(f"{plan:20} | {count:>8}")
    print("-" * 31)
    for partition in diagnostics.partitions:
        flag = f"  PARTIAL ({partition['reason']})" if partition["partial"] else ""
        print(f"{partition['label']:20} | {partition['rows']:>8} rows, {partition['pages_requested']} pages{flag}")
    if result.partial:
        print("WARNING: result is partial")


if __name__ == "__main__":
    asyncio.run(main())
