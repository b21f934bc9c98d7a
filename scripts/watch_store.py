#!/usr/bin/env python3
"""Poll one REST collection and print every change restsync sees.

Useful for checking that an API's envelope, policies and pagination meta
line up with what a :class:`restsync.Store` expects before wiring it to a
UI component.

Usage
-----
Set environment variables and run::

    export RESTSYNC_BASE_URL="https://api.example.com/v1"
    export RESTSYNC_AUTH_TOKEN="..."
    python scripts/watch_store.py widget

Options::

    --plural NAME        Collection key when it is not ``<name>s``
    --parent KEY[:ID]    Nest the index path under a parent collection
    --query K=V          Query parameter (repeatable)
    --delay MS           Poll interval in milliseconds
    --once               Fetch a single time and exit
    --json               Print each reset as JSON
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

# Allow running from the repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from restsync import (  # noqa: E402
    API_EXCEPTION,
    API_NETWORK_ERROR,
    AppEvents,
    HttpTransport,
    RestSyncConfig,
    RestSyncError,
    Store,
    StoreEvent,
    install_exception_logging,
)


def _parse_query(pairs: list[str]) -> dict[str, str]:
    query: dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep:
            raise SystemExit(f"--query expects KEY=VALUE, got {pair!r}")
        query[key] = value
    return query


def _options(args: argparse.Namespace) -> dict[str, Any]:
    options: dict[str, Any] = {"query": _parse_query(args.query)}
    if args.parent:
        key, _, parent_id = args.parent.partition(":")
        options["parent_resources_key"] = key
        if parent_id:
            options["parent_resource_id"] = parent_id
    if args.delay:
        options["delay"] = args.delay
    return options


def _print_reset(store: Store, payload: dict[str, Any], added: int, *, json_mode: bool) -> None:
    records = payload[store.resources_key]
    if json_mode:
        print(
            json.dumps(
                {
                    "added": added,
                    "meta": payload["meta"],
                    store.resources_key: [r.model_dump(mode="json") for r in records],
                },
                default=str,
                ensure_ascii=False,
            )
        )
        return
    print(f"── {store.resources_key}: {len(records)} cached, {added} new")
    for record in records:
        policy = f" policy={record.policy}" if record.policy else ""
        print(f"  {record.id}: {record.attributes}{policy}")


async def main() -> None:
    parser = argparse.ArgumentParser(description="Poll a REST collection through a restsync Store.")
    parser.add_argument("name", help="Singular resource key, e.g. 'widget' or 'lineItem'")
    parser.add_argument("--plural", help="Collection key when it is not '<name>s'")
    parser.add_argument("--parent", help="Parent collection as KEY or KEY:ID")
    parser.add_argument("--query", action="append", default=[], help="Query parameter KEY=VALUE")
    parser.add_argument("--delay", type=int, help="Poll interval in milliseconds")
    parser.add_argument("--once", action="store_true", help="Fetch once and exit")
    parser.add_argument("--json", action="store_true", dest="json_mode", help="Output JSON lines")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    else:
        logging.basicConfig(level=logging.WARNING)
    install_exception_logging()

    config = RestSyncConfig.from_env()
    app_events = AppEvents.instance()
    app_events.on(API_EXCEPTION, lambda error: print(f"! {error}", file=sys.stderr))
    app_events.on(API_NETWORK_ERROR, lambda error: print(f"! {error}", file=sys.stderr))

    options = _options(args)
    async with HttpTransport(config, app_events=app_events) as transport:
        store = Store(
            args.name,
            transport=transport,
            resources_key=args.plural,
            poll_delay_ms=config.poll_delay_ms,
        )
        store.events.on(
            StoreEvent.RESET,
            lambda payload, added: _print_reset(store, payload, added, json_mode=args.json_mode),
        )

        try:
            await store.get_all(options)
        except RestSyncError as exc:
            raise SystemExit(f"Initial fetch failed: {exc}") from exc
        if args.once:
            return

        store.start_polling(options)
        try:
            await asyncio.Event().wait()
        finally:
            store.stop_polling()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass
