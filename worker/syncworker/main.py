from __future__ import annotations

import argparse
import logging
import sys

from syncworker.config import get_settings
from syncworker.db import SessionLocal
from syncworker.errors import SyncError
from syncworker.orchestrator import SyncOrchestrator, SyncResult


def format_result(result: SyncResult) -> str:
    line = (
        f"vendor={result.vendor_id} run={result.run_id} status={result.status} "
        f"found={result.products_found} created={result.products_created} "
        f"updated={result.products_updated} failed={result.products_failed}"
    )
    if result.error:
        line = f"{line} error={result.error!r}"
    return line


def run_sync(vendor_id: str, scroll: bool, max_products: int | None) -> int:
    with SessionLocal() as db:
        result = SyncOrchestrator(db).run_sync(vendor_id, scroll_to_load=scroll, max_products=max_products)
    print(format_result(result))
    return 0 if result.status == "completed" else 1


def run_sync_all() -> int:
    with SessionLocal() as db:
        results = SyncOrchestrator(db).run_sync_all()
    for result in results:
        print(format_result(result))
    return 0 if all(result.status == "completed" for result in results) else 1


def show_status(vendor_id: str) -> int:
    with SessionLocal() as db:
        status = SyncOrchestrator(db).get_status(vendor_id)
    last_synced = status.last_synced_at.isoformat() if status.last_synced_at else "never"
    print(
        f"vendor={status.vendor_id} status={status.status} "
        f"last_synced_at={last_synced} products={status.product_count}"
    )
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="vendorsync", description="Vendor catalog sync worker")
    subparsers = parser.add_subparsers(dest="command", required=True)

    sync_parser = subparsers.add_parser("sync", help="Scrape one vendor storefront and reconcile its catalog")
    sync_parser.add_argument("--vendor", required=True, help="Vendor id")
    sync_parser.add_argument("--no-scroll", action="store_true", help="Do not scroll to load lazy listings")
    sync_parser.add_argument("--max-products", type=int, default=None)

    subparsers.add_parser("sync-all", help="Sync every enabled vendor with a website URL")

    status_parser = subparsers.add_parser("status", help="Show the sync status of one vendor")
    status_parser.add_argument("--vendor", required=True, help="Vendor id")

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=get_settings().log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        if args.command == "sync":
            max_products = max(1, args.max_products) if args.max_products else None
            return run_sync(args.vendor, scroll=not args.no_scroll, max_products=max_products)
        if args.command == "sync-all":
            return run_sync_all()
        return show_status(args.vendor)
    except SyncError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
