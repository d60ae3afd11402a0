"""Manual sync runner for testing and debugging providers.

Runs the order sync for one or more storefronts using cookies exported from
a logged-in browser session, and prints what was found.

Usage:
    python scripts/run_sync.py --provider amazon --cookies amazon_cookies.json
    python scripts/run_sync.py --provider walmart --cookies walmart.json --year 2023
    python scripts/run_sync.py --provider amazon --cookies amazon.json --max-pages 2 --limit 5
    python scripts/run_sync.py --provider costco --cookies costco.json --probe-only

The cookies file is a JSON object of cookie name -> value.
"""

import argparse
import asyncio
import json
import os
import sys
from decimal import Decimal

# Add backend to path so we can import ordersync modules
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "backend"))

from ordersync.config import settings
from ordersync.core.logging import configure_logging
from ordersync.models import AuthStatus, ProgressState
from ordersync.scrapers.orchestrator import SyncOrchestrator
from ordersync.scrapers.register_providers import register_all_providers


def _load_cookies(path: str) -> dict:
    if not path:
        return {}
    with open(path, encoding="utf-8") as fh:
        cookies = json.load(fh)
    if not isinstance(cookies, dict):
        raise ValueError(f"{path} must contain a JSON object of cookie name -> value")
    return {str(k): str(v) for k, v in cookies.items()}


def _print_progress(state: ProgressState) -> None:
    print(f"  ⏳ {state.phase.value}: {state.complete}/{state.total}")


def _format_amount(amount: Decimal) -> str:
    if amount.is_nan():
        return "?"
    return f"${amount:,.2f}"


async def run_sync(
    provider_slugs: list,
    cookies_path: str = None,
    year: int = None,
    max_pages: int = None,
    limit: int = 10,
    probe_only: bool = False,
):
    """Probe and sync the given providers and display the results.

    Args:
        provider_slugs: Provider slugs (e.g., ["amazon", "walmart"])
        cookies_path: JSON file with session cookies
        year: Optional order-history year
        max_pages: Optional cap on listing pages
        limit: Maximum number of orders to display per provider
        probe_only: Only check login status
    """
    factory = register_all_providers()

    unknown = [slug for slug in provider_slugs if not factory.has_provider(slug)]
    if unknown:
        print(f"\n❌ Error: Unknown provider(s): {', '.join(unknown)}")
        print(f"\n📋 Available providers:")
        for slug in sorted(factory.get_registered_providers()):
            print(f"   - {slug}")
        return

    context = factory.build_context(cookies=_load_cookies(cookies_path))
    providers = [factory.create_provider(slug, context) for slug in provider_slugs]

    try:
        if probe_only:
            for provider in providers:
                auth = await provider.probe_auth()
                print(f"\n{provider.name}: {auth.status.value}")
                if auth.status == AuthStatus.SUCCESS:
                    print(f"   Earliest order year: {auth.starting_year}")
                elif auth.status == AuthStatus.NOT_LOGGED_IN:
                    print(f"   {provider.status_message()['not_logged_in']}")
                else:
                    print(f"   {provider.status_message()['failure']}")
            return

        print(f"\n{'='*70}")
        print(f"  Syncing: {', '.join(p.name for p in providers)}")
        if year:
            print(f"  📅 Year: {year}")
        if max_pages:
            print(f"  📄 Max pages: {max_pages}")
        print(f"{'='*70}\n")

        results = await SyncOrchestrator(context).sync(
            providers, year=year, max_pages=max_pages, on_progress=_print_progress
        )

        for result in results:
            print(f"\n{'='*70}")
            print(f"  {result.provider.upper()}: {result.auth.status.value}")
            print(f"{'='*70}")

            if result.error:
                print(f"  ❌ {type(result.error).__name__}: {result.error}")
                continue

            for order in result.orders[:limit]:
                print(f"[{order.id}] {order.date}")
                for tx in order.transactions or []:
                    kind = "refund" if tx.refund else "charge"
                    print(f"    💳 {kind} {tx.date}: {_format_amount(tx.amount)} ({len(tx.items)} items)")
                    for item in tx.items:
                        print(f"       - {item.title[:60]} {_format_amount(item.price)}")

            print(f"\n  Total orders: {len(result.orders)}")
            print(f"  Displayed: {min(limit, len(result.orders))}")

    finally:
        await context.fetcher.close()


def main():
    """Parse arguments and run the sync."""
    parser = argparse.ArgumentParser(
        description="Run an order-history sync against logged-in storefront sessions",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python scripts/run_sync.py --provider amazon --cookies amazon.json
  python scripts/run_sync.py --provider walmart --provider costco --cookies cookies.json --year 2023
  python scripts/run_sync.py --provider amazon --cookies amazon.json --probe-only
        """,
    )

    parser.add_argument(
        "--provider",
        action="append",
        required=True,
        help="Provider slug (amazon, costco, walmart); repeat for several",
    )
    parser.add_argument("--cookies", help="JSON file of session cookies")
    parser.add_argument("--year", type=int, help="Only fetch orders from this year")
    parser.add_argument("--max-pages", type=int, help="Maximum listing pages to scan")
    parser.add_argument(
        "--limit",
        type=int,
        default=10,
        help="Maximum number of orders to display per provider (default: 10)",
    )
    parser.add_argument("--probe-only", action="store_true", help="Only check login status")

    args = parser.parse_args()

    configure_logging(settings.LOG_LEVEL, json=settings.LOG_JSON)
    asyncio.run(
        run_sync(
            args.provider,
            cookies_path=args.cookies,
            year=args.year,
            max_pages=args.max_pages,
            limit=args.limit,
            probe_only=args.probe_only,
        )
    )


if __name__ == "__main__":
    main()
