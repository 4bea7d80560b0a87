#!/usr/bin/env python3
"""Business Finder CLI."""
from __future__ import annotations

import argparse
import sys

from business_finder.calls import StoreError, open_call_history
from business_finder.config import ConfigurationError, load_settings
from business_finder.firestore import close_firestore_client
from business_finder.logging_config import setup_logging
from business_finder.search import BusinessResult, SerpApiClient, UpstreamError


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="business-finder",
        description="Search local service businesses and track who has been called.",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Override BF_LOG_LEVEL for this run.",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    search_parser = subparsers.add_parser(
        "search",
        help="Search businesses by service category and zip code.",
    )
    search_parser.add_argument("service", help="Service category, e.g. Roofing.")
    search_parser.add_argument("zip_code", help="Zip code to search near.")

    call_parser = subparsers.add_parser(
        "call",
        help="Record a call to a business.",
    )
    call_parser.add_argument("business_id", help="Provider place id of the business.")
    call_parser.add_argument("--name", default="", help="Business name for new records.")
    call_parser.add_argument("--phone", default=None, help="Business phone number.")

    history_parser = subparsers.add_parser(
        "history",
        help="Show called businesses, most recent first.",
    )
    history_parser.add_argument(
        "--limit",
        type=int,
        default=None,
        help="Maximum number of records to show.",
    )

    subparsers.add_parser(
        "check-config",
        help="Validate that the search key and store are configured.",
    )

    return parser


def _cmd_search(service: str, zip_code: str) -> int:
    settings = load_settings()
    client = SerpApiClient(settings)
    try:
        response = client.search(service, zip_code)
    except (ValueError, ConfigurationError, UpstreamError) as exc:
        print(f"Search failed: {exc}", file=sys.stderr)
        return 1

    results = open_call_history(settings).annotate_previously_called(response.results)
    print(f"{len(results)} results for '{response.query}':\n")
    for result in results:
        marker = "*" if result.previously_called else " "
        rating = f"{result.rating}" if result.rating is not None else "-"
        print(f"{marker} {result.name} | {result.phone or 'no phone'} | rating {rating}")
        print(f"    {result.address or 'no address'} [{result.id}]")
    print("\n* previously called")
    return 0


def _cmd_call(business_id: str, name: str, phone: str | None) -> int:
    settings = load_settings()
    business = BusinessResult(id=business_id, name=name, phone=phone)
    call_history = open_call_history(settings)
    try:
        result = call_history.record_call(business)
        record = call_history.get_record(result.business_id)
    except (ValueError, StoreError) as exc:
        print(f"Call logging failed: {exc}", file=sys.stderr)
        return 1

    state = "new record" if result.is_new_record else "updated"
    print(f"Logged call to {business_id} ({state}), call count {result.call_count}")
    if record is not None:
        print(
            f"  first called {record.first_called:%Y-%m-%d %H:%M %Z}, "
            f"last called {record.last_called:%Y-%m-%d %H:%M %Z}"
        )
    return 0


def _cmd_history(limit: int | None) -> int:
    settings = load_settings()
    try:
        records = open_call_history(settings).list_history()
    except StoreError as exc:
        print(f"History failed: {exc}", file=sys.stderr)
        return 1

    if not records:
        print("No calls recorded yet.")
        return 0

    for record in records[:limit]:
        print(
            f"- {record.business_name or record.business_id}: {record.call_count} call(s), "
            f"last {record.last_called:%Y-%m-%d %H:%M %Z}, first {record.first_called:%Y-%m-%d %H:%M %Z}"
        )
    print(f"\n{len(records)} businesses called")
    return 0


def _cmd_check_config() -> int:
    try:
        settings = load_settings()
    except ConfigurationError as exc:
        print(f"Config check failed: {exc}", file=sys.stderr)
        return 1

    print(
        "Search API key:",
        "configured" if settings.search_configured else "missing",
        f"| store={settings.storage_backend}",
        f"| environment={settings.environment}",
    )
    return 0 if settings.search_configured else 1


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    try:
        settings = load_settings(require_store=False)
        setup_logging(args.log_level or settings.log_level)
    except ConfigurationError as exc:
        print(exc, file=sys.stderr)
        return 1

    try:
        if args.command == "search":
            return _cmd_search(args.service, args.zip_code)
        if args.command == "call":
            return _cmd_call(args.business_id, args.name, args.phone)
        if args.command == "history":
            return _cmd_history(args.limit)
        if args.command == "check-config":
            return _cmd_check_config()
    except ConfigurationError as exc:
        print(exc, file=sys.stderr)
        return 1
    finally:
        close_firestore_client()

    parser.error(f"Unknown command: {args.command}")
    return 2


if __name__ == "__main__":
    sys.exit(main())
