"""Command line surface for the Fisch values backend.

Usage examples:
    python -m fisch estimate --rod heaven-rod --location volcanic-vents
    python -m fisch estimate --rod aurora-rod --location atlantis --bait fish-head --weather aurora
    python -m fisch values --category fish --sort rarity
    python -m fisch values --live
    python -m fisch codes --offline
    python -m fisch codes --check fishmas2024
    python -m fisch sync
    python -m fisch serve --port 8000
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys

from dotenv import load_dotenv

from fisch.application.dtos import EstimateRequest, EstimateResult
from fisch.application.services.value_list import (
    VALUE_LIST_CATEGORIES,
    VALUE_LIST_SORTS,
    build_value_list,
    format_currency,
    partition_codes,
    validate_code,
)
from fisch.bootstrap import FischApplication, create_application, create_upstream_gateway
from fisch.domain.errors import FischError
from fisch.domain.models.catalog import TIME_OF_DAY_TAGS, WEATHER_TAGS


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="fisch", description="Fisch item values, profit estimates and codes.")
    commands = parser.add_subparsers(dest="command", required=True)

    estimate = commands.add_parser("estimate", help="Estimate hourly profit for a rod and location.")
    estimate.add_argument("--rod", required=True)
    estimate.add_argument("--location", required=True)
    estimate.add_argument("--bait", default=None)
    estimate.add_argument("--weather", default="clear", choices=WEATHER_TAGS)
    estimate.add_argument("--time", dest="time_of_day", default="day", choices=TIME_OF_DAY_TAGS)

    values = commands.add_parser("values", help="List fish and rod values.")
    values.add_argument("--category", default="all", choices=VALUE_LIST_CATEGORIES)
    values.add_argument("--sort", dest="sort_by", default="value", choices=VALUE_LIST_SORTS)
    values.add_argument("--search", default="")
    values.add_argument("--offline", action="store_true", help="Use bundled data only.")
    values.add_argument("--live", action="store_true", help="Quote live fish prices and show the move from base value.")

    codes = commands.add_parser("codes", help="List active and expired codes.")
    codes.add_argument("--offline", action="store_true", help="Use bundled data only.")
    codes.add_argument("--check", metavar="CODE", default=None, help="Report whether CODE is currently redeemable.")

    commands.add_parser("sync", help="Run one refresh cycle against the data API.")

    serve = commands.add_parser("serve", help="Serve /api/data.")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)
    return parser


def render_estimate(result: EstimateResult) -> str:
    lines = [
        f"Hourly profit:  {format_currency(result.hourly_profit)}",
        f"Per cast:       C${result.profit_per_cast:.0f}",
        f"Casts per hour: {result.casts_per_hour:.0f}",
        f"Success rate:   {result.success_rate * 100:.1f}%",
        f"Line snap risk: {result.line_snap_risk * 100:.0f}%",
        f"Best fish:      {result.best_fish.name} ({format_currency(result.best_fish.value)} average)",
    ]
    if result.tips:
        lines.append("Tips:")
        lines.extend(f"- {tip}" for tip in result.tips)
    return "\n".join(lines)


def _cmd_estimate(app: FischApplication, args: argparse.Namespace) -> int:
    result = app.estimator.estimate(
        EstimateRequest(
            rod_id=args.rod,
            location_id=args.location,
            bait_id=args.bait,
            weather=args.weather,
            time_of_day=args.time_of_day,
        )
    )
    print(render_estimate(result))
    return 0


async def _load(app: FischApplication, kinds: tuple[str, ...], offline: bool) -> dict[str, list[dict]]:
    if offline:
        return {kind: app.baseline.rows(kind) for kind in kinds}
    try:
        rows = await asyncio.gather(*(app.data_service.get_latest(kind) for kind in kinds))
    finally:
        await app.client.close()
    return dict(zip(kinds, rows))


def _cmd_values(app: FischApplication, args: argparse.Namespace) -> int:
    rows = asyncio.run(_load(app, ("fish", "rods"), args.offline))
    prices = None
    if args.live:
        app.price_monitor.load(rows["fish"])
        prices = app.price_monitor.update(str(row["id"]) for row in rows["fish"] if "id" in row)
    items = build_value_list(
        rows["fish"],
        rows["rods"],
        category=args.category,
        sort_by=args.sort_by,
        query=args.search,
        prices=prices,
    )
    if not items:
        print("No items match.")
        return 0
    for item in items:
        line = f"{item.name:<20} {item.category:<5} {item.rarity:<10} {format_currency(item.base_value):>9} max {format_currency(item.max_value):>9}"
        if args.live:
            current = item.current_price if item.current_price is not None else item.base_value
            line += f" now {format_currency(current):>9} {item.price_change:+6.1f}% {item.trend}"
        print(line)
    return 0


def _cmd_codes(app: FischApplication, args: argparse.Namespace) -> int:
    rows = asyncio.run(_load(app, ("codes",), args.offline))
    if args.check is not None:
        if validate_code(rows["codes"], args.check):
            print(f"{args.check.strip().upper()} is active.")
            return 0
        print(f"{args.check.strip().upper()} is not an active code.")
        return 1
    active, expired = partition_codes(rows["codes"])
    print("Active codes:")
    for code in active:
        print(f"  {code.code:<16} {code.reward}  (expires {code.expires or 'unknown'})")
    if expired:
        print("Expired codes:")
        for code in expired:
            print(f"  {code.code:<16} {code.reward}")
    return 0


async def _sync_once(app: FischApplication) -> int:
    try:
        report = await app.sync.sync()
    finally:
        await app.client.close()
    if report is None:
        print("Offline; nothing synced.")
        return 1
    for kind, outcome in report.results.items():
        if outcome.ok:
            print(f"{kind}: synced {outcome.item_count} items")
        else:
            print(f"{kind}: failed ({outcome.error})")
    return 0 if report.all_ok else 1


def _cmd_serve(args: argparse.Namespace) -> int:
    from fisch.presentation.web import create_web_app

    gateway = create_upstream_gateway()
    try:
        create_web_app(gateway).run(host=args.host, port=args.port)
    finally:
        gateway.close()
    return 0


def run(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    if args.command == "serve":
        return _cmd_serve(args)

    app = create_application()
    if args.command == "estimate":
        return _cmd_estimate(app, args)
    if args.command == "values":
        return _cmd_values(app, args)
    if args.command == "codes":
        return _cmd_codes(app, args)
    return asyncio.run(_sync_once(app))


def main(argv: list[str] | None = None) -> None:
    load_dotenv()
    logging.basicConfig(
        level=os.getenv("FISCH_LOG_LEVEL", "WARNING").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        code = run(argv)
    except KeyboardInterrupt:
        print("\nInterrupted.")
        code = 130
    except FischError as exc:
        print(f"Error: {exc}")
        code = 2
    except Exception as exc:
        print("An unexpected error occurred.")
        print(f"Reason: {exc}")
        code = 1
    sys.exit(code)
