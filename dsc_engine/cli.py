"""Command-line interface for the DSC engine."""
from __future__ import annotations

import argparse
import asyncio
import sys

from .config import load_config
from .constants import format_fixed, to_fixed
from .logging_setup import configure_logging
from .services.simulation import build_engine, load_scenario, run_scenario, scenario_users


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse CLI parser."""
    parser = argparse.ArgumentParser(
        prog="dsc-engine",
        description="Collateralized-debt engine for the DSC synthetic",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to config.yaml (default: config.yaml in project root)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )

    sub = parser.add_subparsers(dest="command")

    quote_parser = sub.add_parser("quote", help="Convert between asset amounts and USD")
    quote_sub = quote_parser.add_subparsers(dest="quote_kind", required=True)
    usd_parser = quote_sub.add_parser("usd", help="USD value of an asset amount")
    usd_parser.add_argument("asset")
    usd_parser.add_argument("amount", help="Asset amount, e.g. 1.5")
    amount_parser = quote_sub.add_parser("amount", help="Asset amount worth a USD value")
    amount_parser.add_argument("asset")
    amount_parser.add_argument("usd", help="USD value, e.g. 100")

    simulate_parser = sub.add_parser("simulate", help="Run a YAML scenario in memory")
    simulate_parser.add_argument("scenario", help="Path to the scenario file")

    return parser


async def _quote(args: argparse.Namespace) -> None:
    sim = build_engine(load_config(args.config))
    engine = sim.engine
    if args.quote_kind == "usd":
        value = await engine.usd_value(args.asset, to_fixed(args.amount))
        print(f"{args.amount} {args.asset} = ${format_fixed(value, 2)}")
    else:
        amount = await engine.asset_amount_for_usd(args.asset, to_fixed(args.usd))
        print(f"${args.usd} = {format_fixed(amount, 8)} {args.asset}")


async def _simulate(args: argparse.Namespace) -> None:
    sim = build_engine(load_config(args.config))
    steps = load_scenario(args.scenario)
    results = await run_scenario(sim, steps)

    for result in results:
        status = "ok" if result.ok else f"FAILED {result.error_kind}: {result.error}"
        print(f"[{result.index:>3}] {result.op:<18} {status}")

    print()
    for user in scenario_users(steps):
        info = await sim.engine.account_information(user)
        health_factor = await sim.engine.health_factor(user)
        print(
            f"{user}: minted {format_fixed(info.total_dsc_minted, 2)} DSC · "
            f"collateral ${format_fixed(info.collateral_value_usd, 2)} · "
            f"HF {format_fixed(health_factor, 4)}"
        )


async def _run(args: argparse.Namespace) -> None:
    """Execute the selected command."""
    configure_logging(args.log_level)

    if args.command == "quote":
        await _quote(args)
    elif args.command == "simulate":
        await _simulate(args)
    else:
        build_parser().print_help()
        sys.exit(1)


def main() -> None:
    """Entry point."""
    parser = build_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    asyncio.run(_run(args))
