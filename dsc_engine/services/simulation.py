"""Engine wiring from config, and scripted scenario runs against it."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from ..config import AppConfig
from ..constants import to_fixed
from ..errors import EngineError
from ..interfaces.price_feed import PriceFeed
from ..oracles import PriceOracleAdapter, PythPriceFeed, StaticPriceFeed
from ..registry import CollateralRegistry
from ..tokens import InMemoryToken
from .engine import PositionEngine

logger = logging.getLogger(__name__)

# Registry of price feed factories keyed by provider name.
_PRICE_FEED_FACTORIES: dict[str, Any] = {
    "pyth": lambda cfg: PythPriceFeed(cfg.pyth),
    "static": lambda cfg: StaticPriceFeed.from_config(cfg.static),
}


@dataclass
class Simulation:
    """An engine together with the in-memory collaborators it was built on."""

    engine: PositionEngine
    registry: CollateralRegistry
    feed: PriceFeed
    dsc: InMemoryToken
    tokens: dict[str, InMemoryToken] = field(default_factory=dict)


@dataclass(frozen=True)
class StepResult:
    index: int
    op: str
    ok: bool
    error: str = ""
    error_kind: str = ""


def build_engine(config: AppConfig) -> Simulation:
    """Wire registry, oracle, in-memory tokens and engine from ``config``."""
    address = config.engine.address
    registry = CollateralRegistry.from_config(config.collateral)

    factory = _PRICE_FEED_FACTORIES.get(config.price_oracle.provider)
    if factory is None:
        raise ValueError(f"Unknown price oracle provider '{config.price_oracle.provider}'")
    feed: PriceFeed = factory(config.price_oracle)

    oracle = PriceOracleAdapter(
        registry, feed, max_price_age=config.engine.risk.max_price_age_seconds
    )
    tokens = {asset: InMemoryToken(asset, custodian=address) for asset in registry.assets}
    dsc = InMemoryToken("DSC", custodian=address)

    engine = PositionEngine(
        registry, oracle, dsc, tokens, risk=config.engine.risk, address=address
    )
    return Simulation(engine=engine, registry=registry, feed=feed, dsc=dsc, tokens=tokens)


def load_scenario(path: str | Path) -> list[dict[str, Any]]:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Scenario file not found: {path}")
    with open(path) as f:
        raw = yaml.safe_load(f) or {}
    steps = raw.get("steps", [])
    if not isinstance(steps, list):
        raise ValueError("Scenario 'steps' must be a list")
    return steps


def scenario_users(steps: list[dict[str, Any]]) -> list[str]:
    """Every account a scenario touches, in order of first appearance."""
    users: list[str] = []
    for step in steps:
        for key in ("user", "liquidator"):
            name = step.get(key)
            if name and name not in users:
                users.append(name)
    return users


async def _apply(sim: Simulation, step: dict[str, Any]) -> None:
    op = step.get("op", "")
    engine = sim.engine

    if op == "fund":
        token = sim.tokens.get(step["asset"])
        if token is None:
            raise ValueError(f"Cannot fund unknown asset '{step['asset']}'")
        await token.mint(step["user"], to_fixed(step["amount"]))
    elif op == "set_price":
        if not isinstance(sim.feed, StaticPriceFeed):
            raise ValueError("set_price requires the static price oracle provider")
        sim.feed.set_price(sim.registry.feed_for(step["asset"]), str(step["price"]))
    elif op == "deposit":
        await engine.deposit_collateral(step["user"], step["asset"], to_fixed(step["amount"]))
    elif op == "mint":
        await engine.mint_dsc(step["user"], to_fixed(step["amount"]))
    elif op == "deposit_and_mint":
        await engine.deposit_collateral_and_mint_dsc(
            step["user"],
            step["asset"],
            to_fixed(step["collateral"]),
            to_fixed(step["mint"]),
        )
    elif op == "redeem":
        await engine.redeem_collateral(step["user"], step["asset"], to_fixed(step["amount"]))
    elif op == "burn":
        await engine.burn_dsc(step["user"], to_fixed(step["amount"]))
    elif op == "redeem_for_dsc":
        await engine.redeem_collateral_for_dsc(
            step["user"],
            step["asset"],
            to_fixed(step["collateral"]),
            to_fixed(step["burn"]),
        )
    elif op == "liquidate":
        await engine.liquidate(
            step["liquidator"], step["user"], step["asset"], to_fixed(step["debt"])
        )
    else:
        raise ValueError(f"Unknown scenario op '{op}'")


async def run_scenario(sim: Simulation, steps: list[dict[str, Any]]) -> list[StepResult]:
    """Execute ``steps`` in order.

    Engine errors are recorded on the step and the run continues; anything
    else (a malformed step, a missing key) propagates.
    """
    results: list[StepResult] = []
    for index, step in enumerate(steps, start=1):
        op = step.get("op", "")
        try:
            await _apply(sim, step)
        except EngineError as e:
            logger.info("Step %d (%s) failed: %s", index, op, e)
            results.append(
                StepResult(index=index, op=op, ok=False, error=str(e), error_kind=type(e).__name__)
            )
            continue
        results.append(StepResult(index=index, op=op, ok=True))
    return results
