"""Shared test fixtures and sample data."""
from __future__ import annotations

import textwrap
from pathlib import Path

import pytest
import pytest_asyncio

from dsc_engine.config import (
    AppConfig,
    CollateralConfig,
    EngineConfig,
    PriceOracleConfig,
    RiskConfig,
    StaticFeedConfig,
)
from dsc_engine.constants import to_fixed
from dsc_engine.models import AccountInformation, CollateralDetail
from dsc_engine.oracles import PriceOracleAdapter, StaticPriceFeed
from dsc_engine.registry import CollateralRegistry
from dsc_engine.services.engine import PositionEngine
from dsc_engine.tokens import InMemoryToken

ENGINE = "dsc-engine"
USER = "alice"
LIQUIDATOR = "bob"

WETH_FEED = "feed-weth"
WBTC_FEED = "feed-wbtc"
ETH_PRICE = "2000"
BTC_PRICE = "1000"

COLLATERAL_AMOUNT = to_fixed(10)
AMOUNT_TO_MINT = to_fixed(100)
COLLATERAL_TO_COVER = to_fixed(20)


# ---------------------------------------------------------------------------
# Config fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def sample_risk() -> RiskConfig:
    return RiskConfig()


@pytest.fixture()
def sample_app_config(sample_risk: RiskConfig) -> AppConfig:
    return AppConfig(
        engine=EngineConfig(address=ENGINE, risk=sample_risk),
        collateral=(
            CollateralConfig(asset="WETH", feed_id=WETH_FEED),
            CollateralConfig(asset="WBTC", feed_id=WBTC_FEED),
        ),
        price_oracle=PriceOracleConfig(
            provider="static",
            static=StaticFeedConfig(prices={WETH_FEED: ETH_PRICE, WBTC_FEED: BTC_PRICE}),
        ),
    )


SAMPLE_YAML = textwrap.dedent("""\
    engine:
      address: dsc-engine
      risk:
        liquidation_threshold: 50
        liquidation_precision: 100
        liquidation_bonus: 10
        bonus_precision: 100
        min_health_factor: 1000000000000000000
    collateral:
      - asset: WETH
        feed_id: feed-weth
      - asset: WBTC
        feed_id: feed-wbtc
    price_oracle:
      provider: static
      pyth:
        hermes_url: "https://hermes.example.com"
      static:
        expo: -8
        prices:
          feed-weth: "2000"
          feed-wbtc: "1000"
""")


@pytest.fixture()
def sample_yaml_path(tmp_path: Path) -> Path:
    cfg_file = tmp_path / "config.yaml"
    cfg_file.write_text(SAMPLE_YAML)
    return cfg_file


# ---------------------------------------------------------------------------
# Model fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def sample_account() -> AccountInformation:
    return AccountInformation(
        total_dsc_minted=AMOUNT_TO_MINT,
        collateral_value_usd=to_fixed(20_000),
        collateral=(
            CollateralDetail(asset="WETH", amount=COLLATERAL_AMOUNT, usd_value=to_fixed(20_000)),
        ),
    )


# ---------------------------------------------------------------------------
# Engine fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def registry() -> CollateralRegistry:
    return CollateralRegistry(["WETH", "WBTC"], [WETH_FEED, WBTC_FEED])


@pytest.fixture()
def feed() -> StaticPriceFeed:
    feed = StaticPriceFeed()
    feed.set_price(WETH_FEED, ETH_PRICE)
    feed.set_price(WBTC_FEED, BTC_PRICE)
    return feed


@pytest.fixture()
def oracle(registry: CollateralRegistry, feed: StaticPriceFeed) -> PriceOracleAdapter:
    return PriceOracleAdapter(registry, feed)


@pytest.fixture()
def weth() -> InMemoryToken:
    return InMemoryToken("WETH", custodian=ENGINE)


@pytest.fixture()
def wbtc() -> InMemoryToken:
    return InMemoryToken("WBTC", custodian=ENGINE)


@pytest.fixture()
def dsc() -> InMemoryToken:
    return InMemoryToken("DSC", custodian=ENGINE)


@pytest.fixture()
def engine(
    registry: CollateralRegistry,
    oracle: PriceOracleAdapter,
    dsc: InMemoryToken,
    weth: InMemoryToken,
    wbtc: InMemoryToken,
    sample_risk: RiskConfig,
) -> PositionEngine:
    return PositionEngine(
        registry,
        oracle,
        dsc,
        {"WETH": weth, "WBTC": wbtc},
        risk=sample_risk,
        address=ENGINE,
    )


@pytest_asyncio.fixture()
async def funded(engine: PositionEngine, weth: InMemoryToken) -> PositionEngine:
    """Alice holds 10 WETH, Bob holds 20 WETH; nothing deposited yet."""
    await weth.mint(USER, COLLATERAL_AMOUNT)
    await weth.mint(LIQUIDATOR, COLLATERAL_TO_COVER)
    return engine


@pytest_asyncio.fixture()
async def deposited(funded: PositionEngine) -> PositionEngine:
    """Alice has deposited her 10 WETH."""
    await funded.deposit_collateral(USER, "WETH", COLLATERAL_AMOUNT)
    return funded


@pytest_asyncio.fixture()
async def minted(deposited: PositionEngine) -> PositionEngine:
    """Alice has deposited 10 WETH and minted 100 DSC (health factor 100)."""
    await deposited.mint_dsc(USER, AMOUNT_TO_MINT)
    return deposited


@pytest_asyncio.fixture()
async def undercollateralized(
    minted: PositionEngine, feed: StaticPriceFeed
) -> PositionEngine:
    """Bob holds 100 DSC against 20 WETH; WETH then crashes to $18.

    Alice's health factor is 0.9, Bob's is 1.8.
    """
    await minted.deposit_collateral_and_mint_dsc(
        LIQUIDATOR, "WETH", COLLATERAL_TO_COVER, AMOUNT_TO_MINT
    )
    feed.set_price(WETH_FEED, "18")
    return minted
