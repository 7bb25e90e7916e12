"""Unit tests for price normalization and asset ↔ USD conversion."""
from __future__ import annotations

import pytest

from dsc_engine.constants import PRECISION, to_fixed
from dsc_engine.errors import InvalidPrice, PriceUnavailable, StalePrice, UnsupportedToken
from dsc_engine.models import PriceRound
from dsc_engine.oracles import PriceOracleAdapter, StaticPriceFeed, normalize_price
from dsc_engine.registry import CollateralRegistry

WETH_FEED = "feed-weth"


class TestNormalizePrice:
    def test_eight_decimal_feed(self) -> None:
        assert normalize_price(PriceRound(price=200000000000, expo=-8)) == 2000 * PRECISION

    def test_positive_exponent(self) -> None:
        assert normalize_price(PriceRound(price=2, expo=3)) == 2000 * PRECISION

    def test_more_than_18_decimals_truncates(self) -> None:
        assert normalize_price(PriceRound(price=19, expo=-19)) == 1


class TestConversions:
    @pytest.mark.asyncio
    async def test_usd_value(self, oracle: PriceOracleAdapter) -> None:
        assert await oracle.usd_value("WETH", to_fixed(15)) == to_fixed(30_000)

    @pytest.mark.asyncio
    async def test_asset_amount_for_usd(self, oracle: PriceOracleAdapter) -> None:
        assert await oracle.asset_amount_for_usd("WETH", to_fixed(100)) == to_fixed("0.05")

    @pytest.mark.asyncio
    async def test_round_trip_within_one_unit(
        self, oracle: PriceOracleAdapter, feed: StaticPriceFeed
    ) -> None:
        feed.set_price(WETH_FEED, "1234.56789")
        for amount in (1, 7, 10**9 + 3, to_fixed("3.14159"), to_fixed(1_000_000)):
            usd = await oracle.usd_value("WETH", amount)
            back = await oracle.asset_amount_for_usd("WETH", usd)
            assert 0 <= amount - back <= 1

    @pytest.mark.asyncio
    async def test_round_trip_loss_below_one_dollar(
        self, oracle: PriceOracleAdapter, feed: StaticPriceFeed
    ) -> None:
        feed.set_price(WETH_FEED, "0.01")
        price = await oracle.price("WETH")
        bound = PRECISION // price + 1
        losses = []
        for amount in (1, 99, 199, 10**9 + 3, to_fixed("3.14159")):
            usd = await oracle.usd_value("WETH", amount)
            back = await oracle.asset_amount_for_usd("WETH", usd)
            losses.append(amount - back)
        assert all(0 <= loss <= bound for loss in losses)
        # 199 units are worth 1.99 USD base units, truncated to 1
        assert losses[2] == 99

    @pytest.mark.asyncio
    async def test_truncates_toward_zero(
        self, oracle: PriceOracleAdapter, feed: StaticPriceFeed
    ) -> None:
        feed.set_price(WETH_FEED, "3")
        # 1 USD / 3 = 0.333… → truncated
        assert await oracle.asset_amount_for_usd("WETH", to_fixed(1)) == 333333333333333333

    @pytest.mark.asyncio
    async def test_unregistered_asset_raises(self, oracle: PriceOracleAdapter) -> None:
        with pytest.raises(UnsupportedToken):
            await oracle.usd_value("RAN", to_fixed(1))


class TestPriceChecks:
    @pytest.mark.asyncio
    async def test_missing_feed_raises(self, registry: CollateralRegistry) -> None:
        oracle = PriceOracleAdapter(registry, StaticPriceFeed())
        with pytest.raises(PriceUnavailable):
            await oracle.price("WETH")

    @pytest.mark.asyncio
    async def test_non_positive_price_raises(self, registry: CollateralRegistry) -> None:
        feed = StaticPriceFeed({WETH_FEED: PriceRound(price=0, expo=-8)})
        oracle = PriceOracleAdapter(registry, feed)
        with pytest.raises(InvalidPrice):
            await oracle.asset_amount_for_usd("WETH", to_fixed(1))

    @pytest.mark.asyncio
    async def test_no_staleness_check_by_default(self, registry: CollateralRegistry) -> None:
        feed = StaticPriceFeed({WETH_FEED: PriceRound(price=2000, expo=0, publish_time=0)})
        oracle = PriceOracleAdapter(registry, feed, clock=lambda: 10**9)
        assert await oracle.price("WETH") == 2000 * PRECISION

    @pytest.mark.asyncio
    async def test_stale_price_raises_when_bounded(self, registry: CollateralRegistry) -> None:
        feed = StaticPriceFeed({WETH_FEED: PriceRound(price=2000, expo=0, publish_time=1000)})
        oracle = PriceOracleAdapter(registry, feed, max_price_age=60, clock=lambda: 1061.0)
        with pytest.raises(StalePrice):
            await oracle.price("WETH")

    @pytest.mark.asyncio
    async def test_fresh_price_passes_bound(self, registry: CollateralRegistry) -> None:
        feed = StaticPriceFeed({WETH_FEED: PriceRound(price=2000, expo=0, publish_time=1000)})
        oracle = PriceOracleAdapter(registry, feed, max_price_age=60, clock=lambda: 1060.0)
        assert await oracle.price("WETH") == 2000 * PRECISION


class TestPinnedPrices:
    @pytest.mark.asyncio
    async def test_feed_read_once_while_pinned(
        self, oracle: PriceOracleAdapter, feed: StaticPriceFeed
    ) -> None:
        with oracle.pinned_prices():
            first = await oracle.price("WETH")
            feed.set_price(WETH_FEED, "18")
            assert await oracle.usd_value("WETH", to_fixed(1)) == first
        assert await oracle.price("WETH") == to_fixed(18)

    @pytest.mark.asyncio
    async def test_nested_block_keeps_outer_prices(
        self, oracle: PriceOracleAdapter, feed: StaticPriceFeed
    ) -> None:
        with oracle.pinned_prices() as outer:
            await oracle.price("WETH")
            with oracle.pinned_prices() as inner:
                assert inner is outer
            feed.set_price(WETH_FEED, "18")
            assert await oracle.price("WETH") == to_fixed(2_000)

    @pytest.mark.asyncio
    async def test_failed_read_is_not_pinned(self, registry: CollateralRegistry) -> None:
        feed = StaticPriceFeed({WETH_FEED: PriceRound(price=0, expo=-8)})
        oracle = PriceOracleAdapter(registry, feed)
        with oracle.pinned_prices() as pinned:
            with pytest.raises(InvalidPrice):
                await oracle.price("WETH")
            assert pinned == {}
