"""Price oracle adapter — normalizes feed prices and converts asset ↔ USD.

All values are integers in 18-decimal fixed point. Divisions truncate
toward zero.
"""
from __future__ import annotations

import contextlib
import logging
import time
from collections.abc import Callable, Iterator

from ..constants import DECIMALS, PRECISION
from ..errors import InvalidPrice, StalePrice
from ..interfaces.price_feed import PriceFeed
from ..models import PriceRound
from ..registry import CollateralRegistry

logger = logging.getLogger(__name__)


def normalize_price(rnd: PriceRound) -> int:
    """Scale ``price × 10^expo`` to 18 decimals."""
    shift = DECIMALS + rnd.expo
    if shift >= 0:
        return rnd.price * 10**shift
    return rnd.price // 10**-shift


class PriceOracleAdapter:
    """Reads prices for registered assets from a single feed.

    Feed data is trusted as-is unless ``max_price_age`` is given, in which
    case rounds older than that many seconds raise :class:`StalePrice`.

    Inside :meth:`pinned_prices` each feed is read at most once; later
    lookups reuse the first price seen.
    """

    def __init__(
        self,
        registry: CollateralRegistry,
        feed: PriceFeed,
        max_price_age: int | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._registry = registry
        self._feed = feed
        self._max_price_age = max_price_age
        self._clock = clock
        self._pinned: dict[str, int] | None = None

    @contextlib.contextmanager
    def pinned_prices(self) -> Iterator[dict[str, int]]:
        """Hold every price read in the block fixed at its first value."""
        outer = self._pinned
        if outer is None:
            self._pinned = {}
        try:
            yield self._pinned
        finally:
            self._pinned = outer

    async def price(self, asset_id: str) -> int:
        """Latest USD price of one unit of ``asset_id``, 18 decimals."""
        feed_id = self._registry.feed_for(asset_id)
        pinned = self._pinned
        if pinned is not None and feed_id in pinned:
            return pinned[feed_id]

        rnd = await self._feed.latest_price(feed_id)

        if rnd.price <= 0:
            raise InvalidPrice(feed_id, rnd.price)
        if self._max_price_age is not None:
            age = self._clock() - rnd.publish_time
            if age > self._max_price_age:
                raise StalePrice(feed_id, age, self._max_price_age)

        price = normalize_price(rnd)
        if price <= 0:
            raise InvalidPrice(feed_id, price)
        if pinned is not None:
            pinned[feed_id] = price
        return price

    async def usd_value(self, asset_id: str, amount: int) -> int:
        price = await self.price(asset_id)
        return price * amount // PRECISION

    async def asset_amount_for_usd(self, asset_id: str, usd_amount: int) -> int:
        """Asset amount worth ``usd_amount``, truncated.

        Converting an amount to USD and back loses at most
        ``10**18 // price + 1`` base units, where ``price`` is the
        18-decimal price. Below $1 that is more than one unit.
        """
        price = await self.price(asset_id)
        return usd_amount * PRECISION // price
