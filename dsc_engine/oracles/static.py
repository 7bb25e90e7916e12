"""In-memory price feed for simulations and tests."""
from __future__ import annotations

import logging
import time
from decimal import Decimal

from ..config import StaticFeedConfig
from ..errors import PriceUnavailable
from ..models import PriceRound

logger = logging.getLogger(__name__)


class StaticPriceFeed:
    """Price feed whose rounds are set by hand."""

    def __init__(self, rounds: dict[str, PriceRound] | None = None) -> None:
        self._rounds: dict[str, PriceRound] = dict(rounds or {})

    @classmethod
    def from_config(cls, config: StaticFeedConfig) -> StaticPriceFeed:
        feed = cls()
        for feed_id, usd in config.prices.items():
            feed.set_price(feed_id, usd, expo=config.expo)
        return feed

    def set_price(
        self,
        feed_id: str,
        usd: str | int | Decimal,
        expo: int = -8,
        publish_time: int | None = None,
    ) -> PriceRound:
        """Publish ``usd`` (a human decimal price) for ``feed_id``.

        The price is stored as an integer scaled by ``10^-expo``; digits
        beyond that precision are truncated.
        """
        price = int(Decimal(str(usd)).scaleb(-expo))
        rnd = PriceRound(
            price=price,
            expo=expo,
            publish_time=int(time.time()) if publish_time is None else publish_time,
        )
        self._rounds[feed_id] = rnd
        logger.info("Static price %s set to $%s", feed_id, usd)
        return rnd

    async def latest_price(self, feed_id: str) -> PriceRound:
        try:
            return self._rounds[feed_id]
        except KeyError:
            raise PriceUnavailable(feed_id) from None
