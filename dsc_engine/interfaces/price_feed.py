"""Price feed protocol — source of raw asset prices."""
from typing import Protocol

from ..models import PriceRound


class PriceFeed(Protocol):
    """Abstract interface for fetching the latest price of a feed."""

    async def latest_price(self, feed_id: str) -> PriceRound: ...
