"""Pyth Network price feed."""
import logging
import ssl

import aiohttp
import certifi

from ..config import PythConfig
from ..errors import PriceUnavailable
from ..models import PriceRound

logger = logging.getLogger(__name__)


def _normalize_id(feed_id: str) -> str:
    """Hermes reports feed ids lower-case and without the 0x prefix."""
    feed_id = feed_id.lower()
    return feed_id[2:] if feed_id.startswith("0x") else feed_id


class PythPriceFeed:
    """Fetch price rounds from the Pyth Hermes API."""

    def __init__(self, config: PythConfig) -> None:
        self.hermes_url = config.hermes_url
        self.timeout = config.timeout

    async def fetch_rounds(self, feed_ids: list[str]) -> dict[str, PriceRound]:
        """Fetch the latest round for each feed id.

        Failed requests are logged and yield an empty mapping; feeds missing
        from the response are simply absent from the result.
        """
        rounds: dict[str, PriceRound] = {}

        wanted = {_normalize_id(fid): fid for fid in feed_ids}
        if not wanted:
            return rounds

        query_params = "&".join([f"ids[]={fid}" for fid in wanted])
        url = f"{self.hermes_url}?{query_params}"

        ssl_context = ssl.create_default_context(cafile=certifi.where())
        connector = aiohttp.TCPConnector(ssl=ssl_context)

        try:
            async with aiohttp.ClientSession(connector=connector) as session:
                async with session.get(
                    url, timeout=aiohttp.ClientTimeout(total=self.timeout)
                ) as response:
                    if response.status != 200:
                        logger.error(
                            "Error fetching prices from Pyth: HTTP %s", response.status
                        )
                        return rounds

                    data = await response.json()

                    for item in data.get("parsed", []):
                        feed_id = _normalize_id(item.get("id", ""))
                        if feed_id not in wanted:
                            continue
                        price_data = item.get("price", {})
                        rounds[wanted[feed_id]] = PriceRound(
                            price=int(price_data.get("price", 0)),
                            expo=int(price_data.get("expo", 0)),
                            publish_time=int(price_data.get("publish_time", 0)),
                        )

                    for fid, rnd in sorted(rounds.items()):
                        logger.debug("Pyth %s: %d × 10^%d", fid, rnd.price, rnd.expo)

        except Exception as e:
            logger.error("Error fetching prices from Pyth: %s", e)

        return rounds

    async def latest_price(self, feed_id: str) -> PriceRound:
        """Return the latest round for ``feed_id``.

        Raises:
            PriceUnavailable: if Hermes did not return the feed.
        """
        rounds = await self.fetch_rounds([feed_id])
        if feed_id not in rounds:
            raise PriceUnavailable(feed_id)
        return rounds[feed_id]
