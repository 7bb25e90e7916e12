"""Approved collateral assets and the price feed backing each one."""
from __future__ import annotations

import logging
from collections.abc import Sequence
from types import MappingProxyType

from .config import CollateralConfig
from .constants import MAX_COLLATERAL_ASSETS
from .errors import LengthMismatch, UnsupportedToken

logger = logging.getLogger(__name__)


class CollateralRegistry:
    """Immutable asset → feed mapping fixed at construction.

    Assets keep their registration order, which is also the order used when
    summing an account's collateral value.
    """

    def __init__(self, asset_ids: Sequence[str], feed_ids: Sequence[str]) -> None:
        if len(asset_ids) != len(feed_ids):
            raise LengthMismatch(len(asset_ids), len(feed_ids))

        feeds: dict[str, str] = {}
        for asset_id, feed_id in zip(asset_ids, feed_ids):
            # Duplicates: last write wins
            feeds[asset_id] = feed_id

        if len(feeds) > MAX_COLLATERAL_ASSETS:
            raise ValueError(
                f"At most {MAX_COLLATERAL_ASSETS} collateral assets are supported"
            )

        self._feeds = MappingProxyType(feeds)
        self._assets = tuple(feeds)
        logger.debug("Collateral registry: %s", dict(self._feeds))

    @classmethod
    def from_config(cls, collateral: Sequence[CollateralConfig]) -> CollateralRegistry:
        return cls([c.asset for c in collateral], [c.feed_id for c in collateral])

    @property
    def assets(self) -> tuple[str, ...]:
        return self._assets

    def is_allowed(self, asset_id: str) -> bool:
        return asset_id in self._feeds

    def feed_for(self, asset_id: str) -> str:
        """Return the feed id backing ``asset_id``.

        Raises:
            UnsupportedToken: if the asset was never registered.
        """
        try:
            return self._feeds[asset_id]
        except KeyError:
            raise UnsupportedToken(asset_id) from None

    def __len__(self) -> int:
        return len(self._assets)

    def __contains__(self, asset_id: object) -> bool:
        return asset_id in self._feeds
