"""Health factor — risk-adjusted collateral value over minted debt."""
from __future__ import annotations

from ..config import RiskConfig
from ..constants import MAX_HEALTH_FACTOR, PRECISION
from ..ledger import AccountLedger
from ..models import AccountInformation, CollateralDetail
from ..oracles.adapter import PriceOracleAdapter
from ..registry import CollateralRegistry


class HealthFactorCalculator:
    def __init__(
        self,
        ledger: AccountLedger,
        registry: CollateralRegistry,
        oracle: PriceOracleAdapter,
        risk: RiskConfig,
    ) -> None:
        self._ledger = ledger
        self._registry = registry
        self._oracle = oracle
        self._risk = risk

    def calculate_health_factor(self, total_dsc_minted: int, collateral_value_usd: int) -> int:
        """Calculate a health factor in 18-decimal fixed point.

        health_factor = (collateral × threshold / precision) × 1e18 / minted

        An account without debt can never be liquidated, so zero debt maps to
        ``MAX_HEALTH_FACTOR`` rather than a division error.
        """
        if total_dsc_minted == 0:
            return MAX_HEALTH_FACTOR
        adjusted = (
            collateral_value_usd
            * self._risk.liquidation_threshold
            // self._risk.liquidation_precision
        )
        return adjusted * PRECISION // total_dsc_minted

    async def collateral_details(self, user: str) -> tuple[CollateralDetail, ...]:
        """Per-asset holdings of ``user`` with their USD value.

        Assets the user does not hold are skipped without querying the feed.
        """
        details: list[CollateralDetail] = []
        for asset_id in self._registry.assets:
            amount = self._ledger.collateral_of(user, asset_id)
            if amount == 0:
                continue
            usd_value = await self._oracle.usd_value(asset_id, amount)
            details.append(CollateralDetail(asset=asset_id, amount=amount, usd_value=usd_value))
        return tuple(details)

    async def collateral_value_usd(self, user: str) -> int:
        details = await self.collateral_details(user)
        return sum(d.usd_value for d in details)

    async def account_snapshot(self, user: str) -> AccountInformation:
        details = await self.collateral_details(user)
        return AccountInformation(
            total_dsc_minted=self._ledger.minted_of(user),
            collateral_value_usd=sum(d.usd_value for d in details),
            collateral=details,
        )

    async def health_factor(self, user: str) -> int:
        minted = self._ledger.minted_of(user)
        if minted == 0:
            return MAX_HEALTH_FACTOR
        collateral_usd = await self.collateral_value_usd(user)
        return self.calculate_health_factor(minted, collateral_usd)

    async def is_healthy(self, user: str) -> bool:
        return await self.health_factor(user) >= self._risk.min_health_factor
