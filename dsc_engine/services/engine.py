"""Position engine — deposit, mint, redeem, burn and liquidate.

Every mutating operation validates its arguments, applies its ledger effects,
checks solvency against the resulting ledger, and only then moves tokens.
Operations are atomic: on any error the ledger is restored from the snapshot
taken at entry, and token movements already made are reversed in the
opposite order. Each feed is read once per operation, so every check in
that operation sees the same prices.

One engine-wide lock covers all mutating entry points. It is never waited
on; a call that finds it held (a token callback re-entering the engine, or
another task arriving while an operation awaits a transfer) raises
:class:`ReentrantCall`. Read-only views are never locked; during an
operation they report the ledger as it stood before it began.
"""
from __future__ import annotations

import contextlib
import functools
import logging
import threading
from collections.abc import AsyncIterator, Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, TypeVar

from ..config import RiskConfig
from ..constants import format_fixed
from ..errors import (
    AmountMustBePositive,
    HealthFactorBroken,
    HealthFactorNotImproved,
    HealthFactorOK,
    MintFailed,
    ReentrantCall,
    TransferFailed,
    UnsupportedToken,
)
from ..interfaces.token import FungibleToken, MintableToken
from ..ledger import AccountLedger
from ..models import AccountInformation, LedgerSnapshot
from ..oracles.adapter import PriceOracleAdapter
from ..registry import CollateralRegistry
from .health import HealthFactorCalculator

logger = logging.getLogger(__name__)

Compensation = Callable[[], Awaitable[Any]]
F = TypeVar("F", bound=Callable[..., Awaitable[Any]])


def _require_positive(amount: int) -> None:
    if amount <= 0:
        raise AmountMustBePositive(amount)


@dataclass
class _Journal:
    """Undo log for the operation in flight."""

    snapshot: LedgerSnapshot
    compensations: list[tuple[str, Compensation]] = field(default_factory=list)


def non_reentrant(method: F) -> F:
    """Run ``method`` as one atomic, exclusive engine operation."""

    @functools.wraps(method)
    async def wrapper(self: PositionEngine, *args: Any, **kwargs: Any) -> Any:
        if not self._entry_lock.acquire(blocking=False):
            raise ReentrantCall(method.__name__)
        try:
            async with self._atomic(method.__name__):
                return await method(self, *args, **kwargs)
        finally:
            self._entry_lock.release()

    return wrapper  # type: ignore[return-value]


class PositionEngine:
    """Collateralized-debt engine for the DSC synthetic."""

    def __init__(
        self,
        registry: CollateralRegistry,
        oracle: PriceOracleAdapter,
        dsc: MintableToken,
        collateral_tokens: Mapping[str, FungibleToken],
        risk: RiskConfig | None = None,
        address: str = "dsc-engine",
        ledger: AccountLedger | None = None,
    ) -> None:
        for asset_id in collateral_tokens:
            if not registry.is_allowed(asset_id):
                raise UnsupportedToken(asset_id)
        missing = [a for a in registry.assets if a not in collateral_tokens]
        if missing:
            raise ValueError(f"No token bound for collateral {', '.join(missing)}")

        self.address = address
        self._registry = registry
        self._oracle = oracle
        self._dsc = dsc
        self._tokens = dict(collateral_tokens)
        self._risk = risk or RiskConfig()
        self._ledger = ledger or AccountLedger()
        self._health = HealthFactorCalculator(self._ledger, registry, oracle, self._risk)

        self._entry_lock = threading.Lock()
        self._journal: _Journal | None = None

    # ------------------------------------------------------------------
    # Atomicity
    # ------------------------------------------------------------------

    @contextlib.asynccontextmanager
    async def _atomic(self, operation: str) -> AsyncIterator[_Journal]:
        journal = _Journal(snapshot=self._ledger.snapshot())
        self._journal = journal
        try:
            with self._oracle.pinned_prices():
                yield journal
        except BaseException as e:
            self._ledger.restore(journal.snapshot)
            await self._unwind(journal)
            logger.warning("%s rolled back: %s", operation, e)
            raise
        finally:
            self._journal = None

    async def _unwind(self, journal: _Journal) -> None:
        for description, action in reversed(journal.compensations):
            try:
                ok = await action()
            except Exception as e:
                logger.error("Compensation '%s' raised: %s", description, e)
                continue
            if ok is False:
                logger.error("Compensation '%s' failed", description)

    def _on_rollback(self, description: str, action: Compensation) -> None:
        if self._journal is not None:
            self._journal.compensations.append((description, action))

    # ------------------------------------------------------------------
    # Interactions
    # ------------------------------------------------------------------

    async def _pull(self, token: FungibleToken, symbol: str, owner: str, amount: int) -> None:
        if not await token.transfer_from(owner, self.address, amount):
            raise TransferFailed(f"Could not pull {amount} {symbol} from '{owner}'")
        self._on_rollback(
            f"return {amount} {symbol} to {owner}",
            lambda: token.transfer(owner, amount),
        )

    async def _push(self, token: FungibleToken, symbol: str, recipient: str, amount: int) -> None:
        if not await token.transfer(recipient, amount):
            raise TransferFailed(f"Could not send {amount} {symbol} to '{recipient}'")
        self._on_rollback(
            f"reclaim {amount} {symbol} from {recipient}",
            lambda: token.transfer_from(recipient, self.address, amount),
        )

    async def _mint_to(self, user: str, amount: int) -> None:
        if not await self._dsc.mint(user, amount):
            raise MintFailed(f"DSC mint of {amount} to '{user}' failed")

    async def _burn_from(self, payer: str, amount: int) -> None:
        await self._pull(self._dsc, "DSC", payer, amount)
        await self._dsc.burn(amount)
        self._on_rollback(
            f"re-mint {amount} burned DSC",
            lambda: self._dsc.mint(self.address, amount),
        )

    # ------------------------------------------------------------------
    # Checks and effects
    # ------------------------------------------------------------------

    def _collateral_token(self, asset_id: str) -> FungibleToken:
        if not self._registry.is_allowed(asset_id):
            raise UnsupportedToken(asset_id)
        return self._tokens[asset_id]

    async def _revert_if_health_factor_is_broken(self, user: str) -> None:
        health_factor = await self._health.health_factor(user)
        if health_factor < self._risk.min_health_factor:
            raise HealthFactorBroken(user, health_factor)

    def _debit_collateral(self, user: str, asset_id: str, amount: int) -> FungibleToken:
        _require_positive(amount)
        token = self._collateral_token(asset_id)
        self._ledger.debit_collateral(user, asset_id, amount)
        return token

    def _debit_debt(self, on_behalf_of: str, amount: int) -> None:
        _require_positive(amount)
        self._ledger.decrease_debt(on_behalf_of, amount)

    async def _deposit(self, user: str, asset_id: str, amount: int) -> None:
        _require_positive(amount)
        token = self._collateral_token(asset_id)
        self._ledger.credit_collateral(user, asset_id, amount)
        await self._pull(token, asset_id, user, amount)
        logger.info(
            "Collateral deposited — %s · %s %s", user, format_fixed(amount), asset_id
        )

    async def _mint(self, user: str, amount: int) -> None:
        _require_positive(amount)
        self._ledger.increase_debt(user, amount)
        await self._revert_if_health_factor_is_broken(user)
        await self._mint_to(user, amount)
        logger.info("DSC minted — %s · %s", user, format_fixed(amount))

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    @non_reentrant
    async def deposit_collateral(self, user: str, asset_id: str, amount: int) -> None:
        """Move ``amount`` of ``asset_id`` from ``user`` into engine custody."""
        await self._deposit(user, asset_id, amount)

    @non_reentrant
    async def mint_dsc(self, user: str, amount: int) -> None:
        """Mint DSC to ``user``; the new debt must keep the account healthy."""
        await self._mint(user, amount)

    @non_reentrant
    async def deposit_collateral_and_mint_dsc(
        self, user: str, asset_id: str, collateral_amount: int, mint_amount: int
    ) -> None:
        await self._deposit(user, asset_id, collateral_amount)
        await self._mint(user, mint_amount)

    @non_reentrant
    async def redeem_collateral(self, user: str, asset_id: str, amount: int) -> None:
        """Return ``amount`` of the user's own collateral to them."""
        token = self._debit_collateral(user, asset_id, amount)
        await self._revert_if_health_factor_is_broken(user)
        await self._push(token, asset_id, user, amount)
        logger.info(
            "Collateral redeemed — %s · %s %s", user, format_fixed(amount), asset_id
        )

    @non_reentrant
    async def burn_dsc(self, user: str, amount: int) -> None:
        """Repay ``amount`` of the user's debt with DSC they hold."""
        self._debit_debt(user, amount)
        await self._burn_from(user, amount)
        await self._revert_if_health_factor_is_broken(user)
        logger.info("DSC burned — %s · %s", user, format_fixed(amount))

    @non_reentrant
    async def redeem_collateral_for_dsc(
        self, user: str, asset_id: str, collateral_amount: int, burn_amount: int
    ) -> None:
        """Burn DSC and withdraw collateral in one step.

        The health check runs once, against the state after both effects.
        """
        self._debit_debt(user, burn_amount)
        token = self._debit_collateral(user, asset_id, collateral_amount)
        await self._revert_if_health_factor_is_broken(user)
        await self._burn_from(user, burn_amount)
        await self._push(token, asset_id, user, collateral_amount)
        logger.info(
            "Collateral redeemed for DSC — %s · %s %s · burned %s",
            user,
            format_fixed(collateral_amount),
            asset_id,
            format_fixed(burn_amount),
        )

    @non_reentrant
    async def liquidate(
        self, liquidator: str, user: str, asset_id: str, debt_to_cover: int
    ) -> int:
        """Repay ``debt_to_cover`` of an unhealthy ``user`` for a collateral bonus.

        The liquidator pays in DSC and receives the equivalent amount of
        ``asset_id`` plus the liquidation bonus. Partial liquidation is
        allowed. Returns the collateral amount paid out.

        If the account's collateral is worth less than the debt plus bonus,
        the bonus cannot be funded and the liquidation fails with
        HealthFactorNotImproved or IllegalState.
        """
        _require_positive(debt_to_cover)
        token = self._collateral_token(asset_id)

        starting = await self._health.health_factor(user)
        if starting >= self._risk.min_health_factor:
            raise HealthFactorOK(user, starting)

        debt_in_collateral = await self._oracle.asset_amount_for_usd(asset_id, debt_to_cover)
        bonus = (
            debt_in_collateral
            * self._risk.liquidation_bonus
            // self._risk.bonus_precision
        )
        collateral_to_seize = debt_in_collateral + bonus

        self._debit_collateral(user, asset_id, collateral_to_seize)
        self._debit_debt(user, debt_to_cover)

        ending = await self._health.health_factor(user)
        if ending <= starting:
            raise HealthFactorNotImproved(user, starting, ending)
        await self._revert_if_health_factor_is_broken(liquidator)

        await self._burn_from(liquidator, debt_to_cover)
        await self._push(token, asset_id, liquidator, collateral_to_seize)
        logger.info(
            "Liquidated — %s by %s · covered %s DSC · seized %s %s · HF %s → %s",
            user,
            liquidator,
            format_fixed(debt_to_cover),
            format_fixed(collateral_to_seize),
            asset_id,
            format_fixed(starting),
            format_fixed(ending),
        )
        return collateral_to_seize

    # ------------------------------------------------------------------
    # Read-only projections
    #
    # While an operation is in flight these answer from the ledger as it
    # was when the operation started.
    # ------------------------------------------------------------------

    def _committed_ledger(self) -> AccountLedger:
        journal = self._journal
        if journal is None:
            return self._ledger
        ledger = AccountLedger()
        ledger.restore(journal.snapshot)
        return ledger

    def _committed_health(self) -> HealthFactorCalculator:
        if self._journal is None:
            return self._health
        return HealthFactorCalculator(
            self._committed_ledger(), self._registry, self._oracle, self._risk
        )

    @property
    def risk(self) -> RiskConfig:
        return self._risk

    @property
    def collateral_assets(self) -> tuple[str, ...]:
        return self._registry.assets

    def is_allowed(self, asset_id: str) -> bool:
        return self._registry.is_allowed(asset_id)

    def collateral_token(self, asset_id: str) -> FungibleToken:
        return self._collateral_token(asset_id)

    @property
    def dsc(self) -> MintableToken:
        return self._dsc

    def collateral_balance_of(self, user: str, asset_id: str) -> int:
        return self._committed_ledger().collateral_of(user, asset_id)

    def minted_of(self, user: str) -> int:
        return self._committed_ledger().minted_of(user)

    def ledger_snapshot(self) -> LedgerSnapshot:
        if self._journal is not None:
            return self._journal.snapshot
        return self._ledger.snapshot()

    async def usd_value(self, asset_id: str, amount: int) -> int:
        return await self._oracle.usd_value(asset_id, amount)

    async def asset_amount_for_usd(self, asset_id: str, usd_amount: int) -> int:
        return await self._oracle.asset_amount_for_usd(asset_id, usd_amount)

    async def collateral_value_usd(self, user: str) -> int:
        return await self._committed_health().collateral_value_usd(user)

    async def account_information(self, user: str) -> AccountInformation:
        return await self._committed_health().account_snapshot(user)

    async def health_factor(self, user: str) -> int:
        return await self._committed_health().health_factor(user)

    def calculate_health_factor(self, total_dsc_minted: int, collateral_value_usd: int) -> int:
        return self._health.calculate_health_factor(total_dsc_minted, collateral_value_usd)
