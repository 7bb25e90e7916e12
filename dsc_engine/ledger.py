"""Account ledger — collateral per (user, asset) and minted DSC per user."""
from __future__ import annotations

from .errors import AmountMustBePositive, IllegalState
from .models import LedgerSnapshot


def _require_positive(amount: int) -> None:
    if amount <= 0:
        raise AmountMustBePositive(amount)


class AccountLedger:
    """Single source of truth for solvency.

    Entries are created lazily on first credit and never removed; an account
    that has withdrawn and repaid everything simply holds zeros. Debits that
    would go below zero raise :class:`IllegalState` and leave the entry as it
    was.
    """

    def __init__(self) -> None:
        self._collateral: dict[tuple[str, str], int] = {}
        self._minted: dict[str, int] = {}

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def collateral_of(self, user: str, asset_id: str) -> int:
        return self._collateral.get((user, asset_id), 0)

    def minted_of(self, user: str) -> int:
        return self._minted.get(user, 0)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def credit_collateral(self, user: str, asset_id: str, amount: int) -> int:
        _require_positive(amount)
        key = (user, asset_id)
        self._collateral[key] = self._collateral.get(key, 0) + amount
        return self._collateral[key]

    def debit_collateral(self, user: str, asset_id: str, amount: int) -> int:
        _require_positive(amount)
        key = (user, asset_id)
        balance = self._collateral.get(key, 0)
        if amount > balance:
            raise IllegalState(
                f"'{user}' holds {balance} of '{asset_id}', cannot remove {amount}"
            )
        self._collateral[key] = balance - amount
        return self._collateral[key]

    def increase_debt(self, user: str, amount: int) -> int:
        _require_positive(amount)
        self._minted[user] = self._minted.get(user, 0) + amount
        return self._minted[user]

    def decrease_debt(self, user: str, amount: int) -> int:
        _require_positive(amount)
        balance = self._minted.get(user, 0)
        if amount > balance:
            raise IllegalState(f"'{user}' owes {balance} DSC, cannot burn {amount}")
        self._minted[user] = balance - amount
        return self._minted[user]

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------

    def snapshot(self) -> LedgerSnapshot:
        return LedgerSnapshot(collateral=dict(self._collateral), minted=dict(self._minted))

    def restore(self, snapshot: LedgerSnapshot) -> None:
        self._collateral = dict(snapshot.collateral)
        self._minted = dict(snapshot.minted)
