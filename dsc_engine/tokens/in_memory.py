"""In-memory fungible token used by simulations and tests."""
from __future__ import annotations

import logging

logger = logging.getLogger(__name__)


class InMemoryToken:
    """Balance-table token.

    ``transfer`` and ``burn`` act on the custodian's balance, the account
    that calls the token (the engine). Failures are reported by returning
    ``False``; the ``fail_*`` switches force that outcome.
    """

    def __init__(self, symbol: str, custodian: str = "dsc-engine") -> None:
        self.symbol = symbol
        self.custodian = custodian
        self.total_supply = 0
        self._balances: dict[str, int] = {}

        self.fail_transfers = False
        self.fail_mints = False

    async def balance_of(self, account: str) -> int:
        return self._balances.get(account, 0)

    def _move(self, sender: str, recipient: str, amount: int) -> bool:
        if self.fail_transfers or amount < 0:
            return False
        balance = self._balances.get(sender, 0)
        if amount > balance:
            logger.debug(
                "%s: %s holds %d, cannot send %d", self.symbol, sender, balance, amount
            )
            return False
        self._balances[sender] = balance - amount
        self._balances[recipient] = self._balances.get(recipient, 0) + amount
        return True

    async def transfer_from(self, owner: str, recipient: str, amount: int) -> bool:
        return self._move(owner, recipient, amount)

    async def transfer(self, recipient: str, amount: int) -> bool:
        return self._move(self.custodian, recipient, amount)

    async def mint(self, to: str, amount: int) -> bool:
        if self.fail_mints or amount <= 0:
            return False
        self._balances[to] = self._balances.get(to, 0) + amount
        self.total_supply += amount
        return True

    async def burn(self, amount: int) -> None:
        balance = self._balances.get(self.custodian, 0)
        if amount > balance:
            raise ValueError(
                f"{self.symbol}: cannot burn {amount}, custodian holds {balance}"
            )
        self._balances[self.custodian] = balance - amount
        self.total_supply -= amount
