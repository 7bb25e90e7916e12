"""Token protocols — collateral assets and the DSC synthetic."""
from typing import Protocol


class FungibleToken(Protocol):
    """Abstract interface for a fungible asset.

    Transfers report failure by returning ``False``; callers must branch on
    the result.

    The engine assumes every account has approved it to pull any amount
    with ``transfer_from``. Rollback relies on this to reclaim tokens it
    already paid out; without that approval the reclaim fails, is logged,
    and the payout stands.
    """

    async def transfer_from(self, owner: str, recipient: str, amount: int) -> bool: ...

    async def transfer(self, recipient: str, amount: int) -> bool: ...

    async def balance_of(self, account: str) -> int: ...


class MintableToken(FungibleToken, Protocol):
    """Fungible token whose supply the engine controls (DSC)."""

    async def mint(self, to: str, amount: int) -> bool: ...

    async def burn(self, amount: int) -> None: ...
