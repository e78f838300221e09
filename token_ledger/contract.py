"""
Token Contract

Public face of one fungible token: construction, the read-only getters and
the three mutating operations, all against an explicit CallContext.
"""

from typing import Tuple

from .account import AccountId
from .allowances import AllowanceRegistry
from .engine import CallContext, TransferEngine
from .events import Receipt
from .ledger import Ledger
from .storage import StorageInterface


class TokenContract:
    """A deployed token over a storage backend"""

    def __init__(self, ledger: Ledger, allowances: AllowanceRegistry):
        self.ledger = ledger
        self.allowance_registry = allowances
        self.engine = TransferEngine(ledger, allowances)

    @classmethod
    def deploy(cls, storage: StorageInterface, ctx: CallContext,
               initial_supply: int) -> Tuple['TokenContract', Receipt]:
        """Construct a new token, minting initial_supply to the caller"""
        ledger, mint_event = Ledger.construct(storage, initial_supply, ctx.caller)
        return cls(ledger, AllowanceRegistry(storage)), Receipt([mint_event])

    @classmethod
    def attach(cls, storage: StorageInterface) -> 'TokenContract':
        """
        Open a token previously deployed into storage

        Raises:
            LookupError: If storage holds no deployed token
        """
        if not Ledger.is_deployed(storage):
            raise LookupError("No token ledger is deployed in this storage")
        return cls(Ledger(storage), AllowanceRegistry(storage))

    def total_supply(self) -> int:
        return self.ledger.total_supply()

    def balance_of(self, account: AccountId) -> int:
        return self.ledger.balance_of(AccountId.coerce(account))

    def allowance(self, owner: AccountId, spender: AccountId) -> int:
        return self.allowance_registry.allowance(AccountId.coerce(owner), AccountId.coerce(spender))

    def transfer(self, ctx: CallContext, to: AccountId, value: int) -> Receipt:
        return self.engine.transfer(ctx, AccountId.coerce(to), value)

    def approve(self, ctx: CallContext, spender: AccountId, value: int) -> Receipt:
        return self.engine.approve(ctx, AccountId.coerce(spender), value)

    def transfer_from(self, ctx: CallContext, from_account: AccountId,
                      to: AccountId, value: int) -> Receipt:
        return self.engine.transfer_from(
            ctx, AccountId.coerce(from_account), AccountId.coerce(to), value
        )
