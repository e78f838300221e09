"""
Balance Ledger

Owns the account -> balance map and the total supply. The sum of all
balances equals the total supply between calls; debit_credit is the only
way value moves, and it validates completely before writing anything.
"""

from typing import Dict, Tuple

from .account import AccountId, checked_add, checked_sub, validate_balance
from .errors import InsufficientBalance
from .events import TransferEvent
from .storage import StorageInterface


BALANCES_TABLE = "balances"
METADATA_TABLE = "token_metadata"
TOTAL_SUPPLY_KEY = "total_supply"


class Ledger:
    """
    Balance store backed by a StorageInterface

    Accounts without an entry read as zero. Entries are written only for
    accounts that have received a balance, including ones later drained to
    zero, which keeps the write pattern identical for every transfer.
    """

    def __init__(self, storage: StorageInterface):
        self.storage = storage

    @classmethod
    def construct(cls, storage: StorageInterface, initial_supply: int,
                  minter: AccountId) -> Tuple['Ledger', TransferEvent]:
        """
        Create the ledger with the entire supply owned by the minter

        Returns:
            The ledger and the mint Transfer event (from_account=None)

        Raises:
            ValueError: If the storage already holds a deployed ledger
        """
        validate_balance(initial_supply, "initial_supply")
        if cls.is_deployed(storage):
            raise ValueError("A token ledger is already deployed in this storage")

        ledger = cls(storage)
        with storage.atomic():
            storage.put(METADATA_TABLE, TOTAL_SUPPLY_KEY, {"value": str(initial_supply)})
            ledger._write_balance(minter, initial_supply)

        return ledger, TransferEvent(from_account=None, to_account=minter, value=initial_supply)

    @staticmethod
    def is_deployed(storage: StorageInterface) -> bool:
        return storage.exists(METADATA_TABLE, TOTAL_SUPPLY_KEY)

    def total_supply(self) -> int:
        record = self.storage.get(METADATA_TABLE, TOTAL_SUPPLY_KEY)
        if record is None:
            raise LookupError("No token ledger is deployed in this storage")
        return int(record["value"])

    def balance_of(self, account: AccountId) -> int:
        record = self.storage.get(BALANCES_TABLE, account.to_hex())
        if record is None:
            return 0
        return int(record["balance"])

    def debit_credit(self, from_account: AccountId, to_account: AccountId,
                     value: int) -> TransferEvent:
        """
        Move value from one account to another

        The recipient's balance is read after the sender's debit, so a
        self-transfer leaves the balance unchanged.

        Raises:
            InsufficientBalance: If from_account holds less than value
            BalanceOverflow: If the credit would exceed the u128 range
        """
        validate_balance(value)
        from_balance = self.balance_of(from_account)
        if from_balance < value:
            raise InsufficientBalance(
                f"Account {from_account.short()} has {from_balance}, needs {value}",
                requested=value, available=from_balance
            )

        new_from_balance = checked_sub(from_balance, value)
        # Compute the credit before any write so an overflow leaves no trace
        to_balance = new_from_balance if to_account == from_account else self.balance_of(to_account)
        new_to_balance = checked_add(to_balance, value)

        with self.storage.atomic():
            self._write_balance(from_account, new_from_balance)
            self._write_balance(to_account, new_to_balance)

        return TransferEvent(from_account=from_account, to_account=to_account, value=value)

    def balances(self) -> Dict[AccountId, int]:
        """Snapshot of every stored balance"""
        return {
            AccountId.from_hex(key): int(record["balance"])
            for key, record in self.storage.items(BALANCES_TABLE)
        }

    def circulating_total(self) -> int:
        """Sum of stored balances; equals total_supply() whenever no call is running"""
        return sum(self.balances().values())

    def _write_balance(self, account: AccountId, balance: int) -> None:
        self.storage.put(BALANCES_TABLE, account.to_hex(), {
            "account": account.to_hex(),
            "balance": str(balance)
        })
