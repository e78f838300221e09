"""
Allowance Registry

Tracks how much each spender may move out of each owner's balance.
"""

from typing import Dict, Tuple

from .account import AccountId, checked_sub, validate_balance
from .errors import InsufficientApproval
from .events import ApprovalEvent
from .storage import StorageInterface


ALLOWANCES_TABLE = "allowances"


def _pair_key(owner: AccountId, spender: AccountId) -> str:
    return f"{owner.to_hex()}:{spender.to_hex()}"


class AllowanceRegistry:
    """(owner, spender) -> approved amount; unset pairs read as zero"""

    def __init__(self, storage: StorageInterface):
        self.storage = storage

    def allowance(self, owner: AccountId, spender: AccountId) -> int:
        record = self.storage.get(ALLOWANCES_TABLE, _pair_key(owner, spender))
        if record is None:
            return 0
        return int(record["value"])

    def approve(self, owner: AccountId, spender: AccountId, value: int) -> ApprovalEvent:
        """Replace the allowance with value (never adds to the previous one)"""
        validate_balance(value)
        self._write(owner, spender, value)
        return ApprovalEvent(owner=owner, spender=spender, value=value)

    def consume(self, owner: AccountId, spender: AccountId, value: int) -> None:
        """
        Spend part of an allowance. No event is produced.

        Raises:
            InsufficientApproval: If the allowance is below value
        """
        validate_balance(value)
        current = self.allowance(owner, spender)
        if current < value:
            raise InsufficientApproval(
                f"Spender {spender.short()} may move {current} from {owner.short()}, needs {value}",
                requested=value, available=current
            )
        self._write(owner, spender, checked_sub(current, value))

    def allowances(self) -> Dict[Tuple[AccountId, AccountId], int]:
        return {
            (AccountId.from_hex(record["owner"]), AccountId.from_hex(record["spender"])): int(record["value"])
            for _, record in self.storage.items(ALLOWANCES_TABLE)
        }

    def _write(self, owner: AccountId, spender: AccountId, value: int) -> None:
        self.storage.put(ALLOWANCES_TABLE, _pair_key(owner, spender), {
            "owner": owner.to_hex(),
            "spender": spender.to_hex(),
            "value": str(value)
        })
