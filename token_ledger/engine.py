"""
Transfer Engine

Orchestrates the state-changing token operations over the Ledger and the
AllowanceRegistry. Every operation either applies completely and returns a
Receipt with its events, or raises a LedgerError having changed nothing.
"""

from dataclasses import dataclass
from typing import Optional

from .account import AccountId, validate_balance
from .allowances import AllowanceRegistry
from .errors import InsufficientApproval, LedgerError
from .events import Receipt
from .ledger import Ledger
from .logging_config import get_logger, log_action


@dataclass(frozen=True)
class CallContext:
    """Identity of the account invoking an operation, resolved by the host"""
    caller: AccountId
    correlation_id: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "caller", AccountId.coerce(self.caller))


class TransferEngine:
    """Validates and applies transfer, approve and transfer_from"""

    def __init__(self, ledger: Ledger, allowances: AllowanceRegistry):
        self.ledger = ledger
        self.allowances = allowances
        self.storage = ledger.storage
        self.logger = get_logger("token_ledger.engine")

    def transfer(self, ctx: CallContext, to: AccountId, value: int) -> Receipt:
        """
        Move value from the caller to another account

        Raises:
            InsufficientBalance: If the caller holds less than value
        """
        try:
            event = self.ledger.debit_credit(ctx.caller, to, value)
        except LedgerError as e:
            self._log_rejected(ctx, "transfer", e)
            raise

        self._log_applied(ctx, "transfer", {"to": to.to_hex(), "value": str(value)})
        return Receipt([event])

    def approve(self, ctx: CallContext, spender: AccountId, value: int) -> Receipt:
        """Set spender's allowance over the caller's balance to exactly value"""
        event = self.allowances.approve(ctx.caller, spender, value)
        self._log_applied(ctx, "approve", {"spender": spender.to_hex(), "value": str(value)})
        return Receipt([event])

    def transfer_from(self, ctx: CallContext, from_account: AccountId,
                      to: AccountId, value: int) -> Receipt:
        """
        Move value out of from_account on its owner's behalf

        The allowance is checked first but only consumed once the balance
        move has succeeded, so a failed debit leaves the allowance intact.

        Raises:
            InsufficientApproval: If the caller's allowance is below value
            InsufficientBalance: If from_account holds less than value
        """
        validate_balance(value)
        try:
            allowance = self.allowances.allowance(from_account, ctx.caller)
            if allowance < value:
                raise InsufficientApproval(
                    f"Spender {ctx.caller.short()} may move {allowance} from {from_account.short()}, needs {value}",
                    requested=value, available=allowance
                )

            with self.storage.atomic():
                event = self.ledger.debit_credit(from_account, to, value)
                self.allowances.consume(from_account, ctx.caller, value)
        except LedgerError as e:
            self._log_rejected(ctx, "transfer_from", e)
            raise

        self._log_applied(ctx, "transfer_from", {
            "from": from_account.to_hex(),
            "to": to.to_hex(),
            "value": str(value)
        })
        return Receipt([event])

    def _log_applied(self, ctx: CallContext, action: str, extra: dict) -> None:
        log_action(
            self.logger, "info", f"{action} applied",
            caller=ctx.caller.to_hex(), action=action,
            correlation_id=ctx.correlation_id, extra=extra
        )

    def _log_rejected(self, ctx: CallContext, action: str, error: LedgerError) -> None:
        log_action(
            self.logger, "warning", f"{action} rejected: {error.code}",
            caller=ctx.caller.to_hex(), action=action,
            correlation_id=ctx.correlation_id,
            extra={"requested": str(error.requested), "available": str(error.available)}
        )
