"""
Ledger Errors

Recoverable, caller-visible outcomes derive from LedgerError. Arithmetic
overflow is a contract violation and deliberately sits outside that
hierarchy so hosts do not report it as an ordinary failed call.
"""


class LedgerError(Exception):
    """Base class for expected ledger failures"""

    #: Stable name reported to callers and over the wire
    code = "LedgerError"

    def __init__(self, message: str, requested: int = 0, available: int = 0):
        super().__init__(message)
        self.requested = requested
        self.available = available

    def to_dict(self):
        return {
            "error": self.code,
            "detail": str(self),
            "requested": str(self.requested),
            "available": str(self.available)
        }


class InsufficientBalance(LedgerError):
    """Attempted debit exceeds the source account's balance"""
    code = "InsufficientBalance"


class InsufficientApproval(LedgerError):
    """Attempted delegated transfer exceeds the remaining allowance"""
    code = "InsufficientApproval"


class BalanceOverflow(ArithmeticError):
    """A balance computation left the u128 range"""
