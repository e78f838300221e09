"""
Account and Balance Primitives

Account identifiers are opaque 32-byte values. Balances are unsigned 128-bit
integers; every arithmetic step on them is checked so that a wraparound can
never silently break the conservation of the total supply.
"""

from dataclasses import dataclass
from typing import Dict, Union

from .errors import BalanceOverflow


ACCOUNT_ID_LENGTH = 32

# Balances are u128 values
MAX_BALANCE = 2 ** 128 - 1


@dataclass(frozen=True, order=True)
class AccountId:
    """
    Opaque fixed-size account identifier (conceptually a 32-byte public key)
    Only equality, ordering and hashing are meaningful
    """
    raw: bytes

    def __post_init__(self):
        if not isinstance(self.raw, (bytes, bytearray)):
            raise TypeError(f"AccountId requires bytes, got {type(self.raw).__name__}")
        if len(self.raw) != ACCOUNT_ID_LENGTH:
            raise ValueError(
                f"AccountId must be {ACCOUNT_ID_LENGTH} bytes, got {len(self.raw)}"
            )
        # Normalize bytearray input so the value stays hashable
        object.__setattr__(self, "raw", bytes(self.raw))

    @classmethod
    def from_hex(cls, value: str) -> 'AccountId':
        """Parse a hex string, with or without a 0x prefix"""
        text = value.strip()
        if text[:2].lower() == "0x":
            text = text[2:]
        try:
            raw = bytes.fromhex(text)
        except ValueError:
            raise ValueError(f"Invalid account id: {value!r}")
        return cls(raw)

    @classmethod
    def repeat(cls, byte: int) -> 'AccountId':
        """Account made of a single repeated byte, e.g. 0x01 * 32"""
        return cls(bytes([byte]) * ACCOUNT_ID_LENGTH)

    @classmethod
    def coerce(cls, value: Union['AccountId', bytes, str]) -> 'AccountId':
        """Accept an AccountId, its raw bytes or its hex form"""
        if isinstance(value, AccountId):
            return value
        if isinstance(value, (bytes, bytearray)):
            return cls(bytes(value))
        if isinstance(value, str):
            return cls.from_hex(value)
        raise TypeError(f"Cannot interpret {type(value).__name__} as an account id")

    def to_hex(self) -> str:
        return "0x" + self.raw.hex()

    def short(self) -> str:
        """Abbreviated form for log lines"""
        hex_value = self.raw.hex()
        return f"0x{hex_value[:6]}..{hex_value[-4:]}"

    def __str__(self) -> str:
        return self.to_hex()

    def __repr__(self) -> str:
        return f"AccountId({self.short()})"


def validate_balance(value: int, name: str = "value") -> int:
    """
    Ensure a value is a valid u128 balance

    Raises:
        TypeError: If value is not an integer
        ValueError: If value is negative or exceeds MAX_BALANCE
    """
    # bool is an int subclass but never a meaningful amount
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{name} must be an integer, got {type(value).__name__}")
    if value < 0:
        raise ValueError(f"{name} must not be negative")
    if value > MAX_BALANCE:
        raise ValueError(f"{name} exceeds the maximum balance of 2**128 - 1")
    return value


def checked_add(left: int, right: int) -> int:
    """Add two balances, raising BalanceOverflow past MAX_BALANCE"""
    result = left + right
    if result > MAX_BALANCE:
        raise BalanceOverflow(f"balance overflow: {left} + {right}")
    return result


def checked_sub(left: int, right: int) -> int:
    """Subtract two balances, raising BalanceOverflow below zero"""
    if right > left:
        raise BalanceOverflow(f"balance underflow: {left} - {right}")
    return left - right


def default_accounts() -> Dict[str, AccountId]:
    """
    Well-known development accounts

    Alice owns the initial supply in the default configuration; the others
    are handy counterparties for demos and tests.
    """
    names = ["alice", "bob", "charlie", "django", "eve", "frank"]
    return {name: AccountId.repeat(index + 1) for index, name in enumerate(names)}
