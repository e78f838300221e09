"""
Tests for account identifiers and checked balance arithmetic
"""

import pytest

from token_ledger.account import (
    AccountId, MAX_BALANCE, checked_add, checked_sub, default_accounts, validate_balance
)
from token_ledger.errors import BalanceOverflow


class TestAccountId:
    """Test AccountId construction and parsing"""

    def test_requires_32_bytes(self):
        """Test that ids of the wrong length are rejected"""
        with pytest.raises(ValueError, match="32 bytes"):
            AccountId(b"\x01" * 31)

    def test_requires_bytes(self):
        with pytest.raises(TypeError):
            AccountId("01" * 32)

    def test_hex_round_trip(self):
        """Test hex parsing with and without 0x prefix"""
        account = AccountId.repeat(0xAB)
        assert account.to_hex() == "0x" + "ab" * 32
        assert AccountId.from_hex(account.to_hex()) == account
        assert AccountId.from_hex("AB" * 32) == account

    def test_invalid_hex(self):
        with pytest.raises(ValueError, match="Invalid account id"):
            AccountId.from_hex("0xnothex")

    def test_equality_and_hash(self):
        """Test ids work as dictionary keys"""
        first = AccountId(bytearray(b"\x07" * 32))
        second = AccountId.repeat(7)
        assert first == second
        assert {first: 1}[second] == 1

    def test_coerce(self):
        account = AccountId.repeat(3)
        assert AccountId.coerce(account) is account
        assert AccountId.coerce(b"\x03" * 32) == account
        assert AccountId.coerce("0x" + "03" * 32) == account
        with pytest.raises(TypeError):
            AccountId.coerce(3)

    def test_default_accounts(self):
        """Test the well-known development accounts"""
        accounts = default_accounts()
        assert accounts["alice"] == AccountId(b"\x01" * 32)
        assert accounts["bob"] == AccountId(b"\x02" * 32)
        assert accounts["eve"] == AccountId(b"\x05" * 32)
        assert len(set(accounts.values())) == 6


class TestBalanceArithmetic:
    """Test u128 validation and checked math"""

    def test_validate_balance_bounds(self):
        assert validate_balance(0) == 0
        assert validate_balance(MAX_BALANCE) == MAX_BALANCE
        with pytest.raises(ValueError):
            validate_balance(-1)
        with pytest.raises(ValueError):
            validate_balance(MAX_BALANCE + 1)

    def test_validate_balance_types(self):
        with pytest.raises(TypeError):
            validate_balance(1.5)
        with pytest.raises(TypeError):
            validate_balance(True)
        with pytest.raises(TypeError):
            validate_balance("10")

    def test_checked_add(self):
        assert checked_add(1, 2) == 3
        assert checked_add(MAX_BALANCE - 1, 1) == MAX_BALANCE
        with pytest.raises(BalanceOverflow):
            checked_add(MAX_BALANCE, 1)

    def test_checked_sub(self):
        assert checked_sub(5, 5) == 0
        with pytest.raises(BalanceOverflow):
            checked_sub(4, 5)

    def test_overflow_is_not_a_ledger_error(self):
        """Overflow is a contract violation, not an ordinary failure"""
        from token_ledger.errors import LedgerError
        assert issubclass(BalanceOverflow, ArithmeticError)
        assert not issubclass(BalanceOverflow, LedgerError)
