"""
Test suite for the balance ledger

Tests construction, default reads and the debit/credit primitive.
CRITICAL: Validates that the sum of balances always equals the total supply.
"""

import pytest

from token_ledger.account import AccountId, MAX_BALANCE, default_accounts
from token_ledger.errors import BalanceOverflow, InsufficientBalance
from token_ledger.events import TransferEvent
from token_ledger.ledger import BALANCES_TABLE, Ledger
from token_ledger.storage import InMemoryStorage


ACCOUNTS = default_accounts()
ALICE = ACCOUNTS["alice"]
BOB = ACCOUNTS["bob"]
EVE = ACCOUNTS["eve"]


@pytest.fixture
def storage():
    return InMemoryStorage()


@pytest.fixture
def ledger(storage):
    ledger, _ = Ledger.construct(storage, 100, ALICE)
    return ledger


class TestConstruction:
    """Test ledger construction"""

    def test_construct_assigns_supply_to_minter(self, storage):
        """Test that the whole supply belongs to the minter"""
        ledger, event = Ledger.construct(storage, 100, ALICE)

        assert ledger.total_supply() == 100
        assert ledger.balance_of(ALICE) == 100
        assert ledger.balance_of(BOB) == 0
        assert event == TransferEvent(from_account=None, to_account=ALICE, value=100)

    def test_zero_supply(self, storage):
        ledger, event = Ledger.construct(storage, 0, ALICE)
        assert ledger.total_supply() == 0
        assert ledger.circulating_total() == 0
        assert event.value == 0

    def test_max_supply(self, storage):
        ledger, _ = Ledger.construct(storage, MAX_BALANCE, ALICE)
        assert ledger.balance_of(ALICE) == MAX_BALANCE

    def test_cannot_construct_twice(self, storage):
        Ledger.construct(storage, 100, ALICE)
        with pytest.raises(ValueError, match="already deployed"):
            Ledger.construct(storage, 50, BOB)

    def test_invalid_supply(self, storage):
        with pytest.raises(ValueError):
            Ledger.construct(storage, -1, ALICE)
        assert not Ledger.is_deployed(storage)

    def test_total_supply_without_deployment(self, storage):
        with pytest.raises(LookupError):
            Ledger(storage).total_supply()


class TestDebitCredit:
    """Test the value-moving primitive"""

    def test_moves_value(self, ledger):
        event = ledger.debit_credit(ALICE, BOB, 10)

        assert ledger.balance_of(ALICE) == 90
        assert ledger.balance_of(BOB) == 10
        assert event == TransferEvent(from_account=ALICE, to_account=BOB, value=10)

    def test_full_balance(self, ledger):
        ledger.debit_credit(ALICE, BOB, 100)
        assert ledger.balance_of(ALICE) == 0
        assert ledger.balance_of(BOB) == 100

    def test_zero_value_from_empty_account(self, ledger):
        """Moving zero is always allowed, even from an unknown account"""
        event = ledger.debit_credit(EVE, BOB, 0)
        assert event.value == 0
        assert ledger.balance_of(EVE) == 0
        assert ledger.balance_of(BOB) == 0

    def test_insufficient_balance(self, ledger, storage):
        """Test that an over-debit fails without touching storage"""
        before = storage.dump()

        with pytest.raises(InsufficientBalance) as exc_info:
            ledger.debit_credit(BOB, EVE, 1)

        assert exc_info.value.requested == 1
        assert exc_info.value.available == 0
        assert storage.dump() == before

    def test_self_transfer_is_neutral(self, ledger):
        """Test that from == to leaves the balance unchanged"""
        ledger.debit_credit(ALICE, ALICE, 60)
        assert ledger.balance_of(ALICE) == 100
        assert ledger.circulating_total() == 100

    def test_self_transfer_over_balance_fails(self, ledger):
        with pytest.raises(InsufficientBalance):
            ledger.debit_credit(ALICE, ALICE, 101)

    def test_credit_overflow_leaves_no_trace(self, storage):
        """Overflow is detected before either balance is written"""
        ledger, _ = Ledger.construct(storage, 10, ALICE)
        # Corrupt state directly; unreachable through the public operations
        storage.put(BALANCES_TABLE, BOB.to_hex(), {"account": BOB.to_hex(), "balance": str(MAX_BALANCE)})

        with pytest.raises(BalanceOverflow):
            ledger.debit_credit(ALICE, BOB, 1)

        assert ledger.balance_of(ALICE) == 10
        assert ledger.balance_of(BOB) == MAX_BALANCE

    def test_rejects_negative_value(self, ledger):
        with pytest.raises(ValueError):
            ledger.debit_credit(ALICE, BOB, -5)
        assert ledger.balance_of(ALICE) == 100

    def test_balances_snapshot(self, ledger):
        ledger.debit_credit(ALICE, BOB, 30)
        assert ledger.balances() == {ALICE: 70, BOB: 30}
        assert ledger.circulating_total() == ledger.total_supply()

    def test_unknown_account_reads_zero(self, ledger):
        assert ledger.balance_of(AccountId.repeat(0xEE)) == 0
