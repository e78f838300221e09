"""
Test suite for the transfer engine

Tests validation order and atomicity of transfer, approve and transfer_from.
"""

import pytest
from unittest.mock import patch

from token_ledger.account import default_accounts
from token_ledger.allowances import AllowanceRegistry
from token_ledger.engine import CallContext, TransferEngine
from token_ledger.errors import InsufficientApproval, InsufficientBalance
from token_ledger.events import ApprovalEvent, TransferEvent
from token_ledger.ledger import Ledger
from token_ledger.storage import InMemoryStorage, SQLiteStorage


ACCOUNTS = default_accounts()
ALICE = ACCOUNTS["alice"]
BOB = ACCOUNTS["bob"]
EVE = ACCOUNTS["eve"]


@pytest.fixture(params=["memory", "sqlite"])
def storage(request):
    backend = InMemoryStorage() if request.param == "memory" else SQLiteStorage(":memory:")
    yield backend
    backend.close()


@pytest.fixture
def engine(storage):
    ledger, _ = Ledger.construct(storage, 100, ALICE)
    return TransferEngine(ledger, AllowanceRegistry(storage))


def as_alice():
    return CallContext(caller=ALICE)


def as_bob():
    return CallContext(caller=BOB)


class TestTransfer:
    """Test direct transfers"""

    def test_transfer(self, engine):
        receipt = engine.transfer(as_alice(), BOB, 10)

        assert engine.ledger.balance_of(ALICE) == 90
        assert engine.ledger.balance_of(BOB) == 10
        assert receipt.events == [TransferEvent(ALICE, BOB, 10)]

    def test_transfer_insufficient_balance(self, engine):
        with pytest.raises(InsufficientBalance):
            engine.transfer(as_bob(), EVE, 10)
        assert engine.ledger.balance_of(ALICE) == 100
        assert engine.ledger.balance_of(EVE) == 0

    def test_transfer_to_self(self, engine):
        receipt = engine.transfer(as_alice(), ALICE, 100)
        assert engine.ledger.balance_of(ALICE) == 100
        assert receipt.events == [TransferEvent(ALICE, ALICE, 100)]


class TestApprove:
    """Test approvals"""

    def test_approve(self, engine):
        receipt = engine.approve(as_alice(), BOB, 10)
        assert engine.allowances.allowance(ALICE, BOB) == 10
        assert receipt.events == [ApprovalEvent(ALICE, BOB, 10)]

    def test_approve_more_than_balance(self, engine):
        """Approvals are not limited by the owner's current balance"""
        engine.approve(as_alice(), BOB, 1000)
        assert engine.allowances.allowance(ALICE, BOB) == 1000


class TestTransferFrom:
    """Test delegated transfers"""

    def test_transfer_from(self, engine):
        engine.approve(as_alice(), BOB, 10)

        receipt = engine.transfer_from(as_bob(), ALICE, EVE, 10)

        assert engine.ledger.balance_of(ALICE) == 90
        assert engine.ledger.balance_of(EVE) == 10
        assert engine.allowances.allowance(ALICE, BOB) == 0
        assert receipt.events == [TransferEvent(ALICE, EVE, 10)]

    def test_partial_use_of_allowance(self, engine):
        engine.approve(as_alice(), BOB, 10)
        engine.transfer_from(as_bob(), ALICE, EVE, 4)
        assert engine.allowances.allowance(ALICE, BOB) == 6

    def test_without_approval(self, engine):
        with pytest.raises(InsufficientApproval):
            engine.transfer_from(as_bob(), ALICE, EVE, 10)
        assert engine.ledger.balance_of(ALICE) == 100

    def test_insufficient_approval_leaves_state(self, engine):
        """Test that exceeding the allowance changes nothing"""
        engine.approve(as_alice(), BOB, 10)

        with pytest.raises(InsufficientApproval):
            engine.transfer_from(as_bob(), ALICE, EVE, 20)

        assert engine.ledger.balance_of(ALICE) == 100
        assert engine.ledger.balance_of(EVE) == 0
        assert engine.allowances.allowance(ALICE, BOB) == 10

    def test_insufficient_balance_keeps_allowance(self, engine):
        """Test that a failed debit does not consume the allowance"""
        engine.approve(as_alice(), BOB, 102)

        with pytest.raises(InsufficientBalance):
            engine.transfer_from(as_bob(), ALICE, EVE, 101)

        assert engine.allowances.allowance(ALICE, BOB) == 102
        assert engine.ledger.balance_of(ALICE) == 100

    def test_approval_checked_before_balance(self, engine):
        """With neither enough allowance nor balance the allowance error wins"""
        with pytest.raises(InsufficientApproval):
            engine.transfer_from(as_bob(), EVE, ALICE, 5)

    def test_allowance_consumed_after_balance_move(self, engine):
        """The allowance is only touched once debit_credit has succeeded"""
        engine.approve(as_alice(), BOB, 10)
        calls = []
        original_debit = engine.ledger.debit_credit
        original_consume = engine.allowances.consume

        def track_debit(*args):
            calls.append("debit_credit")
            return original_debit(*args)

        def track_consume(*args):
            calls.append("consume")
            return original_consume(*args)

        with patch.object(engine.ledger, "debit_credit", side_effect=track_debit), \
                patch.object(engine.allowances, "consume", side_effect=track_consume):
            engine.transfer_from(as_bob(), ALICE, EVE, 5)

        assert calls == ["debit_credit", "consume"]

    def test_failure_after_debit_rolls_back(self, engine):
        """If consuming the allowance fails unexpectedly, the balance move is undone"""
        engine.approve(as_alice(), BOB, 10)

        with patch.object(engine.allowances, "consume", side_effect=RuntimeError("store failed")):
            with pytest.raises(RuntimeError):
                engine.transfer_from(as_bob(), ALICE, EVE, 5)

        assert engine.ledger.balance_of(ALICE) == 100
        assert engine.ledger.balance_of(EVE) == 0
        assert engine.allowances.allowance(ALICE, BOB) == 10

    def test_spender_can_send_to_itself(self, engine):
        engine.approve(as_alice(), BOB, 10)
        engine.transfer_from(as_bob(), ALICE, BOB, 10)
        assert engine.ledger.balance_of(BOB) == 10

    def test_owner_as_spender_needs_approval(self, engine):
        """Even the owner needs an allowance to use transfer_from"""
        with pytest.raises(InsufficientApproval):
            engine.transfer_from(as_alice(), ALICE, BOB, 1)
        engine.approve(as_alice(), ALICE, 1)
        engine.transfer_from(as_alice(), ALICE, BOB, 1)
        assert engine.ledger.balance_of(BOB) == 1
