"""
Ledger Host

Hosts one token contract: resolves the caller for each call, serializes
calls so the ledger only ever sees one at a time, turns ledger errors into
explicit failed outcomes and publishes the events of successful calls.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
import threading
import uuid

from .account import AccountId
from .config import TokenLedgerConfig, get_config
from .contract import TokenContract
from .engine import CallContext
from .errors import LedgerError
from .events import EventDispatcher, EventLog, EventRecord, Receipt
from .logging_config import get_logger, log_action
from .storage import StorageInterface, create_storage


MESSAGES = ("transfer", "approve", "transfer_from")


@dataclass
class CallOutcome:
    """Result of one dispatched call as reported back to the caller"""
    ok: bool
    message: str
    error: Optional[str] = None
    detail: Optional[str] = None
    requested: Optional[str] = None
    available: Optional[str] = None
    events: List[EventRecord] = field(default_factory=list)
    correlation_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ok": self.ok,
            "message": self.message,
            "error": self.error,
            "detail": self.detail,
            "requested": self.requested,
            "available": self.available,
            "events": [record.to_dict() for record in self.events],
            "correlation_id": self.correlation_id
        }


class LedgerHost:
    """Execution environment for a single token contract"""

    def __init__(self, storage: StorageInterface, contract: TokenContract,
                 dispatcher: Optional[EventDispatcher] = None):
        self.storage = storage
        self.contract = contract
        self.dispatcher = dispatcher or EventDispatcher()
        self.event_log = EventLog()
        self.dispatcher.subscribe_all(self.event_log)
        self._lock = threading.RLock()
        self.logger = get_logger("token_ledger.host")

    @classmethod
    def deploy(cls, storage: StorageInterface, caller: AccountId, initial_supply: int,
               dispatcher: Optional[EventDispatcher] = None) -> 'LedgerHost':
        """Deploy a new token into storage; the caller receives the whole supply"""
        ctx = CallContext(caller)
        contract, receipt = TokenContract.deploy(storage, ctx, initial_supply)
        host = cls(storage, contract, dispatcher)
        host.dispatcher.publish_receipt(receipt, ctx.caller)
        log_action(
            host.logger, "info", "Token deployed",
            caller=ctx.caller.to_hex(), action="construct",
            extra={"initial_supply": str(initial_supply)}
        )
        return host

    @classmethod
    def attach(cls, storage: StorageInterface,
               dispatcher: Optional[EventDispatcher] = None) -> 'LedgerHost':
        """Host a token already persisted in storage"""
        return cls(storage, TokenContract.attach(storage), dispatcher)

    @classmethod
    def from_config(cls, config: Optional[TokenLedgerConfig] = None) -> 'LedgerHost':
        """Open the configured storage, deploying the token on first start"""
        config = config or get_config()
        storage = create_storage(config.database_url)
        dispatcher = EventDispatcher(contract_name=config.contract_name)
        try:
            return cls.attach(storage, dispatcher)
        except LookupError:
            return cls.deploy(storage, config.minter_account, config.initial_supply, dispatcher)

    def call(self, caller: AccountId, message: str,
             correlation_id: Optional[str] = None, **args) -> CallOutcome:
        """
        Dispatch a mutating message on behalf of caller

        Ledger failures come back as an outcome with ok=False. Invalid
        arguments and arithmetic overflow propagate as exceptions.
        """
        if message not in MESSAGES:
            raise ValueError(f"Unknown message: {message}")

        ctx = CallContext(caller=caller, correlation_id=correlation_id or str(uuid.uuid4()))
        handler = getattr(self.contract, message)

        with self._lock:
            try:
                receipt: Receipt = handler(ctx, **args)
            except LedgerError as e:
                return CallOutcome(
                    ok=False, message=message,
                    correlation_id=ctx.correlation_id, **e.to_dict()
                )
            records = self.dispatcher.publish_receipt(receipt, ctx.caller)

        return CallOutcome(ok=True, message=message, events=records,
                           correlation_id=ctx.correlation_id)

    def transfer(self, caller: AccountId, to: AccountId, value: int) -> CallOutcome:
        return self.call(caller, "transfer", to=to, value=value)

    def approve(self, caller: AccountId, spender: AccountId, value: int) -> CallOutcome:
        return self.call(caller, "approve", spender=spender, value=value)

    def transfer_from(self, caller: AccountId, from_account: AccountId,
                      to: AccountId, value: int) -> CallOutcome:
        return self.call(caller, "transfer_from", from_account=from_account, to=to, value=value)

    # Queries take the call lock so they only see state between calls

    def total_supply(self) -> int:
        with self._lock:
            return self.contract.total_supply()

    def balance_of(self, account: AccountId) -> int:
        with self._lock:
            return self.contract.balance_of(account)

    def allowance(self, owner: AccountId, spender: AccountId) -> int:
        with self._lock:
            return self.contract.allowance(owner, spender)

    def events(self, event_name: Optional[str] = None) -> List[EventRecord]:
        """
        Events published since this host started, oldest first

        The log lives in memory; events from before a restart are not
        replayed from storage.
        """
        with self._lock:
            return self.event_log.records(event_name)

    def close(self) -> None:
        self.storage.close()
