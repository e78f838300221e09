"""
Event System Module

Ledger events are plain values: the core returns them in a Receipt and the
host hands them to an EventDispatcher once the call has committed.
Subscribers are notified through a publish/subscribe mechanism and every
published event is kept in an append-only EventLog.
"""

from typing import Any, Callable, Dict, List, Optional, Tuple
from dataclasses import dataclass, field
from datetime import datetime, timezone
import uuid
import logging
from threading import RLock

from .account import AccountId
from .topics import encode_account, encode_optional_account, event_topics


TRANSFER = "Transfer"
APPROVAL = "Approval"


def _optional_hex(account: Optional[AccountId]) -> Optional[str]:
    return account.to_hex() if account is not None else None


def _optional_account(value: Optional[str]) -> Optional[AccountId]:
    return AccountId.from_hex(value) if value is not None else None


@dataclass(frozen=True)
class TransferEvent:
    """
    Value moved between accounts
    from_account is None only for the mint at construction
    """
    from_account: Optional[AccountId]
    to_account: Optional[AccountId]
    value: int

    name = TRANSFER

    def indexed_fields(self) -> List[Tuple[str, bytes]]:
        return [("from", encode_optional_account(self.from_account))]

    def topics(self, contract_name: str = "Erc20") -> List[bytes]:
        return event_topics(self, contract_name)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'event': self.name,
            'from': _optional_hex(self.from_account),
            'to': _optional_hex(self.to_account),
            'value': str(self.value)
        }


@dataclass(frozen=True)
class ApprovalEvent:
    """Spender's allowance over owner's balance was set"""
    owner: AccountId
    spender: AccountId
    value: int

    name = APPROVAL

    def indexed_fields(self) -> List[Tuple[str, bytes]]:
        return [
            ("owner", encode_account(self.owner)),
            ("spender", encode_account(self.spender))
        ]

    def topics(self, contract_name: str = "Erc20") -> List[bytes]:
        return event_topics(self, contract_name)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'event': self.name,
            'owner': self.owner.to_hex(),
            'spender': self.spender.to_hex(),
            'value': str(self.value)
        }


def event_from_dict(data: Dict[str, Any]):
    """Rebuild a ledger event from its dictionary form"""
    name = data.get('event')
    if name == TRANSFER:
        return TransferEvent(
            from_account=_optional_account(data.get('from')),
            to_account=_optional_account(data.get('to')),
            value=int(data['value'])
        )
    if name == APPROVAL:
        return ApprovalEvent(
            owner=AccountId.from_hex(data['owner']),
            spender=AccountId.from_hex(data['spender']),
            value=int(data['value'])
        )
    raise ValueError(f"Unknown event type: {name!r}")


@dataclass
class Receipt:
    """Events produced by one successful ledger operation, in emission order"""
    events: List[Any] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.events)


@dataclass
class EventRecord:
    """An event as delivered to subscribers"""
    event: Any
    topics: List[bytes]
    caller: Optional[AccountId] = None
    sequence: int = 0
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))

    @property
    def name(self) -> str:
        return self.event.name

    def to_dict(self) -> Dict[str, Any]:
        return {
            'event_id': self.event_id,
            'sequence': self.sequence,
            'timestamp': self.timestamp.isoformat(),
            'caller': _optional_hex(self.caller),
            'topics': ["0x" + topic.hex() for topic in self.topics],
            'data': self.event.to_dict()
        }


class EventDispatcher:
    """Central event dispatcher - publish/subscribe by event name"""

    def __init__(self, contract_name: str = "Erc20"):
        self.contract_name = contract_name
        self._handlers: Dict[str, List[Callable]] = {}
        self._global_handlers: List[Callable] = []
        self._sequence = 0
        self._lock = RLock()
        self.logger = logging.getLogger("token_ledger.events")

    def subscribe(self, event_name: str, handler: Callable) -> None:
        """Subscribe to one event name (Transfer or Approval)"""
        with self._lock:
            self._handlers.setdefault(event_name, []).append(handler)
            self.logger.debug(f"Subscribed handler {getattr(handler, '__name__', repr(handler))} to {event_name}")

    def subscribe_all(self, handler: Callable) -> None:
        """Subscribe to every event"""
        with self._lock:
            self._global_handlers.append(handler)

    def unsubscribe(self, event_name: str, handler: Callable) -> None:
        with self._lock:
            try:
                self._handlers.get(event_name, []).remove(handler)
            except ValueError:
                self.logger.warning(f"Handler {getattr(handler, '__name__', repr(handler))} was not subscribed to {event_name}")

    def unsubscribe_all(self, handler: Callable) -> None:
        with self._lock:
            try:
                self._global_handlers.remove(handler)
            except ValueError:
                self.logger.warning(f"Global handler {getattr(handler, '__name__', repr(handler))} was not subscribed")

    def publish(self, event, caller: Optional[AccountId] = None) -> EventRecord:
        """Wrap an event with its topics and deliver it to all subscribers"""
        with self._lock:
            self._sequence += 1
            record = EventRecord(
                event=event,
                topics=event.topics(self.contract_name),
                caller=caller,
                sequence=self._sequence
            )
            self.logger.debug(f"Publishing event {event.name} #{record.sequence}")

            for handler in list(self._handlers.get(event.name, [])) + list(self._global_handlers):
                try:
                    handler(record)
                except Exception as e:
                    # Subscribers are external; one failing must not affect the others
                    self.logger.error(f"Error in event handler {getattr(handler, '__name__', repr(handler))} for {event.name}: {e}")
            return record

    def publish_receipt(self, receipt: Receipt, caller: Optional[AccountId] = None) -> List[EventRecord]:
        return [self.publish(event, caller) for event in receipt.events]

    def clear(self) -> None:
        """Clear all handlers"""
        with self._lock:
            self._handlers.clear()
            self._global_handlers.clear()

    def get_handler_count(self, event_name: Optional[str] = None) -> int:
        with self._lock:
            if event_name:
                return len(self._handlers.get(event_name, []))
            return sum(len(handlers) for handlers in self._handlers.values()) + len(self._global_handlers)


class EventLog:
    """
    Append-only record of published events

    Held in memory only: it starts empty with each host and is not rebuilt
    from storage when an existing ledger is attached.
    """

    def __init__(self):
        self._records: List[EventRecord] = []
        self._lock = RLock()

    def __call__(self, record: EventRecord) -> None:
        self.append(record)

    def append(self, record: EventRecord) -> None:
        with self._lock:
            self._records.append(record)

    def records(self, event_name: Optional[str] = None) -> List[EventRecord]:
        with self._lock:
            if event_name:
                return [r for r in self._records if r.name == event_name]
            return list(self._records)

    def events(self) -> list:
        """The bare event values in publication order"""
        with self._lock:
            return [r.event for r in self._records]

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
