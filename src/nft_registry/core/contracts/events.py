"""
ERC721 event log.

Events are immutable records delivered to an ``EventSink``. The ledger stages
them with the operation that produced them and hands them to the sink only
once that operation commits, so observers never see a rolled-back event.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, Iterator, List, Protocol, Tuple, Type, Union

from ..address_checksum import keccak256

TRANSFER_SIGNATURE = "Transfer(address,address,uint256)"
APPROVAL_SIGNATURE = "Approval(address,address,uint256)"
APPROVAL_FOR_ALL_SIGNATURE = "ApprovalForAll(address,address,bool)"

TRANSFER_TOPIC = keccak256(TRANSFER_SIGNATURE.encode("ascii"))
APPROVAL_TOPIC = keccak256(APPROVAL_SIGNATURE.encode("ascii"))
APPROVAL_FOR_ALL_TOPIC = keccak256(APPROVAL_FOR_ALL_SIGNATURE.encode("ascii"))


@dataclass(frozen=True)
class TransferEvent:
    """Ownership change; ``from_address`` is zero on mint, ``to_address`` zero on burn."""

    event_type: ClassVar[str] = "Transfer"
    topic: ClassVar[bytes] = TRANSFER_TOPIC

    from_address: str
    to_address: str
    token_id: int
    timestamp: float = field(default_factory=time.time, compare=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": self.event_type,
            "topic": self.topic.hex(),
            "from": self.from_address,
            "to": self.to_address,
            "token_id": self.token_id,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class ApprovalEvent:
    event_type: ClassVar[str] = "Approval"
    topic: ClassVar[bytes] = APPROVAL_TOPIC

    owner: str
    spender: str
    token_id: int
    timestamp: float = field(default_factory=time.time, compare=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": self.event_type,
            "topic": self.topic.hex(),
            "owner": self.owner,
            "spender": self.spender,
            "token_id": self.token_id,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class ApprovalForAllEvent:
    event_type: ClassVar[str] = "ApprovalForAll"
    topic: ClassVar[bytes] = APPROVAL_FOR_ALL_TOPIC

    owner: str
    operator: str
    approved: bool
    timestamp: float = field(default_factory=time.time, compare=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": self.event_type,
            "topic": self.topic.hex(),
            "owner": self.owner,
            "operator": self.operator,
            "approved": self.approved,
            "timestamp": self.timestamp,
        }


RegistryEvent = Union[TransferEvent, ApprovalEvent, ApprovalForAllEvent]


class EventSink(Protocol):
    def emit(self, event: RegistryEvent) -> None:
        ...


class EventLog:
    """Append-only, ordered, in-memory event sink."""

    def __init__(self) -> None:
        self._events: List[RegistryEvent] = []

    def emit(self, event: RegistryEvent) -> None:
        self._events.append(event)

    @property
    def events(self) -> Tuple[RegistryEvent, ...]:
        return tuple(self._events)

    def of_type(self, event_cls: Type[RegistryEvent]) -> List[RegistryEvent]:
        return [event for event in self._events if isinstance(event, event_cls)]

    def to_list(self) -> List[Dict[str, Any]]:
        return [event.to_dict() for event in self._events]

    def __iter__(self) -> Iterator[RegistryEvent]:
        return iter(tuple(self._events))

    def __len__(self) -> int:
        return len(self._events)
