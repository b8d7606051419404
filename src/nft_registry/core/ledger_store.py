"""
Ledger Store - the four ownership relations over a key-value backend.

Relations (each keyed by a tuple whose first element names the relation):
- ("owners", token_id) -> account          default ZERO_ADDRESS
- ("balances", account) -> int             default 0
- ("token_approvals", token_id) -> account default ZERO_ADDRESS
- ("operator_approvals", owner, operator) -> bool  default False

The store holds no policy. It does support staged writes: ``begin()`` opens a
frame that captures writes, reads see the innermost frame first, ``commit()``
merges a frame into its parent (or into the backend for the outermost frame)
and ``rollback()`` drops it. This gives all-or-nothing operations on backends
without native transactions.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Dict, Hashable, Iterator, List, Protocol, Tuple

from .config import MAX_UINT256, ZERO_ADDRESS
from .registry_exceptions import LedgerCorruptionError

logger = logging.getLogger(__name__)

OWNERS = "owners"
BALANCES = "balances"
TOKEN_APPROVALS = "token_approvals"
OPERATOR_APPROVALS = "operator_approvals"

StorageKey = Tuple[Hashable, ...]

_MISSING = object()


class KeyValueBackend(Protocol):
    """Durable key-value substrate backing the ledger."""

    def get(self, key: StorageKey, default: Any = None) -> Any:
        ...

    def set(self, key: StorageKey, value: Any) -> None:
        ...

    def items(self) -> Iterator[Tuple[StorageKey, Any]]:
        ...


class InMemoryBackend:
    """Dict-backed backend. Default values are stored as absent keys."""

    def __init__(self, data: Dict[StorageKey, Any] | None = None) -> None:
        self._data: Dict[StorageKey, Any] = dict(data or {})

    def get(self, key: StorageKey, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: StorageKey, value: Any) -> None:
        if value is None or value is False or value == 0 or value == ZERO_ADDRESS:
            self._data.pop(key, None)
        else:
            self._data[key] = value

    def items(self) -> Iterator[Tuple[StorageKey, Any]]:
        return iter(list(self._data.items()))

    def __len__(self) -> int:
        return len(self._data)


class LedgerStore:
    """Typed access to the ownership relations with staged write frames."""

    def __init__(self, backend: KeyValueBackend | None = None) -> None:
        self.backend = backend if backend is not None else InMemoryBackend()
        self._frames: List[Dict[StorageKey, Any]] = []

    # ==================== Raw slots ====================

    def read_slot(self, key: StorageKey, default: Any = None) -> Any:
        for frame in reversed(self._frames):
            value = frame.get(key, _MISSING)
            if value is not _MISSING:
                return value
        return self.backend.get(key, default)

    def write_slot(self, key: StorageKey, value: Any) -> None:
        if self._frames:
            self._frames[-1][key] = value
        else:
            self.backend.set(key, value)

    # ==================== Staging ====================

    @property
    def in_transaction(self) -> bool:
        return bool(self._frames)

    @property
    def depth(self) -> int:
        return len(self._frames)

    def begin(self) -> None:
        self._frames.append({})

    def commit(self) -> None:
        if not self._frames:
            raise RuntimeError("commit() without an open frame")
        frame = self._frames.pop()
        if self._frames:
            self._frames[-1].update(frame)
            return
        for key, value in frame.items():
            self.backend.set(key, value)
        logger.debug(
            "Ledger frame committed",
            extra={"event": "ledger.commit", "writes": len(frame)},
        )

    def rollback(self) -> None:
        if not self._frames:
            raise RuntimeError("rollback() without an open frame")
        frame = self._frames.pop()
        logger.debug(
            "Ledger frame discarded",
            extra={"event": "ledger.rollback", "writes": len(frame), "depth": len(self._frames)},
        )

    @contextmanager
    def transaction(self) -> Iterator["LedgerStore"]:
        """Stage writes for the block; commit on success, discard on any exception."""
        self.begin()
        try:
            yield self
        except BaseException:
            self.rollback()
            raise
        self.commit()

    # ==================== Relations ====================

    def owner_of(self, token_id: int) -> str:
        return self.read_slot((OWNERS, token_id), ZERO_ADDRESS)

    def set_owner(self, token_id: int, account: str) -> None:
        self.write_slot((OWNERS, token_id), account)

    def balance_of(self, account: str) -> int:
        return self.read_slot((BALANCES, account), 0)

    def set_balance(self, account: str, value: int) -> None:
        if value < 0 or value > MAX_UINT256:
            raise LedgerCorruptionError(account, value)
        self.write_slot((BALANCES, account), value)

    def approved_spender_of(self, token_id: int) -> str:
        return self.read_slot((TOKEN_APPROVALS, token_id), ZERO_ADDRESS)

    def set_approved_spender(self, token_id: int, spender: str) -> None:
        self.write_slot((TOKEN_APPROVALS, token_id), spender)

    def is_approved_for_all(self, owner: str, operator: str) -> bool:
        return bool(self.read_slot((OPERATOR_APPROVALS, owner, operator), False))

    def set_approval_for_all(self, owner: str, operator: str, approved: bool) -> None:
        self.write_slot((OPERATOR_APPROVALS, owner, operator), bool(approved))

    # ==================== Serialization ====================

    def to_dict(self) -> Dict[str, Any]:
        """Serialize committed state, one mapping per relation."""
        if self._frames:
            raise RuntimeError("Cannot snapshot the ledger while a frame is open")

        snapshot: Dict[str, Any] = {
            OWNERS: {},
            BALANCES: {},
            TOKEN_APPROVALS: {},
            OPERATOR_APPROVALS: {},
            "slots": {},
        }
        for key, value in self.backend.items():
            relation = key[0]
            if relation in (OWNERS, TOKEN_APPROVALS):
                snapshot[relation][str(key[1])] = value
            elif relation == BALANCES:
                snapshot[BALANCES][key[1]] = value
            elif relation == OPERATOR_APPROVALS:
                snapshot[OPERATOR_APPROVALS].setdefault(key[1], {})[key[2]] = value
            else:
                snapshot["slots"][":".join(str(part) for part in key)] = value
        return snapshot

    @classmethod
    def from_dict(
        cls, data: Dict[str, Any], backend: KeyValueBackend | None = None
    ) -> "LedgerStore":
        """Rebuild a store from ``to_dict()`` output."""
        store = cls(backend)
        for token_id, owner in data.get(OWNERS, {}).items():
            store.set_owner(int(token_id), owner)
        for account, balance in data.get(BALANCES, {}).items():
            store.set_balance(account, int(balance))
        for token_id, spender in data.get(TOKEN_APPROVALS, {}).items():
            store.set_approved_spender(int(token_id), spender)
        for owner, operators in data.get(OPERATOR_APPROVALS, {}).items():
            for operator, approved in operators.items():
                store.set_approval_for_all(owner, operator, approved)
        for joined, value in data.get("slots", {}).items():
            store.write_slot(tuple(joined.split(":")), value)
        return store
