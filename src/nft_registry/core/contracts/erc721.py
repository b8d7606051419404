"""
ERC721 Non-Fungible Token ownership ledger.

This module provides the ownership state machine compatible with the
Ethereum ERC721 standard (EIP-721):
- Basic NFT operations (transfer_from, safe_transfer_from, approve)
- Operator approvals (set_approval_for_all)
- Minting and burning, including safe minting

Guarantees:
- Every public mutation is all-or-nothing: writes and events are staged and
  only committed when the whole operation, receiver hook included, succeeds
- Checks-effects-interactions: ledger state is fully updated before a
  receiver hook runs, so re-entrant calls observe consistent state
- One writer per ledger instance (re-entrant lock)
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional

from ..address_checksum import canonical_address
from ..config import MAX_UINT256, ZERO_ADDRESS
from ..ledger_store import LedgerStore
from ..registry_exceptions import (
    AlreadyMintedError,
    InvalidRecipientError,
    InvalidTokenIdError,
    NotAuthorizedError,
    NotMintedError,
    NotOwnerError,
)
from .authorization import is_authorized
from .events import (
    ApprovalEvent,
    ApprovalForAllEvent,
    EventLog,
    EventSink,
    RegistryEvent,
    TransferEvent,
)
from .receiver import HookInvoker, PlainAccountInspector, RecipientInspector, check_recipient

logger = logging.getLogger(__name__)


class ERC721Ledger:
    """
    Ownership ledger for one token collection.

    Collaborators are injected so several ledgers can coexist and be tested
    in isolation:
    - store: the four ownership relations
    - event_sink: receives committed events in order
    - inspector / invoker: the safe-receive capability query and hook call
    """

    def __init__(
        self,
        name: str,
        symbol: str,
        store: LedgerStore | None = None,
        event_sink: EventSink | None = None,
        inspector: RecipientInspector | None = None,
        invoker: HookInvoker | None = None,
        require_checksum: bool = False,
    ) -> None:
        self._name = name
        self._symbol = symbol
        self.store = store if store is not None else LedgerStore()
        self.event_sink = event_sink if event_sink is not None else EventLog()
        self.inspector = inspector if inspector is not None else PlainAccountInspector()
        self.invoker = invoker
        self.require_checksum = require_checksum

        self._lock = threading.RLock()
        self._pending_events: List[List[RegistryEvent]] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def symbol(self) -> str:
        return self._symbol

    # ==================== Atomicity ====================

    @contextmanager
    def atomic(self) -> Iterator["ERC721Ledger"]:
        """
        Run a block as one all-or-nothing unit.

        Nested blocks (including re-entrant calls made from a receiver hook)
        merge into the enclosing unit; events reach the sink only when the
        outermost unit commits. Re-entrant calls must stay on the calling
        thread: the lock is held while the receiver hook runs.

        The outermost unit delivers its events before committing the store,
        so a sink failure rolls the writes back as well.
        """
        with self._lock:
            self.store.begin()
            self._pending_events.append([])
            try:
                yield self
                if len(self._pending_events) == 1:
                    for event in self._pending_events[0]:
                        self.event_sink.emit(event)
            except BaseException as exc:
                self.store.rollback()
                discarded = self._pending_events.pop()
                logger.debug(
                    "ERC721 operation rolled back",
                    extra={
                        "event": "erc721.rollback",
                        "collection": self._symbol,
                        "error": type(exc).__name__,
                        "discarded_events": len(discarded),
                        "depth": len(self._pending_events),
                    },
                )
                raise
            self.store.commit()
            events = self._pending_events.pop()
            if self._pending_events:
                self._pending_events[-1].extend(events)

    def _emit(self, event: RegistryEvent) -> None:
        if self._pending_events:
            self._pending_events[-1].append(event)
        else:
            self.event_sink.emit(event)

    # ==================== View Functions ====================

    def balance_of(self, owner: str) -> int:
        """Number of tokens held by ``owner``."""
        owner_norm = self.normalize_address(owner)
        with self._lock:
            return self.store.balance_of(owner_norm)

    def owner_of(self, token_id: int) -> str:
        """
        Current owner of a token.

        Returns:
            Owner address, or the zero address if the token is not minted
        """
        token_id = self._token_id(token_id)
        with self._lock:
            return self.store.owner_of(token_id)

    def get_approved(self, token_id: int) -> str:
        """Approved spender of a token (zero address if none)."""
        token_id = self._token_id(token_id)
        with self._lock:
            return self.store.approved_spender_of(token_id)

    def is_approved_for_all(self, owner: str, operator: str) -> bool:
        owner_norm = self.normalize_address(owner)
        operator_norm = self.normalize_address(operator)
        with self._lock:
            return self.store.is_approved_for_all(owner_norm, operator_norm)

    def read_slot(self, key: Any, default: Any = None) -> Any:
        """Read an extension slot stored alongside the ledger relations."""
        with self._lock:
            return self.store.read_slot(key, default)

    def is_authorized(self, caller: str, token_owner: str, token_id: int) -> bool:
        """Whether ``caller`` may move ``token_id`` on behalf of ``token_owner``."""
        caller_norm = self.normalize_address(caller)
        owner_norm = self.normalize_address(token_owner)
        token_id = self._token_id(token_id)
        with self._lock:
            return is_authorized(self.store, caller_norm, owner_norm, token_id)

    # ==================== Approvals ====================

    def approve(self, caller: str, spender: str, token_id: int) -> None:
        """
        Approve ``spender`` to move a single token.

        Args:
            caller: Message sender (owner or an operator of the owner)
            spender: Account to approve; the zero address clears the approval
            token_id: Token ID

        Raises:
            NotOwnerError: If the token is not minted, or the caller is neither
                owner nor operator
        """
        caller_norm = self.normalize_address(caller)
        spender_norm = self.normalize_address(spender)
        token_id = self._token_id(token_id)

        with self.atomic():
            owner = self.store.owner_of(token_id)
            if owner == ZERO_ADDRESS:
                raise NotOwnerError(caller_norm, token_id)
            if caller_norm != owner and not self.store.is_approved_for_all(owner, caller_norm):
                raise NotOwnerError(owner, token_id)

            self.store.set_approved_spender(token_id, spender_norm)
            self._emit(ApprovalEvent(owner=owner, spender=spender_norm, token_id=token_id))

        logger.debug(
            "ERC721 approval",
            extra={
                "event": "erc721.approve",
                "collection": self._symbol,
                "token_id": token_id,
                "spender": spender_norm[:10],
            },
        )

    def set_approval_for_all(self, caller: str, operator: str, approved: bool) -> None:
        """Grant or revoke ``operator`` authority over all of the caller's tokens."""
        caller_norm = self.normalize_address(caller)
        operator_norm = self.normalize_address(operator)
        approved = bool(approved)

        with self.atomic():
            self.store.set_approval_for_all(caller_norm, operator_norm, approved)
            self._emit(
                ApprovalForAllEvent(owner=caller_norm, operator=operator_norm, approved=approved)
            )

        logger.debug(
            "ERC721 operator approval",
            extra={
                "event": "erc721.approval_for_all",
                "collection": self._symbol,
                "owner": caller_norm[:10],
                "operator": operator_norm[:10],
                "approved": approved,
            },
        )

    # ==================== Transfers ====================

    def transfer_from(self, caller: str, from_addr: str, to_addr: str, token_id: int) -> None:
        """
        Transfer a token without checking the recipient.

        Raises:
            NotOwnerError: ``from_addr`` does not own the token
            InvalidRecipientError: ``to_addr`` is the zero address
            NotAuthorizedError: caller is not owner, operator nor approved spender
        """
        caller_norm, from_norm, to_norm = self._accounts(caller, from_addr, to_addr)
        token_id = self._token_id(token_id)

        with self.atomic():
            self._transfer(caller_norm, from_norm, to_norm, token_id)

    def safe_transfer_from(
        self,
        caller: str,
        from_addr: str,
        to_addr: str,
        token_id: int,
        data: bytes = b"",
    ) -> None:
        """
        Transfer a token and require a callable recipient to acknowledge it.

        Raises:
            NotOwnerError, InvalidRecipientError, NotAuthorizedError: as transfer_from
            CallFailedError: The receiver hook could not be completed
            UnsafeRecipientError: The receiver returned the wrong acknowledgment
        """
        caller_norm, from_norm, to_norm = self._accounts(caller, from_addr, to_addr)
        token_id = self._token_id(token_id)

        with self.atomic():
            self._transfer(caller_norm, from_norm, to_norm, token_id)
            check_recipient(
                self.inspector, self.invoker, caller_norm, from_norm, to_norm, token_id, bytes(data)
            )

    def _transfer(self, caller: str, from_addr: str, to_addr: str, token_id: int) -> None:
        """Internal transfer logic; runs inside an atomic block."""
        if self.store.owner_of(token_id) != from_addr:
            raise NotOwnerError(from_addr, token_id)

        if to_addr == ZERO_ADDRESS:
            raise InvalidRecipientError(to_addr)

        if not is_authorized(self.store, caller, from_addr, token_id):
            raise NotAuthorizedError(caller)

        self._decrement_balance(from_addr)
        self._increment_balance(to_addr)
        self.store.set_owner(token_id, to_addr)
        self.store.set_approved_spender(token_id, ZERO_ADDRESS)

        self._emit(TransferEvent(from_address=from_addr, to_address=to_addr, token_id=token_id))

        logger.debug(
            "ERC721 transfer",
            extra={
                "event": "erc721.transfer",
                "collection": self._symbol,
                "token_id": token_id,
                "from": from_addr[:10],
                "to": to_addr[:10],
            },
        )

    # ==================== Minting & Burning ====================

    def mint(self, to: str, token_id: int) -> None:
        """
        Create ``token_id`` owned by ``to``.

        Minter policy and id selection belong to the calling layer.

        Raises:
            AlreadyMintedError: The token already exists
            InvalidRecipientError: ``to`` is the zero address
        """
        to_norm = self.normalize_address(to)
        token_id = self._token_id(token_id)

        with self.atomic():
            self._mint(to_norm, token_id)

    def safe_mint(self, caller: str, to: str, token_id: int, data: bytes = b"") -> None:
        """Mint, then require a callable recipient to acknowledge the token."""
        caller_norm = self.normalize_address(caller)
        to_norm = self.normalize_address(to)
        token_id = self._token_id(token_id)

        with self.atomic():
            self._mint(to_norm, token_id)
            check_recipient(
                self.inspector, self.invoker, caller_norm, ZERO_ADDRESS, to_norm, token_id, bytes(data)
            )

    def _mint(self, to: str, token_id: int) -> None:
        if self.store.owner_of(token_id) != ZERO_ADDRESS:
            raise AlreadyMintedError(token_id)

        if to == ZERO_ADDRESS:
            raise InvalidRecipientError(to)

        self._increment_balance(to)
        self.store.set_owner(token_id, to)
        self.store.set_approved_spender(token_id, ZERO_ADDRESS)

        self._emit(TransferEvent(from_address=ZERO_ADDRESS, to_address=to, token_id=token_id))

        logger.info(
            "ERC721 mint",
            extra={
                "event": "erc721.mint",
                "collection": self._symbol,
                "token_id": token_id,
                "to": to[:10],
            },
        )

    def burn(self, token_id: int) -> None:
        """
        Destroy a token.

        Caller policy belongs to the calling layer.

        Raises:
            NotMintedError: The token does not exist
        """
        token_id = self._token_id(token_id)

        with self.atomic():
            owner = self.store.owner_of(token_id)
            if owner == ZERO_ADDRESS:
                raise NotMintedError(token_id)

            self._decrement_balance(owner)
            self.store.set_owner(token_id, ZERO_ADDRESS)
            self.store.set_approved_spender(token_id, ZERO_ADDRESS)

            self._emit(TransferEvent(from_address=owner, to_address=ZERO_ADDRESS, token_id=token_id))

        logger.info(
            "ERC721 burn",
            extra={
                "event": "erc721.burn",
                "collection": self._symbol,
                "token_id": token_id,
            },
        )

    # ==================== Helpers ====================

    def _increment_balance(self, account: str) -> None:
        self.store.set_balance(account, self.store.balance_of(account) + 1)

    def _decrement_balance(self, account: str) -> None:
        self.store.set_balance(account, self.store.balance_of(account) - 1)

    def normalize_address(self, address: str) -> str:
        """Canonical lower-case form of an account identifier."""
        return canonical_address(address, self.require_checksum)

    def _accounts(self, *addresses: str) -> List[str]:
        return [self.normalize_address(address) for address in addresses]

    @staticmethod
    def _token_id(token_id: Any) -> int:
        if isinstance(token_id, bool) or not isinstance(token_id, int):
            raise InvalidTokenIdError(token_id)
        if token_id < 0 or token_id > MAX_UINT256:
            raise InvalidTokenIdError(token_id)
        return token_id

    # ==================== Serialization ====================

    def to_dict(self) -> Dict[str, Any]:
        """Serialize collection identity and committed ledger state."""
        with self._lock:
            return {
                "name": self._name,
                "symbol": self._symbol,
                "state": self.store.to_dict(),
            }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], **collaborators: Any) -> "ERC721Ledger":
        """Rebuild a ledger from ``to_dict()`` output; collaborators are passed through."""
        backend = collaborators.pop("backend", None)
        store = LedgerStore.from_dict(data.get("state", {}), backend)
        return cls(name=data["name"], symbol=data["symbol"], store=store, **collaborators)


def build_ledger(
    name: str,
    symbol: str,
    programs: Optional[Any] = None,
    **kwargs: Any,
) -> ERC721Ledger:
    """
    Convenience constructor wiring one object as both inspector and invoker.

    ``programs`` is typically a ``ProgramRegistry``.
    """
    if programs is not None:
        kwargs.setdefault("inspector", programs)
        kwargs.setdefault("invoker", programs)
    return ERC721Ledger(name, symbol, **kwargs)
