"""
NFT collection entrypoint.

Wraps an ``ERC721Ledger`` with the deployment-level policy the ledger leaves
to its caller: sequential token ids, an optional privileged minter, owner-only
burning and token URIs derived from a base URI.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from ..config import ZERO_ADDRESS, RegistrySettings
from ..registry_exceptions import NotAuthorizedError, NotMintedError
from .erc721 import ERC721Ledger, build_ledger

logger = logging.getLogger(__name__)

COUNTER_SLOT = ("collection", "next_token_id")


class NFTCollection:
    """A deployed collection: fixed name/symbol, counter-assigned ids."""

    def __init__(
        self,
        ledger: ERC721Ledger,
        base_uri: str = "",
        minter: Optional[str] = None,
    ) -> None:
        self.ledger = ledger
        self.base_uri = base_uri
        self.minter = ledger.normalize_address(minter) if minter else None

    @classmethod
    def from_settings(cls, settings: RegistrySettings, **collaborators: Any) -> "NFTCollection":
        """Deploy a collection from settings; collaborators go to the ledger."""
        ledger = build_ledger(
            settings.name,
            settings.symbol,
            require_checksum=settings.require_checksum,
            **collaborators,
        )
        logger.info(
            "NFT collection deployed",
            extra={
                "event": "collection.created",
                "registry_name": settings.name,
                "symbol": settings.symbol,
                "minter_restricted": settings.minter is not None,
            },
        )
        return cls(ledger, base_uri=settings.base_uri, minter=settings.minter)

    # ==================== Metadata ====================

    @property
    def name(self) -> str:
        return self.ledger.name

    @property
    def symbol(self) -> str:
        return self.ledger.symbol

    @property
    def total_minted(self) -> int:
        """Number of ids handed out so far (burned tokens included)."""
        return self.ledger.read_slot(COUNTER_SLOT, 0)

    def token_uri(self, token_id: int) -> str:
        if self.ledger.owner_of(token_id) == ZERO_ADDRESS:
            raise NotMintedError(token_id)
        return f"{self.base_uri}{token_id}"

    # ==================== Minting & Burning ====================

    def mint(self, caller: str, to: str) -> int:
        """Mint the next sequential id to ``to`` and return it."""
        return self._mint_next(caller, to, safe=False)

    def safe_mint(self, caller: str, to: str, data: bytes = b"") -> int:
        """Like mint, but a callable recipient must acknowledge the token."""
        return self._mint_next(caller, to, safe=True, data=data)

    def _mint_next(self, caller: str, to: str, safe: bool, data: bytes = b"") -> int:
        caller_norm = self.ledger.normalize_address(caller)
        if self.minter is not None and caller_norm != self.minter:
            raise NotAuthorizedError(caller_norm)

        with self.ledger.atomic():
            token_id = self.ledger.store.read_slot(COUNTER_SLOT, 0)
            if safe:
                self.ledger.safe_mint(caller_norm, to, token_id, data)
            else:
                self.ledger.mint(to, token_id)
            self.ledger.store.write_slot(COUNTER_SLOT, token_id + 1)
        return token_id

    def burn(self, caller: str, token_id: int) -> None:
        """Burn a token; only its current owner may do so."""
        caller_norm = self.ledger.normalize_address(caller)
        with self.ledger.atomic():
            owner = self.ledger.owner_of(token_id)
            if owner == ZERO_ADDRESS:
                raise NotMintedError(token_id)
            if caller_norm != owner:
                raise NotAuthorizedError(caller_norm)
            self.ledger.burn(token_id)

    # ==================== Delegated Operations ====================

    def transfer_from(self, caller: str, from_addr: str, to_addr: str, token_id: int) -> None:
        self.ledger.transfer_from(caller, from_addr, to_addr, token_id)

    def safe_transfer_from(
        self, caller: str, from_addr: str, to_addr: str, token_id: int, data: bytes = b""
    ) -> None:
        self.ledger.safe_transfer_from(caller, from_addr, to_addr, token_id, data)

    def approve(self, caller: str, spender: str, token_id: int) -> None:
        self.ledger.approve(caller, spender, token_id)

    def set_approval_for_all(self, caller: str, operator: str, approved: bool) -> None:
        self.ledger.set_approval_for_all(caller, operator, approved)

    def balance_of(self, owner: str) -> int:
        return self.ledger.balance_of(owner)

    def owner_of(self, token_id: int) -> str:
        return self.ledger.owner_of(token_id)

    def get_approved(self, token_id: int) -> str:
        return self.ledger.get_approved(token_id)

    def is_approved_for_all(self, owner: str, operator: str) -> bool:
        return self.ledger.is_approved_for_all(owner, operator)

    def to_dict(self) -> Dict[str, Any]:
        data = self.ledger.to_dict()
        data["base_uri"] = self.base_uri
        data["minter"] = self.minter
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any], **collaborators: Any) -> "NFTCollection":
        ledger = ERC721Ledger.from_dict(data, **collaborators)
        return cls(ledger, base_uri=data.get("base_uri", ""), minter=data.get("minter"))
