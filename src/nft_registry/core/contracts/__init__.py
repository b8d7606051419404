"""
NFT Registry Contracts.

This module provides:
- ERC721Ledger: the ownership / approval / mint / burn state machine
- Safe-receive protocol collaborators (ProgramRegistry, PlainAccountInspector)
- NFTCollection: deployment entrypoint with sequential ids and token URIs
- RegistryDispatcher: named-call dispatcher returning CallResult values
"""

from .authorization import is_authorized
from .collection import NFTCollection
from .dispatch import CallResult, RegistryDispatcher
from .erc721 import ERC721Ledger, build_ledger
from .events import (
    ApprovalEvent,
    ApprovalForAllEvent,
    EventLog,
    TransferEvent,
)
from .receiver import (
    ERC721_RECEIVER_SELECTOR,
    PlainAccountInspector,
    ProgramRegistry,
    check_recipient,
)

__all__ = [
    # Ledger
    "ERC721Ledger",
    "build_ledger",
    "is_authorized",
    # Events
    "TransferEvent",
    "ApprovalEvent",
    "ApprovalForAllEvent",
    "EventLog",
    # Safe receive
    "ERC721_RECEIVER_SELECTOR",
    "PlainAccountInspector",
    "ProgramRegistry",
    "check_recipient",
    # Entrypoint
    "NFTCollection",
    "RegistryDispatcher",
    "CallResult",
]
