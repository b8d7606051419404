import sys
from pathlib import Path

import pytest

# Ensure the src directory is importable before collection runs.
project_root = Path(__file__).resolve().parents[2]
src_path = project_root / "src"
sys.path.insert(0, str(src_path))

from nft_registry.core.contracts.collection import NFTCollection  # noqa: E402
from nft_registry.core.contracts.erc721 import ERC721Ledger  # noqa: E402
from nft_registry.core.contracts.events import EventLog  # noqa: E402
from nft_registry.core.contracts.receiver import ProgramRegistry  # noqa: E402
from nft_registry.core.ledger_store import LedgerStore  # noqa: E402

ALICE = "0x" + "a1" * 20


@pytest.fixture
def event_log():
    return EventLog()


@pytest.fixture
def programs():
    return ProgramRegistry()


@pytest.fixture
def store():
    return LedgerStore()


@pytest.fixture
def ledger(store, event_log, programs):
    """Ledger wired to an in-process program host (no programs registered yet)."""
    return ERC721Ledger(
        "StylusNFT",
        "SNFT",
        store=store,
        event_sink=event_log,
        inspector=programs,
        invoker=programs,
    )


@pytest.fixture
def minted_ledger(ledger):
    """Ledger where ALICE owns token 1."""
    ledger.mint(ALICE, 1)
    return ledger


@pytest.fixture
def collection(ledger):
    return NFTCollection(ledger, base_uri="https://foobar/")
