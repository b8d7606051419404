"""
Tests for the named-call dispatcher and its tagged results.
"""

import logging

import pytest

from nft_registry import deploy_collection
from nft_registry.core.address_checksum import keccak256
from nft_registry.core.config import RegistrySettings
from nft_registry.core.contracts.dispatch import REGISTRY_METHODS, CallResult, RegistryDispatcher
from nft_registry.core.contracts.events import EventLog
from nft_registry.core.ledger_store import LedgerStore
from nft_registry.core.registry_exceptions import (
    InvalidArgumentsError,
    LedgerCorruptionError,
    NotAuthorizedError,
    NotMintedError,
    UnknownMethodError,
)
from nft_registry.core.structured_logger import PACKAGE_LOGGER

ALICE = "0x" + "a1" * 20
BOB = "0x" + "b2" * 20


@pytest.fixture
def dispatcher(collection):
    return RegistryDispatcher(collection)


def test_successful_call_carries_return_value(dispatcher):
    result = dispatcher.call(ALICE, "mint", to=ALICE)

    assert result == CallResult(success=True, return_value=0)
    assert dispatcher.call(ALICE, "owner_of", token_id=0).return_value == ALICE
    assert dispatcher.call(BOB, "balance_of", owner=ALICE).return_value == 1
    assert dispatcher.call(BOB, "token_uri", token_id=0).return_value == "https://foobar/0"


def test_properties_are_exposed_as_views(dispatcher):
    dispatcher.call(ALICE, "mint", to=ALICE)

    assert dispatcher.call(BOB, "name").return_value == "StylusNFT"
    assert dispatcher.call(BOB, "symbol").return_value == "SNFT"
    assert dispatcher.call(BOB, "total_minted").return_value == 1


def test_ledger_failure_becomes_failed_result(dispatcher):
    result = dispatcher.call(ALICE, "burn", token_id=3)

    assert result.success is False
    assert isinstance(result.error, NotMintedError)
    assert result.error_name == "NotMinted"
    assert result.error_selector == keccak256(b"NotMinted(uint256)")[:4]
    assert result.to_dict() == {
        "success": False,
        "error": "NotMinted",
        "details": {"token_id": 3},
        "selector": "0x" + keccak256(b"NotMinted(uint256)")[:4].hex(),
    }


def test_caller_is_passed_to_state_changing_methods(dispatcher):
    dispatcher.call(ALICE, "mint", to=ALICE)

    result = dispatcher.call(BOB, "transfer_from", from_addr=ALICE, to_addr=BOB, token_id=0)

    assert isinstance(result.error, NotAuthorizedError)
    assert result.error.caller == BOB

    dispatcher.call(ALICE, "set_approval_for_all", operator=BOB, approved=True)
    assert dispatcher.call(BOB, "transfer_from", from_addr=ALICE, to_addr=BOB, token_id=0).success


def test_unknown_method(dispatcher):
    result = dispatcher.call(ALICE, "selfdestruct")

    assert result.success is False
    assert isinstance(result.error, UnknownMethodError)
    assert result.error_selector is None
    assert result.to_dict()["error"] == "UnknownMethodError"


def test_invalid_input_becomes_failed_result(dispatcher):
    assert dispatcher.call(ALICE, "mint", to="not-an-address").error_name == "InvalidAddressError"
    assert dispatcher.call(ALICE, "owner_of", token_id=-1).error_name == "InvalidTokenIdError"


@pytest.mark.parametrize(
    "method, kwargs",
    [
        ("mint", {}),
        ("mint", {"to": ALICE, "colour": "red"}),
        ("owner_of", {}),
        ("transfer_from", {"from_addr": ALICE, "token_id": 0}),
        ("name", {"token_id": 0}),
    ],
)
def test_arguments_that_do_not_fit_become_failed_result(dispatcher, collection, method, kwargs):
    result = dispatcher.call(ALICE, method, **kwargs)

    assert result.success is False
    assert isinstance(result.error, InvalidArgumentsError)
    assert result.error.method == method
    assert result.error_selector is None
    assert result.to_dict()["error"] == "InvalidArgumentsError"
    assert collection.total_minted == 0


def test_every_method_is_routable(dispatcher):
    for method in REGISTRY_METHODS:
        assert hasattr(dispatcher.collection, method)


def test_ledger_corruption_propagates(collection):
    collection.ledger.store.backend.set(("balances", ALICE), 0)
    collection.ledger.store.set_owner(0, ALICE)
    dispatcher = RegistryDispatcher(collection)

    with pytest.raises(LedgerCorruptionError):
        dispatcher.call(ALICE, "transfer_from", from_addr=ALICE, to_addr=BOB, token_id=0)
    assert collection.owner_of(0) == ALICE


def test_deploy_collection_from_settings(tmp_path):
    sink = EventLog()
    settings = RegistrySettings(name="Gallery", symbol="GAL", log_dir=str(tmp_path))

    dispatcher = deploy_collection(settings, event_sink=sink, store=LedgerStore())
    try:
        assert dispatcher.call(ALICE, "mint", to=BOB).return_value == 0
        assert dispatcher.call(ALICE, "name").return_value == "Gallery"
        assert len(sink) == 1
    finally:
        package_logger = logging.getLogger(PACKAGE_LOGGER)
        for handler in list(package_logger.handlers):
            package_logger.removeHandler(handler)
            handler.close()
