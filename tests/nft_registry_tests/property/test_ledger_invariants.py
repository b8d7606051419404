"""
Property-based tests for ownership ledger invariants.

Random sequences of mint, burn, transfer, approve and operator calls are
applied from random callers. After every step:
- each account's balance equals the number of tokens it owns
- the zero address owns nothing and has no balance
- unminted tokens carry no approved spender
- a failed call leaves state and the event log untouched

Uses Hypothesis for property-based testing with random inputs.
"""

from hypothesis import given, settings, strategies as st

from nft_registry.core.contracts.erc721 import ERC721Ledger
from nft_registry.core.contracts.events import EventLog, TransferEvent
from nft_registry.core.registry_exceptions import ERC721Error

ZERO = "0x" + "0" * 40
ACCOUNTS = ["0x" + byte * 20 for byte in ("a1", "b2", "c3", "d4")]
TOKEN_IDS = list(range(6))

accounts = st.sampled_from(ACCOUNTS)
recipients = st.sampled_from(ACCOUNTS + [ZERO])
token_ids = st.sampled_from(TOKEN_IDS)

operations = st.one_of(
    st.tuples(st.just("mint"), recipients, token_ids),
    st.tuples(st.just("burn"), token_ids),
    st.tuples(st.just("transfer_from"), accounts, accounts, recipients, token_ids),
    st.tuples(st.just("approve"), accounts, recipients, token_ids),
    st.tuples(st.just("set_approval_for_all"), accounts, accounts, st.booleans()),
)


def snapshot(ledger):
    return (
        {token_id: ledger.owner_of(token_id) for token_id in TOKEN_IDS},
        {account: ledger.balance_of(account) for account in ACCOUNTS + [ZERO]},
        {token_id: ledger.get_approved(token_id) for token_id in TOKEN_IDS},
        {(o, p): ledger.is_approved_for_all(o, p) for o in ACCOUNTS for p in ACCOUNTS},
    )


def assert_invariants(ledger):
    owners = {token_id: ledger.owner_of(token_id) for token_id in TOKEN_IDS}
    for account in ACCOUNTS:
        owned = sum(1 for owner in owners.values() if owner == account)
        assert ledger.balance_of(account) == owned, f"balance of {account} != {owned}"
    assert ledger.balance_of(ZERO) == 0
    for token_id, owner in owners.items():
        if owner == ZERO:
            assert ledger.get_approved(token_id) == ZERO


class TestLedgerInvariants:
    """Invariants that hold after any sequence of public operations."""

    @given(ops=st.lists(operations, max_size=40))
    @settings(max_examples=150, deadline=None)
    def test_balances_match_ownership(self, ops):
        event_log = EventLog()
        ledger = ERC721Ledger("StylusNFT", "SNFT", event_sink=event_log)

        for name, *args in ops:
            before = snapshot(ledger)
            events_before = len(event_log)
            try:
                getattr(ledger, name)(*args)
            except ERC721Error:
                assert snapshot(ledger) == before
                assert len(event_log) == events_before
            assert_invariants(ledger)

    @given(ops=st.lists(operations, max_size=40))
    @settings(max_examples=100, deadline=None)
    def test_replaying_transfer_events_reconstructs_ownership(self, ops):
        event_log = EventLog()
        ledger = ERC721Ledger("StylusNFT", "SNFT", event_sink=event_log)

        for name, *args in ops:
            try:
                getattr(ledger, name)(*args)
            except ERC721Error:
                pass

        replayed = {}
        for event in event_log.of_type(TransferEvent):
            replayed[event.token_id] = event.to_address
        for token_id in TOKEN_IDS:
            assert ledger.owner_of(token_id) == replayed.get(token_id, ZERO)

    @given(
        ops=st.lists(operations, max_size=20),
        new_owner=accounts,
        token_id=token_ids,
    )
    @settings(max_examples=100, deadline=None)
    def test_transfer_clears_single_token_approval(self, ops, new_owner, token_id):
        ledger = ERC721Ledger("StylusNFT", "SNFT")
        for name, *args in ops:
            try:
                getattr(ledger, name)(*args)
            except ERC721Error:
                pass

        owner = ledger.owner_of(token_id)
        if owner == ZERO:
            return
        ledger.transfer_from(owner, owner, new_owner, token_id)

        assert ledger.owner_of(token_id) == new_owner
        assert ledger.get_approved(token_id) == ZERO

    @given(ops=st.lists(operations, max_size=20), caller=accounts, token_id=token_ids)
    @settings(max_examples=100, deadline=None)
    def test_authorization_query_has_no_side_effects(self, ops, caller, token_id):
        event_log = EventLog()
        ledger = ERC721Ledger("StylusNFT", "SNFT", event_sink=event_log)
        for name, *args in ops:
            try:
                getattr(ledger, name)(*args)
            except ERC721Error:
                pass

        owner = ledger.owner_of(token_id)
        before = snapshot(ledger)
        events_before = len(event_log)

        first = ledger.is_authorized(caller, owner, token_id)
        second = ledger.is_authorized(caller, owner, token_id)

        assert first == second
        assert snapshot(ledger) == before
        assert len(event_log) == events_before
        if caller == owner:
            assert first is True
