"""Authorization gate for token movement."""

from __future__ import annotations

from ..ledger_store import LedgerStore


def is_authorized(store: LedgerStore, caller: str, token_owner: str, token_id: int) -> bool:
    """
    Decide whether ``caller`` may move ``token_id`` held by ``token_owner``.

    Allowed when the caller is the owner, an operator approved by the owner,
    or the token's approved spender. Reads only; the result depends solely on
    current ledger state.
    """
    return (
        caller == token_owner
        or store.is_approved_for_all(token_owner, caller)
        or store.approved_spender_of(token_id) == caller
    )
