"""
NFT Registry - ERC721 ownership ledger

Tracks which account owns each token of a collection, per-account balances,
single-token approvals and operator approvals, with all-or-nothing
operations and a receiver-acknowledged "safe" transfer protocol.

Main Components:
- core.ledger_store: the ownership relations over a key-value backend
- core.contracts.erc721: transfer, approval, mint and burn state machine
- core.contracts.receiver: safe-receive hook protocol
- core.contracts.collection: deployment entrypoint (sequential ids, token URIs)
- core.contracts.dispatch: named-call dispatcher returning tagged results
"""

__version__ = "0.1.0"
__author__ = "NFT Registry Development Team"


def deploy_collection(settings=None, **collaborators):
    """
    Deploy a collection and return a dispatcher for it.

    Settings default to ``RegistrySettings.from_env()``; logging is configured
    from the same settings. Collaborators (``programs``, ``store``,
    ``event_sink``...) are passed to the ledger.
    """
    from .core.config import RegistrySettings
    from .core.contracts.collection import NFTCollection
    from .core.contracts.dispatch import RegistryDispatcher
    from .core.structured_logger import configure_logging

    settings = settings or RegistrySettings.from_env()
    configure_logging(settings)
    return RegistryDispatcher(NFTCollection.from_settings(settings, **collaborators))


__all__ = ["deploy_collection"]
