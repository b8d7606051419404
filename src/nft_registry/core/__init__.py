"""
NFT Registry Core Module

Configuration, structured logging, the exception hierarchy, address handling
and the ledger store, plus the ERC721 contracts package.
"""

__all__ = []
