"""
Account Address Handling - EIP-55 Mixed-Case Encoding

Account identifiers are 20-byte values written as ``0x`` + 40 hex characters.
The ledger keys everything by the canonical lower-case form; the mixed-case
EIP-55 checksum form is accepted on input and produced for display.

Address Format:
- Canonical: 0x5aaeb6053f3e94c9b9a09f33669435e7ef1beaed
- Checksum:  0x5aAeb6053F3E94C9b9A09f33669435E7Ef1BeAed
"""

from __future__ import annotations

import re

from Crypto.Hash import keccak

from .config import ADDRESS_HEX_LENGTH
from .registry_exceptions import InvalidAddressError

_ADDRESS_RE = re.compile(r"0x[0-9a-fA-F]{%d}" % ADDRESS_HEX_LENGTH)


def keccak256(data: bytes) -> bytes:
    """Compute keccak256 hash (same as Ethereum)."""
    k = keccak.new(digest_bits=256)
    k.update(data)
    return k.digest()


def to_checksum_address(address: str) -> str:
    """
    Convert an address to its EIP-55 checksummed form.

    Raises:
        InvalidAddressError: If the address is not 0x + 40 hex characters

    Example:
        >>> to_checksum_address("0x5aaeb6053f3e94c9b9a09f33669435e7ef1beaed")
        '0x5aAeb6053F3E94C9b9A09f33669435E7Ef1BeAed'
    """
    if not isinstance(address, str) or not _ADDRESS_RE.fullmatch(address):
        raise InvalidAddressError(address, "expected 0x followed by 40 hex characters")

    hex_lower = address[2:].lower()
    address_hash = keccak256(hex_lower.encode("ascii")).hex()

    checksummed = []
    for i, char in enumerate(hex_lower):
        if char in "0123456789":
            checksummed.append(char)
        elif int(address_hash[i], 16) >= 8:
            checksummed.append(char.upper())
        else:
            checksummed.append(char)

    return "0x" + "".join(checksummed)


def is_checksum_valid(address: str) -> bool:
    """
    Verify the EIP-55 checksum of an address.

    All-lowercase and all-uppercase hex carry no checksum and are accepted.
    """
    if not isinstance(address, str) or not _ADDRESS_RE.fullmatch(address):
        return False
    hex_part = address[2:]
    if hex_part == hex_part.lower() or hex_part == hex_part.upper():
        return True
    return address == to_checksum_address(address)


def canonical_address(address: str, require_checksum: bool = False) -> str:
    """
    Validate an address and return the canonical lower-case form.

    Args:
        address: Address in any case
        require_checksum: Reject input that is not in checksummed form

    Raises:
        InvalidAddressError: If the format or checksum is invalid
    """
    if not isinstance(address, str) or not _ADDRESS_RE.fullmatch(address):
        raise InvalidAddressError(address, "expected 0x followed by 40 hex characters")

    if require_checksum:
        if address != to_checksum_address(address):
            raise InvalidAddressError(
                address, f"checksum required, did you mean {to_checksum_address(address)}?"
            )
    elif not is_checksum_valid(address):
        raise InvalidAddressError(
            address, f"invalid checksum, did you mean {to_checksum_address(address)}?"
        )

    return "0x" + address[2:].lower()
