"""
Registry exception hierarchy.

Every ledger failure is a typed exception carrying the identifiers involved
(never free text only), so callers can react without parsing messages. The
ERC721 error kinds also expose the 4-byte selector of their Solidity error
signature for dispatch layers that report them on the wire.
"""

from __future__ import annotations

from typing import Any, ClassVar, Dict, Optional


class RegistryError(Exception):
    """Base exception for all registry errors.

    Attributes:
        message: Human-readable error description
        details: Identifiers and context about the error
        recoverable: Whether the operation can be retried unchanged
    """

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        recoverable: bool = False,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.recoverable = recoverable


# ==================== Input Errors ====================


class InvalidAddressError(RegistryError, ValueError):
    """Raised when an account identifier is malformed or fails its checksum."""

    def __init__(self, address: Any, reason: str) -> None:
        super().__init__(
            f"Invalid address {address!r}: {reason}",
            details={"address": address, "reason": reason},
        )
        self.address = address


class InvalidTokenIdError(RegistryError, ValueError):
    """Raised when a token id is not an unsigned 256-bit integer."""

    def __init__(self, token_id: Any) -> None:
        super().__init__(
            f"Token id must be an integer in [0, 2**256 - 1], got {token_id!r}",
            details={"token_id": token_id},
        )
        self.token_id = token_id


# ==================== ERC721 Errors ====================


class ERC721Error(RegistryError):
    """Base class for the ledger's structured failure kinds."""

    error_name: ClassVar[str] = "ERC721Error"
    signature: ClassVar[str] = ""

    @property
    def selector(self) -> bytes:
        """First four bytes of keccak256 over the Solidity error signature."""
        from .address_checksum import keccak256

        return keccak256(self.signature.encode("ascii"))[:4]


class NotOwnerError(ERC721Error):
    error_name = "NotOwner"
    signature = "NotOwner(address,uint256)"

    def __init__(self, account: str, token_id: int) -> None:
        super().__init__(
            f"ERC721: {account} is not the owner of token {token_id}",
            details={"account": account, "token_id": token_id},
        )
        self.account = account
        self.token_id = token_id


class NotAuthorizedError(ERC721Error):
    error_name = "NotAuthorized"
    signature = "NotAuthorized(address)"

    def __init__(self, caller: str) -> None:
        super().__init__(
            f"ERC721: caller {caller} is not owner, approved spender nor operator",
            details={"caller": caller},
        )
        self.caller = caller


class InvalidRecipientError(ERC721Error):
    error_name = "InvalidRecipient"
    signature = "InvalidRecipient(address)"

    def __init__(self, to: str) -> None:
        super().__init__(f"ERC721: invalid recipient {to}", details={"to": to})
        self.to = to


class AlreadyMintedError(ERC721Error):
    error_name = "AlreadyMinted"
    signature = "AlreadyMinted(uint256)"

    def __init__(self, token_id: int) -> None:
        super().__init__(
            f"ERC721: token {token_id} already minted",
            details={"token_id": token_id},
        )
        self.token_id = token_id


class NotMintedError(ERC721Error):
    error_name = "NotMinted"
    signature = "NotMinted(uint256)"

    def __init__(self, token_id: int) -> None:
        super().__init__(
            f"ERC721: token {token_id} does not exist",
            details={"token_id": token_id},
        )
        self.token_id = token_id


class UnsafeRecipientError(ERC721Error):
    error_name = "UnsafeRecipient"
    signature = "UnsafeRecipient(address)"

    def __init__(self, recipient: str) -> None:
        super().__init__(
            f"ERC721: recipient {recipient} did not acknowledge the token",
            details={"recipient": recipient},
        )
        self.recipient = recipient


class CallFailedError(ERC721Error):
    error_name = "CallFailed"
    signature = "CallFailed()"

    def __init__(self) -> None:
        super().__init__("ERC721: receiver hook call failed")


# ==================== Collaborator & Internal Errors ====================


class HookCallError(RegistryError):
    """Raised by a hook invoker when the acceptance hook cannot be completed.

    The ledger converts this into CallFailedError.
    """

    def __init__(self, target: str, reason: str) -> None:
        super().__init__(
            f"Acceptance hook on {target} could not be completed: {reason}",
            details={"target": target, "reason": reason},
            recoverable=True,
        )
        self.target = target
        self.reason = reason


class LedgerCorruptionError(RegistryError):
    """Raised when a balance would leave the uint256 range.

    Preconditions make this unreachable; seeing it means an invariant was
    already broken before the current operation started.
    """

    def __init__(self, account: str, value: int) -> None:
        super().__init__(
            f"Balance of {account} would become {value}, outside uint256 range",
            details={"account": account, "value": value},
        )
        self.account = account
        self.value = value


class UnknownMethodError(RegistryError):
    """Reported by the dispatcher for methods it does not expose."""

    def __init__(self, method: str) -> None:
        super().__init__(f"Unknown registry method {method!r}", details={"method": method})
        self.method = method


class InvalidArgumentsError(RegistryError):
    """Reported by the dispatcher when call arguments do not fit the method."""

    def __init__(self, method: str, reason: str) -> None:
        super().__init__(
            f"Invalid arguments for {method!r}: {reason}",
            details={"method": method, "reason": reason},
        )
        self.method = method
        self.reason = reason
