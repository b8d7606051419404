"""
Safe-receive protocol.

When a safe transfer or safe mint targets a callable program, the program's
``onERC721Received(address,address,uint256,bytes)`` hook is invoked and must
answer with the hook's own 4-byte selector. Plain accounts are not called.

Two collaborator interfaces keep the ledger independent of any host:
- ``RecipientInspector.is_callable_program(account)``
- ``HookInvoker.invoke_accept_hook(target, operator, from_address, token_id, data)``

``ProgramRegistry`` implements both for in-process programs.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, Optional, Protocol

from ..address_checksum import keccak256
from ..registry_exceptions import CallFailedError, HookCallError, UnsafeRecipientError

logger = logging.getLogger(__name__)

RECEIVER_HOOK_SIGNATURE = "onERC721Received(address,address,uint256,bytes)"
ERC721_RECEIVER_SELECTOR = bytes.fromhex("150b7a02")

ABI_WORD_SIZE = 32

AcceptHook = Callable[[str, str, int, bytes], bytes]


class RecipientInspector(Protocol):
    def is_callable_program(self, account: str) -> bool:
        ...


class HookInvoker(Protocol):
    def invoke_accept_hook(
        self, target: str, operator: str, from_address: str, token_id: int, data: bytes
    ) -> bytes:
        """Return the raw hook response; raise HookCallError if the call cannot complete."""
        ...


class PlainAccountInspector:
    """Treats every account as a plain account, so hooks are never invoked."""

    def is_callable_program(self, account: str) -> bool:
        return False


class ProgramRegistry:
    """
    In-process host of callable recipients.

    Each registered address maps to a hook callable receiving
    ``(operator, from_address, token_id, data)`` and returning the raw response.
    """

    def __init__(self) -> None:
        self._programs: Dict[str, AcceptHook] = {}

    def register(self, address: str, hook: AcceptHook) -> None:
        self._programs[address] = hook
        logger.debug(
            "Program registered",
            extra={"event": "receiver.registered", "address": address[:10]},
        )

    def unregister(self, address: str) -> None:
        self._programs.pop(address, None)

    def is_callable_program(self, account: str) -> bool:
        return account in self._programs

    def invoke_accept_hook(
        self, target: str, operator: str, from_address: str, token_id: int, data: bytes
    ) -> bytes:
        hook = self._programs.get(target)
        if hook is None:
            raise HookCallError(target, "no program deployed at target")
        try:
            response = hook(operator, from_address, token_id, data)
        except Exception as exc:
            raise HookCallError(target, f"hook raised {type(exc).__name__}: {exc}") from exc
        if not isinstance(response, (bytes, bytearray)):
            raise HookCallError(target, f"malformed response of type {type(response).__name__}")
        return bytes(response)


def decode_acknowledgment(raw: bytes) -> Optional[bytes]:
    """
    Extract the 4-byte acknowledgment from a hook response.

    Accepts a bare 4-byte value or one ABI word (bytes4 left-aligned, zero
    padded). Returns None for anything else.
    """
    if len(raw) == len(ERC721_RECEIVER_SELECTOR):
        return raw
    if len(raw) == ABI_WORD_SIZE and not any(raw[4:]):
        return raw[:4]
    return None


def check_recipient(
    inspector: RecipientInspector,
    invoker: Optional[HookInvoker],
    operator: str,
    from_address: str,
    to_address: str,
    token_id: int,
    data: bytes = b"",
) -> None:
    """
    Run the acceptance check for ``to_address``.

    Raises:
        CallFailedError: The hook could not be called or its response was malformed
        UnsafeRecipientError: The hook answered with the wrong acknowledgment
    """
    if not inspector.is_callable_program(to_address):
        return

    if invoker is None:
        logger.warning(
            "No hook invoker configured for callable recipient",
            extra={"event": "receiver.no_invoker", "recipient": to_address[:10], "token_id": token_id},
        )
        raise CallFailedError()

    try:
        raw = invoker.invoke_accept_hook(to_address, operator, from_address, token_id, data)
    except HookCallError as exc:
        logger.warning(
            "Receiver hook call failed",
            extra={
                "event": "receiver.call_failed",
                "recipient": to_address[:10],
                "token_id": token_id,
                "reason": exc.reason,
            },
        )
        raise CallFailedError() from exc

    acknowledgment = decode_acknowledgment(raw)
    if acknowledgment is None:
        logger.warning(
            "Receiver hook returned malformed response",
            extra={"event": "receiver.malformed", "recipient": to_address[:10], "length": len(raw)},
        )
        raise CallFailedError()

    if acknowledgment != ERC721_RECEIVER_SELECTOR:
        logger.warning(
            "Receiver rejected token",
            extra={
                "event": "receiver.rejected",
                "recipient": to_address[:10],
                "token_id": token_id,
                "acknowledgment": acknowledgment.hex(),
            },
        )
        raise UnsafeRecipientError(to_address)


def receiver_selector() -> bytes:
    """Selector computed from the hook signature; equals ERC721_RECEIVER_SELECTOR."""
    return keccak256(RECEIVER_HOOK_SIGNATURE.encode("ascii"))[:4]
