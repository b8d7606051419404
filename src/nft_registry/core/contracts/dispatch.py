"""
Method dispatcher for a deployed collection.

Routes a named call from an authenticated caller to the collection and
reports the outcome as a ``CallResult`` value instead of an exception.
Ledger failures and arguments that do not fit the method become failed
results carrying the typed error; defects such as ``LedgerCorruptionError``
are not converted and propagate.
"""

from __future__ import annotations

import inspect
import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple, Union

from ..registry_exceptions import (
    ERC721Error,
    InvalidAddressError,
    InvalidArgumentsError,
    InvalidTokenIdError,
    UnknownMethodError,
)
from ..structured_logger import get_structured_logger
from .collection import NFTCollection

logger = logging.getLogger(__name__)

# method name -> whether the caller is passed as the first argument
REGISTRY_METHODS: Dict[str, bool] = {
    # views
    "name": False,
    "symbol": False,
    "balance_of": False,
    "owner_of": False,
    "get_approved": False,
    "is_approved_for_all": False,
    "token_uri": False,
    "total_minted": False,
    # state-changing
    "mint": True,
    "safe_mint": True,
    "burn": True,
    "approve": True,
    "set_approval_for_all": True,
    "transfer_from": True,
    "safe_transfer_from": True,
}

_PROPERTIES = {"name", "symbol", "total_minted"}

CallError = Union[
    ERC721Error, InvalidAddressError, InvalidArgumentsError, InvalidTokenIdError, UnknownMethodError
]


@dataclass(frozen=True)
class CallResult:
    """Tagged outcome of one dispatched call."""

    success: bool
    return_value: Any = None
    error: Optional[CallError] = None

    @property
    def error_name(self) -> Optional[str]:
        if self.error is None:
            return None
        return getattr(self.error, "error_name", type(self.error).__name__)

    @property
    def error_selector(self) -> Optional[bytes]:
        if isinstance(self.error, ERC721Error):
            return self.error.selector
        return None

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"success": self.success}
        if self.success:
            result["return_value"] = self.return_value
        else:
            result["error"] = self.error_name
            result["details"] = dict(self.error.details) if self.error else {}
            selector = self.error_selector
            if selector is not None:
                result["selector"] = "0x" + selector.hex()
        return result


class RegistryDispatcher:
    """Dispatches named calls against a single collection."""

    def __init__(self, collection: NFTCollection) -> None:
        self.collection = collection
        self.structured_logger = get_structured_logger()

    def call(self, caller: str, method: str, **kwargs: Any) -> CallResult:
        if method not in REGISTRY_METHODS:
            logger.warning(
                "Unknown registry method",
                extra={"event": "dispatch.unknown_method", "method": method},
            )
            return CallResult(success=False, error=UnknownMethodError(method))

        started = time.time()
        try:
            if method in _PROPERTIES:
                if kwargs:
                    raise InvalidArgumentsError(method, "takes no arguments")
                value = getattr(self.collection, method)
            else:
                target = getattr(self.collection, method)
                args = (caller,) if REGISTRY_METHODS[method] else ()
                self._bind(method, target, args, kwargs)
                value = target(*args, **kwargs)
        except (ERC721Error, InvalidAddressError, InvalidTokenIdError, InvalidArgumentsError) as exc:
            self.structured_logger.registry_call(
                method,
                caller,
                success=False,
                error=getattr(exc, "error_name", type(exc).__name__),
                duration_ms=(time.time() - started) * 1000,
            )
            return CallResult(success=False, error=exc)

        self.structured_logger.registry_call(
            method, caller, success=True, duration_ms=(time.time() - started) * 1000
        )
        return CallResult(success=True, return_value=value)

    @staticmethod
    def _bind(method: str, target: Any, args: Tuple[Any, ...], kwargs: Dict[str, Any]) -> None:
        try:
            inspect.signature(target).bind(*args, **kwargs)
        except TypeError as exc:
            raise InvalidArgumentsError(method, str(exc)) from exc
