"""Exception types raised along the intent pipeline."""
from __future__ import annotations

from typing import Optional


class IntentError(Exception):
    """Base class; ``message`` is safe to show to an end user."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidHandleError(IntentError, ValueError):
    def __init__(self, handle: str) -> None:
        super().__init__(f"Invalid ENS name: {handle!r}")
        self.handle = handle


class UnsupportedTokenError(IntentError, ValueError):
    def __init__(self, from_token: str, to_token: str) -> None:
        super().__init__(f"Token not supported on one of the chains: {from_token} -> {to_token}")
        self.from_token = from_token
        self.to_token = to_token


class RouteNotFoundError(IntentError):
    def __init__(self, message: str = "No route found for this intent") -> None:
        super().__init__(message)


class NoYieldFoundError(IntentError):
    def __init__(
        self,
        message: str = "No yield opportunities found matching your criteria on the destination chain",
    ) -> None:
        super().__init__(message)


class BlacklistedProtocolError(IntentError):
    def __init__(self, protocol: str, protocol_slug: str) -> None:
        super().__init__(
            f"The best yield opportunity is from {protocol} ({protocol_slug}), which is in your blacklist"
        )
        self.protocol = protocol
        self.protocol_slug = protocol_slug


class SourceFetchError(IntentError):
    def __init__(self, source: str, cause: Optional[BaseException] = None) -> None:
        detail = f": {cause}" if cause else ""
        super().__init__(f"Yield source '{source}' failed{detail}")
        self.source = source
        self.cause = cause


class ExecutionError(IntentError):
    pass


class InvalidAmountError(IntentError, ValueError):
    def __init__(self, amount: str) -> None:
        super().__init__(f"Invalid amount: {amount!r}")
        self.amount = amount
