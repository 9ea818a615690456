"""Exception hierarchy for the authorization code handshake.

Provides specific exception types for every failure mode of the callback
listener and the token exchange so callers can tell retryable conditions
from terminal ones.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from codegrant.models.flow import AuthCodeAllowed, AuthCodeDenied


class OAuth2Error(Exception):
    """Base exception for all OAuth 2 related errors."""

    pass


class CallbackError(OAuth2Error):
    """Raised when the local callback listener fails to produce a code."""

    pass


class TransportError(CallbackError):
    """Raised when binding, reading from or writing to a socket fails."""

    pass


class RequestReadError(TransportError):
    """Raised when an inbound request could not be read.

    Covers peers that reset the connection or never finish sending the
    request head within the read timeout. Absorbed while retries remain.
    """

    pass


class MalformedRequestError(CallbackError):
    """Raised when an inbound request is not a usable provider redirect.

    Either the request line is structurally invalid, the target carries no
    query string, or the query matches neither the granted nor the denied
    response shape.
    """

    pass


class AuthDeniedError(CallbackError):
    """Raised when the provider explicitly refused the authorization."""

    def __init__(self, denied: AuthCodeDenied):
        super().__init__(str(denied))
        self.denied = denied

    @property
    def error(self) -> str:
        return self.denied.error

    @property
    def error_description(self) -> str:
        return self.denied.error_description


class InvalidCsrfStateError(CallbackError):
    """Raised when the echoed CSRF state does not reconcile with the sent one.

    This indicates either a missing, unexpected or mismatched state
    parameter, which could mean a spoofed redirect. Never retried.
    """

    def __init__(self, reason: str, result: AuthCodeAllowed):
        super().__init__(reason)
        self.reason = reason
        self.result = result


class UnexpectedEndError(CallbackError):
    """Raised when the listener stops yielding connections before an outcome."""

    pass


class CallbackTimeoutError(CallbackError):
    """Raised when no connection arrives within the accept timeout."""

    pass


class TokenError(OAuth2Error):
    """Raised when token operations fail."""

    pass


class TokenExchangeError(TokenError):
    """Raised when the token endpoint rejects the authorization code.

    The provider-defined error body is kept verbatim on ``body``.
    """

    def __init__(self, status_code: int, body: Any):
        super().__init__(f"Token exchange failed with {status_code}: {body}")
        self.status_code = status_code
        self.body = body
