"""Opaque wrappers for the secret strings exchanged during the flow.

Every wrapper is a distinct :class:`pydantic.SecretStr` so values redact
themselves in ``repr()``, ``str()`` and log output, and values of different
kinds (a state and a code, say) never compare equal.
"""

from __future__ import annotations

import secrets
import string

from pydantic import SecretStr


class ClientId(SecretStr):
    """Application client id issued by the provider's developer console."""


class ClientSecret(SecretStr):
    """Application client secret. Never sent to the browser."""


class CsrfState(SecretStr):
    """Caller-generated state echoed back by the provider."""

    @classmethod
    def new_random(cls, length: int = 16) -> CsrfState:
        """Generate a random alphanumeric state.

        Args:
            length: Number of characters to generate

        Returns:
            A fresh state for a single authorization attempt
        """
        if length < 1:
            raise ValueError("state length must be positive")
        alphabet = string.ascii_letters + string.digits
        return cls("".join(secrets.choice(alphabet) for _ in range(length)))


class AuthCode(SecretStr):
    """Single-use authorization code returned on the redirect."""


class AccessToken(SecretStr):
    pass


class RefreshToken(SecretStr):
    pass
