"""CSRF state utilities for the authorization code flow.

Provides state generation and the reconciliation of the state sent in the
authorization request against the state echoed on the redirect.
"""

from __future__ import annotations

import secrets

from codegrant.models.errors import InvalidCsrfStateError
from codegrant.models.flow import AuthCodeAllowed
from codegrant.models.secrets import CsrfState


def generate_state(length: int = 16) -> CsrfState:
    """Generate a random state for one authorization attempt."""
    return CsrfState.new_random(length)


def states_match(expected: CsrfState, actual: CsrfState) -> bool:
    """Compare two states in constant time."""
    return secrets.compare_digest(
        expected.get_secret_value().encode("utf-8"),
        actual.get_secret_value().encode("utf-8"),
    )


def reconcile_state(
    expected: CsrfState | None, result: AuthCodeAllowed
) -> AuthCodeAllowed:
    """Check the echoed state against the one sent with the request.

    Args:
        expected: State sent in the authorization request, if any
        result: Granted redirect parameters

    Returns:
        The granted result, unchanged

    Raises:
        InvalidCsrfStateError: If exactly one side carries a state, or both
            do and they differ
    """
    received = result.state
    if expected is not None and received is not None:
        if states_match(expected, received):
            return result
        raise InvalidCsrfStateError(
            "the provider responded with a mismatched CSRF state", result
        )
    if expected is not None:
        raise InvalidCsrfStateError(
            "a CSRF state was sent, but the provider did not echo one", result
        )
    if received is not None:
        raise InvalidCsrfStateError(
            "the provider returned a CSRF state that was never requested", result
        )
    return result
