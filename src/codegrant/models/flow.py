"""Authorization flow models for the authorization code grant.

Contains the authorization request sent through the browser and the two
shapes a provider redirect can take: granted or denied.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from codegrant.models.errors import MalformedRequestError
from codegrant.models.scopes import format_scopes, parse_scopes
from codegrant.models.secrets import AuthCode, ClientId, CsrfState
from codegrant.primitives.query import (
    QueryParams,
    decode_query,
    percent_encode,
    query_param,
)

AUTHORIZE_CODE_REQUEST_URL = "https://id.twitch.tv/oauth2/authorize"


def _encode_scopes(scopes: Sequence[str]) -> str:
    return percent_encode(format_scopes(scopes))


@dataclass(frozen=True, kw_only=True)
class AuthorizationRequest(QueryParams):
    """Authorization request parameters (first step of the flow).

    Fields are emitted in declaration order. ``force_verify`` only appears
    when true, ``scope`` only when non-empty and ``state`` only when set.
    """

    client_id: ClientId
    force_verify: bool = field(
        default=False, metadata=query_param(skip_if=lambda value: not value)
    )
    redirect_uri: str
    response_type: str = field(default="code", init=False)
    scope: Sequence[str] = field(
        default=(),
        metadata=query_param(skip_if=lambda value: not value, proxy=_encode_scopes),
    )
    state: CsrfState | None = field(
        default=None, metadata=query_param(skip_if=lambda value: value is None)
    )
    authorization_endpoint: str = field(
        default=AUTHORIZE_CODE_REQUEST_URL, metadata=query_param(exclude=True)
    )

    def build_authorization_url(self) -> str:
        """Build the complete authorization URL."""
        return f"{self.authorization_endpoint}?{self.to_query_string()}"


class AuthCodeAllowed(BaseModel):
    """Redirect parameters when the user granted the authorization."""

    model_config = ConfigDict(frozen=True)

    code: AuthCode
    scope: list[str]
    state: CsrfState | None = None

    @field_validator("code")
    @classmethod
    def validate_code(cls, v: AuthCode) -> AuthCode:
        if not v.get_secret_value():
            raise ValueError("authorization code must not be empty")
        return v

    @field_validator("scope", mode="before")
    @classmethod
    def split_scope(cls, v: object) -> list[str]:
        return parse_scopes(v)


class AuthCodeDenied(BaseModel):
    """Redirect parameters when the provider refused the authorization."""

    model_config = ConfigDict(frozen=True)

    error: str
    error_description: str
    state: CsrfState | None = None

    def __str__(self) -> str:
        return f"{self.error_description} ({self.error})"


def parse_callback_query(query: str) -> AuthCodeAllowed | AuthCodeDenied:
    """Classify a redirect query string as granted or denied.

    The granted shape is tried first and the denied shape second. A query
    missing a required field of both is never guessed at.

    Args:
        query: Raw query string taken from the redirect request target

    Returns:
        The granted or denied response

    Raises:
        MalformedRequestError: If the query matches neither shape
    """
    params = decode_query(query)
    try:
        return AuthCodeAllowed.model_validate(params)
    except ValidationError:
        try:
            return AuthCodeDenied.model_validate(params)
        except ValidationError as e:
            raise MalformedRequestError(
                "Redirect query is neither a granted nor a denied response: "
                f"keys={sorted(params)}"
            ) from e
