"""Token exchange models (second step of the flow).

Contains the code-for-token request and the token endpoint's success body.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field

from pydantic import BaseModel, Field, field_validator

from codegrant.models.scopes import parse_scopes
from codegrant.models.secrets import (
    AccessToken,
    AuthCode,
    ClientId,
    ClientSecret,
    RefreshToken,
)
from codegrant.primitives.query import QueryParams, query_param

AUTHORIZE_TOKEN_REQUEST_URL = "https://id.twitch.tv/oauth2/token"


@dataclass(frozen=True, kw_only=True)
class TokenRequest(QueryParams):
    """Authorization code to token exchange parameters.

    Immutable request parameters, emitted in declaration order. The client
    secret is omitted for public clients.
    """

    client_id: ClientId
    client_secret: ClientSecret | None = field(
        default=None, metadata=query_param(skip_if=lambda value: value is None)
    )
    code: AuthCode
    grant_type: str = field(default="authorization_code", init=False)
    redirect_uri: str
    token_endpoint: str = field(
        default=AUTHORIZE_TOKEN_REQUEST_URL, metadata=query_param(exclude=True)
    )

    def build_token_url(self) -> str:
        """Build the token endpoint URL with the parameters in its query."""
        return f"{self.token_endpoint}?{self.to_query_string()}"

    def to_form_data(self) -> dict[str, str]:
        """Convert to form data for an application/x-www-form-urlencoded body."""
        return self.to_params()


class AuthTokenAllowed(BaseModel):
    """Successful token endpoint response.

    ```json
    {
      "access_token": "rfx2uswqe8l4g1mkagrvg5tv0ks3",
      "expires_in": 14124,
      "refresh_token": "5b93chm6hdve3mycz05zfzatkfdenfspp1h1ar2xxdalen01",
      "scope": ["channel:moderate", "chat:edit", "chat:read"],
      "token_type": "bearer"
    }
    ```
    """

    access_token: AccessToken
    expires_in: int
    refresh_token: RefreshToken | None = None
    scope: list[str] = Field(default_factory=list)
    token_type: str

    @field_validator("scope", mode="before")
    @classmethod
    def normalize_scope(cls, v: object) -> list[str]:
        return parse_scopes(v)

    def expires_at(self, now: float | None = None) -> float:
        """Absolute Unix timestamp at which the access token expires."""
        if now is None:
            now = time.time()
        return now + self.expires_in
