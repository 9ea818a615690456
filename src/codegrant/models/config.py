"""Configuration for the authorization code flow.

All options are explicit fields passed to the client; nothing is read from
the environment unless :meth:`OAuth2Config.from_env` is called.
"""

from __future__ import annotations

import os
from collections.abc import Mapping

from pydantic import BaseModel, Field, PositiveFloat, field_validator

from codegrant.models.flow import AUTHORIZE_CODE_REQUEST_URL
from codegrant.models.scopes import parse_scopes
from codegrant.models.secrets import ClientId, ClientSecret
from codegrant.models.tokens import AUTHORIZE_TOKEN_REQUEST_URL
from codegrant.services.listener import Address, make_socket_addrs


class OAuth2Config(BaseModel):
    """Application registration and local listener settings."""

    client_id: ClientId
    client_secret: ClientSecret | None = None
    # Must match the redirect URI registered with the provider
    redirect_uri: str = "http://localhost:8833"
    scopes: list[str] = Field(default_factory=list)
    force_verify: bool = False

    listen_ips: list[str] = Field(default=["127.0.0.1"], min_length=1)
    listen_port: int = Field(default=8833, ge=0, le=65535)
    max_tries: int = Field(default=5, ge=0)
    read_timeout: PositiveFloat | None = 30.0
    accept_timeout: PositiveFloat | None = None

    authorization_endpoint: str = AUTHORIZE_CODE_REQUEST_URL
    token_endpoint: str = AUTHORIZE_TOKEN_REQUEST_URL
    token_params_in_body: bool = False
    http_timeout: PositiveFloat = 30.0

    @field_validator("scopes", mode="before")
    @classmethod
    def split_scopes(cls, v: object) -> list[str]:
        return parse_scopes(v)

    @field_validator("listen_ips")
    @classmethod
    def validate_listen_ips(cls, v: list[str]) -> list[str]:
        make_socket_addrs(v, 0)
        return v

    def bind_addresses(self) -> list[Address]:
        """Addresses for the callback listener to bind."""
        return make_socket_addrs(self.listen_ips, self.listen_port)

    @classmethod
    def from_env(
        cls, prefix: str = "OAUTH2_", environ: Mapping[str, str] | None = None
    ) -> OAuth2Config:
        """Build a configuration from environment variables.

        Reads ``<prefix>CLIENT_ID`` (required), ``<prefix>CLIENT_SECRET``,
        ``<prefix>REDIRECT_URI``, ``<prefix>SCOPES`` (space-delimited) and
        ``<prefix>LISTEN_PORT``.

        Raises:
            ValueError: If the client id is not set
        """
        if environ is None:
            environ = os.environ

        client_id = environ.get(f"{prefix}CLIENT_ID")
        if not client_id:
            raise ValueError(f"environment variable {prefix}CLIENT_ID is not set")

        values: dict[str, object] = {"client_id": client_id}
        optional = {
            "client_secret": f"{prefix}CLIENT_SECRET",
            "redirect_uri": f"{prefix}REDIRECT_URI",
            "scopes": f"{prefix}SCOPES",
            "listen_port": f"{prefix}LISTEN_PORT",
        }
        for field_name, variable in optional.items():
            if environ.get(variable):
                values[field_name] = environ[variable]

        return cls.model_validate(values)
