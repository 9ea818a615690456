"""Tests for the end-to-end authorization code client.

The browser is simulated by a handler that follows the authorization URL's
redirect to the local listener; the token endpoint is mocked.
"""

import asyncio
from unittest.mock import AsyncMock
from urllib.parse import parse_qs, urlsplit

import pytest

from codegrant.models.config import OAuth2Config
from codegrant.models.errors import AuthDeniedError, InvalidCsrfStateError
from codegrant.models.secrets import AccessToken, AuthCode, ClientId, ClientSecret
from codegrant.models.tokens import AuthTokenAllowed
from codegrant.oauth_client import AuthorizationCodeClient

TOKEN = AuthTokenAllowed(
    access_token=AccessToken("rfx2uswqe8l4g1mkagrvg5tv0ks3"),
    expires_in=14124,
    scope=["chat:read"],
    token_type="bearer",
)


class SimulatedBrowser:
    """Plays the provider's redirect back to the local listener."""

    def __init__(
        self, redirect_sender, port: int, query: str = "code=abc123&scope=chat%3Aread"
    ):
        self.redirect_sender = redirect_sender
        self.port = port
        self.query = query
        self.auth_url: str | None = None
        self.redirect: asyncio.Task | None = None

    async def handle_authorization(self, auth_url: str) -> None:
        self.auth_url = auth_url
        params = parse_qs(urlsplit(auth_url).query)
        query = self.query
        if "state" in params:
            query += f"&state={params['state'][0]}"
        # The listener answers only once the handshake starts consuming
        self.redirect = asyncio.create_task(
            self.redirect_sender.get(self.port, f"/?{query}")
        )


class TestAuthorizationCodeClient:
    @pytest.fixture(autouse=True)
    def setup_client(self, free_port, redirect_sender):
        self.port = free_port
        self.redirect_sender = redirect_sender
        self.config = OAuth2Config(
            client_id=ClientId("client"),
            client_secret=ClientSecret("secret"),
            redirect_uri=f"http://localhost:{free_port}",
            scopes=["chat:read"],
            listen_port=free_port,
            max_tries=0,
            read_timeout=2.0,
        )
        self.token_manager = AsyncMock()
        self.token_manager.exchange_code_for_token.return_value = TOKEN

    def make_client(self, browser: SimulatedBrowser) -> AuthorizationCodeClient:
        return AuthorizationCodeClient(
            self.config,
            authorization_handler=browser,
            token_manager=self.token_manager,
        )

    async def test_authenticate_full_flow(self):
        # Arrange
        browser = SimulatedBrowser(self.redirect_sender, self.port)
        client = self.make_client(browser)

        # Act
        token = await client.authenticate()

        # Assert
        assert token is TOKEN
        assert (await browser.redirect).startswith(b"HTTP/1.1 200 OK")
        params = parse_qs(urlsplit(browser.auth_url).query)
        assert params["client_id"] == ["client"]
        assert params["response_type"] == ["code"]
        assert params["scope"] == ["chat:read"]
        assert len(params["state"][0]) == 16

        request = self.token_manager.exchange_code_for_token.call_args.args[0]
        assert request.code == AuthCode("abc123")
        assert request.redirect_uri == f"http://localhost:{self.port}"
        assert request.client_secret == ClientSecret("secret")
        assert (
            self.token_manager.exchange_code_for_token.call_args.kwargs
            == {"params_in_body": False}
        )

    async def test_authenticate_without_state(self):
        # Arrange
        browser = SimulatedBrowser(self.redirect_sender, self.port)
        client = self.make_client(browser)

        # Act
        await client.authenticate(use_state=False)

        # Assert
        assert "state=" not in browser.auth_url

    async def test_denied_authorization_skips_token_exchange(self):
        # Arrange
        browser = SimulatedBrowser(
            self.redirect_sender,
            self.port,
            query="error=access_denied&error_description=The+user+denied+you+access",
        )
        client = self.make_client(browser)

        # Act & Assert
        with pytest.raises(AuthDeniedError):
            await client.authenticate()
        self.token_manager.exchange_code_for_token.assert_not_awaited()
        assert (await browser.redirect).startswith(b"HTTP/1.1 200 OK")

    async def test_forged_state_is_rejected(self):
        # Arrange
        browser = SimulatedBrowser(
            self.redirect_sender,
            self.port,
            query="code=abc123&scope=chat%3Aread&state=forged",
        )
        client = self.make_client(browser)

        # Act & Assert
        with pytest.raises(InvalidCsrfStateError):
            await client.authenticate(use_state=False)
        self.token_manager.exchange_code_for_token.assert_not_awaited()
        await browser.redirect

    async def test_authorization_request_reflects_config(self):
        # Arrange
        self.config = self.config.model_copy(update={"force_verify": True})
        client = self.make_client(SimulatedBrowser(self.redirect_sender, self.port))

        # Act
        url = client.build_authorization_request().build_authorization_url()

        # Assert
        assert url.startswith(
            "https://id.twitch.tv/oauth2/authorize?client_id=client&force_verify=true&"
        )
        assert url.endswith("&scope=chat%3Aread")

    async def test_close_closes_token_manager(self):
        client = self.make_client(SimulatedBrowser(self.redirect_sender, self.port))

        await client.close()

        self.token_manager.close.assert_awaited_once()
