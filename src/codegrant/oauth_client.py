"""Complete authorization code grant orchestration.

Coordinates the authorization request, the local redirect listener and the
token exchange to obtain an access token for a local application.
"""

from __future__ import annotations

import logging
from typing import Protocol

from codegrant.models.config import OAuth2Config
from codegrant.models.flow import AuthorizationRequest
from codegrant.models.secrets import CsrfState
from codegrant.models.tokens import AuthTokenAllowed, TokenRequest
from codegrant.services.listener import CallbackListener
from codegrant.services.security import generate_state
from codegrant.services.tokens import OAuth2TokenManager

logger = logging.getLogger(__name__)


class AuthorizationHandler(Protocol):
    """Protocol for presenting the authorization URL to the user.

    The redirect itself is received by the callback listener, so handlers
    only need to get the URL in front of the user:
    - Print it to a terminal
    - Hand it to a custom UI
    """

    async def handle_authorization(self, auth_url: str) -> None:
        """Present the authorization URL.

        Args:
            auth_url: Authorization URL for the user to visit
        """
        ...


class LoggingAuthorizationHandler:
    """Authorization handler that logs the URL for the user to open."""

    async def handle_authorization(self, auth_url: str) -> None:
        logger.info(f"Open this URL in your browser: {auth_url}")


class AuthorizationCodeClient:
    """Authorization code grant client for a local application.

    Orchestrates the full flow from the authorization request through the
    token exchange, providing a single call for the caller to await.
    """

    def __init__(
        self,
        config: OAuth2Config,
        authorization_handler: AuthorizationHandler | None = None,
        token_manager: OAuth2TokenManager | None = None,
    ):
        """Initialize the client.

        Args:
            config: Application registration and listener settings
            authorization_handler: Handler presenting the authorization URL
            token_manager: Token exchange service, built from the config
                when omitted
        """
        self.config = config
        self.authorization_handler = (
            authorization_handler or LoggingAuthorizationHandler()
        )
        self.token_manager = token_manager or OAuth2TokenManager(
            timeout=config.http_timeout
        )

    def build_authorization_request(
        self, state: CsrfState | None = None
    ) -> AuthorizationRequest:
        """Build the authorization request for the configured application."""
        return AuthorizationRequest(
            client_id=self.config.client_id,
            force_verify=self.config.force_verify,
            redirect_uri=self.config.redirect_uri,
            scope=tuple(self.config.scopes),
            state=state,
            authorization_endpoint=self.config.authorization_endpoint,
        )

    async def authenticate(self, use_state: bool = True) -> AuthTokenAllowed:
        """Run the authorization code grant and return the token.

        Performs the complete flow:
        1. Generate a CSRF state
        2. Bind the callback listener
        3. Present the authorization URL
        4. Wait for the granted redirect
        5. Exchange the code for a token

        Args:
            use_state: Send a CSRF state with the authorization request

        Returns:
            AuthTokenAllowed: The provider's token response

        Raises:
            CallbackError: If the redirect handshake fails
            TokenError: If the token exchange fails
        """
        state = generate_state() if use_state else None
        auth_request = self.build_authorization_request(state)

        logger.debug(
            f"Starting authorization flow, max tries: {self.config.max_tries}, "
            f"scopes: {' '.join(self.config.scopes) or 'none'}"
        )

        # Bind before presenting the URL so the redirect cannot beat us to it
        async with CallbackListener(
            self.config.bind_addresses(),
            read_timeout=self.config.read_timeout,
            accept_timeout=self.config.accept_timeout,
        ) as listener:
            await self.authorization_handler.handle_authorization(
                auth_request.build_authorization_url()
            )
            allowed = await listener.await_auth_code(state, self.config.max_tries)

        logger.debug(f"Received authorization for scopes: {allowed.scope}")

        token_request = TokenRequest(
            client_id=self.config.client_id,
            client_secret=self.config.client_secret,
            code=allowed.code,
            redirect_uri=self.config.redirect_uri,
            token_endpoint=self.config.token_endpoint,
        )
        return await self.token_manager.exchange_code_for_token(
            token_request, params_in_body=self.config.token_params_in_body
        )

    async def close(self) -> None:
        """Close all service connections."""
        await self.token_manager.close()
