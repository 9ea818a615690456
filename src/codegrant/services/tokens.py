"""Authorization code to access token exchange service.

Implements the second step of the authorization code grant against the
provider's token endpoint.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import ValidationError

from codegrant.models.errors import TokenError, TokenExchangeError
from codegrant.models.tokens import AuthTokenAllowed, TokenRequest

logger = logging.getLogger(__name__)


class OAuth2TokenManager:
    """Exchanges granted authorization codes for access tokens.

    By default the parameters travel in the URL query of the POST request,
    since the provider rejects them in the body despite documenting
    otherwise. Form encoding is available for providers that follow the
    RFC to the letter.
    """

    def __init__(self, timeout: float = 30.0):
        """Initialize the token manager.

        Args:
            timeout: HTTP request timeout in seconds
        """
        self.timeout = timeout
        self._http_client = httpx.AsyncClient(timeout=timeout)

    async def exchange_code_for_token(
        self, token_request: TokenRequest, *, params_in_body: bool = False
    ) -> AuthTokenAllowed:
        """Exchange an authorization code for an access token.

        Args:
            token_request: Token exchange request parameters
            params_in_body: Send the parameters as a form body instead of
                URL query parameters

        Returns:
            AuthTokenAllowed: The parsed success body

        Raises:
            TokenExchangeError: If the provider answers with a non-success
                status; the provider's error body is kept verbatim
            TokenError: If the request fails or the body cannot be parsed
        """
        logger.debug(f"Exchanging authorization code at {token_request.token_endpoint}")

        headers = {"Accept": "application/json"}
        try:
            if params_in_body:
                headers["Content-Type"] = "application/x-www-form-urlencoded"
                response = await self._http_client.post(
                    token_request.token_endpoint,
                    data=token_request.to_form_data(),
                    headers=headers,
                )
            else:
                response = await self._http_client.post(
                    token_request.build_token_url(),
                    headers=headers,
                )
        except httpx.HTTPError as e:
            raise TokenError(f"HTTP error during token exchange: {e}") from e

        return self._parse_token_response(response)

    def _parse_token_response(self, response: httpx.Response) -> AuthTokenAllowed:
        """Parse a token endpoint response.

        Raises:
            TokenExchangeError: On any non-success status
            TokenError: If a success body is not a valid token response
        """
        if not response.is_success:
            body = self._error_body(response)
            logger.warning(
                f"Token exchange failed with {response.status_code}: {body}"
            )
            raise TokenExchangeError(response.status_code, body)

        try:
            token = AuthTokenAllowed.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise TokenError(f"Invalid token response format: {e}") from e

        logger.info("Token exchange successful")
        return token

    @staticmethod
    def _error_body(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError:
            return response.text

    async def close(self) -> None:
        """Close the HTTP client and clean up resources."""
        await self._http_client.aclose()
