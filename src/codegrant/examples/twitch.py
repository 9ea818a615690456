"""
Obtain a Twitch user access token with the authorization code grant.

Register an application on the Twitch developer console with the redirect
URI http://localhost:8833 and set the TWITCH_CLIENT_ID and
TWITCH_CLIENT_SECRET environment variables (a .env file works too).

Twitch authentication docs:
https://dev.twitch.tv/docs/authentication/getting-tokens-oauth/
"""

import asyncio
import logging

from dotenv import load_dotenv

from codegrant.models.config import OAuth2Config
from codegrant.models.scopes import Scope
from codegrant.oauth_client import AuthorizationCodeClient


class PrintAuthorizationHandler:
    async def handle_authorization(self, auth_url: str) -> None:
        print(f"Open this URL in your browser: {auth_url}\n")


async def main():
    config = OAuth2Config.from_env(prefix="TWITCH_").model_copy(
        update={
            "scopes": [Scope.CHAT_READ, Scope.CHANNEL_READ_POLLS],
            # Disable this once tokens are persisted somewhere
            "force_verify": True,
        }
    )
    logging.info(
        f"Listening on {', '.join(config.listen_ips)} port {config.listen_port}, "
        f"redirect URI {config.redirect_uri}, max tries {config.max_tries}"
    )

    client = AuthorizationCodeClient(
        config, authorization_handler=PrintAuthorizationHandler()
    )
    try:
        token = await client.authenticate()
    finally:
        await client.close()

    print(f"Token type: {token.token_type}")
    print(f"Expires in: {token.expires_in} seconds")
    print(f"Scopes: {' '.join(token.scope)}")


if __name__ == "__main__":
    load_dotenv()
    logging.basicConfig(level=logging.INFO)
    asyncio.run(main())
