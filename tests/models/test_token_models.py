import pytest
from pydantic import ValidationError

from codegrant.models.secrets import AccessToken, RefreshToken
from codegrant.models.tokens import AuthTokenAllowed

TOKEN_BODY = {
    "access_token": "rfx2uswqe8l4g1mkagrvg5tv0ks3",
    "expires_in": 14124,
    "refresh_token": "5b93chm6hdve3mycz05zfzatkfdenfspp1h1ar2xxdalen01",
    "scope": ["channel:moderate", "chat:edit", "chat:read"],
    "token_type": "bearer",
}


class TestAuthTokenAllowed:
    def test_parses_provider_body(self):
        # Act
        token = AuthTokenAllowed.model_validate(TOKEN_BODY)

        # Assert
        assert token.access_token == AccessToken("rfx2uswqe8l4g1mkagrvg5tv0ks3")
        assert token.refresh_token == RefreshToken(
            "5b93chm6hdve3mycz05zfzatkfdenfspp1h1ar2xxdalen01"
        )
        assert token.expires_in == 14124
        assert token.scope == ["channel:moderate", "chat:edit", "chat:read"]
        assert token.token_type == "bearer"

    def test_space_delimited_scope_string(self):
        token = AuthTokenAllowed.model_validate({**TOKEN_BODY, "scope": "chat:read chat:edit"})

        assert token.scope == ["chat:read", "chat:edit"]

    def test_optional_fields_may_be_absent(self):
        body = {k: v for k, v in TOKEN_BODY.items() if k not in ("refresh_token", "scope")}

        token = AuthTokenAllowed.model_validate(body)

        assert token.refresh_token is None
        assert token.scope == []

    def test_access_token_required(self):
        body = {k: v for k, v in TOKEN_BODY.items() if k != "access_token"}

        with pytest.raises(ValidationError):
            AuthTokenAllowed.model_validate(body)

    def test_tokens_are_redacted(self):
        token = AuthTokenAllowed.model_validate(TOKEN_BODY)

        assert "rfx2uswqe8l4g1mkagrvg5tv0ks3" not in repr(token)

    def test_expires_at(self):
        token = AuthTokenAllowed.model_validate(TOKEN_BODY)

        assert token.expires_at(now=1000.0) == 15124.0
