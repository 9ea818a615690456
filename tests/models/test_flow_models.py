import pytest
from pydantic import ValidationError

from codegrant.models.errors import MalformedRequestError
from codegrant.models.flow import AuthCodeAllowed, AuthCodeDenied, parse_callback_query
from codegrant.models.secrets import AuthCode, CsrfState


class TestParseCallbackQuery:
    def test_granted_without_state(self):
        # Act
        result = parse_callback_query("code=abc123&scope=chat%3Aread")

        # Assert
        assert isinstance(result, AuthCodeAllowed)
        assert result.code == AuthCode("abc123")
        assert result.scope == ["chat:read"]
        assert result.state is None

    def test_granted_with_state_and_many_scopes(self):
        # Act
        result = parse_callback_query(
            "code=gulfwdmys5lsm6qyz4xiz9q32l10"
            "&scope=channel%3Amanage%3Apolls+channel%3Aread%3Apolls"
            "&state=c3ab8aa609ea11e793ae92361f002671"
        )

        # Assert
        assert result.scope == ["channel:manage:polls", "channel:read:polls"]
        assert result.state == CsrfState("c3ab8aa609ea11e793ae92361f002671")

    def test_granted_with_empty_scope(self):
        result = parse_callback_query("code=abc&scope=")

        assert isinstance(result, AuthCodeAllowed)
        assert result.scope == []

    def test_unknown_parameters_are_ignored(self):
        result = parse_callback_query("code=abc&scope=chat%3Aread&extra=1")

        assert isinstance(result, AuthCodeAllowed)

    def test_denied(self):
        # Act
        result = parse_callback_query(
            "error=access_denied"
            "&error_description=The+user+denied+you+access"
            "&state=c3ab8aa609ea11e793ae92361f002671"
        )

        # Assert
        assert isinstance(result, AuthCodeDenied)
        assert result.error == "access_denied"
        assert result.error_description == "The user denied you access"
        assert result.state == CsrfState("c3ab8aa609ea11e793ae92361f002671")
        assert str(result) == "The user denied you access (access_denied)"

    def test_granted_shape_wins_when_both_match(self):
        result = parse_callback_query(
            "code=abc&scope=x&error=access_denied&error_description=no"
        )

        assert isinstance(result, AuthCodeAllowed)

    @pytest.mark.parametrize(
        "query",
        [
            "",
            "code=abc123",
            "scope=chat%3Aread",
            "code=&scope=chat%3Aread",
            "error=access_denied",
            "error_description=nope",
        ],
    )
    def test_unrecognized_shapes_are_malformed(self, query):
        with pytest.raises(MalformedRequestError):
            parse_callback_query(query)


class TestRedirectModels:
    def test_code_is_redacted(self):
        result = AuthCodeAllowed(code=AuthCode("abc123"), scope=[])

        assert "abc123" not in repr(result)

    def test_models_are_frozen(self):
        result = AuthCodeAllowed(code=AuthCode("abc123"), scope=[])

        with pytest.raises(ValidationError):
            result.scope = ["chat:read"]
