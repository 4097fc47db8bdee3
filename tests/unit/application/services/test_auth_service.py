"""Tests for AuthService bearer tokens and OAuth state."""

from datetime import UTC, datetime, timedelta

import jwt
import pytest

from multitune.application.services import AuthService
from multitune.config import AuthSettings
from multitune.domain.entities import User
from multitune.domain.exceptions import InvalidCredentialError, MissingCredentialError

SECRET = "test-secret"


@pytest.fixture
def auth_service() -> AuthService:
    return AuthService(AuthSettings(jwt_secret=SECRET))


@pytest.fixture
def jane() -> User:
    return User(id=7, username="Jane Doe", email="jane@example.com")


class TestBearerTokens:
    """Test issuing and verifying bearer tokens."""

    def test_round_trip(self, auth_service: AuthService, jane: User) -> None:
        token = auth_service.issue_token(jane)

        claims = auth_service.verify_token(token)

        assert claims.user_id == 7
        assert claims.username == "Jane Doe"

    def test_token_is_valid_for_seven_days(
        self, auth_service: AuthService, jane: User
    ) -> None:
        payload = jwt.decode(
            auth_service.issue_token(jane), SECRET, algorithms=["HS256"]
        )

        assert payload["exp"] - payload["iat"] == int(timedelta(days=7).total_seconds())

    def test_expired_token(self, auth_service: AuthService) -> None:
        past = datetime.now(UTC) - timedelta(days=1)
        token = jwt.encode(
            {"userId": 7, "username": "Jane", "iat": past, "exp": past},
            SECRET,
            algorithm="HS256",
        )

        with pytest.raises(InvalidCredentialError, match="Token expired"):
            auth_service.verify_token(token)

    def test_wrong_signature(self, auth_service: AuthService, jane: User) -> None:
        forged = AuthService(AuthSettings(jwt_secret="other")).issue_token(jane)

        with pytest.raises(InvalidCredentialError):
            auth_service.verify_token(forged)

    def test_missing_claims(self, auth_service: AuthService) -> None:
        token = jwt.encode({"sub": "7"}, SECRET, algorithm="HS256")

        with pytest.raises(InvalidCredentialError):
            auth_service.verify_token(token)


class TestAuthenticateHeader:
    """Test Authorization header parsing."""

    def test_bearer_header(self, auth_service: AuthService, jane: User) -> None:
        token = auth_service.issue_token(jane)

        assert auth_service.authenticate_header(f"Bearer {token}").user_id == 7

    def test_missing_header(self, auth_service: AuthService) -> None:
        with pytest.raises(MissingCredentialError, match="Missing Authorization header"):
            auth_service.authenticate_header(None)

    def test_header_without_token(self, auth_service: AuthService) -> None:
        with pytest.raises(MissingCredentialError, match="Missing token"):
            auth_service.authenticate_header("Bearer ")

    def test_wrong_scheme(self, auth_service: AuthService, jane: User) -> None:
        token = auth_service.issue_token(jane)

        with pytest.raises(InvalidCredentialError):
            auth_service.authenticate_header(f"Basic {token}")


class TestOAuthState:
    """Test signed OAuth state values."""

    def test_round_trip_with_user(self, auth_service: AuthService) -> None:
        state = auth_service.issue_state("spotify", user_id=7)

        assert auth_service.verify_state(state, "spotify") == 7

    def test_round_trip_without_user(self, auth_service: AuthService) -> None:
        state = auth_service.issue_state("google")

        assert auth_service.verify_state(state, "google") is None

    def test_state_is_bound_to_provider(self, auth_service: AuthService) -> None:
        state = auth_service.issue_state("youtube")

        with pytest.raises(InvalidCredentialError, match="Invalid OAuth state"):
            auth_service.verify_state(state, "spotify")

    def test_bearer_token_is_not_a_state(
        self, auth_service: AuthService, jane: User
    ) -> None:
        with pytest.raises(InvalidCredentialError):
            auth_service.verify_state(auth_service.issue_token(jane), "youtube")

    def test_missing_state(self, auth_service: AuthService) -> None:
        with pytest.raises(InvalidCredentialError, match="Missing OAuth state"):
            auth_service.verify_state(None, "youtube")
