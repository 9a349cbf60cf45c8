"""Unit tests for TokenService."""

from datetime import timedelta

import jwt
import pytest

from services.auth.errors import (
    InvalidSignatureError,
    MalformedTokenError,
    SigningError,
    TokenExpiredError,
    WrongTokenKindError,
)
from services.auth.token_service import ACCESS, REFRESH, TokenService

OTHER_SECRET = "some-other-deployment-secret-0123456789"


class TestIssue:
    """Test cases for issuing tokens."""

    def test_issue_then_verify_returns_claims(self, token_service):
        """A freshly issued token verifies to the same subject, role and kind."""
        issued = token_service.issue("42", "employer")

        claims = token_service.verify(issued.token)

        assert claims.subject == "42"
        assert claims.role == "employer"
        assert claims.kind == ACCESS

    def test_numeric_subject_is_stringified(self, token_service):
        """Integer user IDs become string subjects."""
        issued = token_service.issue(7, "jobseeker")

        assert token_service.verify(issued.token).subject == "7"

    def test_access_token_lifetime_is_seven_days(self, token_service, clock):
        """Access tokens expire seven days after issue."""
        issued = token_service.issue("1", "jobseeker")

        assert issued.expires_at == clock.now + timedelta(days=7)

    def test_refresh_token_lifetime_is_thirty_days(self, token_service, clock):
        """Refresh tokens expire thirty days after issue."""
        issued = token_service.issue("1", "jobseeker", REFRESH)

        assert issued.claims.kind == REFRESH
        assert issued.expires_at == clock.now + timedelta(days=30)

    def test_tokens_issued_in_same_second_are_distinct(self, token_service):
        """Two tokens for the same subject at the same instant differ."""
        first = token_service.issue("1", "jobseeker")
        second = token_service.issue("1", "jobseeker")

        assert first.token != second.token
        assert first.claims.token_id != second.claims.token_id

    def test_issue_unknown_kind(self, token_service):
        """Unknown token kinds are rejected."""
        with pytest.raises(ValueError, match="Token kind"):
            token_service.issue("1", "jobseeker", "session")

    def test_issue_requires_subject_and_role(self, token_service):
        """Subject and role must be present."""
        with pytest.raises(ValueError, match="Subject is required"):
            token_service.issue("", "jobseeker")
        with pytest.raises(ValueError, match="Role is required"):
            token_service.issue("1", "")

    def test_issue_without_secret_raises_signing_error(self, clock):
        """A missing secret is a configuration error, not a bad token."""
        service = TokenService(access_secret=None, clock=clock)

        with pytest.raises(SigningError):
            service.issue("1", "jobseeker")

    def test_non_positive_lifetime_rejected(self):
        """Lifetimes must be positive."""
        with pytest.raises(ValueError, match="positive"):
            TokenService(access_secret=OTHER_SECRET, access_token_expires=timedelta(0))


class TestVerify:
    """Test cases for verifying tokens."""

    def test_expires_exactly_at_exp(self, token_service, clock):
        """A token is valid up to, but not at, its expiry instant."""
        issued = token_service.issue("1", "jobseeker")

        clock.advance(days=7, seconds=-1)
        assert token_service.verify(issued.token).subject == "1"

        clock.advance(seconds=1)
        with pytest.raises(TokenExpiredError):
            token_service.verify(issued.token)

    def test_signature_from_other_secret_rejected(self, token_service, clock):
        """A token signed with another secret fails signature verification."""
        foreign = TokenService(access_secret=OTHER_SECRET, clock=clock).issue("1", "admin")

        with pytest.raises(InvalidSignatureError):
            token_service.verify(foreign.token)

    def test_refresh_kind_signed_with_access_secret_rejected(self, token_service, clock, access_secret):
        """The secret is chosen by kind, so a refresh token signed with the access secret fails."""
        payload = {
            "sub": "1",
            "role": "jobseeker",
            "kind": REFRESH,
            "exp": int((clock.now + timedelta(days=1)).timestamp()),
        }
        token = jwt.encode(payload, access_secret, algorithm="HS256")

        with pytest.raises(InvalidSignatureError):
            token_service.verify(token)

    @pytest.mark.parametrize("token", ["", "not-a-token", "a.b.c"])
    def test_garbage_is_malformed(self, token_service, token):
        """Unparseable input is reported as malformed."""
        with pytest.raises(MalformedTokenError):
            token_service.verify(token)

    def test_missing_role_is_malformed(self, token_service, clock, access_secret):
        """A correctly signed token without a role claim is malformed."""
        payload = {
            "sub": "1",
            "kind": ACCESS,
            "exp": int((clock.now + timedelta(days=1)).timestamp()),
        }
        token = jwt.encode(payload, access_secret, algorithm="HS256")

        with pytest.raises(MalformedTokenError):
            token_service.verify(token)


class TestRefresh:
    """Test cases for refreshing sessions."""

    def test_refresh_issues_new_access_token(self, token_service, clock):
        """A refresh token yields a new access token for the same subject."""
        refresh = token_service.issue("9", "employer", REFRESH)
        clock.advance(days=10)

        access = token_service.refresh(refresh.token)

        assert access.claims.kind == ACCESS
        assert access.claims.subject == "9"
        assert access.claims.role == "employer"
        assert access.expires_at == clock.now + timedelta(days=7)

    def test_refresh_rejects_access_token(self, token_service):
        """An access token cannot be used to refresh."""
        access = token_service.issue("9", "employer")

        with pytest.raises(WrongTokenKindError):
            token_service.refresh(access.token)

    def test_refresh_rejects_expired_refresh_token(self, token_service, clock):
        """Expired refresh tokens are not exchanged."""
        refresh = token_service.issue("9", "employer", REFRESH)
        clock.advance(days=30)

        with pytest.raises(TokenExpiredError):
            token_service.refresh(refresh.token)

    def test_refresh_pair_rotates_refresh_token(self, token_service):
        """refresh_pair returns a new access token and a new refresh token."""
        refresh = token_service.issue("9", "employer", REFRESH)

        access, new_refresh = token_service.refresh_pair(refresh.token)

        assert access.claims.kind == ACCESS
        assert new_refresh.claims.kind == REFRESH
        assert new_refresh.token != refresh.token


class TestDiagnostics:
    """Test cases for decode_unsafe and is_expired."""

    def test_decode_unsafe_returns_claims_without_verifying(self, token_service, clock):
        """decode_unsafe reads claims even from tokens signed elsewhere."""
        foreign = TokenService(access_secret=OTHER_SECRET, clock=clock).issue("3", "admin")

        claims = token_service.decode_unsafe(foreign.token)

        assert claims["sub"] == "3"
        assert claims["role"] == "admin"

    def test_decode_unsafe_garbage_returns_none(self, token_service):
        """Garbage decodes to None rather than raising."""
        assert token_service.decode_unsafe("garbage") is None

    def test_is_expired(self, token_service, clock):
        """is_expired follows the clock."""
        issued = token_service.issue("1", "jobseeker")

        assert token_service.is_expired(issued.token) is False
        clock.advance(days=8)
        assert token_service.is_expired(issued.token) is True

    @pytest.mark.parametrize("token", ["", "garbage", "x.y.z"])
    def test_is_expired_fails_closed(self, token_service, token):
        """Anything unreadable counts as expired."""
        assert token_service.is_expired(token) is True
