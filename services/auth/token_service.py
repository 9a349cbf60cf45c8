"""Bearer token issuance, verification and refresh."""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

import jwt

from .errors import (
    InvalidSignatureError,
    MalformedTokenError,
    SigningError,
    TokenExpiredError,
    WrongTokenKindError,
)

logger = logging.getLogger(__name__)

ACCESS = "access"
REFRESH = "refresh"
TOKEN_KINDS = (ACCESS, REFRESH)

DEFAULT_ACCESS_TOKEN_EXPIRES = timedelta(days=7)
DEFAULT_REFRESH_TOKEN_EXPIRES = timedelta(days=30)

# iat/nbf/exp are checked by hand against the injected clock
_DECODE_OPTIONS = {"verify_exp": False, "verify_iat": False, "verify_nbf": False}


@dataclass(frozen=True)
class TokenClaims:
    """Verified claims carried by a token."""

    subject: str
    role: str
    kind: str
    issued_at: datetime | None
    expires_at: datetime
    token_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize claims for JSON responses (no signature material)."""
        return {
            "sub": self.subject,
            "role": self.role,
            "kind": self.kind,
            "iat": int(self.issued_at.timestamp()) if self.issued_at else None,
            "exp": int(self.expires_at.timestamp()),
        }


@dataclass(frozen=True)
class IssuedToken:
    """An encoded token together with the claims it was built from."""

    token: str
    claims: TokenClaims

    @property
    def expires_at(self) -> datetime:
        return self.claims.expires_at


class TokenService:
    """
    Service for issuing and verifying signed bearer tokens.

    Signing secrets are injected at construction and treated as read-only
    process configuration, so one instance can be shared between concurrent
    requests without locking. Access and refresh tokens may use distinct
    secrets; the refresh secret falls back to the access secret.
    """

    def __init__(
        self,
        access_secret: str | None,
        refresh_secret: str | None = None,
        algorithm: str = "HS256",
        access_token_expires: timedelta = DEFAULT_ACCESS_TOKEN_EXPIRES,
        refresh_token_expires: timedelta = DEFAULT_REFRESH_TOKEN_EXPIRES,
        clock: Callable[[], datetime] | None = None,
    ):
        """
        Initialize the token service.

        Args:
            access_secret: Secret used to sign access tokens (JWT_SECRET)
            refresh_secret: Secret used to sign refresh tokens (JWT_REFRESH_SECRET).
                Defaults to access_secret.
            algorithm: JWT signing algorithm
            access_token_expires: Lifetime of access tokens (default 7 days)
            refresh_token_expires: Lifetime of refresh tokens (default 30 days)
            clock: Callable returning the current aware datetime. Defaults to UTC now.

        Raises:
            ValueError: If a lifetime is not positive
        """
        if access_token_expires <= timedelta(0) or refresh_token_expires <= timedelta(0):
            raise ValueError("Token lifetimes must be positive")

        self.algorithm = algorithm
        self._secrets = {ACCESS: access_secret, REFRESH: refresh_secret or access_secret}
        self._lifetimes = {ACCESS: access_token_expires, REFRESH: refresh_token_expires}
        self._clock = clock or (lambda: datetime.now(UTC))

    def issue(self, subject: str | int, role: str, kind: str = ACCESS) -> IssuedToken:
        """
        Issue a new signed token.

        Args:
            subject: User ID the token is issued for
            role: User type (jobseeker, employer, admin)
            kind: Token kind, 'access' or 'refresh'

        Returns:
            IssuedToken with the encoded token and its claims

        Raises:
            ValueError: If kind is unknown or subject/role is empty
            SigningError: If no secret is configured for this kind of token
        """
        if kind not in TOKEN_KINDS:
            raise ValueError(f"Token kind must be one of: {', '.join(TOKEN_KINDS)}")
        if subject is None or not str(subject).strip():
            raise ValueError("Subject is required")
        if not role:
            raise ValueError("Role is required")

        secret = self._secret_for(kind)
        issued_at = self._now().replace(microsecond=0)
        expires_at = issued_at + self._lifetimes[kind]
        token_id = uuid.uuid4().hex

        payload = {
            "sub": str(subject),
            "role": role,
            "kind": kind,
            "iat": int(issued_at.timestamp()),
            "exp": int(expires_at.timestamp()),
            "jti": token_id,
        }
        try:
            token = jwt.encode(payload, secret, algorithm=self.algorithm)
        except (jwt.PyJWTError, NotImplementedError) as e:
            logger.error(f"Failed to sign {kind} token: {type(e).__name__}")
            raise SigningError(f"Unable to sign {kind} token") from e

        logger.debug(f"Issued {kind} token for subject {subject} (expires {expires_at.isoformat()})")
        return IssuedToken(
            token=token,
            claims=TokenClaims(
                subject=str(subject),
                role=role,
                kind=kind,
                issued_at=issued_at,
                expires_at=expires_at,
                token_id=token_id,
            ),
        )

    def verify(self, token: str) -> TokenClaims:
        """
        Verify a token's signature, structure and expiry.

        The secret is chosen by the token's ``kind`` claim. Expiry is compared
        explicitly against the service clock: a token whose signature checks
        out is still rejected once ``now >= exp``.

        Args:
            token: Encoded token string

        Returns:
            Verified TokenClaims

        Raises:
            MalformedTokenError: If the token cannot be parsed or lacks required claims
            InvalidSignatureError: If the signature does not match
            TokenExpiredError: If the token has expired
            SigningError: If no secret is configured for the token's kind
        """
        unverified = self._decode_unverified(token)
        kind = unverified.get("kind")
        if kind not in TOKEN_KINDS:
            raise MalformedTokenError("Token kind is missing or unknown")

        try:
            payload = jwt.decode(
                token,
                self._secret_for(kind),
                algorithms=[self.algorithm],
                options=_DECODE_OPTIONS,
            )
        except (jwt.InvalidSignatureError, jwt.InvalidAlgorithmError) as e:
            raise InvalidSignatureError("Token signature is invalid") from e
        except jwt.InvalidTokenError as e:
            raise MalformedTokenError("Token could not be decoded") from e

        claims = self._claims_from_payload(payload)
        if self._now() >= claims.expires_at:
            raise TokenExpiredError("Token has expired")
        return claims

    def decode_unsafe(self, token: str) -> dict[str, Any] | None:
        """
        Decode a token's payload WITHOUT verifying signature or expiry.

        For diagnostics only; the result must never be used to grant access.

        Args:
            token: Encoded token string

        Returns:
            Raw claims dictionary, or None if the token cannot be parsed
        """
        try:
            return self._decode_unverified(token)
        except MalformedTokenError:
            return None

    def refresh(self, refresh_token: str) -> IssuedToken:
        """
        Exchange a valid refresh token for a brand-new access token.

        The presented token is neither reused nor extended.

        Args:
            refresh_token: Encoded refresh token

        Returns:
            Newly issued access token for the same subject and role

        Raises:
            WrongTokenKindError: If the token is not a refresh token
            TokenError: Any error raised by verify()
        """
        claims = self._verify_refresh(refresh_token)
        return self.issue(claims.subject, claims.role, ACCESS)

    def refresh_pair(self, refresh_token: str) -> tuple[IssuedToken, IssuedToken]:
        """
        Exchange a valid refresh token for a new access token and a new refresh token.

        Args:
            refresh_token: Encoded refresh token

        Returns:
            Tuple of (access token, refresh token)

        Raises:
            WrongTokenKindError: If the token is not a refresh token
            TokenError: Any error raised by verify()
        """
        claims = self._verify_refresh(refresh_token)
        return (
            self.issue(claims.subject, claims.role, ACCESS),
            self.issue(claims.subject, claims.role, REFRESH),
        )

    def is_expired(self, token: str) -> bool:
        """
        Report whether a token is past its expiry, without verifying it.

        Fails closed: an undecodable token or one without a numeric ``exp``
        claim counts as expired.

        Args:
            token: Encoded token string

        Returns:
            True if the token is expired or unreadable
        """
        payload = self.decode_unsafe(token)
        if not payload:
            return True
        exp = payload.get("exp")
        if isinstance(exp, bool) or not isinstance(exp, int | float):
            return True
        return self._now().timestamp() >= exp

    def _verify_refresh(self, refresh_token: str) -> TokenClaims:
        claims = self.verify(refresh_token)
        if claims.kind != REFRESH:
            raise WrongTokenKindError("A refresh token is required")
        return claims

    def _secret_for(self, kind: str) -> str:
        secret = self._secrets.get(kind)
        if not secret:
            raise SigningError(f"No signing secret configured for {kind} tokens")
        return secret

    def _now(self) -> datetime:
        now = self._clock()
        return now if now.tzinfo else now.replace(tzinfo=UTC)

    @staticmethod
    def _decode_unverified(token: str) -> dict[str, Any]:
        if not isinstance(token, str) or not token.strip():
            raise MalformedTokenError("Token is empty")
        try:
            return jwt.decode(token, options={"verify_signature": False})
        except jwt.InvalidTokenError as e:
            raise MalformedTokenError("Token could not be decoded") from e

    @staticmethod
    def _claims_from_payload(payload: dict[str, Any]) -> TokenClaims:
        subject = payload.get("sub")
        role = payload.get("role")
        kind = payload.get("kind")
        exp = payload.get("exp")
        iat = payload.get("iat")

        if not isinstance(subject, str) or not subject:
            raise MalformedTokenError("Token subject is missing")
        if not isinstance(role, str) or not role:
            raise MalformedTokenError("Token role is missing")
        if kind not in TOKEN_KINDS:
            raise MalformedTokenError("Token kind is missing or unknown")
        if isinstance(exp, bool) or not isinstance(exp, int | float):
            raise MalformedTokenError("Token expiry is missing")

        try:
            expires_at = datetime.fromtimestamp(exp, UTC)
            issued_at = (
                datetime.fromtimestamp(iat, UTC)
                if isinstance(iat, int | float) and not isinstance(iat, bool)
                else None
            )
        except (OverflowError, OSError, ValueError) as e:
            raise MalformedTokenError("Token timestamps are out of range") from e

        jti = payload.get("jti")
        return TokenClaims(
            subject=subject,
            role=role,
            kind=kind,
            issued_at=issued_at,
            expires_at=expires_at,
            token_id=jti if isinstance(jti, str) else None,
        )
