"""Exceptions raised by the token service and the access gateway."""


class TokenError(Exception):
    """Base class for token issuance and verification failures."""

    reason = "invalid"


class SigningError(TokenError):
    """Raised when a token cannot be signed because its secret is not configured.

    This is a startup/configuration problem, not something a request can recover from.
    """

    reason = "signing"


class MalformedTokenError(TokenError):
    """Raised when a token cannot be parsed or lacks required claims."""

    reason = "malformed"


class InvalidSignatureError(TokenError):
    """Raised when a token's signature does not match the configured secret."""

    reason = "invalid_signature"


class TokenExpiredError(TokenError):
    """Raised when the current instant is at or past the token's ``exp`` claim."""

    reason = "expired"


class WrongTokenKindError(TokenError):
    """Raised when a refresh token is used as an access token or vice versa."""

    reason = "wrong_kind"


class AuthorizationError(Exception):
    """Base class for access gateway decisions that stop a request."""

    status_code = 500


class Unauthenticated(AuthorizationError):
    """Raised when no usable credential was presented.

    Attributes:
        reason: One of ``missing``, ``malformed``, ``invalid_signature``,
            ``expired`` or ``wrong_kind`` so clients can tell "log in" from
            "log in again".
    """

    status_code = 401

    def __init__(self, message: str, reason: str = "missing"):
        super().__init__(message)
        self.reason = reason


class Forbidden(AuthorizationError):
    """Raised when a verified subject lacks the role or ownership required."""

    status_code = 403
