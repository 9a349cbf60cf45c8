"""Bearer tokens, access decisions and user accounts."""

from .access_gateway import ADMIN_ROLE, AccessGateway, extract_bearer_token
from .auth_service import AuthService
from .errors import (
    AuthorizationError,
    Forbidden,
    InvalidSignatureError,
    MalformedTokenError,
    SigningError,
    TokenError,
    TokenExpiredError,
    Unauthenticated,
    WrongTokenKindError,
)
from .token_service import ACCESS, REFRESH, IssuedToken, TokenClaims, TokenService
from .user_service import VALID_ROLES, UserService

__all__ = [
    "ACCESS",
    "ADMIN_ROLE",
    "REFRESH",
    "VALID_ROLES",
    "AccessGateway",
    "AuthService",
    "AuthorizationError",
    "Forbidden",
    "InvalidSignatureError",
    "IssuedToken",
    "MalformedTokenError",
    "SigningError",
    "TokenClaims",
    "TokenError",
    "TokenExpiredError",
    "TokenService",
    "Unauthenticated",
    "UserService",
    "WrongTokenKindError",
    "extract_bearer_token",
]
