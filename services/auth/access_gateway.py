"""Route-level authentication and authorization decisions."""

from __future__ import annotations

import logging
from collections.abc import Collection

from .errors import Forbidden, SigningError, TokenError, Unauthenticated
from .token_service import ACCESS, TokenClaims, TokenService

logger = logging.getLogger(__name__)

ADMIN_ROLE = "admin"
BEARER_PREFIX = "Bearer "


class AccessGateway:
    """Gate protected operations on a verified access token, role and ownership.

    Pure decision logic: no state is read or written besides the token
    service's read-only configuration.
    """

    def __init__(self, token_service: TokenService):
        """Initialize the access gateway.

        Args:
            token_service: TokenService used to verify presented tokens
        """
        if not token_service:
            raise ValueError("TokenService is required")
        self.token_service = token_service

    def authorize(
        self,
        token: str | None,
        required_role: str | Collection[str] | None = None,
        resource_owner_id: str | int | None = None,
    ) -> TokenClaims:
        """Verify a token and check role and ownership requirements.

        Args:
            token: Encoded access token (None when no credential was sent)
            required_role: Role, or collection of roles, allowed to proceed
            resource_owner_id: Owner of the resource being acted on; the subject
                must match it unless the subject is an admin

        Returns:
            Verified claims of the subject

        Raises:
            Unauthenticated: If the token is missing, invalid, expired, or not
                an access token
            Forbidden: If the role or ownership check fails
            SigningError: If the service is misconfigured
        """
        if not token:
            raise Unauthenticated("Missing authorization token", reason="missing")

        try:
            claims = self.token_service.verify(token)
        except SigningError:
            raise
        except TokenError as e:
            logger.info(f"Rejected token: {e.reason}")
            raise Unauthenticated(str(e), reason=e.reason) from e

        if claims.kind != ACCESS:
            raise Unauthenticated("An access token is required", reason="wrong_kind")

        allowed_roles = _normalize_roles(required_role)
        if allowed_roles and claims.role not in allowed_roles:
            logger.warning(
                f"Subject {claims.subject} with role {claims.role} denied; "
                f"requires {', '.join(sorted(allowed_roles))}"
            )
            raise Forbidden("You do not have permission to perform this action")

        if (
            resource_owner_id is not None
            and claims.role != ADMIN_ROLE
            and str(resource_owner_id) != claims.subject
        ):
            logger.warning(f"Subject {claims.subject} denied access to resource owned by another user")
            raise Forbidden("You do not have permission to access this resource")

        return claims

    def authorize_header(
        self,
        authorization_header: str | None,
        required_role: str | Collection[str] | None = None,
        resource_owner_id: str | int | None = None,
    ) -> TokenClaims:
        """Authorize from a raw ``Authorization`` header value.

        A missing header, or one that is not ``Bearer <token>``, is treated
        the same as a missing token.

        Args:
            authorization_header: Value of the Authorization header
            required_role: See authorize()
            resource_owner_id: See authorize()

        Returns:
            Verified claims of the subject
        """
        return self.authorize(
            extract_bearer_token(authorization_header),
            required_role=required_role,
            resource_owner_id=resource_owner_id,
        )


def extract_bearer_token(authorization_header: str | None) -> str | None:
    """Return the token from a ``Bearer <token>`` header, or None."""
    if not authorization_header or not authorization_header.startswith(BEARER_PREFIX):
        return None
    token = authorization_header[len(BEARER_PREFIX) :].strip()
    return token or None


def _normalize_roles(required_role: str | Collection[str] | None) -> set[str]:
    if not required_role:
        return set()
    if isinstance(required_role, str):
        return {required_role}
    return set(required_role)
