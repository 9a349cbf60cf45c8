"""Authentication service for login, registration and session tokens."""

import logging
from typing import Any

from .token_service import ACCESS, REFRESH, IssuedToken, TokenService
from .user_service import UserService

logger = logging.getLogger(__name__)

# Roles a user may pick for themselves at sign-up
SELF_SERVICE_ROLES = ("jobseeker", "employer")


class AuthService:
    """Service for authentication operations."""

    def __init__(self, user_service: UserService, token_service: TokenService):
        """Initialize the auth service.

        Args:
            user_service: UserService instance for user operations
            token_service: TokenService used to mint session tokens
        """
        if not user_service:
            raise ValueError("UserService is required")
        if not token_service:
            raise ValueError("TokenService is required")
        self.user_service = user_service
        self.token_service = token_service

    def authenticate_user(self, username: str, password: str) -> dict[str, Any] | None:
        """Authenticate a user by username (or email) and password.

        Args:
            username: Username or email
            password: Plain text password

        Returns:
            User dictionary without the password hash, or None on failure
        """
        if not username or not password:
            return None

        user = self.user_service.get_user_by_username(username.strip())
        if not user:
            user = self.user_service.get_user_by_email(username.strip())

        if not user:
            logger.warning(f"Authentication failed: user not found: {username}")
            return None

        if not self.user_service.verify_password(password, user["password_hash"]):
            logger.warning(f"Authentication failed: invalid password for user: {username}")
            return None

        try:
            self.user_service.update_last_login(user["user_id"])
        except Exception as e:
            # A stale last_login must not block sign-in
            logger.error(f"Error updating last login: {e}", exc_info=True)

        logger.info(f"User authenticated: {user['username']} (ID: {user['user_id']})")
        return {k: v for k, v in user.items() if k != "password_hash"}

    def register_user(
        self, username: str, email: str, password: str, role: str = "jobseeker"
    ) -> int:
        """Register a new job seeker or employer.

        Args:
            username: Unique username
            email: Unique email address
            password: Plain text password (will be hashed)
            role: 'jobseeker' or 'employer'; admins are provisioned out of band

        Returns:
            User ID of the created user

        Raises:
            ValueError: If the role is not self-service, or validation fails
        """
        if role not in SELF_SERVICE_ROLES:
            raise ValueError(f"Role must be one of: {', '.join(SELF_SERVICE_ROLES)}")
        return self.user_service.create_user(
            username=username, email=email, password=password, role=role
        )

    def issue_session(self, user: dict[str, Any]) -> dict[str, Any]:
        """Issue an access/refresh token pair for an authenticated user.

        Args:
            user: User dictionary with 'user_id' and 'role'

        Returns:
            Dictionary with access_token, refresh_token and access token expiry
        """
        access = self.token_service.issue(user["user_id"], user["role"], ACCESS)
        refresh = self.token_service.issue(user["user_id"], user["role"], REFRESH)
        return _session_payload(access, refresh)

    def refresh_session(self, refresh_token: str) -> dict[str, Any]:
        """Exchange a refresh token for a new token pair.

        Raises:
            TokenError: If the refresh token is invalid, expired or of the wrong kind
        """
        access, refresh = self.token_service.refresh_pair(refresh_token)
        logger.info(f"Refreshed session for subject {access.claims.subject}")
        return _session_payload(access, refresh)


def _session_payload(access: IssuedToken, refresh: IssuedToken) -> dict[str, Any]:
    return {
        "access_token": access.token,
        "refresh_token": refresh.token,
        "expires_at": access.expires_at.isoformat(),
    }
