"""User account storage for job seekers, employers and admins."""

import logging
from typing import Any

import bcrypt

from ..shared.database import Database
from .queries import (
    GET_USER_BY_EMAIL,
    GET_USER_BY_ID,
    GET_USER_BY_USERNAME,
    INSERT_USER,
    UPDATE_USER_LAST_LOGIN,
)

logger = logging.getLogger(__name__)

VALID_ROLES = ("jobseeker", "employer", "admin")
MIN_PASSWORD_LENGTH = 6


class UserService:
    """Service for user management and password checks."""

    def __init__(self, database: Database):
        """Initialize the user service.

        Args:
            database: Database connection interface
        """
        if not database:
            raise ValueError("Database is required")
        self.db = database

    def create_user(
        self,
        username: str,
        email: str,
        password: str,
        role: str = "jobseeker",
    ) -> int:
        """Create a new user account.

        Args:
            username: Unique username
            email: Unique email address
            password: Plain text password (will be hashed)
            role: One of 'jobseeker', 'employer' or 'admin'

        Returns:
            User ID of the created user

        Raises:
            ValueError: If username or email already exists, or if validation fails
        """
        if not username or not username.strip():
            raise ValueError("Username is required")
        if not email or not email.strip():
            raise ValueError("Email is required")
        if not password or len(password) < MIN_PASSWORD_LENGTH:
            raise ValueError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
        if role not in VALID_ROLES:
            raise ValueError(f"Role must be one of: {', '.join(VALID_ROLES)}")

        if self.get_user_by_username(username):
            raise ValueError(f"Username '{username}' already exists")
        if self.get_user_by_email(email):
            raise ValueError(f"Email '{email}' already exists")

        password_hash = self._hash_password(password)

        try:
            with self.db.get_cursor() as cur:
                cur.execute(
                    INSERT_USER,
                    (username.strip(), email.strip().lower(), password_hash, role),
                )
                result = cur.fetchone()
        except Exception as e:
            logger.error(f"Error creating user {username}: {e}", exc_info=True)
            raise

        if not result:
            raise ValueError("Failed to create user")

        user_id = result[0]
        logger.info(f"Created {role} user: {username} (ID: {user_id})")
        return user_id

    def get_user_by_username(self, username: str) -> dict[str, Any] | None:
        """Get user by username, or None if not found."""
        return self._fetch_one(GET_USER_BY_USERNAME, username.strip())

    def get_user_by_email(self, email: str) -> dict[str, Any] | None:
        """Get user by email (case-insensitive), or None if not found."""
        return self._fetch_one(GET_USER_BY_EMAIL, email.strip().lower())

    def get_user_by_id(self, user_id: int) -> dict[str, Any] | None:
        """Get user by ID, or None if not found."""
        return self._fetch_one(GET_USER_BY_ID, user_id)

    def verify_password(self, password: str, password_hash: str) -> bool:
        """Verify a password against a hash.

        Args:
            password: Plain text password
            password_hash: Bcrypt password hash

        Returns:
            True if password matches, False otherwise
        """
        try:
            return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
        except (ValueError, TypeError) as e:
            logger.error(f"Error verifying password: {e}")
            return False

    def update_last_login(self, user_id: int) -> None:
        """Update user's last login timestamp."""
        try:
            with self.db.get_cursor() as cur:
                cur.execute(UPDATE_USER_LAST_LOGIN, (user_id,))
        except Exception as e:
            logger.error(f"Error updating last login for user {user_id}: {e}", exc_info=True)
            raise

    def _fetch_one(self, query: str, value: Any) -> dict[str, Any] | None:
        with self.db.get_cursor() as cur:
            cur.execute(query, (value,))
            columns = [desc[0] for desc in cur.description]
            row = cur.fetchone()

        if not row:
            return None
        return dict(zip(columns, row))

    def _hash_password(self, password: str) -> str:
        return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")
