import sys
from pathlib import Path

# Add repository root to path so the services package is importable
if Path("/app/services").exists():
    sys.path.insert(0, "/app")
else:
    repo_root = Path(__file__).resolve().parents[2]
    sys.path.insert(0, str(repo_root))

from config import Config
from services.auth import AccessGateway, AuthService, TokenService, UserService
from services.discovery import DiscoveryIndex, PostgreSQLPostingIndexStore
from services.jobs import PostingService
from services.shared import PostgreSQLDatabase, build_db_connection_string


def get_database() -> PostgreSQLDatabase:
    """Get a PostgreSQLDatabase for the configured connection string."""
    return PostgreSQLDatabase(connection_string=build_db_connection_string())


def get_token_service() -> TokenService:
    """
    Get TokenService configured with the process signing secrets.

    Returns:
        TokenService instance
    """
    return TokenService(
        access_secret=Config.JWT_SECRET,
        refresh_secret=Config.JWT_REFRESH_SECRET,
        algorithm=Config.JWT_ALGORITHM,
        access_token_expires=Config.JWT_ACCESS_TOKEN_EXPIRES,
        refresh_token_expires=Config.JWT_REFRESH_TOKEN_EXPIRES,
    )


def get_access_gateway() -> AccessGateway:
    """
    Get AccessGateway backed by the configured TokenService.

    Returns:
        AccessGateway instance
    """
    return AccessGateway(token_service=get_token_service())


def get_user_service() -> UserService:
    """
    Get UserService instance with database connection.

    Returns:
        UserService instance
    """
    return UserService(database=get_database())


def get_auth_service() -> AuthService:
    """
    Get AuthService instance with database connection.

    Returns:
        AuthService instance
    """
    return AuthService(user_service=get_user_service(), token_service=get_token_service())


def get_discovery_index() -> DiscoveryIndex:
    """
    Get DiscoveryIndex over the PostgreSQL posting index.

    Returns:
        DiscoveryIndex instance
    """
    store = PostgreSQLPostingIndexStore(database=get_database())
    return DiscoveryIndex(store=store, default_timeout=Config.DISCOVERY_QUERY_TIMEOUT_SECONDS)


def get_posting_service() -> PostingService:
    """
    Get PostingService instance wired to the discovery index.

    Returns:
        PostingService instance
    """
    return PostingService(database=get_database(), discovery_index=get_discovery_index())
