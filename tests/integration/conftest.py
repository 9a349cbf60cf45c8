"""
Pytest configuration and fixtures for integration tests.

Integration tests drive the Flask app end to end through its test client.
Persistence is replaced by in-memory doubles so no database is needed; token
signing, access decisions, ranking and the discovery index are real.
All tests in this directory should be marked with @pytest.mark.integration
"""

import uuid
from datetime import UTC, datetime
from unittest.mock import patch

import pytest

from services.auth import AccessGateway, AuthService, TokenService
from services.discovery import DiscoveryIndex, InMemoryPostingIndexStore
from services.jobs import OWNER_STATUSES, POSTING_LIFETIME

ACCESS_SECRET = "integration-access-secret-0123456789abcdef"
REFRESH_SECRET = "integration-refresh-secret-0123456789abcdef"


class FakeUserService:
    """Dict-backed stand-in for UserService (passwords stored as-is)."""

    def __init__(self):
        self.users: dict[int, dict] = {}

    def create_user(self, username, email, password, role="jobseeker"):
        if self.get_user_by_username(username):
            raise ValueError(f"Username '{username}' already exists")
        user_id = len(self.users) + 1
        self.users[user_id] = {
            "user_id": user_id,
            "username": username,
            "email": email.lower(),
            "password_hash": password,
            "role": role,
        }
        return user_id

    def get_user_by_username(self, username):
        return next((dict(u) for u in self.users.values() if u["username"] == username), None)

    def get_user_by_email(self, email):
        return next((dict(u) for u in self.users.values() if u["email"] == email.lower()), None)

    def get_user_by_id(self, user_id):
        user = self.users.get(user_id)
        return dict(user) if user else None

    def verify_password(self, password, password_hash):
        return password == password_hash

    def update_last_login(self, user_id):
        pass


class FakePostingService:
    """Dict-backed stand-in for PostingService that still feeds the discovery index."""

    def __init__(self, discovery_index):
        self.discovery_index = discovery_index
        self.postings: dict[str, dict] = {}

    def create_posting(self, employer_id, data):
        now = datetime.now(UTC)
        posting = {
            "tags": [],
            "tier": "basic",
            "salary_visible": True,
            **data,
            "posting_id": uuid.uuid4().hex,
            "employer_id": str(employer_id),
            "status": "active",
            "is_deleted": False,
            "view_count": 0,
            "posted_at": now,
            "expires_at": now + POSTING_LIFETIME,
            "updated_at": now,
        }
        self.postings[posting["posting_id"]] = posting
        self.discovery_index.upsert_index_entry(posting)
        return dict(posting)

    def get_posting(self, posting_id):
        posting = self.postings.get(posting_id)
        return dict(posting) if posting else None

    def update_posting(self, posting_id, changes):
        return self._apply(posting_id, dict(changes))

    def soft_delete(self, posting_id):
        return self._apply(posting_id, {"is_deleted": True, "status": "closed"})

    def set_status(self, posting_id, status):
        if status not in OWNER_STATUSES:
            raise ValueError(f"Status must be one of: {', '.join(OWNER_STATUSES)}")
        return self._apply(posting_id, {"status": status})

    def list_employer_postings(
        self, employer_id, status=None, page=None, sort_by="posted_at", sort_order="desc"
    ):
        owned = [
            dict(p)
            for p in self.postings.values()
            if p["employer_id"] == str(employer_id)
            and not p["is_deleted"]
            and (status is None or p["status"] == status)
        ]
        owned.sort(key=lambda p: p[sort_by], reverse=sort_order == "desc")
        return owned[page.offset : page.offset + page.limit], len(owned)

    def increment_view_count(self, posting_id):
        posting = self.postings.get(posting_id)
        if not posting or posting["is_deleted"]:
            return None
        posting["view_count"] += 1
        return posting["view_count"]

    def _apply(self, posting_id, changes):
        posting = self.postings.get(posting_id)
        if not posting:
            return None
        posting.update(changes, updated_at=datetime.now(UTC))
        self.discovery_index.upsert_index_entry(posting)
        return dict(posting)


@pytest.fixture
def token_service():
    return TokenService(access_secret=ACCESS_SECRET, refresh_secret=REFRESH_SECRET)


@pytest.fixture
def discovery_index():
    return DiscoveryIndex(store=InMemoryPostingIndexStore())


@pytest.fixture
def user_service():
    return FakeUserService()


@pytest.fixture
def posting_service(discovery_index):
    return FakePostingService(discovery_index)


@pytest.fixture
def test_app(token_service, discovery_index, user_service, posting_service):
    """Create a Flask test app wired to in-memory services."""
    import utils.decorators
    from app import create_app

    gateway = AccessGateway(token_service=token_service)
    auth_service = AuthService(user_service=user_service, token_service=token_service)
    utils.decorators._rate_limit_storage.clear()

    with (
        patch("utils.decorators.get_access_gateway", return_value=gateway),
        patch("blueprints.jobs.get_access_gateway", return_value=gateway),
        patch("blueprints.jobs.get_discovery_index", return_value=discovery_index),
        patch("blueprints.jobs.get_posting_service", return_value=posting_service),
        patch("blueprints.auth.get_auth_service", return_value=auth_service),
        patch("blueprints.auth.get_user_service", return_value=user_service),
    ):
        flask_app = create_app()
        flask_app.config["TESTING"] = True
        yield flask_app


@pytest.fixture
def test_client(test_app):
    """Create a Flask test client."""
    return test_app.test_client()
