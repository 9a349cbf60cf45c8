"""
Root pytest configuration and shared fixtures.

This file contains configuration and fixtures shared across all test types.
Directory-specific conftest.py files can override or extend these fixtures.
"""

import sys
from pathlib import Path

# Make the services package and the backend modules importable in tests.
# This allows imports like "from services.auth import TokenService" and
# "from utils.services import get_auth_service" to work.
repo_root = Path(__file__).parent.parent
for path in (repo_root, repo_root / "backend"):
    if str(path) not in sys.path:
        sys.path.insert(0, str(path))
