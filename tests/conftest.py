"""
Pytest configuration for Loyalty Points API tests.
Sets up the Python path, environment and common fixtures.
"""

import os
import sys
from pathlib import Path
from datetime import datetime, timedelta, timezone
import pytest

# Add the project root to Python path for all tests
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

# Set up test environment variables
os.environ.setdefault("DATABASE_HOST", "localhost")
os.environ.setdefault("DATABASE_PORT", "5432")
os.environ.setdefault("DATABASE_NAME", "loyalty")
os.environ.setdefault("DATABASE_USER", "myuser")
os.environ.setdefault("DATABASE_PASSWORD", "mypassword")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-do-not-use-in-production")
os.environ.setdefault("BCRYPT_ROUNDS", "4")


# ============================================================================
# AUTHENTICATION FIXTURES FOR TESTING
# ============================================================================


def _identity(user_id: int, role: str):
    from loyalty_api.auth.models import AuthTokenPayload

    now = datetime.now(timezone.utc)
    return AuthTokenPayload(
        user_id=user_id,
        role=role,
        expire_at_time=now + timedelta(hours=2),
        issued_at_time=now,
    )


@pytest.fixture
def mock_regular_user():
    """
    Regular user identity.

    NOTE: Returns AuthTokenPayload directly, not an actual JWT token. Used
    with app.dependency_overrides to bypass real JWT validation.
    """
    return _identity(10, "regular")


@pytest.fixture
def mock_cashier_user():
    """Cashier identity for testing."""
    return _identity(20, "cashier")


@pytest.fixture
def mock_manager_user():
    """Manager identity for testing."""
    return _identity(30, "manager")


@pytest.fixture
def mock_superuser():
    """Superuser identity for testing."""
    return _identity(40, "superuser")


@pytest.fixture
def override_identity():
    """
    Factory fixture to override get_optional_identity.

    Usage in tests:
        override_identity(app, mock_manager_user)

    Role gates still run, so the override exercises the real 401/403 logic.
    """
    from loyalty_api.auth.dependencies import get_optional_identity

    def _override(app, identity):
        app.dependency_overrides[get_optional_identity] = lambda: identity
        return app

    return _override
