"""
Pytest configuration for Loyalty Points API tests.
Sets up the Python path and test environment variables.
"""

import os
import sys
from pathlib import Path

# Add the project root to Python path for all tests
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

# Set up test environment variables
os.environ.setdefault("DATABASE_HOST", "localhost")
os.environ.setdefault("DATABASE_PORT", "5432")
os.environ.setdefault("DATABASE_NAME", "loyalty")
os.environ.setdefault("DATABASE_USER", "myuser")
os.environ.setdefault("DATABASE_PASSWORD", "mypassword")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-do-not-use-in-production")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
