"""
In-memory stand-ins for the user and reset token services, plus a
controllable clock, shared by the reset lifecycle and auth endpoint tests.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import pytest

from loyalty_api.auth.password_reset import PasswordResetManager
from loyalty_api.auth.rate_limiter import ResetRateLimiter
from loyalty_api.psql_db_services.reset_tokens_service import ResetTokenConsumedError
from loyalty_api.utils.password_hashing import PasswordHasher


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, start: Optional[datetime] = None):
        self.now = start or datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class InMemoryUsersService:
    """Mirrors the UsersService methods used by authentication."""

    def __init__(self):
        self.users: Dict[int, Dict[str, Any]] = {}
        self._next_id = 1

    def add_user(self, utorid: str, password: str, role: str = "regular", **extra) -> Dict[str, Any]:
        user = {
            "user_id": self._next_id,
            "utorid": utorid,
            "email": f"{utorid}@mail.utoronto.ca",
            "name": utorid,
            "birthday": None,
            "role": role,
            "points": 0,
            "is_verified": True,
            "suspicious": False,
            "created_at": datetime.now(timezone.utc),
            "last_login": None,
            "password_hash": PasswordHasher.hash_password(password),
        }
        user.update(extra)
        self.users[user["user_id"]] = user
        self._next_id += 1
        return user

    async def get_user_by_id(self, user_id: int) -> Optional[Dict[str, Any]]:
        user = self.users.get(user_id)
        return dict(user) if user else None

    async def get_user_by_utorid(self, utorid: str) -> Optional[Dict[str, Any]]:
        for user in self.users.values():
            if user["utorid"] == utorid:
                return dict(user)
        return None

    async def update_last_login(self, user_id: int, login_time=None) -> None:
        self.users[user_id]["last_login"] = login_time

    async def update_password_hash(self, user_id: int, password_hash: str) -> bool:
        if user_id not in self.users:
            return False
        self.users[user_id]["password_hash"] = password_hash
        return True

    async def update_user(self, user_id: int, update_fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        if user_id not in self.users:
            return None
        self.users[user_id].update(update_fields)
        return dict(self.users[user_id])


class InMemoryResetTokensService:
    """Mirrors ResetTokensService on top of the in-memory users table."""

    def __init__(self, users_service: InMemoryUsersService):
        self.users_service = users_service
        self.tokens: Dict[str, Dict[str, Any]] = {}
        self._next_id = 1

    def tokens_for(self, user_id: int):
        return [record for record in self.tokens.values() if record["user_id"] == user_id]

    async def get_reset_token(self, token: str) -> Optional[Dict[str, Any]]:
        record = self.tokens.get(token)
        if record is None:
            return None
        owner = self.users_service.users[record["user_id"]]
        return {**record, "utorid": owner["utorid"]}

    async def replace_user_token(self, user_id: int, token: str, expires_at: datetime):
        for existing in self.tokens_for(user_id):
            del self.tokens[existing["token"]]
        record = {
            "token_id": self._next_id,
            "user_id": user_id,
            "token": token,
            "expires_at": expires_at,
        }
        self._next_id += 1
        self.tokens[token] = record
        return dict(record)

    async def consume_reset_token(self, token_id: int, user_id: int, password_hash: str) -> None:
        match = [
            record
            for record in self.tokens.values()
            if record["token_id"] == token_id and record["user_id"] == user_id
        ]
        if not match:
            raise ResetTokenConsumedError(f"Reset token {token_id} was already consumed")
        del self.tokens[match[0]["token"]]
        self.users_service.users[user_id]["password_hash"] = password_hash

    async def delete_expired_tokens(self, now: datetime) -> int:
        expired = [token for token, record in self.tokens.items() if record["expires_at"] < now]
        for token in expired:
            del self.tokens[token]
        return len(expired)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def users_service():
    return InMemoryUsersService()


@pytest.fixture
def reset_tokens_service(users_service):
    return InMemoryResetTokensService(users_service)


@pytest.fixture
def rate_limiter(clock):
    return ResetRateLimiter(60, clock=clock)


@pytest.fixture
def reset_manager(users_service, reset_tokens_service, rate_limiter, clock):
    return PasswordResetManager(
        users_service=users_service,
        reset_tokens_service=reset_tokens_service,
        rate_limiter=rate_limiter,
        clock=clock,
        token_lifetime=timedelta(hours=1),
        protected_utorid="superadm",
    )
