"""
User Models
-----------
Pydantic models for the user endpoints.

Request bodies are first checked against the endpoint schemas in
loyalty_api.validation; these models only give the handlers typed access.
Responses use the camelCase names the frontend expects.
"""

from datetime import date, datetime
from typing import List, Optional
from pydantic import BaseModel, Field


class UserCreateRequest(BaseModel):
    """Body of POST /users."""

    utorid: str = Field(..., description="UTORid (7-8 alphanumeric characters)")
    name: str = Field(..., description="Display name (1-50 characters)")
    email: str = Field(..., description="University of Toronto email address")
    birthday: Optional[date] = Field(default=None, description="YYYY-MM-DD")

    class Config:
        json_schema_extra = {
            "example": {
                "utorid": "johndoe1",
                "name": "John Doe",
                "email": "john.doe@mail.utoronto.ca",
            }
        }


class UserCreatedResponse(BaseModel):
    """New account plus the activation token used to set its first password."""

    id: int = Field(..., description="User's unique identifier")
    utorid: str
    name: Optional[str] = None
    email: str
    verified: bool = False
    expires_at: datetime = Field(..., serialization_alias="expiresAt")
    reset_token: str = Field(..., serialization_alias="resetToken")


class UserResponse(BaseModel):
    """User record without credentials."""

    id: int = Field(..., description="User's unique identifier")
    utorid: str
    name: Optional[str] = None
    email: str
    birthday: Optional[date] = None
    role: str
    points: int = 0
    verified: bool = False
    suspicious: bool = False
    created_at: Optional[datetime] = Field(default=None, serialization_alias="createdAt")
    last_login: Optional[datetime] = Field(default=None, serialization_alias="lastLogin")

    @classmethod
    def from_record(cls, record: dict) -> "UserResponse":
        """Build from a users table row."""
        return cls(
            id=record["user_id"],
            utorid=record["utorid"],
            name=record.get("name"),
            email=record["email"],
            birthday=record.get("birthday"),
            role=record["role"],
            points=record.get("points") or 0,
            verified=bool(record.get("is_verified")),
            suspicious=bool(record.get("suspicious")),
            created_at=record.get("created_at"),
            last_login=record.get("last_login"),
        )

    class Config:
        json_schema_extra = {
            "example": {
                "id": 1,
                "utorid": "johndoe1",
                "name": "John Doe",
                "email": "john.doe@mail.utoronto.ca",
                "birthday": None,
                "role": "regular",
                "points": 0,
                "verified": True,
                "suspicious": False,
                "createdAt": "2025-01-10T09:00:00Z",
                "lastLogin": "2025-01-11T14:30:00Z",
            }
        }


class UserListResponse(BaseModel):
    """One page of users and the total number matching the filters."""

    count: int
    results: List[UserResponse]


class UserUpdateRequest(BaseModel):
    """Body of PATCH /users/{user_id}."""

    email: Optional[str] = None
    verified: Optional[bool] = None
    suspicious: Optional[bool] = None
    role: Optional[str] = None


class UserUpdateResponse(BaseModel):
    """Identifying fields plus whichever fields were changed."""

    id: int
    utorid: str
    name: Optional[str] = None
    email: Optional[str] = None
    verified: Optional[bool] = None
    suspicious: Optional[bool] = None
    role: Optional[str] = None


class PasswordChangeRequest(BaseModel):
    """Body of PATCH /users/me/password."""

    old: str = Field(..., description="Current password")
    new: str = Field(..., description="New password")
