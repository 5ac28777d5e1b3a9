"""
JWT Authentication Models
-------------------------
Pydantic models for token payloads and the authentication endpoints.

Request models are built from bodies that have already passed the endpoint
schema check in loyalty_api.validation, so they only carry types.
Response models serialize with the camelCase names the frontend expects.
"""

from datetime import datetime
from pydantic import BaseModel, Field


class AuthTokenPayload(BaseModel):
    """
    Authenticated identity recovered from a verified access token.

    The role is a snapshot taken when the token was issued; a later role
    change only shows up after the user logs in again.
    """

    user_id: int = Field(..., description="User's unique identifier")
    role: str = Field(
        ..., description="User role: regular, cashier, manager, or superuser"
    )
    expire_at_time: datetime = Field(..., description="Token expiration timestamp")
    issued_at_time: datetime = Field(..., description="Token issued at timestamp")

    class Config:
        json_schema_extra = {
            "example": {
                "user_id": 42,
                "role": "regular",
                "expire_at_time": "2025-10-21T12:30:00Z",
                "issued_at_time": "2025-10-21T10:30:00Z",
            }
        }


class AuthLoginRequest(BaseModel):
    """Credentials posted to POST /auth/tokens."""

    utorid: str = Field(..., description="User's UTORid")
    password: str = Field(..., description="User's password")

    class Config:
        json_schema_extra = {"example": {"utorid": "abcd1234", "password": "Abcd123!"}}


class AuthTokenResponse(BaseModel):
    """Bearer token returned after a successful login."""

    token: str = Field(..., description="JWT access token")
    expires_at: datetime = Field(
        ..., serialization_alias="expiresAt", description="Token expiry (UTC)"
    )

    class Config:
        json_schema_extra = {
            "example": {
                "token": "eyJhbGciOiJIUzI1NiIsInR5cCI6IkpXVCJ9...",
                "expiresAt": "2025-10-21T12:30:00.000Z",
            }
        }


class PasswordResetRequest(BaseModel):
    """Body of POST /auth/resets."""

    utorid: str = Field(..., description="Account to reset")


class PasswordResetResponse(BaseModel):
    """Reset ticket returned by POST /auth/resets."""

    reset_token: str = Field(
        ..., serialization_alias="resetToken", description="One-time reset token"
    )
    expires_at: datetime = Field(
        ..., serialization_alias="expiresAt", description="Reset token expiry (UTC)"
    )

    class Config:
        json_schema_extra = {
            "example": {
                "resetToken": "0f8fad5b-d9cb-469f-a165-70867728950e",
                "expiresAt": "2025-10-21T11:30:00.000Z",
            }
        }


class PasswordResetConsumeRequest(BaseModel):
    """Body of POST /auth/resets/{reset_token}."""

    utorid: str = Field(..., description="Account the token was issued for")
    password: str = Field(..., description="New password")


class MessageResponse(BaseModel):
    """Plain confirmation message."""

    message: str
