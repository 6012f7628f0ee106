from pydantic import BaseModel, EmailStr, Field, field_validator
import re


class RegisterRequest(BaseModel):
    """Schema for account sign-up."""
    display_name: str = Field(..., min_length=3, max_length=50)
    email: EmailStr
    password: str = Field(..., min_length=6)

    @field_validator("display_name")
    @classmethod
    def display_name_allowed(cls, v: str) -> str:
        v = v.strip()
        if not re.match(r"^[a-zA-Z0-9_ .-]+$", v):
            raise ValueError("Display name can only contain letters, numbers, spaces, dots, dashes and underscores")
        return v


class TokenResponse(BaseModel):
    """Schema for JWT token response."""
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class RefreshTokenRequest(BaseModel):
    """Schema for refreshing access token."""
    refresh_token: str


class MessageResponse(BaseModel):
    """Generic message response."""
    message: str
