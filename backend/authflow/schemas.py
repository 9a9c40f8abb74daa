from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from datetime import datetime
from typing import Optional


def validate_password_length(v):
    if len(v.strip()) < 8:
        raise ValueError("Password must be at least 8 characters long")
    return v


class SignupRequest(BaseModel):
    username: str = Field(min_length=1, max_length=64)
    email: EmailStr
    password: str = Field(max_length=128)

    @field_validator("username")
    @classmethod
    def username_not_blank(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Username is required")
        return v

    @field_validator("password")
    @classmethod
    def password_length(cls, v):
        return validate_password_length(v)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(max_length=128)

    @field_validator("password")
    @classmethod
    def password_length(cls, v):
        return validate_password_length(v)


class RefreshTokenRequest(BaseModel):
    refresh_token: str = Field(min_length=1)


class ResetPasswordRequest(BaseModel):
    email: EmailStr


class ResetPasswordConfirmRequest(BaseModel):
    user_id: str = Field(min_length=1)
    token: str = Field(min_length=1)
    new_password: str = Field(max_length=128)

    @field_validator("new_password")
    @classmethod
    def password_length(cls, v):
        return validate_password_length(v)


class VerifyOtpRequest(BaseModel):
    code: str = Field(pattern=r"^\d{6}$")


class ResendOtpRequest(BaseModel):
    email: EmailStr


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    username: str
    email: str
    is_verified: bool
    is_blocked: bool
    is_deleted: bool
    last_login: Optional[datetime] = None
    created_at: datetime


class MessageResponse(BaseModel):
    status: str = "success"
    message: str


class LoginData(UserResponse):
    access_token: str
    refresh_token: str


class LoginResponse(MessageResponse):
    data: LoginData


class AccessTokenData(BaseModel):
    access_token: str


class RefreshResponse(MessageResponse):
    data: AccessTokenData


class UserEnvelope(MessageResponse):
    data: UserResponse
