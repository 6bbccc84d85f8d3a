import datetime

from pydantic import BaseModel, EmailStr, Field, field_validator

from src.base.auth.password_hasher import MAX_PASSWORD_BYTES


class RegisterRequest(BaseModel):
    username: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=100)
    name: str | None = Field(None, max_length=255)
    birthdate: datetime.date | None = None

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, value: str) -> str:
        if len(value.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise ValueError(f"password must be at most {MAX_PASSWORD_BYTES} bytes")
        return value


class LoginRequest(BaseModel):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class GoogleLoginRequest(BaseModel):
    token: str = Field(..., min_length=1, description="Google Sign-In ID token")


class UserUpdate(BaseModel):
    name: str | None = Field(None, max_length=255)
    birthdate: datetime.date | None = None


class UserResponse(BaseModel):
    """External representation of a user. Never carries the hash, tokens or Google subject."""

    id: str
    username: str
    email: str
    name: str | None = None
    birthdate: datetime.date | None = None
    profile_pic: str | None = None
    register_date: datetime.datetime | None = None

    model_config = {"from_attributes": True}


class AuthResponse(BaseModel):
    user: UserResponse
    token: str


class MessageResponse(BaseModel):
    message: str
