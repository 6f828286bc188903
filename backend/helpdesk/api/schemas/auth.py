"""Pydantic schemas for the login endpoint."""

from pydantic import BaseModel, ConfigDict


class LoginRequest(BaseModel):
    email: str = ""
    password: str = ""


class UserRead(BaseModel):
    id: int
    email: str
    role: str

    model_config = ConfigDict(from_attributes=True)


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserRead
