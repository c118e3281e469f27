from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field


# Fields are optional so that missing values reach the service and are
# reported as 400 with a specific message.
class RegisterRequest(BaseModel):
    email: Optional[str] = None

    model_config = ConfigDict(json_schema_extra={"example": {"email": "user@example.com"}})


class VerifyRequest(BaseModel):
    email: Optional[str] = None
    code: Optional[Union[str, int]] = None
    password: Optional[str] = None

    model_config = ConfigDict(
        json_schema_extra={"example": {"email": "user@example.com", "code": "123456", "password": "secret1"}}
    )


class LoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None

    model_config = ConfigDict(json_schema_extra={"example": {"email": "user@example.com", "password": "secret1"}})


class MessageResponse(BaseModel):
    status: str
    message: str


class UserSummary(BaseModel):
    id: int
    email: str


class LoginResponse(MessageResponse):
    token: str
    token_type: str = "bearer"
    user: UserSummary


class UserRead(BaseModel):
    id: int
    email: str
    is_verified: bool = Field(..., serialization_alias="isVerified")

    model_config = ConfigDict(from_attributes=True)
