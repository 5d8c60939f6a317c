from datetime import datetime
from pydantic import AliasChoices, BaseModel, EmailStr, Field, field_validator
from typing import List, Optional, Annotated
from uuid import UUID

from ...domain.entity.user_entity import UserEntity

class UserResponse(BaseModel):
    id: UUID
    username: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    bio: Optional[str] = None
    created_at: datetime

    @classmethod
    def from_entity(cls, user: UserEntity) -> "UserResponse":
        return cls(
            id=user.id,
            username=user.username,
            email=user.email,
            first_name=user.first_name,
            last_name=user.last_name,
            bio=user.bio,
            created_at=user.created_at,
        )

class CreateUserRequest(BaseModel):
    username: Annotated[str, Field(min_length=1, max_length=255)]
    email: EmailStr
    password: Annotated[str, Field(min_length=1)]
    first_name: Optional[Annotated[str, Field(max_length=255)]] = None
    last_name: Optional[Annotated[str, Field(max_length=255)]] = None
    bio: Optional[str] = None

    @field_validator('username')
    @classmethod
    def validate_username(cls, v):
        if not v.strip():
            raise ValueError('Username cannot be empty or whitespace only')
        return v.strip()

class SignUpRequest(CreateUserRequest):
    pass

class SignInRequest(BaseModel):
    # ユーザー名・メールアドレスのどちらでもサインイン可能
    login: Annotated[str, Field(min_length=1, validation_alias=AliasChoices("login", "username", "email"))]
    password: str

class AuthResponse(BaseModel):
    user: UserResponse
    access_token: str
    token_type: str = "bearer"

class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"

class UpdateUserRequest(BaseModel):
    username: Optional[Annotated[str, Field(min_length=1, max_length=255)]] = None
    email: Optional[EmailStr] = None
    password: Optional[str] = None
    old_password: Optional[str] = None
    first_name: Optional[Annotated[str, Field(max_length=255)]] = None
    last_name: Optional[Annotated[str, Field(max_length=255)]] = None
    bio: Optional[str] = None

class UserListResponse(BaseModel):
    users: List[UserResponse]
    total_count: int
    limit: int
    offset: int

class DeleteUserResponse(BaseModel):
    deleted_id: UUID
