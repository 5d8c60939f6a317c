from typing import List
from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
import json


class Settings(BaseSettings):
    # Security
    secret_key: str = Field(..., validation_alias=AliasChoices("secret_key", "jwt_secret"))
    algorithm: str = Field(default="HS256")
    access_token_expire_days: int = Field(default=7)
    
    # Database
    database_url: str = Field(default="sqlite://data/cultlist.db")
    database_pool_size: int = Field(default=8)
    database_generate_schemas: bool = Field(default=False)
    
    # Server
    environment: str = Field(default="development")
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=3000)
    request_timeout_seconds: float = Field(default=10.0)
    
    # CORS
    cors_origins: List[str] = Field(default=["http://localhost:3000"])
    
    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        if isinstance(v, str):
            return json.loads(v)
        return v
    
    @field_validator("secret_key")
    @classmethod
    def validate_secret_key(cls, v):
        if not v:
            raise ValueError("SECRET_KEY must be provided")
        if len(v) < 32:
            raise ValueError("SECRET_KEY must be at least 32 characters long")
        return v
    
    @field_validator("database_pool_size")
    @classmethod
    def validate_database_pool_size(cls, v):
        if v < 1:
            raise ValueError("DATABASE_POOL_SIZE must be at least 1")
        return v
    
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"  # Ignore extra environment variables
    )
