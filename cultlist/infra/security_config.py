"""
Production security configuration for the application.
"""
from typing import Dict
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..domain.entity.password_policy import PasswordPolicy


class SecuritySettings(BaseSettings):
    """Security-specific settings (SECURITY_ prefixed environment variables)."""
    
    # Security headers
    security_headers: Dict[str, str] = Field(
        default_factory=lambda: {
            "X-Content-Type-Options": "nosniff",
            "X-Frame-Options": "DENY",
            "X-XSS-Protection": "1; mode=block",
            "Referrer-Policy": "strict-origin-when-cross-origin",
        }
    )
    
    # Rate limiting
    rate_limit_enabled: bool = Field(default=True)
    rate_limit_signin: str = Field(default="5/minute", description="Sign-in attempts")
    rate_limit_signup: str = Field(default="3/minute", description="Sign-up attempts")
    
    # Password policy
    password_min_length: int = Field(default=8, description="Minimum password length")
    password_max_length: int = Field(default=64, description="Maximum password length")
    password_require_uppercase: bool = Field(default=True)
    password_require_lowercase: bool = Field(default=True)
    password_require_numbers: bool = Field(default=True)
    password_require_special: bool = Field(default=True)
    
    # Logging
    log_security_events: bool = Field(default=True)
    
    model_config = SettingsConfigDict(
        env_prefix="SECURITY_",
        case_sensitive=False,
        extra="ignore"
    )

    def password_policy(self) -> PasswordPolicy:
        return PasswordPolicy(
            min_length=self.password_min_length,
            max_length=self.password_max_length,
            require_uppercase=self.password_require_uppercase,
            require_lowercase=self.password_require_lowercase,
            require_digit=self.password_require_numbers,
            require_special=self.password_require_special,
        )
