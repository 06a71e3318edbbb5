"""Application settings and configuration."""

from dataclasses import dataclass
from typing import Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


@dataclass(frozen=True)
class JwtConfig:
    """Signing parameters handed to the token signer."""

    secret_key: str
    algorithm: str
    issuer: str
    audience: str
    access_token_expire_minutes: int


@dataclass(frozen=True)
class PasswordPolicy:
    """Password complexity thresholds."""

    min_length: int = 8
    require_uppercase: bool = True
    require_lowercase: bool = True
    require_digit: bool = True


@dataclass(frozen=True)
class LockoutPolicy:
    """Failed-login lockout thresholds."""

    max_failed_attempts: int = 5
    lockout_minutes: int = 5


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Built once at import time and never mutated afterwards; components receive
    the relevant slices (JwtConfig, PasswordPolicy, LockoutPolicy) through their
    constructors.
    """

    # Application (hardcoded constants)
    app_name: str = "TrueDope API"
    app_version: str = "0.1.0"

    # Environment-specific settings
    debug: bool = False
    environment: str  # development, staging, production, test

    # Database
    database_url: str
    database_pool_size: int = 10
    database_max_overflow: int = 20
    database_pool_timeout: int = 30
    database_pool_recycle: int = 3600
    database_command_timeout: float = 10.0
    database_echo: bool = False

    # Token store (Redis). Unset means the in-process memory store.
    redis_url: str | None = None
    store_timeout_seconds: float = 5.0
    store_retry_backoff_seconds: float = 0.2

    # API
    api_prefix: str = "/api"
    frontend_url: str = "http://localhost:3000"

    # CORS
    cors_allow_origins: str = "http://localhost:3000"

    # Proxy
    trust_proxy_headers: bool = False

    # Security
    secret_key: str
    jwt_algorithm: str = "HS256"
    jwt_issuer: str = "TrueDope"
    jwt_audience: str = "TrueDope"
    access_token_expire_minutes: int = 15
    refresh_token_expire_days: int = 7
    refresh_token_reuse_policy: Literal["revoke_all", "reject"] = "revoke_all"
    password_reset_token_expire_minutes: int = 60

    # Password policy
    password_min_length: int = 8
    password_require_uppercase: bool = True
    password_require_lowercase: bool = True
    password_require_digit: bool = True

    # Lockout
    lockout_max_failed_attempts: int = 5
    lockout_minutes: int = 5

    # Rate limiting (slowapi limit strings)
    rate_limit_enabled: bool = True
    login_rate_limit: str = "5/minute"
    register_rate_limit: str = "3/hour"
    password_reset_rate_limit: str = "3/hour"

    # Initial admin bootstrap
    admin_email: str | None = None
    admin_password: str | None = None
    admin_first_name: str = "Admin"
    admin_last_name: str = "User"

    # Email delivery
    smtp_host: str | None = None
    smtp_port: int = 587
    smtp_user: str | None = None
    smtp_password: str | None = None
    smtp_use_tls: bool = True
    smtp_timeout_seconds: float = 10.0
    email_from: str = "noreply@truedope.io"

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    @field_validator("environment", mode="before")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment value."""
        valid_envs = {"development", "staging", "production", "test"}
        env = str(v).lower()
        if env not in valid_envs:
            raise ValueError(f"Environment must be one of {valid_envs}, got {env}")
        return env

    @field_validator("secret_key")
    @classmethod
    def validate_secret_key(cls, v: str) -> str:
        """HS256 keys shorter than 32 bytes are rejected."""
        if len(v.encode("utf-8")) < 32:
            raise ValueError("SECRET_KEY must be at least 32 bytes long")
        return v

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        fmt = v.lower()
        if fmt not in {"json", "text"}:
            raise ValueError(f"Log format must be 'json' or 'text', got {v}")
        return fmt

    @property
    def jwt(self) -> JwtConfig:
        return JwtConfig(
            secret_key=self.secret_key,
            algorithm=self.jwt_algorithm,
            issuer=self.jwt_issuer,
            audience=self.jwt_audience,
            access_token_expire_minutes=self.access_token_expire_minutes,
        )

    @property
    def password_policy(self) -> PasswordPolicy:
        return PasswordPolicy(
            min_length=self.password_min_length,
            require_uppercase=self.password_require_uppercase,
            require_lowercase=self.password_require_lowercase,
            require_digit=self.password_require_digit,
        )

    @property
    def lockout_policy(self) -> LockoutPolicy:
        return LockoutPolicy(
            max_failed_attempts=self.lockout_max_failed_attempts,
            lockout_minutes=self.lockout_minutes,
        )

    @property
    def cors_origins(self) -> list[str]:
        """Comma-separated CORS_ALLOW_ORIGINS as a list."""
        return [origin.strip() for origin in self.cors_allow_origins.split(",") if origin.strip()]


settings = Settings()  # type: ignore[call-arg]
