"""
Startup configuration.

Values come from the environment (and a `.env` file next to the backend
package, see `recipe_generator/__init__.py`). The application factory builds
these frozen objects once and hands them to the components that need them;
nothing below it reads the environment.
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_REGION = "us-east-1"
DEFAULT_MODEL_ID = "anthropic.claude-3-sonnet-20240229-v1:0"
SIGNING_SERVICE = "bedrock"

DEFAULT_CORS_ORIGINS = (
    "http://localhost:5173",
    "http://localhost:5174",
    "http://localhost:3000",
)


class BedrockSettings(BaseSettings):
    """Where and how the model-invocation endpoint is called."""

    region: str = Field(default=DEFAULT_REGION, description="SigV4 signing region")
    endpoint_url: Optional[str] = Field(
        default=None,
        description="Override for the runtime endpoint; derived from region when unset",
    )
    model_id: str = Field(default=DEFAULT_MODEL_ID, description="Target model id")
    signing_service: str = SIGNING_SERVICE
    timeout_seconds: float = Field(default=60.0, description="HTTP timeout (seconds)")

    # Explicit credentials. When access_key_id is unset the botocore default
    # credential chain (env, shared config, instance role, ...) is used.
    access_key_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("access_key_id", "AWS_ACCESS_KEY_ID"),
    )
    secret_access_key: Optional[str] = Field(
        default=None,
        repr=False,
        validation_alias=AliasChoices("secret_access_key", "AWS_SECRET_ACCESS_KEY"),
    )
    session_token: Optional[str] = Field(
        default=None,
        repr=False,
        validation_alias=AliasChoices("session_token", "AWS_SESSION_TOKEN"),
    )

    model_config = SettingsConfigDict(
        env_prefix="BEDROCK_",
        env_ignore_empty=True,
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    @property
    def base_url(self) -> str:
        if self.endpoint_url:
            return self.endpoint_url.rstrip("/")
        return f"https://bedrock-runtime.{self.region}.amazonaws.com"

    @classmethod
    def from_env(cls) -> "BedrockSettings":
        return cls()


class ApiSettings(BaseSettings):
    """HTTP surface settings."""

    cors_allow_origins: str = Field(
        default=",".join(DEFAULT_CORS_ORIGINS),
        description="Comma-separated list of allowed origins",
    )

    model_config = SettingsConfigDict(
        env_ignore_empty=True,
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    @property
    def allowed_origins(self) -> List[str]:
        return [o.strip() for o in self.cors_allow_origins.split(",") if o.strip()]

    @classmethod
    def from_env(cls) -> "ApiSettings":
        return cls()
