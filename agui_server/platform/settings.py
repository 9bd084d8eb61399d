"""Application settings and configuration.

This module provides Pydantic settings classes for application configuration,
loaded from environment variables with support for nested configuration
(``APP_HTTP__PORT=8080``, ``LITELLM__MODEL=...``).
"""

import logging

import pydantic_settings
from pydantic import BaseModel, Field, field_validator

RELEASE_STAGES = ("development", "production", "local")


class AppHTTPSettings(BaseModel):
    url: str = Field("")
    host: str = Field("0.0.0.0")
    port: int = Field(8000)
    log_level: str = Field("INFO")
    log_json: bool | None = Field(
        None, description="Override log format: True=JSON, False=console, None=auto"
    )

    @field_validator("log_level")
    @classmethod
    def _validate_log_level(cls, v):
        v_upper = v.upper()
        if v_upper not in logging.getLevelNamesMapping():
            raise ValueError(f'invalid value "{v}"')
        return v_upper


class BugsnagSettings(BaseModel):
    api_key: str = Field("")
    release_stage: str = Field("local")

    @field_validator("release_stage")
    @classmethod
    def _validate_bugsnag_release_stage(cls, v):
        if v not in RELEASE_STAGES:
            raise ValueError(f'invalid bugsnag release stage "{v}"')
        return v


class LitellmSettings(BaseModel):
    """Chat model served through LiteLLM.

    Attributes:
        model: LiteLLM model identifier (e.g. "litellm_proxy/anthropic/claude-sonnet-4-5")
        api_base: Base URL of the LiteLLM proxy; empty to call the provider directly
        api_key: API key for the proxy or provider
        temperature: Sampling temperature
    """

    model: str = Field("gpt-4o-mini")
    api_base: str = Field("")
    api_key: str = Field("")
    temperature: float = Field(0.2, ge=0.0, le=2.0)


class AssistantSettings(BaseModel):
    instructions: str | None = Field(
        None, description="Overrides the built-in system prompt of the assistant agent"
    )


class Settings(pydantic_settings.BaseSettings):
    model_config = pydantic_settings.SettingsConfigDict(env_nested_delimiter="__")

    app_http: AppHTTPSettings = AppHTTPSettings()
    bugsnag: BugsnagSettings = BugsnagSettings()

    # LiteLLM configuration
    litellm: LitellmSettings = LitellmSettings()

    # Per-agent configuration
    assistant: AssistantSettings = AssistantSettings()

    @property
    def json_logs(self) -> bool:
        """Log format: explicit override, otherwise JSON everywhere but local."""
        if self.app_http.log_json is not None:
            return self.app_http.log_json
        return self.bugsnag.release_stage != "local"
