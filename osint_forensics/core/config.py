"""
Configuration Management Module
===============================

Pydantic Settings-based configuration loading from environment variables.
All configuration is centralized and validated at startup.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    
    All settings can be overridden via .env file or environment variables.
    Environment variables take precedence over .env file values.
    """
    
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )
    
    # Application Settings
    app_name: str = Field(default="osint_forensics", description="Application name")
    app_env: str = Field(default="development", description="Environment: development, staging, production")
    debug: bool = Field(default=False, description="Debug mode flag")
    log_level: str = Field(default="INFO", description="Logging level")
    
    # Progress Simulation
    progress_interval_ms: int = Field(default=500, gt=0, description="Tick interval of the progress simulator")
    progress_ceiling: float = Field(default=90.0, ge=0, lt=100, description="Highest estimate before a stage resolves")
    progress_max_increment: float = Field(default=15.0, ge=0, description="Largest random step per tick")
    
    # Executor Behaviour
    enforce_stage_timeout: bool = Field(
        default=False,
        description="Abort a stage once the query's timeout_ms elapses",
    )
    pause_gates_next_stage: bool = Field(
        default=False,
        description="Hold the next stage while the investigation is paused",
    )
    
    # Query Defaults
    default_timeout_ms: int = Field(default=300_000, gt=0, description="Default stage timeout (5 minutes)")
    default_priority: Literal["low", "medium", "high"] = Field(default="medium", description="Default query priority")
    default_human_review: bool = Field(default=True, description="Request human review of findings")
    
    # Collaborator Simulation
    bootstrap_latency_ms: int = Field(default=500, ge=0, description="Latency of the local investigation bootstrap")
    simulate_stage_latency: bool = Field(default=True, description="Sleep inside the built-in stage runners")
    
    # Realtime Channel
    realtime_base_url: str = Field(
        default="ws://localhost:8000/api/v1/investigations",
        description="Base address of the live update endpoint",
    )
    
    # API
    cors_origin_regex: str = Field(
        default=r"http://(localhost|127\.0\.0\.1|0\.0\.0\.0)(:300[01]|:5173)?",
        description="Origins allowed to call the API",
    )
    
    @property
    def progress_interval_s(self) -> float:
        """Progress tick interval in seconds."""
        return self.progress_interval_ms / 1000
    
    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is one of the allowed values."""
        allowed = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in allowed:
            raise ValueError(f"Log level must be one of {allowed}, got {v}")
        return v_upper
    
    @field_validator("app_env")
    @classmethod
    def validate_app_env(cls, v: str) -> str:
        """Validate application environment."""
        allowed = ["development", "staging", "production", "testing"]
        v_lower = v.lower()
        if v_lower not in allowed:
            raise ValueError(f"Environment must be one of {allowed}, got {v}")
        return v_lower


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.
    
    Uses lru_cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload settings (useful for testing).
    """
    return Settings()
