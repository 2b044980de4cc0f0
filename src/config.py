"""
Configuration management using Pydantic for Cropify.
Provides type-safe configuration with validation and environment variable support.
"""

import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from common.constants import (
    APIConstants,
    BatchConstants,
    EngineConstants,
    GeometryConstants,
    StorageConstants,
    SystemConstants,
)

logger = logging.getLogger(__name__)


class EngineConfig(BaseSettings):
    """Transform engine configuration."""

    max_surface_pixels: int = Field(
        default=EngineConstants.MAX_SURFACE_PIXELS,
        ge=1,
        description="Largest surface (width x height) the engine may allocate",
    )
    preview_max_dimension: int = Field(
        default=EngineConstants.PREVIEW_MAX_DIMENSION,
        ge=16,
        le=4096,
        description="Longest side of crop previews in pixels",
    )
    preview_quality: int = Field(
        default=EngineConstants.PREVIEW_JPEG_QUALITY,
        ge=1,
        le=100,
        description="JPEG quality for crop previews",
    )

    model_config = SettingsConfigDict(env_prefix="CROPIFY_ENGINE_", extra="ignore")


class BatchConfig(BaseSettings):
    """Batch processing configuration."""

    inter_task_delay_ms: int = Field(
        default=BatchConstants.INTER_TASK_DELAY_MS,
        ge=0,
        le=BatchConstants.MAX_INTER_TASK_DELAY_MS,
        description="Pause between two batch tasks in milliseconds",
    )
    default_scale_factor: float = Field(
        default=GeometryConstants.DEFAULT_SCALE_FACTOR,
        gt=0,
        description="Scale factor of resize batches without an explicit value",
    )

    model_config = SettingsConfigDict(env_prefix="CROPIFY_BATCH_", extra="ignore")


class StorageConfig(BaseSettings):
    """Image storage configuration."""

    max_images: int = Field(
        default=StorageConstants.DEFAULT_MAX_IMAGES,
        ge=StorageConstants.MIN_IMAGES,
        le=StorageConstants.MAX_IMAGES,
        description="Maximum number of images to store in memory",
    )
    max_memory_mb: int = Field(
        default=StorageConstants.DEFAULT_MAX_MEMORY_MB,
        ge=1,
        le=100000,
        description="Maximum memory for image storage in MB",
    )

    model_config = SettingsConfigDict(env_prefix="CROPIFY_STORAGE_", extra="ignore")


class APIConfig(BaseSettings):
    """API configuration."""

    host: str = Field(default="0.0.0.0", description="API host address")
    port: int = Field(default=8000, ge=1, le=65535, description="API port")
    api_version: str = Field(default=APIConstants.API_VERSION, description="API version")
    cors_enabled: bool = Field(default=True, description="Enable CORS")
    cors_origins: List[str] = Field(default=["*"], description="CORS allowed origins")
    max_upload_size_mb: int = Field(
        default=APIConstants.MAX_UPLOAD_SIZE_MB,
        ge=1,
        le=500,
        description="Maximum upload size in MB",
    )

    model_config = SettingsConfigDict(env_prefix="CROPIFY_API_", extra="ignore")


class SystemConfig(BaseSettings):
    """System configuration."""

    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default=SystemConstants.LOG_LEVEL_DEFAULT, description="Logging level")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v_upper

    model_config = SettingsConfigDict(env_prefix="CROPIFY_SYSTEM_", extra="ignore")


class Settings(BaseSettings):
    """Main application settings."""

    # Sub-configurations
    engine: EngineConfig = Field(default_factory=EngineConfig)
    batch: BatchConfig = Field(default_factory=BatchConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    api: APIConfig = Field(default_factory=APIConfig)
    system: SystemConfig = Field(default_factory=SystemConfig)

    # Environment
    environment: str = Field(
        default="production", description="Environment (development, staging, production)"
    )

    # Config file support
    config_file: Optional[str] = Field(default=None, description="Path to YAML config file")

    model_config = SettingsConfigDict(
        env_prefix="CROPIFY_",
        case_sensitive=False,
        env_nested_delimiter="__",
        extra="ignore",
    )

    @model_validator(mode="before")
    @classmethod
    def load_config_file(cls, values):
        """Load configuration from YAML file if specified."""
        if not isinstance(values, dict):
            return values

        config_file = values.get("config_file") or os.getenv("CROPIFY_CONFIG_FILE")
        if not config_file or not Path(config_file).exists():
            return values

        try:
            with open(config_file, "r") as f:
                file_config = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            logger.warning(f"Failed to load config file {config_file}: {e}")
            return values

        if not isinstance(file_config, dict):
            return values

        # Merge file config with values (env vars take precedence)
        merged = dict(values)
        for key, value in file_config.items():
            current = merged.get(key)
            if isinstance(current, dict) and isinstance(value, dict):
                merged[key] = {**value, **current}
            elif current is None:
                merged[key] = value
        return merged

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v):
        """Validate environment value."""
        valid_envs = ["development", "staging", "production", "test"]
        if v not in valid_envs:
            raise ValueError(f"Invalid environment: {v}. Must be one of {valid_envs}")
        return v

    def to_dict(self) -> Dict[str, Any]:
        """Convert settings to dictionary."""
        return self.model_dump(exclude_none=True)

    def save_to_file(self, path: str) -> None:
        """Save current configuration to YAML file."""
        config_dict = self.to_dict()
        config_dict.pop("config_file", None)
        with open(path, "w") as f:
            yaml.dump(config_dict, f, default_flow_style=False)


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Settings object with validated configuration
    """
    return Settings()


# Convenience function to reload settings (clears cache)
def reload_settings() -> Settings:
    """
    Reload settings, clearing the cache.

    Returns:
        Fresh Settings object
    """
    get_settings.cache_clear()
    return get_settings()
