"""
Consolidated configuration system for exrmerge.

This module provides a centralized Pydantic-based configuration system that keeps
worker, naming and file settings in one place, with environment variable support
and validation of merge requests before they reach the engine.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings

# =============================================================================
# TIME SETTINGS
# =============================================================================

class TimeSettings(BaseModel):
    """Time interval configurations for the polling caller."""

    poll_interval: Annotated[float, Field(
        default=0.1,
        gt=0.0,
        le=5.0,
        description="Interval in seconds between progress polls in the CLI"
    )] = 0.1


# =============================================================================
# WORKER SETTINGS
# =============================================================================

class WorkerSettings(BaseModel):
    """Worker thread configuration."""

    reserved_cores: Annotated[int, Field(
        default=2,
        ge=0,
        description="Cores left free when the worker count is picked automatically"
    )] = 2

    max_workers: Annotated[int, Field(
        default=64,
        ge=1,
        le=1024,
        description="Upper bound accepted for an explicit worker count"
    )] = 64


# =============================================================================
# NAMING SETTINGS
# =============================================================================

class NamingSettings(BaseModel):
    """Output path templating."""

    placeholder: Annotated[str, Field(
        default="#",
        description="Character whose rightmost run is replaced by the frame number"
    )] = "#"

    @field_validator('placeholder')
    @classmethod
    def validate_placeholder(cls, v):
        """Placeholder must be exactly one character."""
        if len(v) != 1:
            raise ValueError(f"placeholder must be a single character, got {v!r}")
        return v


# =============================================================================
# FILE EXTENSIONS
# =============================================================================

class FileExtensions(BaseModel):
    """Supported file extensions."""

    supported_input_exts: Annotated[set[str], Field(
        default={".exr"},
        description="Extensions kept when expanding sequence patterns"
    )] = {".exr"}


# =============================================================================
# MERGE REQUEST
# =============================================================================

class FileSelection(BaseModel):
    """One source file and the channels to keep from it."""

    path: str
    channels: frozenset[str]

    class Config:
        frozen = True

    @field_validator('path')
    @classmethod
    def validate_path(cls, v):
        """Ensure path is not empty."""
        if not v:
            raise ValueError("path cannot be empty")
        return v


class MergeRequest(BaseModel):
    """A validated batch submission."""

    files: list[FileSelection]
    output: str
    threads: Annotated[int, Field(default=0, ge=0)] = 0

    class Config:
        frozen = True

    @field_validator('files')
    @classmethod
    def validate_files_not_empty(cls, v):
        """Ensure there is something to merge."""
        if not v:
            raise ValueError("files cannot be empty")
        return v

    @field_validator('output')
    @classmethod
    def validate_output(cls, v):
        """Ensure the output template is not empty."""
        if not v.strip():
            raise ValueError("output template cannot be empty")
        return v

    @field_validator('threads')
    @classmethod
    def validate_threads(cls, v):
        """Reject worker counts above the configured cap."""
        if v > app_config.worker.max_workers:
            raise ValueError(f"threads must be <= {app_config.worker.max_workers}, got {v}")
        return v

    def entries(self) -> list[tuple[str, frozenset[str]]]:
        """Flatten into (path, channels) pairs for the job builder."""
        return [(f.path, f.channels) for f in self.files]


# =============================================================================
# MAIN APPLICATION CONFIGURATION
# =============================================================================

class AppConfig(BaseSettings):
    """
    Main application configuration with environment variable support.

    All settings can be overridden via environment variables with EXRMERGE_ prefix.
    Example: EXRMERGE_WORKER__RESERVED_CORES=1
    """

    time: TimeSettings = TimeSettings()
    worker: WorkerSettings = WorkerSettings()
    naming: NamingSettings = NamingSettings()
    file_extensions: FileExtensions = FileExtensions()

    class Config:
        env_prefix = "EXRMERGE_"
        env_nested_delimiter = "__"
        case_sensitive = False

    def is_supported_input_file(self, path: Path) -> bool:
        """Check if file has supported input extension."""
        return path.suffix.lower() in self.file_extensions.supported_input_exts


# =============================================================================
# DEFAULT INSTANCE
# =============================================================================

app_config = AppConfig()

POLL_INTERVAL = app_config.time.poll_interval
RESERVED_CORES = app_config.worker.reserved_cores
MAX_WORKERS = app_config.worker.max_workers
PLACEHOLDER_CHAR = app_config.naming.placeholder


def create_config_from_env() -> AppConfig:
    """Create a new configuration instance from environment variables."""
    return AppConfig()
