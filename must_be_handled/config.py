"""
Checker Configuration: pydantic-settings based.

All settings are read from environment variables (prefixed ``MBH_``) or a
.env file. Every field has a default, so the checker runs unconfigured.
"""

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Project-wide settings sourced from environment variables."""

    # ── Rule ──
    enabled: bool = Field(
        default=True, description="Enable the must_be_handled rule for this project"
    )

    # ── Checking ──
    max_file_size_bytes: int = Field(
        default=500_000, description="Files larger than this are skipped (bytes)"
    )
    max_files_per_request: int = Field(
        default=2_000, description="Max files accepted by one /check request"
    )
    exclude_dirs: list[str] = Field(
        default=[
            ".git",
            ".hg",
            ".tox",
            ".nox",
            ".venv",
            "venv",
            "__pycache__",
            "build",
            "dist",
            "node_modules",
        ],
        description="Directory names never descended into or checked",
    )

    # ── Logging ──
    log_level: str = Field(default="INFO", description="Root log level for API and CLI")

    # ── Server ──
    cors_origins: list[str] = Field(default=["*"], description="Allowed CORS origins")

    model_config = {
        "env_prefix": "MBH_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
    }


# Singleton instance, imported by other modules
settings = Settings()
