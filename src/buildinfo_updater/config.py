"""Configuration management for the buildinfo updater."""

from functools import lru_cache
from pathlib import Path
from typing import Annotated

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Release sources
    release_api_url: str = Field(
        default="https://factorio.com/api/latest-releases",
        description="Endpoint returning the latest stable/experimental versions",
    )
    checksum_url: str = Field(
        default="https://factorio.com/download/sha256sums/",
        description="Listing of '<sha256>  <filename>' lines",
    )
    checksum_filename_prefixes: Annotated[
        list[str],
        Field(
            default_factory=lambda: ["factorio_headless_x64_", "factorio-headless_linux_"],
            description="Artifact filename prefixes preceding '<version>.tar.xz'",
        ),
    ]

    # Repository layout
    repo_dir: Path = Field(default=Path("."), description="Git working tree to update")
    manifest_path: Path = Field(default=Path("buildinfo.json"), description="Tag manifest")
    readme_path: Path = Field(default=Path("README.md"), description="README with tag list")
    compose_path: Path = Field(
        default=Path("docker/docker-compose.yml"), description="Compose file with build args"
    )
    compose_service: str = Field(default="factorio", description="Service whose args are patched")

    # Publishing
    product_name: str = Field(default="Factorio", description="Name used in commit messages")
    git_user_name: str = Field(default="github-actions[bot]", description="Commit author name")
    git_user_email: str = Field(
        default="41898282+github-actions[bot]@users.noreply.github.com",
        description="Commit author email",
    )
    push: bool = Field(default=True, description="Push the commit and tags to origin")

    # Application
    environment: str = Field(default="production", description="Environment name")
    log_level: str = Field(default="INFO", description="Logging level")

    @field_validator("checksum_filename_prefixes")
    @classmethod
    def _require_prefixes(cls, value: list[str]) -> list[str]:
        if not value:
            raise ValueError("at least one checksum filename prefix is required")
        return value

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment.lower() == "development"

    def resolve(self, path: Path) -> Path:
        """Resolve a repository-relative path against ``repo_dir``."""
        return path if path.is_absolute() else self.repo_dir / path

    @property
    def managed_files(self) -> list[Path]:
        """Files rewritten and committed by an update, relative to ``repo_dir``."""
        return [self.manifest_path, self.readme_path, self.compose_path]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
