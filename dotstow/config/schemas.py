"""Pydantic schemas for Dotstow configuration and state.

This module defines the data models for:
- dotstow.yaml (per-repository settings)
- .install_metadata (record of the last install run)
"""

from datetime import datetime
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator

# =============================================================================
# Settings
# =============================================================================

DEFAULT_METADATA_FILE = ".install_metadata"
DEFAULT_BACKUP_PREFIX = "dotfiles_backup_"
BACKUP_TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"
NO_BACKUP = "none"


class Settings(BaseModel):
    """Immutable configuration shared by every component.

    Built once by ``load_settings`` and passed explicitly; nothing reads
    directories from globals.
    """

    model_config = ConfigDict(frozen=True)

    dotfiles_dir: Path
    target_dir: Path
    metadata_file: str = DEFAULT_METADATA_FILE
    backup_prefix: str = DEFAULT_BACKUP_PREFIX
    ignore: tuple[str, ...] = ()
    stow_command: str = "stow"
    trace_link_depth: int = Field(default=3, ge=1)
    trace_marker_depth: int = Field(default=2, ge=1)

    @field_validator("metadata_file", "backup_prefix")
    @classmethod
    def validate_plain_name(cls, v: str) -> str:
        """File names must not contain path separators."""
        if not v or "/" in v:
            raise ValueError(f"Must be a plain file name: {v!r}")
        return v

    @property
    def metadata_path(self) -> Path:
        """Full path of the metadata file."""
        return self.dotfiles_dir / self.metadata_file

    def backup_dir_for(self, moment: datetime) -> Path:
        """Backup directory name for an install run started at ``moment``."""
        return self.target_dir / f"{self.backup_prefix}{moment.strftime(BACKUP_TIMESTAMP_FORMAT)}"


class RepositoryConfig(BaseModel):
    """Optional dotstow.yaml stored at the root of the dotfiles directory."""

    model_config = ConfigDict(extra="forbid")

    target: Path | None = None
    metadata_file: str | None = None
    backup_prefix: str | None = None
    ignore: list[str] = Field(default_factory=list)
    stow_command: str | None = None
    trace_link_depth: int | None = None
    trace_marker_depth: int | None = None


# =============================================================================
# Install Metadata
# =============================================================================


class InstallMetadata(BaseModel):
    """Record of an install run: when, where the backup went, what got linked."""

    install_date: str
    backup_dir: Path | None = None
    installed_packages: list[str] = Field(default_factory=list)

    @property
    def has_backup(self) -> bool:
        """Whether a backup was recorded and still exists on disk."""
        return self.backup_dir is not None and self.backup_dir.is_dir()

    @property
    def backup_location(self) -> str:
        """Backup directory as written to the metadata file."""
        return str(self.backup_dir) if self.backup_dir is not None else NO_BACKUP
