"""Install metadata store.

The metadata records the last install run (date, backup location, installed
packages) so uninstall knows what to remove and what to restore. It lives in
a flat KEY=value file inside the dotfiles directory.
"""

import logging
from datetime import datetime
from pathlib import Path

from dotstow.config.parser import ConfigError, format_metadata, parse_metadata
from dotstow.config.schemas import BACKUP_TIMESTAMP_FORMAT, InstallMetadata, Settings

logger = logging.getLogger("dotstow.metadata")


class MetadataStore:
    """Reads and writes the install metadata file."""

    def __init__(self, settings: Settings) -> None:
        """Initialize the store.

        Args:
            settings: Run settings (provides the metadata path)
        """
        self.settings = settings

    @property
    def path(self) -> Path:
        """Get the metadata file path."""
        return self.settings.metadata_path

    def exists(self) -> bool:
        return self.path.is_file()

    def load(self) -> InstallMetadata | None:
        """Load the metadata.

        Returns:
            The recorded metadata, or None if no metadata file exists

        Raises:
            ConfigError: If the file cannot be read or parsed
        """
        if not self.exists():
            logger.info("No install metadata at %s", self.path)
            return None
        try:
            text = self.path.read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigError(f"Cannot read {self.path}: {e}", self.path) from e
        return parse_metadata(text, self.path)

    def save(self, metadata: InstallMetadata) -> None:
        """Write the metadata, replacing any previous content."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(format_metadata(metadata), encoding="utf-8")
        logger.info("Saved install metadata to %s", self.path)

    def record_install(
        self,
        packages: list[str],
        backup_dir: Path | None,
        moment: datetime | None = None,
    ) -> InstallMetadata:
        """Build and save metadata for an install run.

        Args:
            packages: Installed package names
            backup_dir: Backup directory of the run, or None
            moment: Install time (defaults to now)

        Returns:
            The saved metadata
        """
        moment = moment or datetime.now()
        metadata = InstallMetadata(
            install_date=moment.strftime(BACKUP_TIMESTAMP_FORMAT),
            backup_dir=backup_dir,
            installed_packages=list(packages),
        )
        self.save(metadata)
        return metadata

    def delete(self) -> bool:
        """Remove the metadata file.

        Returns:
            True if the file was removed, False if it didn't exist
        """
        if not self.exists():
            return False
        self.path.unlink()
        logger.info("Deleted install metadata %s", self.path)
        return True
