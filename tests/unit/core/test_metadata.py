"""Tests for dotstow.core.metadata module."""

from datetime import datetime
from pathlib import Path

import pytest

from dotstow.config.parser import ConfigError
from dotstow.config.schemas import InstallMetadata, Settings
from dotstow.core.metadata import MetadataStore


@pytest.fixture
def store(settings: Settings) -> MetadataStore:
    """MetadataStore bound to the test settings."""
    return MetadataStore(settings)


class TestMetadataStore:
    """Tests for MetadataStore."""

    def test_path(self, store: MetadataStore, dotfiles_dir: Path):
        """Metadata lives at <dotfiles>/.install_metadata."""
        assert store.path == dotfiles_dir / ".install_metadata"

    def test_load_missing_returns_none(self, store: MetadataStore):
        """No file means no metadata."""
        assert store.load() is None

    def test_save_and_load(self, store: MetadataStore, temp_dir: Path):
        """Saved metadata loads back."""
        store.save(
            InstallMetadata(
                install_date="20261019_120000",
                backup_dir=temp_dir / "backup",
                installed_packages=["bash", "nvim"],
            )
        )

        loaded = store.load()

        assert loaded is not None
        assert loaded.install_date == "20261019_120000"
        assert loaded.backup_dir == temp_dir / "backup"
        assert loaded.installed_packages == ["bash", "nvim"]

    def test_save_overwrites(self, store: MetadataStore):
        """Each save replaces the previous record wholesale."""
        store.save(InstallMetadata(install_date="1", installed_packages=["bash", "git"]))
        store.save(InstallMetadata(install_date="2", installed_packages=["nvim"]))

        loaded = store.load()

        assert loaded is not None
        assert loaded.install_date == "2"
        assert loaded.installed_packages == ["nvim"]
        assert store.path.read_text().count("INSTALL_DATE=") == 1

    def test_record_install(self, store: MetadataStore):
        """record_install stamps the date and records 'none' without backup."""
        metadata = store.record_install(["bash"], None, moment=datetime(2026, 10, 19, 9, 30, 0))

        assert metadata.install_date == "20261019_093000"
        text = store.path.read_text()
        assert "BACKUP_DIR=none" in text
        assert "INSTALLED_PACKAGES=bash" in text

    def test_load_malformed_raises(self, store: MetadataStore):
        """A corrupt file raises ConfigError."""
        store.path.write_text("garbage without equals\n")

        with pytest.raises(ConfigError):
            store.load()

    def test_delete(self, store: MetadataStore):
        """delete removes the file once."""
        store.record_install(["bash"], None)

        assert store.delete() is True
        assert not store.path.exists()
        assert store.delete() is False
