"""Tests for dotstow.core.installer module."""

from datetime import datetime
from pathlib import Path

import pytest

from dotstow.config.schemas import Settings
from dotstow.core.backup import ConflictBackupEngine
from dotstow.core.installer import (
    DotfilesInstaller,
    InstallSummary,
    OperationSummary,
    PackageResult,
)
from dotstow.core.stow import StowResult


@pytest.fixture
def installer(settings: Settings, fake_stow) -> DotfilesInstaller:
    """Installer using the fake stow runner."""
    return DotfilesInstaller(settings, stow=fake_stow)


class TestOperationSummary:
    """Tests for OperationSummary dataclass."""

    def test_counts(self):
        """Splits results into succeeded and failed."""
        summary = OperationSummary(
            results=[
                PackageResult("a", True),
                PackageResult("b", False),
                PackageResult("c", True),
            ]
        )

        assert summary.succeeded == ["a", "c"]
        assert summary.failed == ["b"]
        assert summary.all_successful is False

    def test_empty_is_successful(self):
        """No results counts as all successful."""
        assert OperationSummary().all_successful is True

    def test_install_summary_defaults(self):
        """InstallSummary starts with an empty backup and no metadata."""
        summary = InstallSummary()

        assert summary.backup.backup_dir is None
        assert summary.metadata is None


class TestInstall:
    """Tests for DotfilesInstaller.install()."""

    def test_links_packages(self, installer: DotfilesInstaller, home_dir: Path):
        """Each selected package gets linked."""
        summary = installer.install(["bash", "nvim"])

        assert summary.succeeded == ["bash", "nvim"]
        assert (home_dir / ".bashrc").is_symlink()
        assert (home_dir / ".config" / "nvim" / "lua" / "options.lua").is_symlink()
        assert not (home_dir / ".gitconfig").exists()

    def test_writes_metadata(self, installer: DotfilesInstaller):
        """Installed packages are recorded with 'none' when no backup was needed."""
        summary = installer.install(["bash", "git"])

        metadata = installer.metadata.load()
        assert metadata is not None
        assert metadata.installed_packages == ["bash", "git"]
        assert metadata.backup_dir is None
        assert summary.metadata == metadata

    def test_backs_up_conflicts_before_linking(
        self, installer: DotfilesInstaller, home_dir: Path
    ):
        """Conflicting files are backed up, then the package links cleanly."""
        (home_dir / ".bashrc").write_text("old")

        summary = installer.install(["bash"])

        assert summary.all_successful
        backup_dir = summary.backup.backup_dir
        assert backup_dir is not None
        assert (backup_dir / ".bashrc").read_text() == "old"
        assert (home_dir / ".bashrc").is_symlink()

        metadata = installer.metadata.load()
        assert metadata is not None
        assert metadata.backup_dir == backup_dir

    def test_install_date_matches_backup_timestamp(
        self, settings: Settings, fake_stow, home_dir: Path
    ):
        """Metadata date and backup directory name share one timestamp."""
        (home_dir / ".bashrc").write_text("old")
        started = datetime(2026, 10, 19, 12, 0, 0)
        engine = ConflictBackupEngine(settings, now=lambda: started)
        installer = DotfilesInstaller(settings, stow=fake_stow, backup_engine=engine)

        summary = installer.install(["bash"])

        assert summary.metadata is not None
        assert summary.metadata.install_date == "20261019_120000"
        assert summary.backup.backup_dir == home_dir / "dotfiles_backup_20261019_120000"

    def test_failure_does_not_abort_others(
        self, installer: DotfilesInstaller, fake_stow
    ):
        """One failing package does not stop the rest."""
        fake_stow.fail.add("git")

        summary = installer.install(["bash", "git", "nvim"])

        assert summary.succeeded == ["bash", "nvim"]
        assert summary.failed == ["git"]
        failed = next(r for r in summary.results if not r.success)
        assert "status 2" in failed.message
        assert failed.output == ["stow: ERROR: simulated failure"]

        metadata = installer.metadata.load()
        assert metadata is not None
        assert metadata.installed_packages == ["bash", "nvim"]

    def test_no_metadata_when_nothing_installed(
        self, installer: DotfilesInstaller, fake_stow
    ):
        """Metadata is not written when every package failed."""
        fake_stow.fail.add("bash")

        summary = installer.install(["bash"])

        assert summary.metadata is None
        assert installer.metadata.load() is None

    def test_reinstall_is_idempotent(self, installer: DotfilesInstaller):
        """Installing twice needs no backup the second time."""
        installer.install(["bash", "nvim"])

        summary = installer.install(["bash", "nvim"])

        assert summary.all_successful
        assert summary.backup.backup_dir is None


class TestUninstall:
    """Tests for DotfilesInstaller.uninstall()."""

    def test_removes_links(self, installer: DotfilesInstaller, home_dir: Path):
        """Uninstall removes the package links."""
        installer.install(["bash", "git"])

        summary = installer.uninstall(["bash"])

        assert summary.succeeded == ["bash"]
        assert not (home_dir / ".bashrc").exists()
        assert (home_dir / ".gitconfig").is_symlink()

    def test_failure_is_collected(self, installer: DotfilesInstaller, fake_stow):
        """Failures are collected per package."""
        fake_stow.fail.add("bash")

        summary = installer.uninstall(["bash", "git"])

        assert summary.failed == ["bash"]
        assert summary.succeeded == ["git"]


class TestDetectInstalled:
    """Tests for DotfilesInstaller.detect_installed()."""

    def test_matches_live_links(self, installer: DotfilesInstaller):
        """Detection reflects the current link state."""
        installer.install(["bash", "nvim"])

        assert installer.detect_installed(["bash", "git", "nvim"]) == ["bash", "nvim"]

    def test_nothing_installed(self, installer: DotfilesInstaller):
        """Nothing linked, nothing detected."""
        assert installer.detect_installed(["bash", "git", "nvim"]) == []

    def test_uses_stow_probe(self, settings: Settings):
        """Detection delegates to the stow probe."""

        class ProbeStow:
            def is_installed(self, package: str) -> bool:
                return package == "git"

            def stow(self, package: str) -> StowResult:
                raise AssertionError("not expected")

            unstow = stow

        installer = DotfilesInstaller(settings, stow=ProbeStow())  # type: ignore[arg-type]

        assert installer.detect_installed(["bash", "git"]) == ["git"]
