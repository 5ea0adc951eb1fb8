"""Package installation orchestrator.

The DotfilesInstaller backs up conflicts, runs stow for each selected
package, and records the run in the metadata store. Packages are handled
independently: one failing package does not stop the others.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from dotstow.config.schemas import InstallMetadata, Settings
from dotstow.core.backup import BackupResult, ConflictBackupEngine
from dotstow.core.metadata import MetadataStore
from dotstow.core.stow import StowResult, StowRunner

logger = logging.getLogger("dotstow.installer")


@dataclass
class PackageResult:
    """Result of installing or uninstalling one package."""

    package: str
    success: bool
    output: list[str] = field(default_factory=list)
    message: str = ""


@dataclass
class OperationSummary:
    """Summary of an install or uninstall run."""

    results: list[PackageResult] = field(default_factory=list)

    @property
    def succeeded(self) -> list[str]:
        return [r.package for r in self.results if r.success]

    @property
    def failed(self) -> list[str]:
        return [r.package for r in self.results if not r.success]

    @property
    def all_successful(self) -> bool:
        return all(r.success for r in self.results)


@dataclass
class InstallSummary(OperationSummary):
    """Install run summary, including the backup and saved metadata."""

    backup: BackupResult = field(default_factory=BackupResult)
    metadata: InstallMetadata | None = None


class DotfilesInstaller:
    """Orchestrates linking and unlinking of packages."""

    def __init__(
        self,
        settings: Settings,
        stow: StowRunner | None = None,
        metadata: MetadataStore | None = None,
        backup_engine: ConflictBackupEngine | None = None,
    ):
        """Initialize the installer.

        Args:
            settings: Run settings
            stow: Stow runner (defaults to one built from settings)
            metadata: Metadata store (defaults to one built from settings)
            backup_engine: Conflict backup engine (defaults to one built from settings)
        """
        self.settings = settings
        self.stow = stow or StowRunner(settings)
        self.metadata = metadata or MetadataStore(settings)
        self.backup_engine = backup_engine or ConflictBackupEngine(settings)

    def install(self, packages: Iterable[str]) -> InstallSummary:
        """Back up conflicts, then link each package.

        Metadata is written when at least one package was installed.

        Args:
            packages: Selected package names

        Returns:
            InstallSummary with per-package results
        """
        packages = list(packages)
        logger.info("Starting installation of %d package(s)", len(packages))

        summary = InstallSummary(backup=self.backup_engine.backup(packages))

        for package in packages:
            logger.info("Installing: %s", package)
            result = self._to_result(self.stow.stow(package))
            summary.results.append(result)
            if not result.success:
                logger.warning("Failed to install %s", package)

        if summary.succeeded:
            summary.metadata = self.metadata.record_install(
                summary.succeeded,
                summary.backup.backup_dir,
                moment=summary.backup.started,
            )
        elif summary.backup.backup_dir is not None:
            logger.warning(
                "No package installed; backup kept at %s", summary.backup.backup_dir
            )

        logger.info(
            "Installation complete: %d succeeded, %d failed",
            len(summary.succeeded),
            len(summary.failed),
        )
        return summary

    def uninstall(self, packages: Iterable[str]) -> OperationSummary:
        """Remove the links of each package.

        Args:
            packages: Package names to unlink

        Returns:
            OperationSummary with per-package results
        """
        summary = OperationSummary()
        for package in packages:
            logger.info("Uninstalling: %s", package)
            result = self._to_result(self.stow.unstow(package))
            summary.results.append(result)
            if not result.success:
                logger.warning("Failed to uninstall %s", package)
        return summary

    def detect_installed(self, candidates: Iterable[str]) -> list[str]:
        """Find which candidate packages currently have live links.

        Used when no metadata is available.

        Args:
            candidates: Package names to probe

        Returns:
            Installed package names, in candidate order
        """
        installed = []
        for package in candidates:
            if self.stow.is_installed(package):
                logger.info("Detected installed package: %s", package)
                installed.append(package)
        return installed

    @staticmethod
    def _to_result(stow_result: StowResult) -> PackageResult:
        if stow_result.success:
            message = "ok"
        else:
            message = f"stow exited with status {stow_result.returncode}"
        return PackageResult(
            package=stow_result.package,
            success=stow_result.success,
            output=stow_result.output,
            message=message,
        )
