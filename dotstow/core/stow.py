"""Subprocess boundary to GNU Stow."""

import logging
import shutil
import subprocess
from dataclasses import dataclass, field

from dotstow.config.schemas import Settings

logger = logging.getLogger("dotstow.stow")

UNLINK_MARKER = "UNLINK"


class StowError(Exception):
    """Stow could not be run at all."""


@dataclass
class StowResult:
    """Exit status and combined output of one stow invocation."""

    package: str
    returncode: int
    output: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.returncode == 0


class StowRunner:
    """Runs stow operations for packages of one dotfiles directory."""

    def __init__(self, settings: Settings):
        self.settings = settings

    @property
    def command(self) -> str:
        return self.settings.stow_command

    def is_available(self) -> bool:
        """Check if the stow executable is on PATH."""
        return shutil.which(self.command) is not None

    def _base_args(self) -> list[str]:
        return [
            self.command,
            "-d",
            str(self.settings.dotfiles_dir),
            "-t",
            str(self.settings.target_dir),
        ]

    def _run(self, package: str, flags: list[str]) -> StowResult:
        cmd = self._base_args() + flags + [package]
        logger.debug("Running: %s", " ".join(cmd))
        try:
            completed = subprocess.run(
                cmd,
                cwd=self.settings.dotfiles_dir,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                check=False,
            )
        except FileNotFoundError as e:
            logger.error("%s is not installed or not in PATH", self.command)
            raise StowError(f"{self.command} is not installed or not in PATH") from e

        output = [line for line in (completed.stdout or "").splitlines() if line.strip()]
        if completed.returncode != 0:
            logger.debug("stow exited with %d for %s", completed.returncode, package)
        return StowResult(package=package, returncode=completed.returncode, output=output)

    def stow(self, package: str) -> StowResult:
        """Create the links for a package."""
        return self._run(package, ["-v"])

    def unstow(self, package: str) -> StowResult:
        """Remove the links of a package."""
        return self._run(package, ["-v", "-D"])

    def is_installed(self, package: str) -> bool:
        """Probe whether a package currently has live links.

        Runs a dry-run delete and looks for planned unlink actions.
        """
        result = self._run(package, ["-n", "-v", "-D"])
        return any(UNLINK_MARKER in line for line in result.output)
