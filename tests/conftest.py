"""Shared fixtures for Dotstow tests."""

import os
import shutil
import tempfile
from collections.abc import Generator
from pathlib import Path

import pytest

from dotstow.config.schemas import Settings
from dotstow.core.stow import StowResult
from dotstow.utils.filesystem import iter_files, lexists


class FakeStow:
    """Stand-in for StowRunner that creates one relative link per file.

    Mirrors stow's behaviour closely enough for install/uninstall flows:
    existing entries that are not its own links make the package fail.
    """

    def __init__(self, settings: Settings, fail: tuple[str, ...] = ()):
        self.settings = settings
        self.fail = set(fail)
        self.calls: list[tuple[str, str]] = []

    def is_available(self) -> bool:
        return True

    def _pairs(self, package: str) -> list[tuple[Path, Path]]:
        root = self.settings.dotfiles_dir / package
        return [
            (source, self.settings.target_dir / source.relative_to(root))
            for source in iter_files(root)
        ]

    def stow(self, package: str) -> StowResult:
        self.calls.append(("stow", package))
        if package in self.fail:
            return StowResult(package, 2, ["stow: ERROR: simulated failure"])
        lines = []
        for source, target in self._pairs(package):
            if target.is_symlink() and target.resolve() == source.resolve():
                continue
            if lexists(target):
                return StowResult(
                    package, 1, [f"existing target is not owned by stow: {target.name}"]
                )
            target.parent.mkdir(parents=True, exist_ok=True)
            target.symlink_to(os.path.relpath(source, target.parent))
            lines.append(f"LINK: {target.name}")
        return StowResult(package, 0, lines)

    def unstow(self, package: str) -> StowResult:
        self.calls.append(("unstow", package))
        if package in self.fail:
            return StowResult(package, 2, ["stow: ERROR: simulated failure"])
        lines = []
        for source, target in self._pairs(package):
            if target.is_symlink() and target.resolve() == source.resolve():
                target.unlink()
                lines.append(f"UNLINK: {target.name}")
        return StowResult(package, 0, lines)

    def is_installed(self, package: str) -> bool:
        return any(
            target.is_symlink() and target.resolve() == source.resolve()
            for source, target in self._pairs(package)
        )


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory."""
    path = Path(tempfile.mkdtemp(prefix="dotstow_test_"))
    yield path
    if path.exists():
        shutil.rmtree(path)


@pytest.fixture
def home_dir(temp_dir: Path) -> Path:
    """Empty target (home) directory."""
    home = temp_dir / "home"
    home.mkdir()
    return home


@pytest.fixture
def dotfiles_dir(home_dir: Path) -> Path:
    """Dotfiles directory with three packages.

    bash: .bashrc
    git:  .gitconfig
    nvim: .config/nvim/init.lua, .config/nvim/lua/options.lua
    """
    root = home_dir / "dotfiles"
    (root / "bash").mkdir(parents=True)
    (root / "bash" / ".bashrc").write_text("# bashrc from dotfiles\n")

    (root / "git").mkdir()
    (root / "git" / ".gitconfig").write_text("[user]\n  name = Test\n")

    nvim = root / "nvim" / ".config" / "nvim"
    (nvim / "lua").mkdir(parents=True)
    (nvim / "init.lua").write_text("require('options')\n")
    (nvim / "lua" / "options.lua").write_text("vim.opt.number = true\n")

    (root / ".git").mkdir()
    return root


@pytest.fixture
def settings(dotfiles_dir: Path, home_dir: Path) -> Settings:
    """Settings pointing at the temporary dotfiles and home directories."""
    return Settings(dotfiles_dir=dotfiles_dir, target_dir=home_dir)


@pytest.fixture
def fake_stow(settings: Settings) -> FakeStow:
    """Fake stow runner bound to the test settings."""
    return FakeStow(settings)


@pytest.fixture
def fake_stow_cls() -> type[FakeStow]:
    """The FakeStow class itself, for patching StowRunner constructors."""
    return FakeStow
