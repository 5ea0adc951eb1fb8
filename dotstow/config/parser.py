"""Configuration file parsing utilities."""

import os
from datetime import datetime
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from dotstow.config.schemas import NO_BACKUP, InstallMetadata, RepositoryConfig, Settings

REPOSITORY_CONFIG_FILE = "dotstow.yaml"
DOTFILES_ENV_VAR = "DOTFILES_DIR"

METADATA_KEY_DATE = "INSTALL_DATE"
METADATA_KEY_BACKUP = "BACKUP_DIR"
METADATA_KEY_PACKAGES = "INSTALLED_PACKAGES"


class ConfigError(Exception):
    """Error loading or parsing configuration."""

    def __init__(self, message: str, path: Path | None = None):
        self.path = path
        super().__init__(message)


def load_yaml(path: Path) -> dict[str, Any]:
    """Load and parse a YAML file.

    Args:
        path: Path to the YAML file

    Returns:
        Parsed YAML as a dictionary

    Raises:
        ConfigError: If the file cannot be read or parsed
    """
    if not path.exists():
        raise ConfigError(f"File not found: {path}", path)

    try:
        with open(path, encoding="utf-8") as f:
            result = yaml.safe_load(f)
            if result is None:
                return {}
            if not isinstance(result, dict):
                raise ConfigError(f"YAML file must contain a mapping: {path}", path)
            return result
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}", path) from e
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}", path) from e


def load_repository_config(dotfiles_dir: Path) -> RepositoryConfig:
    """Load dotstow.yaml from the dotfiles directory.

    Returns an empty config when the file does not exist.

    Raises:
        ConfigError: If the file exists but is invalid
    """
    config_path = dotfiles_dir / REPOSITORY_CONFIG_FILE
    if not config_path.exists():
        return RepositoryConfig()

    data = load_yaml(config_path)
    try:
        return RepositoryConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid repository config: {e}", config_path) from e


def load_settings(
    dotfiles_dir: Path | None = None,
    target_dir: Path | None = None,
) -> Settings:
    """Build the settings for a run.

    Precedence: explicit arguments, then $DOTFILES_DIR (dotfiles directory
    only), then dotstow.yaml, then defaults.

    Args:
        dotfiles_dir: Dotfiles directory override
        target_dir: Target (home) directory override

    Returns:
        Frozen Settings instance

    Raises:
        ConfigError: If dotstow.yaml or the resulting values are invalid
    """
    home = Path.home()

    if dotfiles_dir is None:
        env_dir = os.environ.get(DOTFILES_ENV_VAR)
        dotfiles_dir = Path(env_dir) if env_dir else home / "dotfiles"
    dotfiles_dir = dotfiles_dir.expanduser().absolute()

    repo_config = load_repository_config(dotfiles_dir)

    if target_dir is None:
        target_dir = repo_config.target or home
    target_dir = target_dir.expanduser().absolute()

    values: dict[str, Any] = {
        "dotfiles_dir": dotfiles_dir,
        "target_dir": target_dir,
        "ignore": tuple(repo_config.ignore),
    }
    for key in (
        "metadata_file",
        "backup_prefix",
        "stow_command",
        "trace_link_depth",
        "trace_marker_depth",
    ):
        value = getattr(repo_config, key)
        if value is not None:
            values[key] = value

    try:
        return Settings.model_validate(values)
    except ValidationError as e:
        raise ConfigError(
            f"Invalid settings: {e}", dotfiles_dir / REPOSITORY_CONFIG_FILE
        ) from e


# =============================================================================
# Metadata file (KEY=value lines)
# =============================================================================


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
        return value[1:-1]
    return value


def parse_metadata(text: str, path: Path | None = None) -> InstallMetadata:
    """Parse the contents of a metadata file.

    Blank lines and ``#`` comments are skipped, unknown keys are ignored.

    Raises:
        ConfigError: If a line is not a KEY=value pair
    """
    values: dict[str, str] = {}
    for lineno, raw_line in enumerate(text.splitlines(), start=1):
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        key, sep, value = line.partition("=")
        if not sep or not key.strip():
            raise ConfigError(f"Malformed metadata line {lineno}: {raw_line!r}", path)
        values[key.strip()] = _unquote(value.strip())

    backup = values.get(METADATA_KEY_BACKUP, "")
    return InstallMetadata(
        install_date=values.get(METADATA_KEY_DATE, ""),
        backup_dir=None if backup in ("", NO_BACKUP) else Path(backup),
        installed_packages=values.get(METADATA_KEY_PACKAGES, "").split(),
    )


def format_metadata(metadata: InstallMetadata, generated: datetime | None = None) -> str:
    """Render metadata as KEY=value lines.

    Package names are space separated and values are not escaped, so names
    containing spaces do not round-trip.
    """
    generated = generated or datetime.now()
    lines = [
        "# Install metadata",
        f"# Generated: {generated.strftime('%Y-%m-%d %H:%M:%S')}",
        f"{METADATA_KEY_DATE}={metadata.install_date}",
        f"{METADATA_KEY_BACKUP}={metadata.backup_location}",
        f"{METADATA_KEY_PACKAGES}={' '.join(metadata.installed_packages)}",
    ]
    return "\n".join(lines) + "\n"
