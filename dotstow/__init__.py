"""Dotstow - stow-based dotfiles installer with conflict backups."""

__version__ = "0.1.0"
