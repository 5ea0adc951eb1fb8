"""Core install, backup, and uninstall logic."""
