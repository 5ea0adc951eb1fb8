"""Filesystem and platform helpers."""
