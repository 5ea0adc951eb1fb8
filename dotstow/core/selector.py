"""Parsing of interactive package selections.

The menu answer is one of ``a``/``all``, ``q``/``quit``, or a
whitespace-separated list of 1-based indices. Parsing never prompts or
prints; the CLI renders the warnings carried by the result.
"""

from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum

ALL_CHOICES = frozenset({"a", "all"})
QUIT_CHOICES = frozenset({"q", "quit"})


class SelectionAction(str, Enum):
    """What the user asked for."""

    ALL = "all"
    QUIT = "quit"
    PACKAGES = "packages"


@dataclass
class Selection:
    """Result of parsing a menu answer."""

    action: SelectionAction
    packages: list[str] = field(default_factory=list)
    invalid: list[str] = field(default_factory=list)
    duplicates: list[str] = field(default_factory=list)

    @property
    def cancelled(self) -> bool:
        return self.action is SelectionAction.QUIT

    @property
    def is_empty(self) -> bool:
        return not self.packages


def parse_selection(choice: str, candidates: Sequence[str]) -> Selection:
    """Turn a menu answer into a validated selection.

    Invalid tokens are collected and skipped; repeated picks are dropped,
    keeping first-seen order.

    Args:
        choice: Raw answer typed by the user
        candidates: Package names in menu order

    Returns:
        Selection describing the chosen packages
    """
    normalized = choice.strip().lower()
    if normalized in ALL_CHOICES:
        return Selection(SelectionAction.ALL, packages=list(candidates))
    if normalized in QUIT_CHOICES:
        return Selection(SelectionAction.QUIT)

    selection = Selection(SelectionAction.PACKAGES)
    for token in choice.split():
        if not token.isdecimal() or not 1 <= int(token) <= len(candidates):
            selection.invalid.append(token)
            continue
        package = candidates[int(token) - 1]
        if package in selection.packages:
            selection.duplicates.append(package)
        else:
            selection.packages.append(package)
    return selection
