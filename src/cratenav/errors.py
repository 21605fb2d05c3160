"""Exception hierarchy shared by loaders and the navigator."""

from __future__ import annotations


class CrateNavError(Exception):
    """Base class for all CrateNav errors."""


class ValidationError(CrateNavError):
    """The package is malformed or incomplete (missing context, graph or root)."""


class FetchError(CrateNavError):
    """A package could not be retrieved or parsed."""

    def __init__(self, message: str, *, locator: str | None = None) -> None:
        super().__init__(message)
        self.locator = locator


class ExpansionError(CrateNavError):
    """JSON-LD expansion failed. Absorbed while deriving link hints."""


class NavigationError(CrateNavError):
    """A navigation action is not possible in the current state."""
