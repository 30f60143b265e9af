"""Exception types shared across ricething."""

from __future__ import annotations


class RicethingError(RuntimeError):
    """Raised when ricething encounters an unrecoverable state."""


class ManifestError(RicethingError):
    """Raised when a bundle manifest cannot be read, written, or trusted."""


class DesktopMismatchError(RicethingError):
    """Raised when a bundle targets another desktop and the install was asked to be strict."""
