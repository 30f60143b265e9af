"""Shared models and enums for ricething."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path

MANIFEST_VERSION = 2


class EntryType(str, Enum):
    """Kinds of filesystem entries copied into or out of a bundle."""

    FILE = "file"
    DIRECTORY = "directory"
    SYMLINK = "symlink"


@dataclass(frozen=True, slots=True)
class Package:
    """An installed package as reported by the package manager."""

    name: str
    version: str = ""


@dataclass(frozen=True, slots=True)
class RiceManifest:
    """Declarative description of a bundle."""

    system: str = ""
    shell: str = ""
    desktop: str = ""
    packages: tuple[Package, ...] = ()
    config_folders: tuple[str, ...] = ()
    dotfiles: tuple[str, ...] = ()
    version: int = MANIFEST_VERSION


class EntryKind(str, Enum):
    """What a copied entry represents inside the bundle."""

    CONFIG = "config"
    DOTFILE = "dotfile"


class CopyAction(str, Enum):
    """Outcome of copying a single folder or dotfile."""

    COPIED = "copied"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class CopyResult:
    """Result emitted for each top-level folder or dotfile copy."""

    kind: EntryKind
    name: str
    source: Path
    destination: Path
    action: CopyAction
    details: str | None = None


class InstallAction(str, Enum):
    """Outcome of installing a single package."""

    INSTALLED = "installed"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class InstallResult:
    """Result emitted for each package install attempt."""

    package: Package
    action: InstallAction
    details: str | None = None


@dataclass(frozen=True, slots=True)
class BuildReport:
    """Everything ``ricething build`` produced."""

    manifest: RiceManifest
    manifest_path: Path
    copies: tuple[CopyResult, ...] = ()
    warnings: tuple[str, ...] = ()

    @property
    def failures(self) -> tuple[CopyResult, ...]:
        return tuple(result for result in self.copies if result.action is CopyAction.FAILED)


@dataclass(frozen=True, slots=True)
class InstallReport:
    """Everything ``ricething install`` did."""

    manifest: RiceManifest
    packages: tuple[InstallResult, ...] = ()
    copies: tuple[CopyResult, ...] = ()
    warnings: tuple[str, ...] = ()
    desktop_mismatch: bool = False

    @property
    def failures(self) -> tuple[CopyResult | InstallResult, ...]:
        failed_copies = tuple(result for result in self.copies if result.action is CopyAction.FAILED)
        failed_installs = tuple(result for result in self.packages if result.action is InstallAction.FAILED)
        return failed_installs + failed_copies
