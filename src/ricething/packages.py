"""Package manager access for ricething.

The pipelines only talk to the ``PackageManager`` protocol so they can run
against a fake in tests. ``PacmanPackageManager`` is the real implementation.
"""

from __future__ import annotations

import logging
import os
import subprocess
from pathlib import Path
from typing import Protocol

from .config import Settings
from .models import Package

logger = logging.getLogger(__name__)


class PackageManagerError(RuntimeError):
    """Raised when the installed package list cannot be queried."""


class PackageManager(Protocol):
    """Capability the pipelines need from a system package manager."""

    def list_installed(self) -> list[Package]:
        """Return every installed package as name/version pairs."""
        ...

    def install(self, name: str) -> bool:
        """Install ``name`` non-interactively, returning ``True`` on success."""
        ...


def parse_package_list(output: str) -> list[Package]:
    """Parse ``name version`` lines, dropping any line without exactly two tokens."""

    packages: list[Package] = []
    for line in output.splitlines():
        parts = line.split()
        if len(parts) != 2:
            if line.strip():
                logger.debug("Dropping unparsable package line %r", line)
            continue
        packages.append(Package(name=parts[0], version=parts[1]))
    return packages


def read_distribution_id(path: Path) -> str:
    """Return the ``ID=`` value from an os-release file.

    ``OSError`` propagates so callers can decide how loud to be about it.
    """

    with path.open(encoding="utf-8", errors="replace") as handle:
        for line in handle:
            if line.startswith("ID="):
                return line.split("=", 1)[1].strip().strip("\"'")
    return ""


class PacmanPackageManager:
    """Queries and installs packages with ``pacman``."""

    def __init__(
        self,
        *,
        executable: str = "pacman",
        use_sudo: bool | None = None,
        timeout: float | None = None,
    ) -> None:
        self.executable = executable
        if use_sudo is None:
            use_sudo = hasattr(os, "geteuid") and os.geteuid() != 0
        self.use_sudo = use_sudo
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> "PacmanPackageManager":
        return cls(use_sudo=settings.use_sudo, timeout=settings.install_timeout)

    def list_installed(self) -> list[Package]:
        cmd = [self.executable, "-Q"]
        try:
            result = subprocess.run(cmd, capture_output=True, text=True, check=True)
        except FileNotFoundError as exc:
            raise PackageManagerError(f"'{self.executable}' is not installed or not in PATH") from exc
        except subprocess.CalledProcessError as exc:
            raise PackageManagerError(f"Package query failed: {' '.join(cmd)}\n{exc.stderr}") from exc

        return parse_package_list(result.stdout)

    def install_command(self, name: str) -> list[str]:
        cmd = [self.executable, "-S", "--noconfirm", name]
        if self.use_sudo:
            cmd.insert(0, "sudo")
        return cmd

    def install(self, name: str) -> bool:
        cmd = self.install_command(name)
        logger.debug("Running %s", " ".join(cmd))
        try:
            # stdio is inherited so output streams live and sudo can prompt.
            result = subprocess.run(cmd, check=False, timeout=self.timeout)
        except FileNotFoundError:
            logger.warning("'%s' is not installed or not in PATH", cmd[0])
            return False
        except subprocess.TimeoutExpired:
            logger.warning("Installing '%s' timed out after %s seconds", name, self.timeout)
            return False

        if result.returncode != 0:
            logger.debug("Install of '%s' exited with %s", name, result.returncode)
            return False
        return True
