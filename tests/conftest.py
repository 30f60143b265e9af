from __future__ import annotations

from pathlib import Path

import pytest

from ricething.config import HostContext
from ricething.models import Package
from ricething.packages import PackageManagerError


class FakePackageManager:
    """In-memory stand-in for pacman."""

    def __init__(
        self,
        installed: list[Package] | None = None,
        *,
        failing: set[str] | None = None,
        query_error: bool = False,
    ) -> None:
        self.installed = installed or []
        self.failing = failing or set()
        self.query_error = query_error
        self.install_calls: list[str] = []

    def list_installed(self) -> list[Package]:
        if self.query_error:
            raise PackageManagerError("pacman exploded")
        return list(self.installed)

    def install(self, name: str) -> bool:
        self.install_calls.append(name)
        return name not in self.failing


@pytest.fixture
def fake_home(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Path:
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("USERPROFILE", str(home))
    monkeypatch.setenv("XDG_SESSION_DESKTOP", "hyprland")
    monkeypatch.setenv("SHELL", "/bin/zsh")
    return home


@pytest.fixture
def os_release(tmp_path: Path) -> Path:
    path = tmp_path / "os-release"
    path.write_text('NAME="Arch Linux"\nID=arch\nBUILD_ID=rolling\n')
    return path


@pytest.fixture
def context(fake_home: Path, os_release: Path) -> HostContext:
    return HostContext(home=fake_home, desktop="hyprland", shell="/bin/zsh", os_release=os_release)


@pytest.fixture
def package_manager() -> FakePackageManager:
    return FakePackageManager([Package("foo", "1.0"), Package("bar", "2.1")])
