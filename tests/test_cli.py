from __future__ import annotations

import json
from pathlib import Path

import pytest
from rich.console import Console
from typer.testing import CliRunner

from conftest import FakePackageManager
from ricething import __version__
from ricething.cli import app
from ricething.manifest import MANIFEST_FILENAME, save_manifest
from ricething.models import Package, RiceManifest

runner = CliRunner()


@pytest.fixture(autouse=True)
def wide_console(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("ricething.cli.console", Console(width=250))


@pytest.fixture
def fake_pacman(monkeypatch: pytest.MonkeyPatch) -> FakePackageManager:
    manager = FakePackageManager([Package("foo", "1.0"), Package("bar", "2.1")])
    monkeypatch.setattr("ricething.cli._create_package_manager", lambda _settings: manager)
    return manager


def test_cli_version() -> None:
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.stdout


def test_cli_build_writes_bundle(tmp_path: Path, fake_home: Path, fake_pacman: FakePackageManager) -> None:
    (fake_home / ".config" / "kitty").mkdir(parents=True)
    (fake_home / ".config" / "kitty" / "kitty.conf").write_text("font_size 11\n")
    (fake_home / ".zshrc").write_text("zsh\n")
    out = tmp_path / "bundle"

    result = runner.invoke(app, ["build", "--output", str(out), "--default-dotfiles"])

    assert result.exit_code == 0, result.stdout
    assert "Metadata written" in result.stdout
    assert "copied" in result.stdout
    data = json.loads((out / MANIFEST_FILENAME).read_text())
    assert data["configs"] == ["kitty"]
    assert data["desktop"] == "hyprland"
    assert data["shell"] == "/bin/zsh"
    assert [package["name"] for package in data["packages"]] == ["foo", "bar"]
    assert (out / "config" / "kitty" / "kitty.conf").read_text() == "font_size 11\n"
    assert (out / ".zshrc").read_text() == "zsh\n"


def test_cli_build_no_config_no_packages(tmp_path: Path, fake_home: Path, fake_pacman: FakePackageManager) -> None:
    (fake_home / ".config" / "kitty").mkdir(parents=True)
    out = tmp_path / "bundle"

    result = runner.invoke(app, ["build", "-o", str(out), "--no-config", "--no-packages"])

    assert result.exit_code == 0, result.stdout
    data = json.loads((out / MANIFEST_FILENAME).read_text())
    assert data["configs"] == []
    assert data["packages"] == []
    assert not (out / "config").exists()


def test_cli_build_reports_missing_dotfile(tmp_path: Path, fake_home: Path, fake_pacman: FakePackageManager) -> None:
    (fake_home / ".config").mkdir()

    result = runner.invoke(app, ["build", "-o", str(tmp_path / "bundle"), "--dotfiles", ".nope", "--no-packages"])

    assert result.exit_code == 0
    assert "Warning:" in result.stdout
    assert "skipped" in result.stdout


def test_cli_install_rejects_non_directory(tmp_path: Path, fake_home: Path, fake_pacman: FakePackageManager) -> None:
    result = runner.invoke(app, ["install", str(tmp_path / "missing")])

    assert result.exit_code == 1
    assert "is not a directory" in result.stdout


def test_cli_install_corrupt_manifest_exits(tmp_path: Path, fake_home: Path, fake_pacman: FakePackageManager) -> None:
    bundle = tmp_path / "bundle"
    bundle.mkdir()
    (bundle / MANIFEST_FILENAME).write_text("{]")

    result = runner.invoke(app, ["install", str(bundle)])

    assert result.exit_code == 1
    assert "not valid JSON" in result.stdout


def test_cli_install_undecodable_manifest_exits(
    tmp_path: Path, fake_home: Path, fake_pacman: FakePackageManager
) -> None:
    bundle = tmp_path / "bundle"
    bundle.mkdir()
    (bundle / MANIFEST_FILENAME).write_bytes(b'{"name": "\xff"}')

    result = runner.invoke(app, ["install", str(bundle)])

    assert result.exit_code == 1
    assert result.exception is None or isinstance(result.exception, SystemExit)
    assert "not valid UTF-8" in result.stdout


def test_cli_install_desktop_mismatch_is_warning(
    tmp_path: Path, fake_home: Path, fake_pacman: FakePackageManager
) -> None:
    bundle = tmp_path / "bundle"
    save_manifest(RiceManifest(desktop="gnome", packages=(Package("foo", "1.0"),), config_folders=("kitty",)), bundle)
    (bundle / "config" / "kitty").mkdir(parents=True)
    (bundle / "config" / "kitty" / "kitty.conf").write_text("font_size 11\n")

    result = runner.invoke(app, ["install", str(bundle)])

    assert result.exit_code == 0, result.stdout
    assert "gnome" in result.stdout
    assert "installed" in result.stdout
    assert fake_pacman.install_calls == ["foo"]
    assert (fake_home / ".config" / "kitty" / "kitty.conf").read_text() == "font_size 11\n"


def test_cli_install_strict_desktop(tmp_path: Path, fake_home: Path, fake_pacman: FakePackageManager) -> None:
    bundle = tmp_path / "bundle"
    save_manifest(RiceManifest(desktop="gnome", packages=(Package("foo", "1.0"),)), bundle)

    result = runner.invoke(app, ["install", str(bundle), "--strict-desktop"])

    assert result.exit_code == 1
    assert "--strict-desktop" in result.stdout
    assert fake_pacman.install_calls == []


def test_cli_install_skip_flags(tmp_path: Path, fake_home: Path, fake_pacman: FakePackageManager) -> None:
    bundle = tmp_path / "bundle"
    save_manifest(RiceManifest(desktop="hyprland", packages=(Package("foo", "1.0"),)), bundle)
    (bundle / ".bashrc").write_text("bash\n")

    result = runner.invoke(app, ["install", str(bundle), "--no-packages", "--no-config"])

    assert result.exit_code == 0, result.stdout
    assert fake_pacman.install_calls == []
    assert not (fake_home / ".bashrc").exists()


def test_cli_install_failed_package_keeps_exit_zero(
    tmp_path: Path, fake_home: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    manager = FakePackageManager(failing={"foo"})
    monkeypatch.setattr("ricething.cli._create_package_manager", lambda _settings: manager)
    bundle = tmp_path / "bundle"
    save_manifest(RiceManifest(packages=(Package("foo", "1.0"), Package("bar", "2.1"))), bundle)

    result = runner.invoke(app, ["install", str(bundle)])

    assert result.exit_code == 0
    assert manager.install_calls == ["foo", "bar"]
    assert "Finished with 1 failures" in result.stdout


def test_cli_handles_permission_error(monkeypatch: pytest.MonkeyPatch) -> None:
    class DummyManager:
        def build(self, *_args, **_kwargs):  # noqa: ANN001
            raise PermissionError("mocked")

    monkeypatch.setattr("ricething.cli._load_manager", lambda _config: DummyManager())

    result = runner.invoke(app, ["build"])
    assert result.exit_code == 1
    assert "Permission denied" in result.stdout


def test_cli_bad_settings_file(tmp_path: Path, fake_home: Path) -> None:
    settings = tmp_path / "ricething.toml"
    settings.write_text('[settings]\npackage_manager = "apt"\n')

    result = runner.invoke(app, ["build", "--config", str(settings), "-o", str(tmp_path / "bundle")])

    assert result.exit_code == 1
    assert "Unsupported package manager" in result.stdout
    assert not (tmp_path / "bundle").exists()
