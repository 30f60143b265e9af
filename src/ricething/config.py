"""Host context, option models, and TOML settings for ricething."""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, Field, ValidationError

DEFAULT_SETTINGS_FILENAME = "ricething.toml"
DEFAULT_OS_RELEASE = Path("/etc/os-release")

DEFAULT_DOTFILES: tuple[str, ...] = (
    ".bashrc",
    ".bash_profile",
    ".profile",
    ".zshrc",
    ".zprofile",
    ".xinitrc",
    ".Xresources",
)

SUPPORTED_PACKAGE_MANAGERS = ("pacman",)


class ConfigError(RuntimeError):
    """Raised when a settings file cannot be parsed or validated."""


def _expand_path(raw: str | os.PathLike[str] | Path, *, base_dir: Path) -> Path:
    """Return an absolute ``Path`` by expanding env vars and user segments."""

    text = str(raw)
    expanded = Path(os.path.expandvars(text)).expanduser()
    if expanded.is_absolute():
        return expanded.resolve(strict=False)
    return (base_dir / expanded).resolve(strict=False)


class HostContext(BaseModel):
    """Snapshot of the machine ricething is running on.

    Built once at startup and passed into the pipelines; nothing else reads the
    process environment.
    """

    model_config = ConfigDict(frozen=True)

    home: Path
    desktop: str = ""
    shell: str = ""
    os_release: Path = DEFAULT_OS_RELEASE

    @classmethod
    def from_environ(cls, environ: Mapping[str, str] | None = None) -> "HostContext":
        env = os.environ if environ is None else environ
        home_raw = env.get("HOME")
        home = Path(home_raw) if home_raw else Path.home()
        desktop = env.get("XDG_SESSION_DESKTOP") or env.get("XDG_CURRENT_DESKTOP") or ""
        return cls(home=home, desktop=desktop, shell=env.get("SHELL", ""))

    @property
    def config_root(self) -> Path:
        return self.home / ".config"


class Settings(BaseModel):
    """User tunables read from ``ricething.toml``."""

    model_config = ConfigDict(frozen=True)

    default_dotfiles: tuple[str, ...] = DEFAULT_DOTFILES
    restore_dotfiles: tuple[str, ...] = DEFAULT_DOTFILES
    package_manager: str = "pacman"
    use_sudo: bool | None = None
    install_timeout: float | None = Field(default=None, gt=0)

    @classmethod
    def from_raw(cls, raw: Mapping[str, Any]) -> "Settings":
        manager = raw.get("package_manager", "pacman")
        if manager not in SUPPORTED_PACKAGE_MANAGERS:
            raise ConfigError(
                f"Unsupported package manager '{manager}'. Supported: {', '.join(SUPPORTED_PACKAGE_MANAGERS)}"
            )
        try:
            return cls(**dict(raw))
        except ValidationError as exc:
            raise ConfigError(f"Invalid [settings] table: {exc}") from exc


class BuildOptions(BaseModel):
    """Inputs of ``ricething build``."""

    model_config = ConfigDict(frozen=True)

    output_dir: Path = Field(default_factory=lambda: Path("."))
    skip_configs: bool = False
    skip_packages: bool = False
    dotfiles: str = ""
    default_dotfiles: bool = False


class InstallOptions(BaseModel):
    """Inputs of ``ricething install``."""

    model_config = ConfigDict(frozen=True)

    bundle: Path
    skip_packages: bool = False
    skip_configs: bool = False
    strict_desktop: bool = False


def default_settings_path(context: HostContext) -> Path:
    return context.config_root / "ricething" / DEFAULT_SETTINGS_FILENAME


def load_settings(path: Path | None = None, *, context: HostContext) -> Settings:
    """Load settings from ``path``, or from the default location if present.

    Args:
        path: Explicit settings file or directory containing ``ricething.toml``.
            A missing explicit path is an error; a missing default file is not.
        context: Host context used to locate the default file.
    """

    if path is None:
        candidate = default_settings_path(context)
        if not candidate.exists():
            return Settings()
        config_path = candidate
    else:
        config_path = _resolve_settings_path(path, base_dir=Path.cwd())

    try:
        with config_path.open("rb") as handle:
            data = tomllib.load(handle)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Settings file '{config_path}' is not valid TOML: {exc}") from exc

    section = data.get("settings", {})
    if not isinstance(section, dict):
        raise ConfigError(f"Settings file '{config_path}' must contain a [settings] table")
    return Settings.from_raw(section)


def _resolve_settings_path(path: Path, *, base_dir: Path) -> Path:
    resolved = _expand_path(path, base_dir=base_dir)

    if not resolved.exists():
        raise ConfigError(f"Settings file '{path}' does not exist")
    if resolved.is_dir():
        candidate = resolved / DEFAULT_SETTINGS_FILENAME
        if not candidate.exists():
            raise ConfigError(
                f"Expected to find '{DEFAULT_SETTINGS_FILENAME}' inside '{path}', but none was located"
            )
        resolved = candidate

    return resolved
