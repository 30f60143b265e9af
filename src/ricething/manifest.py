"""Manifest persistence for ricething bundles."""

from __future__ import annotations

import json
import logging
from pathlib import Path, PurePosixPath
from typing import Any, Iterable

from .errors import ManifestError
from .models import MANIFEST_VERSION, Package, RiceManifest

MANIFEST_FILENAME = "ricemetadata.json"
LEGACY_MANIFEST_VERSION = 1

logger = logging.getLogger(__name__)


def is_valid_folder_name(name: str) -> bool:
    """Return ``True`` if ``name`` is a single path component safe to join under a root."""

    if not name or name in {".", ".."}:
        return False
    return "/" not in name and "\\" not in name and "\0" not in name


def is_valid_dotfile(name: str) -> bool:
    """Return ``True`` if ``name`` is a relative path that stays under the home directory."""

    if not name or "\0" in name:
        return False
    candidate = PurePosixPath(name)
    if candidate.is_absolute() or name.startswith("\\"):
        return False
    return ".." not in candidate.parts and candidate.parts != ()


def manifest_to_dict(manifest: RiceManifest) -> dict[str, Any]:
    """Serialize ``manifest`` using the on-disk key names."""

    return {
        "version": manifest.version,
        "name": manifest.system,
        "shell": manifest.shell,
        "desktop": manifest.desktop,
        "packages": [{"name": package.name, "version": package.version} for package in manifest.packages],
        "configs": list(manifest.config_folders),
        "dotfiles": list(manifest.dotfiles),
    }


def manifest_from_dict(data: Any) -> RiceManifest:
    """Build a ``RiceManifest`` from decoded JSON, checking the schema version first."""

    if not isinstance(data, dict):
        raise ManifestError("Manifest must be a JSON object")

    version = data.get("version", LEGACY_MANIFEST_VERSION)
    if isinstance(version, bool) or not isinstance(version, int):
        raise ManifestError(f"Manifest version must be an integer, got {version!r}")
    if version > MANIFEST_VERSION:
        raise ManifestError(
            f"Manifest version {version} is newer than the supported version {MANIFEST_VERSION}; upgrade ricething"
        )

    packages: list[Package] = []
    for item in _list_field(data, "packages"):
        if not isinstance(item, dict) or not isinstance(item.get("name"), str) or not item["name"]:
            logger.warning("Ignoring malformed package entry %r", item)
            continue
        raw_version = item.get("version")
        packages.append(Package(name=item["name"], version=raw_version if isinstance(raw_version, str) else ""))

    folders = _filtered_names(_list_field(data, "configs"), is_valid_folder_name, "config folder")
    dotfiles = _filtered_names(_list_field(data, "dotfiles"), is_valid_dotfile, "dotfile")

    return RiceManifest(
        system=_str_field(data, "name"),
        shell=_str_field(data, "shell"),
        desktop=_str_field(data, "desktop"),
        packages=tuple(packages),
        config_folders=folders,
        dotfiles=dotfiles,
        version=version,
    )


def load_manifest(bundle: Path) -> RiceManifest:
    """Read the manifest stored at the root of ``bundle``."""

    path = bundle / MANIFEST_FILENAME
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ManifestError(f"Unable to read manifest '{path}': {exc}") from exc
    except UnicodeDecodeError as exc:
        raise ManifestError(f"Manifest '{path}' is not valid UTF-8: {exc}") from exc

    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ManifestError(f"Manifest '{path}' is not valid JSON: {exc}") from exc

    return manifest_from_dict(data)


def save_manifest(manifest: RiceManifest, bundle: Path) -> Path:
    """Write ``manifest`` to the root of ``bundle`` and return the file path.

    ``OSError`` from creating ``bundle`` or writing the file propagates.
    """

    bad_folders = [name for name in manifest.config_folders if not is_valid_folder_name(name)]
    if bad_folders:
        raise ManifestError(f"Config folder names must be single path components: {bad_folders}")
    if len(set(manifest.config_folders)) != len(manifest.config_folders):
        raise ManifestError("Config folder names must be unique")
    if any(not package.name for package in manifest.packages):
        raise ManifestError("Package entries must have a name")

    bundle.mkdir(parents=True, exist_ok=True)
    path = bundle / MANIFEST_FILENAME
    with path.open("w", encoding="utf-8") as handle:
        json.dump(manifest_to_dict(manifest), handle, indent=2)
        handle.write("\n")
    return path


def _list_field(data: dict[str, Any], key: str) -> list[Any]:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise ManifestError(f"Manifest field '{key}' must be a list")
    return value


def _str_field(data: dict[str, Any], key: str) -> str:
    value = data.get(key)
    return value if isinstance(value, str) else ""


def _filtered_names(values: Iterable[Any], valid, label: str) -> tuple[str, ...]:
    names: list[str] = []
    for value in values:
        if not isinstance(value, str) or not valid(value):
            logger.warning("Ignoring unsafe %s entry %r in manifest", label, value)
            continue
        if value not in names:
            names.append(value)
    return tuple(names)
