"""High level orchestration for ricething build and install."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable

from .config import BuildOptions, HostContext, InstallOptions, Settings
from .errors import DesktopMismatchError, RicethingError
from .filesystem import copy_entry, copy_tree, lexists, real_location
from .manifest import is_valid_dotfile, load_manifest, save_manifest
from .models import (
    BuildReport,
    CopyAction,
    CopyResult,
    EntryKind,
    InstallAction,
    InstallReport,
    InstallResult,
    Package,
    RiceManifest,
)
from .packages import PackageManager, PackageManagerError, read_distribution_id

BUNDLE_CONFIG_DIR = "config"

logger = logging.getLogger(__name__)


def split_dotfile_list(raw: str) -> list[str]:
    """Split a comma-separated dotfile list, trimming entries and dropping empties."""

    return [item.strip() for item in raw.split(",") if item.strip()]


def merge_dotfiles(*groups: Iterable[str]) -> list[str]:
    """Concatenate ``groups`` keeping only the first occurrence of each name."""

    merged: list[str] = []
    for group in groups:
        for name in group:
            if name not in merged:
                merged.append(name)
    return merged


class RiceManager:
    """Coordinates bundle builds and installs for one host."""

    def __init__(
        self,
        context: HostContext,
        package_manager: PackageManager,
        settings: Settings | None = None,
    ) -> None:
        self.context = context
        self.package_manager = package_manager
        self.settings = settings or Settings()
        self._warnings: list[str] = []

    def build(self, options: BuildOptions) -> BuildReport:
        self._warnings.clear()
        output_dir = options.output_dir

        folders = [] if options.skip_configs else self._list_config_folders()

        packages: list[Package] = []
        system = ""
        if not options.skip_packages:
            packages = self._collect_packages()
            system = self._distribution_id()

        copies: list[CopyResult] = []
        dotfiles: list[str] = []
        for name in self._select_dotfiles(options):
            source = self.context.home / name
            if lexists(source):
                dotfiles.append(name)
                continue
            self._warn(f"Dotfile '{source}' does not exist; skipping")
            copies.append(
                CopyResult(
                    kind=EntryKind.DOTFILE,
                    name=name,
                    source=source,
                    destination=output_dir / name,
                    action=CopyAction.SKIPPED,
                    details="Source missing",
                )
            )

        manifest = RiceManifest(
            system=system,
            shell=self.context.shell,
            desktop=self.context.desktop,
            packages=tuple(packages),
            config_folders=tuple(folders),
            dotfiles=tuple(dotfiles),
        )

        try:
            manifest_path = save_manifest(manifest, output_dir)
        except OSError as exc:
            raise RicethingError(f"Unable to write manifest into '{output_dir}': {exc}") from exc
        logger.debug("Manifest written to %s", manifest_path)

        for folder in manifest.config_folders:
            source = self.context.config_root / folder
            destination = output_dir / BUNDLE_CONFIG_DIR / folder
            copies.append(
                self._guard_nested_output(EntryKind.CONFIG, folder, source, destination, output_dir)
                or self._copy(EntryKind.CONFIG, folder, source, destination, directory=True)
            )

        for name in manifest.dotfiles:
            source = self.context.home / name
            destination = output_dir / name
            copies.append(
                self._guard_nested_output(EntryKind.DOTFILE, name, source, destination, output_dir)
                or self._copy(EntryKind.DOTFILE, name, source, destination)
            )

        return BuildReport(
            manifest=manifest,
            manifest_path=manifest_path,
            copies=tuple(copies),
            warnings=tuple(self.pull_warnings()),
        )

    def install(self, options: InstallOptions) -> InstallReport:
        self._warnings.clear()
        bundle = options.bundle

        if not bundle.is_dir():
            raise RicethingError(f"Bundle path '{bundle}' is not a directory")

        manifest = load_manifest(bundle)

        mismatch = self._desktop_mismatch(manifest)
        if mismatch:
            message = (
                f"Bundle was built for desktop '{manifest.desktop}' but this session is "
                f"'{self.context.desktop or 'unknown'}'"
            )
            if options.strict_desktop:
                raise DesktopMismatchError(message)
            self._warn(message)

        installs: list[InstallResult] = []
        if not options.skip_packages:
            for package in manifest.packages:
                installs.append(self._install_package(package))

        copies: list[CopyResult] = []
        if not options.skip_configs:
            copies.extend(self._restore_config_folders(bundle, manifest))
            copies.extend(self._restore_dotfiles(bundle, manifest))

        return InstallReport(
            manifest=manifest,
            packages=tuple(installs),
            copies=tuple(copies),
            warnings=tuple(self.pull_warnings()),
            desktop_mismatch=mismatch,
        )

    def pull_warnings(self) -> list[str]:
        messages = list(self._warnings)
        self._warnings.clear()
        return messages

    # ------------------------------------------------------------------
    # Internal helpers

    def _warn(self, message: str) -> None:
        logger.debug(message)
        self._warnings.append(message)

    def _list_config_folders(self) -> list[str]:
        config_root = self.context.config_root
        try:
            children = list(config_root.iterdir())
        except OSError as exc:
            self._warn(f"Unable to read config folder '{config_root}': {exc}")
            return []
        return [child.name for child in children if child.is_dir() and not child.is_symlink()]

    def _collect_packages(self) -> list[Package]:
        try:
            return self.package_manager.list_installed()
        except PackageManagerError as exc:
            self._warn(f"Unable to query installed packages: {exc}")
            return []

    def _distribution_id(self) -> str:
        try:
            return read_distribution_id(self.context.os_release)
        except OSError as exc:
            self._warn(f"Unable to fetch distribution name from '{self.context.os_release}': {exc}")
            return ""

    def _select_dotfiles(self, options: BuildOptions) -> list[str]:
        defaults = self.settings.default_dotfiles if options.default_dotfiles else ()
        selected: list[str] = []
        for name in merge_dotfiles(defaults, split_dotfile_list(options.dotfiles)):
            if not is_valid_dotfile(name):
                self._warn(f"Dotfile '{name}' must be a path relative to the home directory; skipping")
                continue
            selected.append(name)
        return selected

    def _desktop_mismatch(self, manifest: RiceManifest) -> bool:
        wanted = manifest.desktop.strip().lower()
        current = self.context.desktop.strip().lower()
        if not wanted:
            return False
        return wanted != current

    def _install_package(self, package: Package) -> InstallResult:
        logger.debug("Installing package %s", package.name)
        try:
            ok = self.package_manager.install(package.name)
        except OSError as exc:
            return InstallResult(package=package, action=InstallAction.FAILED, details=str(exc))
        if ok:
            return InstallResult(package=package, action=InstallAction.INSTALLED)
        return InstallResult(
            package=package,
            action=InstallAction.FAILED,
            details="Package manager reported a failure",
        )

    def _restore_config_folders(self, bundle: Path, manifest: RiceManifest) -> list[CopyResult]:
        results: list[CopyResult] = []
        bundle_configs = bundle / BUNDLE_CONFIG_DIR
        for folder in manifest.config_folders:
            source = bundle_configs / folder
            destination = self.context.config_root / folder
            if not source.is_dir():
                self._warn(f"Config folder '{folder}' is listed in the manifest but missing from the bundle")
                results.append(
                    CopyResult(
                        kind=EntryKind.CONFIG,
                        name=folder,
                        source=source,
                        destination=destination,
                        action=CopyAction.SKIPPED,
                        details="Missing from bundle",
                    )
                )
                continue
            results.append(self._copy(EntryKind.CONFIG, folder, source, destination, directory=True))
        return results

    def _restore_dotfiles(self, bundle: Path, manifest: RiceManifest) -> list[CopyResult]:
        results: list[CopyResult] = []
        for name in merge_dotfiles(self.settings.restore_dotfiles, manifest.dotfiles):
            if not is_valid_dotfile(name):
                continue
            source = bundle / name
            if not lexists(source):
                continue
            results.append(self._copy(EntryKind.DOTFILE, name, source, self.context.home / name))
        return results

    def _guard_nested_output(
        self,
        kind: EntryKind,
        name: str,
        source: Path,
        destination: Path,
        output_dir: Path,
    ) -> CopyResult | None:
        if not output_dir.resolve().is_relative_to(real_location(source)):
            return None
        self._warn(f"Bundle output '{output_dir}' is inside '{source}'; not copying it into itself")
        return CopyResult(
            kind=kind,
            name=name,
            source=source,
            destination=destination,
            action=CopyAction.FAILED,
            details="Bundle output lies inside this entry",
        )

    def _copy(
        self,
        kind: EntryKind,
        name: str,
        source: Path,
        destination: Path,
        *,
        directory: bool = False,
    ) -> CopyResult:
        try:
            if directory:
                copy_tree(source, destination)
            else:
                copy_entry(source, destination)
        except OSError as exc:
            logger.debug("Copy of %s -> %s failed: %s", source, destination, exc)
            return CopyResult(
                kind=kind,
                name=name,
                source=source,
                destination=destination,
                action=CopyAction.FAILED,
                details=str(exc),
            )
        return CopyResult(
            kind=kind,
            name=name,
            source=source,
            destination=destination,
            action=CopyAction.COPIED,
        )
