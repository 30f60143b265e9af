"""Core package for the ricething project."""

__version__ = "0.1.0"

from .cli import app, run  # noqa: E402
from .config import BuildOptions, ConfigError, HostContext, InstallOptions, Settings  # noqa: E402
from .errors import DesktopMismatchError, ManifestError, RicethingError  # noqa: E402
from .manager import RiceManager  # noqa: E402
from .manifest import MANIFEST_FILENAME, load_manifest, save_manifest  # noqa: E402
from .models import (  # noqa: E402
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
from .packages import PackageManager, PackageManagerError, PacmanPackageManager  # noqa: E402

__all__ = [
    "__version__",
    "BuildOptions",
    "ConfigError",
    "HostContext",
    "InstallOptions",
    "Settings",
    "DesktopMismatchError",
    "ManifestError",
    "RicethingError",
    "RiceManager",
    "MANIFEST_FILENAME",
    "load_manifest",
    "save_manifest",
    "BuildReport",
    "CopyAction",
    "CopyResult",
    "EntryKind",
    "InstallAction",
    "InstallReport",
    "InstallResult",
    "Package",
    "RiceManifest",
    "PackageManager",
    "PackageManagerError",
    "PacmanPackageManager",
    "app",
    "run",
]
