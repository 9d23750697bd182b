"""Reads an App Bundle (zip archive or extracted directory) into a Bundle model."""

import json
import logging
import zipfile
from collections import defaultdict
from pathlib import Path

from pydantic import ValidationError

from apkx.errors import InvalidBundleError
from apkx.models.bundle import BASE_MODULE_NAME, ApexImages, Bundle, BundleModule

logger = logging.getLogger(__name__)

ANDROID_MANIFEST_PATH = "manifest/AndroidManifest.xml"
APEX_CONFIG_PATH = "apex_image.json"

# Top-level entries that belong to the bundle rather than to a module.
BUNDLE_METADATA_ENTRIES = {"BundleConfig.json", "BUNDLE-METADATA", "META-INF"}


class BundleReader:
    """Reader for App Bundles."""

    @classmethod
    def read(cls, bundle_path: Path) -> Bundle:
        """Read a bundle from a zip file or an extracted directory.

        Args:
            bundle_path: Path to the .aab file or bundle directory

        Returns:
            Bundle: Immutable bundle with modules ordered base first

        Raises:
            InvalidBundleError: If the bundle cannot be read
        """
        if bundle_path.is_dir():
            entries = cls._read_directory(bundle_path)
        elif bundle_path.is_file():
            entries = cls._read_zip(bundle_path)
        else:
            raise InvalidBundleError(f"Bundle not found: {bundle_path}")

        logger.debug(f"Read {len(entries)} entries from {bundle_path}")
        return cls.from_entries(entries, source=str(bundle_path))

    @classmethod
    def from_entries(cls, entries: dict[str, bytes], source: str | None = None) -> Bundle:
        """Build a bundle from a mapping of posix entry paths to contents."""
        module_entries: dict[str, dict[str, bytes]] = defaultdict(dict)
        metadata_files: set[str] = set()

        for entry_path, content in entries.items():
            top, _, rest = entry_path.partition("/")
            if not rest or top in BUNDLE_METADATA_ENTRIES:
                metadata_files.add(entry_path)
                continue
            module_entries[top][rest] = content

        modules = [
            cls._build_module(name, files)
            for name, files in module_entries.items()
        ]
        modules.sort(key=lambda module: (module.name != BASE_MODULE_NAME, module.name))

        return Bundle(
            modules=tuple(modules),
            metadata_files=frozenset(metadata_files),
            source=source,
        )

    @classmethod
    def _build_module(cls, name: str, files: dict[str, bytes]) -> BundleModule:
        apex_config = None
        if APEX_CONFIG_PATH in files:
            try:
                apex_config = ApexImages.model_validate(json.loads(files[APEX_CONFIG_PATH]))
            except (json.JSONDecodeError, UnicodeDecodeError, ValidationError) as e:
                raise InvalidBundleError(f"Invalid {APEX_CONFIG_PATH} in module '{name}': {e}")

        return BundleModule(
            name=name,
            files=frozenset(path for path in files if path != APEX_CONFIG_PATH),
            apex_config=apex_config,
        )

    @staticmethod
    def _read_zip(bundle_path: Path) -> dict[str, bytes]:
        try:
            with zipfile.ZipFile(bundle_path) as archive:
                return {
                    info.filename: archive.read(info) if _needs_content(info.filename) else b""
                    for info in archive.infolist()
                    if not info.is_dir()
                }
        except zipfile.BadZipFile as e:
            raise InvalidBundleError(f"Not a valid bundle archive: {bundle_path}: {e}")

    @staticmethod
    def _read_directory(bundle_dir: Path) -> dict[str, bytes]:
        return {
            relative: path.read_bytes() if _needs_content(relative) else b""
            for path in sorted(bundle_dir.rglob("*"))
            if path.is_file()
            for relative in [path.relative_to(bundle_dir).as_posix()]
        }


def _needs_content(entry_path: str) -> bool:
    """Only the APEX targeting config is loaded; other entries are tracked by path."""
    return entry_path.endswith("/" + APEX_CONFIG_PATH)
