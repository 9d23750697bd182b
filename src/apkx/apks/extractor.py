"""Selects and extracts the APKs of an APK set that a device would be served.

An APK set is a zip archive (.apks) or a directory holding toc.json next to
the APK files it describes.
"""

import json
import logging
import shutil
import zipfile
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

from pydantic import ValidationError

from apkx.errors import IncompatibleDeviceError, InputValidationError, InvalidBundleError
from apkx.models.bundle import BASE_MODULE_NAME
from apkx.models.device import DeviceSpec
from apkx.models.toc import TOC_FILE_NAME, ApkDescription, ApkSet, BuildApksResult, Variant

logger = logging.getLogger(__name__)


def read_toc(apks_archive_path: Path) -> BuildApksResult:
    """Read toc.json from an APK set archive or directory.

    Raises:
        InvalidBundleError: If the table of contents is missing or malformed
    """
    try:
        if apks_archive_path.is_dir():
            toc_path = apks_archive_path / TOC_FILE_NAME
            if not toc_path.is_file():
                raise InvalidBundleError(f"{TOC_FILE_NAME} not found in {apks_archive_path}")
            raw = toc_path.read_bytes()
        else:
            with zipfile.ZipFile(apks_archive_path) as archive:
                if TOC_FILE_NAME not in archive.namelist():
                    raise InvalidBundleError(f"{TOC_FILE_NAME} not found in {apks_archive_path}")
                raw = archive.read(TOC_FILE_NAME)
        return BuildApksResult.model_validate(json.loads(raw))
    except zipfile.BadZipFile as e:
        raise InvalidBundleError(f"Not a valid APK set archive: {apks_archive_path}: {e}")
    except (json.JSONDecodeError, UnicodeDecodeError, ValidationError) as e:
        raise InvalidBundleError(f"Invalid {TOC_FILE_NAME} in {apks_archive_path}: {e}")


def variant_matches(variant: Variant, spec: DeviceSpec) -> bool:
    if variant.targeting.sdk_version.min > spec.sdk_version:
        return False
    if variant.targeting.abi and not set(variant.targeting.abi) & set(spec.supported_abis):
        return False
    if spec.standalone_only and not variant.is_standalone:
        return False
    return True


def select_variant(toc: BuildApksResult, spec: DeviceSpec) -> Variant:
    """Pick the matching variant with the highest min SDK, earliest declared on ties.

    Raises:
        IncompatibleDeviceError: If no variant matches the device
    """
    candidates = [
        (index, variant)
        for index, variant in enumerate(toc.variants)
        if variant_matches(variant, spec)
    ]
    if not candidates:
        raise IncompatibleDeviceError(
            "No set of APKs in the APK set is compatible with the device "
            f"(sdk={spec.sdk_version}, abis={spec.supported_abis}, density={spec.screen_density})."
        )
    _, variant = max(candidates, key=lambda item: (item[1].targeting.sdk_version.min, -item[0]))
    logger.debug(f"Selected variant {variant.variant_number}")
    return variant


def _base_first(apk_set: ApkSet) -> tuple[bool, str]:
    return apk_set.module_name != BASE_MODULE_NAME, apk_set.module_name


def select_modules(variant: Variant, modules: Iterable[str] | None) -> list[ApkSet]:
    """Base plus requested modules and their dependencies, or all install-time modules.

    The module filter is ignored for standalone variants.
    """
    by_name = {apk_set.module_name: apk_set for apk_set in variant.apk_sets}
    if variant.is_standalone:
        return sorted(variant.apk_sets, key=_base_first)

    if modules is None:
        wanted = {name for name, apk_set in by_name.items() if apk_set.is_install_time}
    else:
        requested = set(modules)
        unknown = requested - set(by_name)
        if unknown:
            raise InvalidBundleError(
                f"The APK set does not contain the modules: {', '.join(sorted(unknown))}."
            )
        wanted = set()
        pending = list(requested)
        while pending:
            name = pending.pop()
            if name in wanted:
                continue
            wanted.add(name)
            apk_set = by_name.get(name)
            if apk_set is not None:
                pending.extend(apk_set.dependencies)

    if BASE_MODULE_NAME in by_name:
        wanted.add(BASE_MODULE_NAME)

    return sorted((by_name[name] for name in wanted if name in by_name), key=_base_first)


def _best_abi(apks: list[ApkDescription], spec: DeviceSpec) -> str | None:
    available = {apk.targeting.abi for apk in apks if apk.targeting.abi}
    for abi in spec.supported_abis:
        if abi in available:
            return abi
    return None


def _best_density(apks: list[ApkDescription], spec: DeviceSpec) -> int | None:
    available = {apk.targeting.screen_density for apk in apks if apk.targeting.screen_density}
    if not available:
        return None
    # Nearest to the device density; ties go to the higher density.
    return min(available, key=lambda density: (abs(density - spec.screen_density), -density))


def select_apks(apk_set: ApkSet, spec: DeviceSpec) -> list[ApkDescription]:
    """Master split first, then the ABI, density and language splits for the device."""
    apks = list(apk_set.apks)
    abi = _best_abi(apks, spec)
    density = _best_density(apks, spec)
    languages = spec.languages

    if any(apk.standalone for apk in apks):
        candidates = [apk for apk in apks if apk.targeting.abi in (None, abi)]
        candidates = [
            apk for apk in candidates
            if density is None or apk.targeting.screen_density in (None, density)
        ]
        return candidates[:1]

    selected = [apk for apk in apks if apk.targeting.is_master]
    for apk in apks:
        targeting = apk.targeting
        if targeting.abi is not None and targeting.abi == abi:
            selected.append(apk)
        elif targeting.screen_density is not None and targeting.screen_density == density:
            selected.append(apk)
        elif targeting.language is not None and targeting.language.lower() in languages:
            selected.append(apk)
    return selected


@dataclass(frozen=True)
class ApkSetExtractor:
    """Resolves the ordered list of APK paths for a device.

    When the APK set is a zip archive the selected entries are written under
    ``output_dir``; for an extracted directory the paths inside it are
    returned unless an ``output_dir`` is given to copy them to.
    """

    apks_archive_path: Path
    device_spec: DeviceSpec
    modules: frozenset[str] | None = None
    output_dir: Path | None = None

    def execute(self) -> list[Path]:
        toc = read_toc(self.apks_archive_path)
        variant = select_variant(toc, self.device_spec)

        entries: list[str] = []
        for apk_set in select_modules(variant, self.modules):
            entries.extend(apk.path for apk in select_apks(apk_set, self.device_spec))

        if not entries:
            raise IncompatibleDeviceError(
                f"No APKs in variant {variant.variant_number} can be served to the device."
            )
        logger.info(f"Selected {len(entries)} APKs from {self.apks_archive_path}")

        if self.apks_archive_path.is_dir():
            return self._from_directory(entries)
        return self._from_archive(entries)

    def _from_directory(self, entries: list[str]) -> list[Path]:
        apks_root = self.apks_archive_path.resolve()
        paths = []
        for entry in entries:
            source = (apks_root / entry).resolve()
            if not source.is_relative_to(apks_root):
                raise InvalidBundleError(f"APK path escapes the APK set directory: {entry}")
            if not source.is_file():
                raise InvalidBundleError(f"APK listed in {TOC_FILE_NAME} not found: {entry}")
            if self.output_dir is None:
                paths.append(source)
            else:
                output_root = self.output_dir.resolve()
                target = (output_root / entry).resolve()
                if not target.is_relative_to(output_root):
                    raise InvalidBundleError(f"APK path escapes the output directory: {entry}")
                target.parent.mkdir(parents=True, exist_ok=True)
                shutil.copy2(source, target)
                paths.append(target)
        return paths

    def _from_archive(self, entries: list[str]) -> list[Path]:
        if self.output_dir is None:
            raise InputValidationError(
                f"An output directory is required to extract APKs from {self.apks_archive_path}."
            )
        output_root = self.output_dir.resolve()
        paths = []
        with zipfile.ZipFile(self.apks_archive_path) as archive:
            names = set(archive.namelist())
            for entry in entries:
                if entry not in names:
                    raise InvalidBundleError(f"APK listed in {TOC_FILE_NAME} not found: {entry}")
                target = (output_root / entry).resolve()
                if not target.is_relative_to(output_root):
                    raise InvalidBundleError(f"APK path escapes the output directory: {entry}")
                target.parent.mkdir(parents=True, exist_ok=True)
                with archive.open(entry) as src, open(target, "wb") as dst:
                    shutil.copyfileobj(src, dst)
                paths.append(target)
        return paths
