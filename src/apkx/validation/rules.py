"""Validation rules for bundle modules.

Each rule is a pure function over one module (module rules) or over all
modules of a bundle (bundle rules). A rule returns the ValidationFailure it
found, or None; it never mutates its input.
"""

import re
from collections import Counter
from collections.abc import Callable, Sequence

from apkx.bundle.reader import ANDROID_MANIFEST_PATH
from apkx.errors import ValidationFailure
from apkx.models.bundle import BundleModule

APEX_MANIFEST_PATH = "root/manifest.json"
APEX_DIRECTORY = "apex"

APEX_REQUIRED_FILES = (ANDROID_MANIFEST_PATH, APEX_MANIFEST_PATH)

MODULE_NAME_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

ModuleRule = Callable[[BundleModule], ValidationFailure | None]
BundleRule = Callable[[Sequence[BundleModule]], ValidationFailure | None]


def _sorted_list(paths) -> str:
    return ", ".join(f"'{path}'" for path in sorted(paths))


def module_name_format(module: BundleModule) -> ValidationFailure | None:
    if not MODULE_NAME_PATTERN.match(module.name):
        return ValidationFailure(
            f"Module names may only contain letters, digits and underscores and must not "
            f"start with a digit, found '{module.name}'.",
            module_name=module.name,
        )
    return None


def apex_expected_files(module: BundleModule) -> ValidationFailure | None:
    if not module.is_apex:
        return None
    for required in APEX_REQUIRED_FILES:
        if not module.has_file(required):
            return ValidationFailure(
                f"Missing expected file in APEX bundle: '{required}'.",
                module_name=module.name,
            )
    return None


def apex_unexpected_files(module: BundleModule) -> ValidationFailure | None:
    """Outside apex/, only the required manifests are allowed."""
    if not module.is_apex:
        return None
    image_files = module.files_under(APEX_DIRECTORY)
    for path in sorted(module.files):
        if path not in image_files and path not in APEX_REQUIRED_FILES:
            return ValidationFailure(
                f"Unexpected file in APEX bundle: '{path}'.",
                module_name=module.name,
            )
    return None


def apex_duplicate_targeting(module: BundleModule) -> ValidationFailure | None:
    if not module.is_apex:
        return None
    counts = Counter(image.path for image in module.apex_config.images)
    duplicates = [path for path, count in counts.items() if count > 1]
    if duplicates:
        return ValidationFailure(
            f"Found APEX image files targeted more than once: {_sorted_list(duplicates)}.",
            module_name=module.name,
        )
    return None


def apex_targeted_images_present(module: BundleModule) -> ValidationFailure | None:
    if not module.is_apex:
        return None
    missing = module.apex_config.image_paths - module.files
    if missing:
        return ValidationFailure(
            f"Targeted APEX image files are missing: {_sorted_list(missing)}.",
            module_name=module.name,
        )
    return None


def apex_images_targeted(module: BundleModule) -> ValidationFailure | None:
    if not module.is_apex:
        return None
    untargeted = module.files_under(APEX_DIRECTORY) - module.apex_config.image_paths
    if untargeted:
        return ValidationFailure(
            f"Found APEX image files that are not targeted: {_sorted_list(untargeted)}.",
            module_name=module.name,
        )
    return None


def unique_module_names(modules: Sequence[BundleModule]) -> ValidationFailure | None:
    duplicates = [name for name, count in Counter(m.name for m in modules).items() if count > 1]
    if duplicates:
        return ValidationFailure(f"Modules with duplicate names found: {_sorted_list(duplicates)}.")
    return None


def apex_module_cardinality(modules: Sequence[BundleModule]) -> ValidationFailure | None:
    apex_modules = [module for module in modules if module.is_apex]
    if len(apex_modules) > 1:
        return ValidationFailure(
            f"Multiple APEX modules are not allowed, found {len(apex_modules)}."
        )
    if apex_modules and len(modules) > 1:
        return ValidationFailure(
            f"APEX bundles must only contain one module, found {_sorted_list(m.name for m in modules)}."
        )
    return None


DEFAULT_MODULE_RULES: tuple[ModuleRule, ...] = (
    module_name_format,
    apex_expected_files,
    apex_unexpected_files,
    apex_duplicate_targeting,
    apex_targeted_images_present,
    apex_images_targeted,
)

DEFAULT_BUNDLE_RULES: tuple[BundleRule, ...] = (
    unique_module_names,
    apex_module_cardinality,
)
