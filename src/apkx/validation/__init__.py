"""Validation layer for App Bundle modules.

Module rules check one module's file layout against its targeting metadata;
bundle rules check the collection of modules as a whole.
"""

from .framework import BundleValidator, ValidationIssue, ValidationReport, ValidationStatus
from .rules import (
    DEFAULT_BUNDLE_RULES,
    DEFAULT_MODULE_RULES,
    apex_duplicate_targeting,
    apex_expected_files,
    apex_images_targeted,
    apex_module_cardinality,
    apex_targeted_images_present,
    apex_unexpected_files,
    module_name_format,
    unique_module_names,
)

__all__ = [
    "BundleValidator",
    "ValidationIssue",
    "ValidationReport",
    "ValidationStatus",
    "DEFAULT_BUNDLE_RULES",
    "DEFAULT_MODULE_RULES",
    "apex_duplicate_targeting",
    "apex_expected_files",
    "apex_images_targeted",
    "apex_module_cardinality",
    "apex_targeted_images_present",
    "apex_unexpected_files",
    "module_name_format",
    "unique_module_names",
]
