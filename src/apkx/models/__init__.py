"""Data models for apkx."""

from .bundle import (
    ApexImages,
    ApexImageTargeting,
    Bundle,
    BundleModule,
    TargetedApexImage,
)
from .device import DeviceSpec, InstallOptions
from .toc import ApkDescription, ApkSet, BuildApksResult, Variant

__all__ = [
    "ApexImageTargeting",
    "ApexImages",
    "ApkDescription",
    "ApkSet",
    "Bundle",
    "BundleModule",
    "BuildApksResult",
    "DeviceSpec",
    "InstallOptions",
    "TargetedApexImage",
    "Variant",
]
