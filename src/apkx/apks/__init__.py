"""APK set reading and device-targeted extraction."""

from .extractor import ApkSetExtractor, read_toc, select_apks, select_modules, select_variant

__all__ = ["ApkSetExtractor", "read_toc", "select_apks", "select_modules", "select_variant"]
