"""Bundle reading for apkx."""

from .reader import BundleReader

__all__ = ["BundleReader"]
