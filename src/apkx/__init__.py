"""apkx - Code-first CLI tool for Android App Bundles and APK sets.

apkx validates bundle modules against their declared targeting metadata and
installs onto a connected device exactly the APKs that device would be served.
"""

__version__ = "0.0.1"
__author__ = "apkx contributors"
__description__ = "Code-first CLI tool for Android App Bundle validation and APK set installation"

from apkx.config import ApkxConfig

__all__ = [
    "__version__",
    "__author__",
    "__description__",
    "ApkxConfig",
]
