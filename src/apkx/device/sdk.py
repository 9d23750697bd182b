"""Locating the adb executable."""

import os
import platform
from collections.abc import Mapping
from pathlib import Path

from apkx.errors import CommandExecutionError

ANDROID_HOME_VARIABLE = "ANDROID_HOME"
ANDROID_SERIAL_VARIABLE = "ANDROID_SERIAL"


def adb_executable_name() -> str:
    return "adb.exe" if platform.system() == "Windows" else "adb"


def locate_adb(sdk_root: Path) -> Path | None:
    """Return platform-tools/adb under an SDK root if it exists."""
    adb_path = sdk_root / "platform-tools" / adb_executable_name()
    return adb_path if adb_path.is_file() else None


def resolve_adb_path(
    adb_path: Path | None,
    configured_path: str | None = None,
    environ: Mapping[str, str] | None = None,
) -> Path:
    """Pick the adb path: explicit option, then config, then ANDROID_HOME.

    Raises:
        CommandExecutionError: If no location can be determined
    """
    if adb_path is not None:
        return adb_path
    if configured_path:
        return Path(configured_path)

    environ = os.environ if environ is None else environ
    android_home = environ.get(ANDROID_HOME_VARIABLE)
    if android_home:
        located = locate_adb(Path(android_home))
        if located is not None:
            return located

    raise CommandExecutionError(
        "Unable to determine the location of ADB. Please set the --adb option or define "
        f"the {ANDROID_HOME_VARIABLE} environment variable."
    )


def resolve_device_id(device_id: str | None, environ: Mapping[str, str] | None = None) -> str | None:
    """Use ANDROID_SERIAL when no device id was requested."""
    if device_id:
        return device_id
    environ = os.environ if environ is None else environ
    return environ.get(ANDROID_SERIAL_VARIABLE) or None
