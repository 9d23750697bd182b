"""Issues one install transaction for an ordered APK selection."""

import logging
from collections.abc import Sequence
from pathlib import Path

from apkx.errors import InputValidationError
from apkx.models.device import InstallOptions

from .adb import DeviceControlChannel

logger = logging.getLogger(__name__)


class ApksInstaller:
    """Installs APKs through a device-control channel."""

    def __init__(self, adb_server: DeviceControlChannel):
        self.adb_server = adb_server

    def install_apks(
        self,
        apks: Sequence[Path],
        options: InstallOptions,
        device_id: str | None = None,
    ) -> None:
        """Install all APKs in a single transaction.

        The channel's install call is atomic per APK set; failures propagate
        unchanged and nothing is retried.
        """
        if not apks:
            raise InputValidationError("No APKs to install.")
        for apk in apks:
            if not apk.is_file():
                raise InputValidationError(f"APK not found: {apk}", path=str(apk))

        target = device_id or "the connected device"
        logger.info(f"Installing {len(apks)} APKs on {target} (allow_downgrade={options.allow_downgrade})")
        self.adb_server.install(list(apks), options, device_id)
