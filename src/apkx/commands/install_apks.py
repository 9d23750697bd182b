"""install-apks: installs onto a device the APKs it would be served from an APK set."""

import logging
import os
import tempfile
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from pathlib import Path

from apkx.apks.extractor import ApkSetExtractor
from apkx.config import ApkxConfig
from apkx.device.adb import DeviceControlChannel
from apkx.device.analyzer import DeviceAnalyzer
from apkx.device.installer import ApksInstaller
from apkx.device.sdk import resolve_adb_path, resolve_device_id
from apkx.errors import InputValidationError
from apkx.models.device import InstallOptions

logger = logging.getLogger(__name__)

COMMAND_NAME = "install-apks"


def check_readable_input(path: Path) -> None:
    """The APK set must be a readable directory or regular file."""
    if path.is_dir():
        if not os.access(path, os.R_OK | os.X_OK):
            raise InputValidationError(f"Directory '{path}' is not readable.", path=str(path))
    elif path.is_file():
        if not os.access(path, os.R_OK):
            raise InputValidationError(f"File '{path}' is not readable.", path=str(path))
    else:
        raise InputValidationError(f"File '{path}' was not found.", path=str(path))


def check_executable(path: Path) -> None:
    if not path.is_file():
        raise InputValidationError(f"File '{path}' was not found.", path=str(path))
    if not os.access(path, os.X_OK):
        raise InputValidationError(f"File '{path}' is not executable.", path=str(path))


@dataclass(frozen=True)
class InstallApksCommand:
    """Extracts the device's APKs from an APK set and installs them in one transaction.

    Everything is created fresh per invocation. A scratch directory receives
    the extracted APKs when the APK set is an archive, and it is removed on
    every exit path. The adb server's lifecycle belongs to the caller.
    """

    adb_path: Path
    apks_archive_path: Path
    adb_server: DeviceControlChannel
    device_id: str | None = None
    modules: frozenset[str] | None = None
    allow_downgrade: bool = False
    device_analyzer_factory: Callable[[DeviceControlChannel], DeviceAnalyzer] = DeviceAnalyzer
    extractor_factory: Callable[..., ApkSetExtractor] = ApkSetExtractor

    @classmethod
    def from_options(
        cls,
        apks_archive_path: Path,
        adb_server: DeviceControlChannel,
        adb_path: Path | None = None,
        device_id: str | None = None,
        modules: Iterable[str] | None = None,
        allow_downgrade: bool | None = None,
        config: ApkxConfig | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> "InstallApksCommand":
        """Build the command from CLI options, config file and environment.

        Explicit options win over the config file, which wins over
        ANDROID_HOME / ANDROID_SERIAL.
        """
        config = config or ApkxConfig()
        if modules is None and config.install.modules is not None:
            modules = config.install.modules
        if allow_downgrade is None:
            allow_downgrade = config.install.allow_downgrade

        return cls(
            adb_path=resolve_adb_path(adb_path, config.adb.path, environ),
            apks_archive_path=apks_archive_path,
            adb_server=adb_server,
            device_id=resolve_device_id(device_id, environ),
            modules=frozenset(modules) if modules is not None else None,
            allow_downgrade=allow_downgrade,
        )

    def validate_input(self) -> None:
        check_readable_input(self.apks_archive_path)
        check_executable(self.adb_path)

    def execute(self) -> list[str]:
        """Run the install.

        Returns:
            Names of the installed APK files, base module first

        Raises:
            InputValidationError: If an input path is unusable (before any device access)
            DeviceNotFoundError: If the device cannot be resolved
            IncompatibleDeviceError: If no APKs of the set fit the device
            InstallTransactionError: If the device rejects the install
        """
        self.validate_input()

        self.adb_server.init(self.adb_path)
        device_spec = self.device_analyzer_factory(self.adb_server).get_device_spec(self.device_id)

        with tempfile.TemporaryDirectory(prefix="apkx-") as temp_dir:
            output_dir = None if self.apks_archive_path.is_dir() else Path(temp_dir)
            extracted_apks = self.extractor_factory(
                apks_archive_path=self.apks_archive_path,
                device_spec=device_spec,
                modules=self.modules,
                output_dir=output_dir,
            ).execute()

            install_options = InstallOptions(allow_downgrade=self.allow_downgrade)
            installer = ApksInstaller(self.adb_server)
            installer.install_apks(extracted_apks, install_options, self.device_id)

        logger.info(f"{COMMAND_NAME} finished for {self.apks_archive_path}")
        return [apk.name for apk in extracted_apks]
