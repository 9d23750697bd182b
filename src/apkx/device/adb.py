"""Device-control channel backed by the adb executable."""

import logging
import subprocess
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from apkx.errors import (
    AmbiguousDeviceError,
    CommandExecutionError,
    DeviceNotFoundError,
    InstallTransactionError,
)
from apkx.models.device import InstallOptions

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 120

ONLINE_STATE = "device"


@dataclass(frozen=True)
class Device:
    """A device as listed by `adb devices -l`."""
    serial: str
    state: str
    properties: dict[str, str] = field(default_factory=dict)

    @property
    def is_online(self) -> bool:
        return self.state == ONLINE_STATE


class DeviceControlChannel(Protocol):
    """What the install flow needs from the transport to devices."""

    def init(self, adb_path: Path) -> None: ...

    def get_devices(self) -> list[Device]: ...

    def get_device(self, device_id: str | None = None) -> Device: ...

    def shell(self, serial: str, command: Sequence[str]) -> str: ...

    def install(
        self, apk_paths: Sequence[Path], options: InstallOptions, device_id: str | None = None
    ) -> None: ...


def select_device(devices: Sequence[Device], device_id: str | None) -> Device:
    """Pick the requested device, or the only connected one.

    Raises:
        DeviceNotFoundError: If nothing matches or no device is connected
        AmbiguousDeviceError: If several devices are connected and none was requested
    """
    online = [device for device in devices if device.is_online]
    if device_id is not None:
        for device in online:
            if device.serial == device_id:
                return device
        raise DeviceNotFoundError(f"Unable to find the requested device: '{device_id}'.")

    if not online:
        raise DeviceNotFoundError("No connected devices found.")
    if len(online) > 1:
        raise AmbiguousDeviceError(
            f"More than one device connected ({', '.join(d.serial for d in online)}), "
            "please provide a device id."
        )
    return online[0]


def parse_devices_output(output: str) -> list[Device]:
    """Parse `adb devices -l` output."""
    devices = []
    for line in output.splitlines():
        line = line.strip()
        if not line or line.startswith("List of devices") or line.startswith("*"):
            continue
        parts = line.split()
        if len(parts) < 2:
            continue
        properties = dict(part.split(":", 1) for part in parts[2:] if ":" in part)
        devices.append(Device(serial=parts[0], state=parts[1], properties=properties))
    return devices


def install_failure_message(output: str) -> str | None:
    """Return adb's failure line from install output, preferring the one with a reason."""
    lines = [line.strip() for line in output.splitlines()]
    for prefix in ("Failure", "adb: failed"):
        for line in lines:
            if line.startswith(prefix):
                return line
    return None


class AdbServer:
    """Runs adb as a subprocess; each call is one blocking command, no retry."""

    def __init__(self, timeout_seconds: int = DEFAULT_TIMEOUT_SECONDS):
        self.timeout_seconds = timeout_seconds
        self.adb_path: Path | None = None

    def init(self, adb_path: Path) -> None:
        self.adb_path = adb_path
        logger.debug(f"Using adb at {adb_path}")

    def _run(self, args: Sequence[str], serial: str | None = None) -> subprocess.CompletedProcess:
        if self.adb_path is None:
            raise CommandExecutionError("adb server used before init()")

        cmd = [str(self.adb_path)]
        if serial is not None:
            cmd.extend(["-s", serial])
        cmd.extend(args)
        logger.debug(f"Running: {' '.join(cmd)}")

        try:
            return subprocess.run(
                cmd,
                check=False,
                capture_output=True,
                text=True,
                timeout=self.timeout_seconds,
            )
        except subprocess.TimeoutExpired:
            raise CommandExecutionError(
                f"adb timed out after {self.timeout_seconds}s: {' '.join(args)}"
            )
        except OSError as e:
            raise CommandExecutionError(f"Failed to run adb at {self.adb_path}: {e}")

    def get_devices(self) -> list[Device]:
        proc = self._run(["devices", "-l"])
        if proc.returncode != 0:
            raise CommandExecutionError(f"adb devices failed: {(proc.stderr or '').strip()}")
        return parse_devices_output(proc.stdout)

    def get_device(self, device_id: str | None = None) -> Device:
        return select_device(self.get_devices(), device_id)

    def shell(self, serial: str, command: Sequence[str]) -> str:
        proc = self._run(["shell", *command], serial=serial)
        if proc.returncode != 0:
            raise CommandExecutionError(
                f"adb shell {' '.join(command)} failed on {serial}: {(proc.stderr or '').strip()}"
            )
        return proc.stdout

    def install(
        self, apk_paths: Sequence[Path], options: InstallOptions, device_id: str | None = None
    ) -> None:
        device = self.get_device(device_id)

        args = ["install-multiple", "-r"]
        if options.allow_downgrade:
            args.append("-d")
        args.extend(str(path) for path in apk_paths)

        proc = self._run(args, serial=device.serial)
        output = f"{proc.stdout or ''}\n{proc.stderr or ''}"
        failure = install_failure_message(output)
        if failure is None and proc.returncode != 0:
            failure = output.strip() or f"adb exited with code {proc.returncode}"
        if failure is not None:
            raise InstallTransactionError(failure)

        logger.info(f"Installed {len(apk_paths)} APKs on {device.serial}")
