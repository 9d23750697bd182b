"""Resolves a connected device into a DeviceSpec."""

import logging
import re

from apkx.models.device import DeviceSpec

from .adb import DeviceControlChannel

logger = logging.getLogger(__name__)

GETPROP_LINE = re.compile(r"^\[(?P<key>[^\]]+)\]: \[(?P<value>.*)\]$")
DENSITY_LINE = re.compile(r"^(?P<kind>Physical|Override) density: (?P<value>\d+)$")

DEFAULT_LOCALE = "en-US"


def parse_getprop(output: str) -> dict[str, str]:
    properties = {}
    for line in output.splitlines():
        match = GETPROP_LINE.match(line.strip())
        if match:
            properties[match.group("key")] = match.group("value")
    return properties


def parse_wm_density(output: str) -> int | None:
    """Override density wins over physical density."""
    densities = {}
    for line in output.splitlines():
        match = DENSITY_LINE.match(line.strip())
        if match:
            densities[match.group("kind")] = int(match.group("value"))
    return densities.get("Override", densities.get("Physical"))


def locale_from_properties(properties: dict[str, str]) -> str:
    for key in ("persist.sys.locale", "ro.product.locale"):
        if properties.get(key):
            return properties[key]
    language = properties.get("persist.sys.language") or properties.get("ro.product.locale.language")
    region = properties.get("persist.sys.country") or properties.get("ro.product.locale.region")
    if language:
        return f"{language}-{region}" if region else language
    return DEFAULT_LOCALE


class DeviceAnalyzer:
    """Builds a DeviceSpec from device properties read over the channel."""

    def __init__(self, adb_server: DeviceControlChannel):
        self.adb_server = adb_server

    def get_device_spec(self, device_id: str | None = None) -> DeviceSpec:
        """Resolve the requested device, or the only connected one.

        Raises:
            DeviceNotFoundError: If no connected device matches
            AmbiguousDeviceError: If several are connected and none was requested
        """
        device = self.adb_server.get_device(device_id)
        properties = parse_getprop(self.adb_server.shell(device.serial, ["getprop"]))

        abis = properties.get("ro.product.cpu.abilist") or properties.get("ro.product.cpu.abi", "")
        sdk_version = properties.get("ro.build.version.sdk", "")

        density = parse_wm_density(self.adb_server.shell(device.serial, ["wm", "density"]))
        if density is None:
            lcd_density = properties.get("ro.sf.lcd_density", "")
            density = int(lcd_density) if lcd_density.isdigit() else 0

        spec = DeviceSpec(
            supported_abis=[abi.strip() for abi in abis.split(",") if abi.strip()],
            supported_locales=[locale_from_properties(properties)],
            screen_density=density,
            sdk_version=int(sdk_version) if sdk_version.isdigit() else 1,
            device_id=device.serial,
        )
        logger.info(
            f"Device {device.serial}: sdk={spec.sdk_version} abis={spec.supported_abis} "
            f"density={spec.screen_density}"
        )
        return spec
