"""Device access for apkx."""

from .adb import AdbServer, Device, DeviceControlChannel
from .analyzer import DeviceAnalyzer
from .installer import ApksInstaller

__all__ = ["AdbServer", "ApksInstaller", "Device", "DeviceAnalyzer", "DeviceControlChannel"]
