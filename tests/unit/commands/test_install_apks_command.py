"""Tests for the install-apks orchestration."""

import stat

import pytest

from apkx.apks.extractor import ApkSetExtractor
from apkx.commands.install_apks import InstallApksCommand
from apkx.config import AdbConfig, ApkxConfig, InstallConfig
from apkx.device.adb import Device, select_device
from apkx.errors import (
    DeviceNotFoundError,
    IncompatibleDeviceError,
    InputValidationError,
    InstallTransactionError,
)
from apkx.models.device import InstallOptions

GETPROP = "[ro.build.version.sdk]: [33]\n[ro.product.cpu.abilist]: [arm64-v8a]\n[persist.sys.locale]: [en-US]\n"


class RecordingChannel:
    """Fake device-control channel that records every call in order."""

    def __init__(self, devices=None, install_error=None, getprop=GETPROP):
        self.devices = [Device("emulator-5554", "device")] if devices is None else devices
        self.install_error = install_error
        self.getprop = getprop
        self.calls = []
        self.installed = []

    def init(self, adb_path):
        self.calls.append(("init", adb_path))

    def get_devices(self):
        return self.devices

    def get_device(self, device_id=None):
        self.calls.append(("get_device", device_id))
        return select_device(self.devices, device_id)

    def shell(self, serial, command):
        if command == ["getprop"]:
            return self.getprop
        return "Physical density: 420\n"

    def install(self, apk_paths, options, device_id=None):
        self.calls.append(("install", device_id))
        # Files must still exist while the channel consumes them.
        assert all(path.is_file() for path in apk_paths)
        self.installed.append(([path.name for path in apk_paths], options))
        if self.install_error:
            raise self.install_error


class RecordingExtractor:
    """Wraps ApkSetExtractor to capture the output directory it was given."""

    def __init__(self):
        self.output_dirs = []

    def __call__(self, **kwargs):
        self.output_dirs.append(kwargs["output_dir"])
        return ApkSetExtractor(**kwargs)


@pytest.fixture
def adb_path(tmp_path):
    path = tmp_path / "adb"
    path.write_text("#!/bin/sh\n")
    path.chmod(path.stat().st_mode | stat.S_IXUSR)
    return path


def make_command(apks, adb_path, channel, extractor=None, **kwargs):
    return InstallApksCommand(
        adb_path=adb_path,
        apks_archive_path=apks,
        adb_server=channel,
        extractor_factory=extractor or ApkSetExtractor,
        **kwargs,
    )


class TestInstallApksCommand:
    """End-to-end install flow against fake collaborators."""

    def test_install_from_archive(self, apks_zip, adb_path):
        channel = RecordingChannel()
        extractor = RecordingExtractor()

        installed = make_command(apks_zip, adb_path, channel, extractor).execute()

        assert installed == ["base-master.apk", "base-arm64_v8a.apk", "base-xxhdpi.apk", "feature1-master.apk"]
        assert channel.calls[0] == ("init", adb_path)
        assert [c for c in channel.calls if c[0] == "install"] == [("install", None)]
        assert channel.installed[0][1] == InstallOptions(allow_downgrade=False)
        scratch = extractor.output_dirs[0]
        assert scratch is not None
        assert not scratch.exists()

    def test_install_from_directory_uses_no_scratch(self, apks_dir, adb_path):
        channel = RecordingChannel()
        extractor = RecordingExtractor()

        make_command(apks_dir, adb_path, channel, extractor).execute()

        assert extractor.output_dirs == [None]
        assert len(channel.installed) == 1

    def test_install_failure_still_removes_scratch(self, apks_zip, adb_path):
        channel = RecordingChannel(
            install_error=InstallTransactionError("Failure [INSTALL_FAILED_VERSION_DOWNGRADE]")
        )
        extractor = RecordingExtractor()

        with pytest.raises(InstallTransactionError, match="INSTALL_FAILED_VERSION_DOWNGRADE"):
            make_command(apks_zip, adb_path, channel, extractor).execute()

        assert channel.installed[0][1].allow_downgrade is False
        assert not extractor.output_dirs[0].exists()

    def test_incompatible_device_removes_scratch(self, apks_zip, adb_path):
        channel = RecordingChannel(getprop="[ro.build.version.sdk]: [19]\n[ro.product.cpu.abi]: [mips]\n")
        extractor = RecordingExtractor()

        with pytest.raises(IncompatibleDeviceError):
            make_command(apks_zip, adb_path, channel, extractor).execute()

        assert channel.installed == []
        assert not extractor.output_dirs[0].exists()

    def test_device_id_and_options_are_passed(self, apks_dir, adb_path):
        channel = RecordingChannel(devices=[Device("a", "device"), Device("b", "device")])

        make_command(
            apks_dir, adb_path, channel,
            device_id="b", modules=frozenset({"feature2"}), allow_downgrade=True,
        ).execute()

        assert ("get_device", "b") in channel.calls
        assert ("install", "b") in channel.calls
        names, options = channel.installed[0]
        assert names[-1] == "feature2-master.apk"
        assert options.allow_downgrade is True

    def test_no_device(self, apks_dir, adb_path):
        channel = RecordingChannel(devices=[])

        with pytest.raises(DeviceNotFoundError):
            make_command(apks_dir, adb_path, channel).execute()

        assert channel.installed == []

    def test_missing_archive_fails_before_device_access(self, tmp_path, adb_path):
        channel = RecordingChannel()

        with pytest.raises(InputValidationError, match="missing.apks"):
            make_command(tmp_path / "missing.apks", adb_path, channel).execute()

        assert channel.calls == []

    def test_non_executable_adb(self, apks_zip, tmp_path):
        adb = tmp_path / "adb-not-exec"
        adb.write_text("")
        adb.chmod(0o644)
        channel = RecordingChannel()

        with pytest.raises(InputValidationError, match="is not executable"):
            make_command(apks_zip, adb, channel).execute()

        assert channel.calls == []


class TestFromOptions:
    """Test option, config and environment precedence."""

    def test_environment_fallbacks(self, apks_zip, tmp_path):
        adb = tmp_path / "sdk" / "platform-tools" / "adb"
        adb.parent.mkdir(parents=True)
        adb.write_text("")

        command = InstallApksCommand.from_options(
            apks_archive_path=apks_zip,
            adb_server=RecordingChannel(),
            environ={"ANDROID_HOME": str(tmp_path / "sdk"), "ANDROID_SERIAL": "serial-from-env"},
        )

        assert command.adb_path == adb
        assert command.device_id == "serial-from-env"
        assert command.modules is None
        assert command.allow_downgrade is False

    def test_config_defaults(self, apks_zip):
        config = ApkxConfig(
            adb=AdbConfig(path="/opt/adb"),
            install=InstallConfig(allow_downgrade=True, modules=["feature1"]),
        )

        command = InstallApksCommand.from_options(
            apks_archive_path=apks_zip, adb_server=RecordingChannel(), config=config, environ={},
        )

        assert str(command.adb_path) == "/opt/adb"
        assert command.modules == frozenset({"feature1"})
        assert command.allow_downgrade is True

    def test_explicit_options_win(self, apks_zip, tmp_path):
        config = ApkxConfig(install=InstallConfig(allow_downgrade=True, modules=["feature1"]))

        command = InstallApksCommand.from_options(
            apks_archive_path=apks_zip,
            adb_server=RecordingChannel(),
            adb_path=tmp_path / "adb",
            device_id="explicit",
            modules=["base"],
            allow_downgrade=False,
            config=config,
            environ={"ANDROID_SERIAL": "env"},
        )

        assert command.device_id == "explicit"
        assert command.modules == frozenset({"base"})
        assert command.allow_downgrade is False
