"""Shared fixtures: a small APK set as a directory and as a zip archive."""

import json
import zipfile

import pytest

from apkx.models.device import DeviceSpec


def split(path, **targeting):
    return {"path": path, "targeting": targeting}


TOC = {
    "packageName": "com.test.app",
    "variant": [
        {
            "variantNumber": 0,
            "targeting": {"sdkVersion": {"min": 1}},
            "apkSet": [
                {
                    "moduleName": "base",
                    "apk": [
                        {"path": "standalones/standalone-armeabi_v7a.apk", "targeting": {"abi": "armeabi-v7a"}, "standalone": True},
                        {"path": "standalones/standalone-x86.apk", "targeting": {"abi": "x86"}, "standalone": True},
                    ],
                }
            ],
        },
        {
            "variantNumber": 1,
            "targeting": {"sdkVersion": {"min": 21}},
            "apkSet": [
                {
                    "moduleName": "base",
                    "apk": [
                        split("splits/base-master.apk"),
                        split("splits/base-arm64_v8a.apk", abi="arm64-v8a"),
                        split("splits/base-x86.apk", abi="x86"),
                        split("splits/base-xhdpi.apk", screenDensity=320),
                        split("splits/base-xxhdpi.apk", screenDensity=480),
                        split("splits/base-de.apk", language="de"),
                        split("splits/base-fr.apk", language="fr"),
                    ],
                },
                {
                    "moduleName": "feature2",
                    "delivery": "on-demand",
                    "dependencies": ["feature1"],
                    "apk": [split("splits/feature2-master.apk")],
                },
                {
                    "moduleName": "feature1",
                    "dependencies": ["base"],
                    "apk": [split("splits/feature1-master.apk")],
                },
            ],
        },
    ],
}


def apk_entries():
    paths = [
        apk["path"]
        for variant in TOC["variant"]
        for apk_set in variant["apkSet"]
        for apk in apk_set["apk"]
    ]
    return {path: f"APK:{path}".encode() for path in paths}


@pytest.fixture
def toc_data():
    return json.loads(json.dumps(TOC))


@pytest.fixture
def apks_dir(tmp_path):
    root = tmp_path / "app_apks"
    root.mkdir()
    (root / "toc.json").write_text(json.dumps(TOC), encoding="utf-8")
    for path, content in apk_entries().items():
        target = root / path
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(content)
    return root


@pytest.fixture
def apks_zip(tmp_path):
    path = tmp_path / "app.apks"
    with zipfile.ZipFile(path, "w") as archive:
        archive.writestr("toc.json", json.dumps(TOC))
        for name, content in apk_entries().items():
            archive.writestr(name, content)
    return path


@pytest.fixture
def device_spec():
    return DeviceSpec(
        supported_abis=["arm64-v8a", "armeabi-v7a"],
        supported_locales=["de-DE", "en-US"],
        screen_density=440,
        sdk_version=33,
        device_id="emulator-5554",
    )
