"""Unit tests for the apkx CLI commands."""

import json
import zipfile

from typer.testing import CliRunner

from apkx import __version__
from apkx import cli as cli_module
from apkx.cli import app
from apkx.errors import InstallTransactionError

APEX_IMAGE_JSON = json.dumps({"image": [{"path": "apex/x86.img"}]})
MANIFEST_XML = '<manifest package="com.test.app"/>'

runner = CliRunner()


def write_bundle(path, extra_entries=None):
    entries = {
        "base/manifest/AndroidManifest.xml": MANIFEST_XML,
        "base/root/manifest.json": "{}",
        "base/apex/x86.img": "IMG",
        "base/apex_image.json": APEX_IMAGE_JSON,
    }
    entries.update(extra_entries or {})
    with zipfile.ZipFile(path, "w") as archive:
        for name, content in entries.items():
            archive.writestr(name, content)
    return path


class TestVersion:
    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output


class TestValidateCLI:
    """Test the validate command."""

    def test_valid_bundle(self, tmp_path):
        bundle = write_bundle(tmp_path / "app.aab")

        result = runner.invoke(app, ["validate", str(bundle), "--config", str(tmp_path / "none.json")])

        assert result.exit_code == 0
        assert "PASS" in result.output

    def test_invalid_bundle_json(self, tmp_path):
        bundle = write_bundle(tmp_path / "app.aab", {"base/root/unexpected.txt": "x"})

        result = runner.invoke(app, [
            "validate", str(bundle), "--format", "json", "--config", str(tmp_path / "none.json")
        ])

        assert result.exit_code == 1
        data = json.loads(result.stdout)
        assert data["status"] == "fail"
        assert data["issues"][0]["rule"] == "apex_unexpected_files"
        assert data["issues"][0]["module"] == "base"

    def test_disabled_rule_from_config(self, tmp_path):
        bundle = write_bundle(tmp_path / "app.aab", {"feature/dex/classes.dex": ""})
        config = tmp_path / ".apkx.json"
        config.write_text(json.dumps({"validation": {"disabledRules": ["apex_module_cardinality"]}}))

        result = runner.invoke(app, ["validate", str(bundle), "--config", str(config)])

        assert result.exit_code == 0

    def test_invalid_format(self, tmp_path):
        result = runner.invoke(app, ["validate", str(tmp_path), "--format", "xml"])

        assert result.exit_code == 1
        assert "Invalid format" in result.output

    def test_missing_bundle(self, tmp_path):
        result = runner.invoke(app, [
            "validate", str(tmp_path / "missing.aab"), "--config", str(tmp_path / "none.json")
        ])

        assert result.exit_code == 1
        assert "invalid input" in result.output


class TestExtractApksCLI:
    """Test the extract-apks command."""

    def test_extract(self, apks_zip, tmp_path, device_spec):
        spec_file = tmp_path / "device.json"
        spec_file.write_text(json.dumps(device_spec.to_dict()))
        output_dir = tmp_path / "out"

        result = runner.invoke(app, [
            "extract-apks", "--apks", str(apks_zip), "--device-spec", str(spec_file),
            "--output-dir", str(output_dir), "--modules", "base",
        ])

        assert result.exit_code == 0
        assert (output_dir / "splits" / "base-master.apk").is_file()
        assert not (output_dir / "splits" / "feature1-master.apk").exists()

    def test_invalid_device_spec(self, apks_zip, tmp_path):
        spec_file = tmp_path / "device.json"
        spec_file.write_text("{broken")

        result = runner.invoke(app, [
            "extract-apks", "--apks", str(apks_zip), "--device-spec", str(spec_file),
            "--output-dir", str(tmp_path / "out"),
        ])

        assert result.exit_code == 1
        assert "Invalid device spec" in result.output


class TestInstallApksCLI:
    """Test the install-apks command wiring."""

    def test_install_reports_channel_failure(self, apks_dir, tmp_path, monkeypatch):
        captured = {}

        class FailingCommand:
            def execute(self):
                raise InstallTransactionError("Failure [INSTALL_FAILED_VERSION_DOWNGRADE]")

        def from_options(**kwargs):
            captured.update(kwargs)
            return FailingCommand()

        monkeypatch.setattr(cli_module.InstallApksCommand, "from_options", from_options)

        result = runner.invoke(app, [
            "install-apks", "--apks", str(apks_dir), "--adb", str(tmp_path / "adb"),
            "--modules", "base,feature1", "--config", str(tmp_path / "none.json"),
        ])

        assert result.exit_code == 1
        assert "install failed" in result.output
        assert "INSTALL_FAILED_VERSION_DOWNGRADE" in result.output
        assert captured["modules"] == ["base", "feature1"]
        assert captured["allow_downgrade"] is None

    def test_install_success(self, apks_dir, tmp_path, monkeypatch):
        class OkCommand:
            def execute(self):
                return ["base-master.apk"]

        monkeypatch.setattr(cli_module.InstallApksCommand, "from_options", lambda **kwargs: OkCommand())

        result = runner.invoke(app, [
            "install-apks", "--apks", str(apks_dir), "--allow-downgrade",
            "--config", str(tmp_path / "none.json"),
        ])

        assert result.exit_code == 0
        assert "Installed 1 APKs" in result.output

    def test_empty_modules(self, apks_dir, tmp_path):
        result = runner.invoke(app, [
            "install-apks", "--apks", str(apks_dir), "--modules", ",",
            "--config", str(tmp_path / "none.json"),
        ])

        assert result.exit_code == 1
        assert "--modules" in result.output
