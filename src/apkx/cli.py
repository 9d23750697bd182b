"""CLI interface for apkx using Typer framework."""

import json as jsonlib
import logging
from pathlib import Path
from typing import Annotated, Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from apkx import __description__, __version__
from apkx.apks.extractor import ApkSetExtractor
from apkx.bundle.reader import BundleReader
from apkx.commands.install_apks import COMMAND_NAME as INSTALL_APKS, InstallApksCommand, check_readable_input
from apkx.config import ApkxConfig, LogLevel, load_config
from apkx.device.adb import AdbServer
from apkx.device.analyzer import DeviceAnalyzer
from apkx.device.sdk import resolve_adb_path, resolve_device_id
from apkx.errors import ApkxError, InputValidationError
from apkx.models.device import DeviceSpec
from apkx.validation import BundleValidator, ValidationStatus

app = typer.Typer(
    name="apkx",
    help=__description__,
    add_completion=False,
    rich_markup_mode="rich"
)

console = Console()
error_console = Console(stderr=True)

LOG_LEVELS = {
    LogLevel.ERROR.value: logging.ERROR,
    LogLevel.WARN.value: logging.WARNING,
    LogLevel.INFO.value: logging.INFO,
    LogLevel.DEBUG.value: logging.DEBUG,
}


def version_callback(value: bool) -> None:
    """Show version information and exit."""
    if value:
        console.print(f"apkx version {__version__}")
        raise typer.Exit()


def configure_logging(level: str) -> None:
    """Route apkx loggers through rich on stderr."""
    logger = logging.getLogger("apkx")
    logger.handlers.clear()
    logger.addHandler(RichHandler(console=error_console, show_path=False))
    logger.setLevel(LOG_LEVELS.get(level, logging.WARNING))
    logger.propagate = False


@app.callback()
def main(
    version: Annotated[
        bool,
        typer.Option("--version", "-v", callback=version_callback, help="Show version and exit")
    ] = False,
    log_level: Annotated[
        Optional[LogLevel],
        typer.Option("--log-level", help="Logging level (default: from .apkx.json, else warn)")
    ] = None,
) -> None:
    """apkx - Code-first CLI tool for Android App Bundles and APK sets."""
    if log_level is None:
        try:
            level = load_config().logging.level
        except ValueError:
            level = LogLevel.WARN.value
    else:
        level = log_level.value
    configure_logging(level)


def _load_config(config: Path | None) -> ApkxConfig:
    try:
        return load_config(config)
    except ValueError as e:
        error_console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1)


def _fail(error: ApkxError) -> None:
    error_console.print(f"[red]Error:[/red] {error.category}: {escape(str(error))}")
    raise typer.Exit(1)


def _parse_modules(modules: str | None) -> list[str] | None:
    if modules is None:
        return None
    names = [name.strip() for name in modules.split(",") if name.strip()]
    if not names:
        error_console.print("[red]Error:[/red] --modules must name at least one module")
        raise typer.Exit(1)
    return names


def _read_device_spec(path: Path) -> DeviceSpec:
    check_readable_input(path)
    try:
        return DeviceSpec.model_validate(jsonlib.loads(path.read_text(encoding="utf-8")))
    except (jsonlib.JSONDecodeError, ValidationError) as e:
        raise InputValidationError(f"Invalid device spec {path}: {e}", path=str(path))


@app.command()
def validate(
    bundle: Annotated[
        Path,
        typer.Argument(help="Path to the bundle (.aab) or extracted bundle directory")
    ],
    format: Annotated[
        str,
        typer.Option("--format", "-f", help="Output format: table, json (default: table)")
    ] = "table",
    config: Annotated[
        Optional[Path],
        typer.Option("--config", "-c", help="Configuration file path (default: search for .apkx.json)")
    ] = None,
) -> None:
    """Validate bundle modules against their targeting metadata."""
    valid_formats = ["table", "json"]
    if format not in valid_formats:
        error_console.print(f"[red]Error:[/red] Invalid format '{format}'. Must be one of: {', '.join(valid_formats)}")
        raise typer.Exit(1)

    apkx_config = _load_config(config)

    try:
        validator = BundleValidator.from_config(apkx_config)
    except ValueError as e:
        error_console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1)

    try:
        check_readable_input(bundle)
        report = validator.check(BundleReader.read(bundle))
    except ApkxError as e:
        _fail(e)

    if format == "json":
        console.print_json(data=report.to_dict())
    else:
        status_color = "green" if report.status == ValidationStatus.PASS else "red"
        console.print(f"Validation status: [{status_color}]{report.status.value.upper()}[/{status_color}]")

        if report.counters:
            counters_table = Table(title="Counters")
            counters_table.add_column("Counter", style="cyan")
            counters_table.add_column("Value", justify="right")
            for key, value in report.counters.items():
                counters_table.add_row(key, str(value))
            console.print(counters_table)

        if report.issues:
            issues_table = Table(title="Issues")
            issues_table.add_column("Rule", style="cyan")
            issues_table.add_column("Module")
            issues_table.add_column("Message")
            for issue in report.issues:
                issues_table.add_row(issue.rule, issue.module or "(bundle)", escape(issue.message))
            console.print(issues_table)

    raise typer.Exit(report.exit_code)


@app.command("get-device-spec")
def get_device_spec(
    adb: Annotated[
        Optional[Path],
        typer.Option("--adb", help="Path to adb (default: config, then $ANDROID_HOME/platform-tools/adb)")
    ] = None,
    device_id: Annotated[
        Optional[str],
        typer.Option("--device-id", help="Device serial (default: $ANDROID_SERIAL, else the only connected device)")
    ] = None,
    output: Annotated[
        Optional[Path],
        typer.Option("--output", "-o", help="Write the device spec JSON to this file")
    ] = None,
    config: Annotated[
        Optional[Path],
        typer.Option("--config", "-c", help="Configuration file path (default: search for .apkx.json)")
    ] = None,
) -> None:
    """Print the spec of a connected device as JSON."""
    apkx_config = _load_config(config)

    try:
        adb_path = resolve_adb_path(adb, apkx_config.adb.path)
        adb_server = AdbServer(timeout_seconds=apkx_config.adb.timeout_seconds)
        adb_server.init(adb_path)
        spec = DeviceAnalyzer(adb_server).get_device_spec(resolve_device_id(device_id))
    except ApkxError as e:
        _fail(e)

    spec_json = jsonlib.dumps(spec.to_dict(), indent=2)
    if output:
        output.write_text(spec_json + "\n", encoding="utf-8")
        console.print(f"[green]Device spec written to[/green] {output}")
    else:
        console.print_json(spec_json)


@app.command("extract-apks")
def extract_apks(
    apks: Annotated[
        Path,
        typer.Option("--apks", help="Path to the APK set archive (.apks) or directory")
    ],
    device_spec: Annotated[
        Path,
        typer.Option("--device-spec", help="Device spec JSON, as printed by get-device-spec")
    ],
    output_dir: Annotated[
        Path,
        typer.Option("--output-dir", "-o", help="Directory to extract the APKs to")
    ],
    modules: Annotated[
        Optional[str],
        typer.Option("--modules", help="Comma-separated modules to extract (default: all install-time modules)")
    ] = None,
) -> None:
    """Extract the APKs a device would be served from an APK set."""
    module_names = _parse_modules(modules)

    try:
        check_readable_input(apks)
        spec = _read_device_spec(device_spec)
        output_dir.mkdir(parents=True, exist_ok=True)
        extracted = ApkSetExtractor(
            apks_archive_path=apks,
            device_spec=spec,
            modules=frozenset(module_names) if module_names is not None else None,
            output_dir=output_dir,
        ).execute()
    except ApkxError as e:
        _fail(e)

    for path in extracted:
        console.print(str(path), soft_wrap=True, markup=False)


@app.command(INSTALL_APKS)
def install_apks(
    apks: Annotated[
        Path,
        typer.Option("--apks", help="Path to the APK set archive (.apks) or directory")
    ],
    adb: Annotated[
        Optional[Path],
        typer.Option("--adb", help="Path to adb (default: config, then $ANDROID_HOME/platform-tools/adb)")
    ] = None,
    device_id: Annotated[
        Optional[str],
        typer.Option("--device-id", help="Device serial (default: $ANDROID_SERIAL, else the only connected device)")
    ] = None,
    modules: Annotated[
        Optional[str],
        typer.Option("--modules", help="Comma-separated modules to install; dependencies are added (default: all)")
    ] = None,
    allow_downgrade: Annotated[
        Optional[bool],
        typer.Option("--allow-downgrade/--no-allow-downgrade", help="Allow installing a lower version code")
    ] = None,
    config: Annotated[
        Optional[Path],
        typer.Option("--config", "-c", help="Configuration file path (default: search for .apkx.json)")
    ] = None,
) -> None:
    """Install the APKs of an APK set that a connected device would be served.

    Fails if the app is not compatible with the device.
    """
    apkx_config = _load_config(config)
    module_names = _parse_modules(modules)

    try:
        command = InstallApksCommand.from_options(
            apks_archive_path=apks,
            adb_server=AdbServer(timeout_seconds=apkx_config.adb.timeout_seconds),
            adb_path=adb,
            device_id=device_id,
            modules=module_names,
            allow_downgrade=allow_downgrade,
            config=apkx_config,
        )
        installed = command.execute()
    except ApkxError as e:
        _fail(e)

    console.print(f"[green]Installed {len(installed)} APKs:[/green] {', '.join(installed)}")


if __name__ == "__main__":
    app()
