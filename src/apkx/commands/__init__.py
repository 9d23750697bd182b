"""Command implementations behind the CLI."""

from .install_apks import InstallApksCommand

__all__ = ["InstallApksCommand"]
