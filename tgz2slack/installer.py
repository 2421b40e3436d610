#!/usr/bin/env python3
"""Installation backend for converted Slackware packages."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .utils import InstallError, command_exists, run_command

INSTALLPKG = "/sbin/installpkg"


@dataclass
class InstallResult:
    """Structured result of an installpkg run."""

    success: bool
    returncode: int
    message: str


class PackageInstaller:
    """Install built packages with Slackware's installpkg.

    installpkg is used instead of untarring into / ourselves, which could
    trash a system.
    """

    def __init__(self, logger: Optional[logging.Logger] = None, installpkg: str = INSTALLPKG) -> None:
        self.logger = logger or logging.getLogger("tgz2slack.installer")
        self.installpkg = installpkg

    def install(self, package_path: Path, log_callback=None) -> InstallResult:
        """Install a package via installpkg, streaming its output."""
        package_path = package_path.expanduser().resolve()
        if not package_path.exists():
            raise InstallError(f"Package does not exist: {package_path}")

        if not command_exists(self.installpkg):
            raise InstallError(
                f"Cannot install {package_path.name} because {self.installpkg} is not present. "
                "You can use tar to install it yourself."
            )

        command = [self.installpkg, str(package_path)]
        returncode, output_lines = run_command(
            command,
            self.logger,
            log_callback=log_callback,
            check=False,
            verbose=2,
        )

        if returncode == 0:
            return InstallResult(True, returncode, "Installation completed successfully")

        output = "\n".join(output_lines).lower()
        if "must be root" in output or "permission denied" in output:
            return InstallResult(False, returncode, "installpkg must be run as root.")

        if "not a valid" in output or "corrupt" in output:
            return InstallResult(False, returncode, "Generated package is invalid or corrupted.")

        return InstallResult(False, returncode, f"Unable to install: {' '.join(command)} exited with {returncode}")
