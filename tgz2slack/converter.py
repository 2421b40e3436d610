#!/usr/bin/env python3
"""Conversion logic for turning tarball packages into Slackware packages."""

from __future__ import annotations

import logging
import re
import tarfile
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .metadata import SCRIPT_NAMES, PackageMetadata, parse_slack_desc
from .slackdesc import render_slack_desc
from .utils import (
    CommandExecutionError,
    ConversionError,
    cleanup_dir,
    create_temp_dir,
    extract_member,
    list_archive_members,
    run_command,
    safe_extract_tar,
    write_file,
)

TAR_EXTENSION_RE = re.compile(r"\.(?:tgz|tar(?:\.(?:gz|Z|z|bz|bz2))?|taz)$")
NAME_VERSION_RE = re.compile(r"([\w-]+)-([0-9\.?]+).*")

INSTALL_DIR = "install"
SLACK_DESC_MEMBER = f"{INSTALL_DIR}/slack-desc"
CONFFILE_PREFIX = "etc/"


@dataclass
class ConversionResult:
    """Result of conversion, including generated package and temp workspace."""

    metadata: PackageMetadata
    package_path: Path
    temp_dir: Path


class TgzPackageConverter:
    """Scan, unpack, prepare and rebuild Slackware tarball packages."""

    def __init__(self, logger: Optional[logging.Logger] = None, verbose: int = 0) -> None:
        self.logger = logger or logging.getLogger("tgz2slack.converter")
        self.verbose = verbose

    def checkfile(self, input_path: Path) -> bool:
        """Detect tarball packages by their extension."""
        return TAR_EXTENSION_RE.search(input_path.name) is not None

    def validate_input_file(self, input_path: Path) -> None:
        """Validate a candidate input archive."""
        if not input_path.exists() or not input_path.is_file():
            raise ConversionError(f"File does not exist: {input_path}")

        if not self.checkfile(input_path):
            raise ConversionError("Supported files are: .tgz, .taz, .tar, .tar.gz, .tar.Z, .tar.bz2")

        if not tarfile.is_tarfile(str(input_path)):
            raise ConversionError(f"Invalid tarball archive: {input_path.name}")

    def parse_filename(self, input_path: Path) -> tuple[str, str]:
        """Guess ``(name, version)`` from the file name; there is little else to go on."""
        basename = TAR_EXTENSION_RE.sub("", input_path.name)
        match = NAME_VERSION_RE.search(basename)
        if match:
            return match.group(1), match.group(2)
        return basename, "1"

    def scan(self, input_path: Path) -> PackageMetadata:
        """Extract metadata from a tarball package without unpacking it."""
        input_path = input_path.expanduser().resolve()
        self.validate_input_file(input_path)

        name, version = self.parse_filename(input_path)
        metadata = PackageMetadata(
            name=name,
            version=version,
            source_path=input_path,
        )

        raw_desc = extract_member(input_path, SLACK_DESC_MEMBER)
        desc_text = raw_desc.decode("utf-8", errors="replace") if raw_desc else None
        summary, description = parse_slack_desc(desc_text, name)
        metadata.set_summary(summary)
        metadata.description = description
        if desc_text is None:
            self.logger.debug("No %s in %s", SLACK_DESC_MEMBER, input_path.name)

        members = list_archive_members(input_path)

        # Anything under etc/ that is a plain file is treated as a conffile.
        metadata.conffiles = [
            f"/{member.path}"
            for member in members
            if member.mode.startswith("-") and member.path.startswith(CONFFILE_PREFIX)
        ]
        metadata.filelist = [
            f"/{member.path}"
            for member in members
            if member.path != INSTALL_DIR and not member.path.startswith(f"{INSTALL_DIR}/")
        ]

        for hook, script_name in SCRIPT_NAMES.items():
            data = extract_member(input_path, f"{INSTALL_DIR}/{script_name}")
            if data:
                metadata.scripts[hook] = data.decode("utf-8", errors="replace")

        self.logger.info(
            "Scanned %s: name=%s version=%s files=%d conffiles=%d scripts=%s",
            input_path.name,
            metadata.name,
            metadata.version,
            len(metadata.filelist),
            len(metadata.conffiles),
            ", ".join(sorted(metadata.scripts)) or "none",
        )
        return metadata

    def render_slack_desc(self, metadata: PackageMetadata) -> str:
        """Render the slack-desc block for ``metadata``."""
        return render_slack_desc(metadata.name, metadata.summary, metadata.description)

    def unpack(self, metadata: PackageMetadata, workdir: Path, log_callback=None) -> Path:
        """Unpack the source archive and drop its Slackware install/ directory."""
        if metadata.source_path is None:
            raise ConversionError("Package has no source archive to unpack")

        tree = workdir / f"{metadata.name}-{metadata.version}"
        tree.mkdir(parents=True, exist_ok=True)

        try:
            with tarfile.open(metadata.source_path, mode="r:*") as tar:
                safe_extract_tar(tar, tree, self.logger)
        except tarfile.TarError as exc:
            raise ConversionError(f"Unpacking of '{metadata.source_path}' failed: {exc}") from exc

        cleanup_dir(tree / INSTALL_DIR, self.logger)
        if log_callback:
            log_callback(f"Unpacked to {tree}")
        return tree

    def prep(self, metadata: PackageMetadata, tree: Path, use_scripts: bool = True, log_callback=None) -> None:
        """Populate install/ with the slack-desc and lifecycle scripts."""
        install_dir = tree / INSTALL_DIR

        if not metadata.has_default_description():
            slack_desc = self.render_slack_desc(metadata)
            write_file(install_dir / "slack-desc", slack_desc.encode("utf-8"), 0o644, self.logger)
            if log_callback:
                log_callback(f"Wrote {SLACK_DESC_MEMBER}")

        if not use_scripts:
            return

        for hook, script_name in SCRIPT_NAMES.items():
            data = metadata.scripts.get(hook)
            if data is None or not data.strip():
                continue
            write_file(install_dir / script_name, data.encode("utf-8"), 0o755, self.logger)
            if log_callback:
                log_callback(f"Wrote {INSTALL_DIR}/{script_name} ({hook})")

    def build(self, metadata: PackageMetadata, tree: Path, output_dir: Path, log_callback=None) -> Path:
        """Build a .tgz from a prepared tree."""
        output_dir.mkdir(parents=True, exist_ok=True)
        package_path = output_dir.resolve() / f"{metadata.name}-{metadata.version}.tgz"

        try:
            run_command(
                ["tar", "czf", str(package_path), "."],
                self.logger,
                cwd=tree,
                log_callback=log_callback,
                verbose=self.verbose,
            )
        except CommandExecutionError as exc:
            raise ConversionError(f"Package build failed: {exc}") from exc

        if not package_path.exists():
            raise ConversionError("Package build completed but no package was generated")
        return package_path

    def convert(
        self,
        input_path: Path,
        output_dir: Optional[Path] = None,
        use_scripts: bool = True,
        log_callback=None,
    ) -> ConversionResult:
        """Convert a tarball into a Slackware package with a fresh slack-desc."""
        metadata = self.scan(input_path)
        temp_dir = create_temp_dir()
        try:
            tree = self.unpack(metadata, temp_dir, log_callback)
            self.prep(metadata, tree, use_scripts=use_scripts, log_callback=log_callback)

            target_dir = output_dir if output_dir is not None else temp_dir
            package_path = self.build(metadata, tree, target_dir, log_callback)
            self.logger.info("Built %s", package_path)
            if log_callback:
                log_callback(f"Built package: {package_path}")

            return ConversionResult(metadata=metadata, package_path=package_path, temp_dir=temp_dir)
        except Exception:
            cleanup_dir(temp_dir, self.logger)
            raise

    def cleanup_workspace(self, workspace: Path) -> None:
        """Cleanup conversion workspace."""
        cleanup_dir(workspace, self.logger)
