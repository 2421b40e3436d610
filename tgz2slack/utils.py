#!/usr/bin/env python3
"""Utility helpers for tgz2slack."""

from __future__ import annotations

import logging
import os
import re
import shutil
import stat
import subprocess
import tarfile
import tempfile
from dataclasses import dataclass
from pathlib import Path
from tarfile import TarFile, TarInfo
from typing import Callable, Optional

LogCallback = Optional[Callable[[str], None]]
ANSI_ESCAPE_RE = re.compile(r"\x1B(?:[@-Z\\-_]|\[[0-?]*[ -/]*[@-~]|[\(\)][0-9A-Za-z])")


class Tgz2SlackError(Exception):
    """Base exception for all tgz2slack errors."""


class ValidationError(Tgz2SlackError):
    """Raised when input validation fails."""


class CommandExecutionError(Tgz2SlackError):
    """Raised when a subprocess cannot be started or exits non-zero."""


class ConversionError(Tgz2SlackError):
    """Raised when package conversion fails."""


class InstallError(Tgz2SlackError):
    """Raised when package installation fails."""


@dataclass(frozen=True)
class ArchiveMember:
    """One line of an archive listing: permission string and member path."""

    mode: str
    path: str
    is_file: bool


def setup_logging(name: str = "tgz2slack", level: int = logging.INFO) -> logging.Logger:
    """Create and configure a logger with consistent formatting."""
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger

    logger.setLevel(level)
    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(
        logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")
    )
    logger.addHandler(stream_handler)
    return logger


def create_temp_dir(prefix: str = "tgz2slack-") -> Path:
    """Create a temporary workspace directory."""
    return Path(tempfile.mkdtemp(prefix=prefix))


def cleanup_dir(path: Path, logger: Optional[logging.Logger] = None) -> None:
    """Best-effort temporary directory cleanup."""
    try:
        shutil.rmtree(path, ignore_errors=False)
    except FileNotFoundError:
        return
    except Exception as exc:  # pragma: no cover - best effort cleanup
        if logger:
            logger.warning("Failed to cleanup %s: %s", path, exc)


def command_exists(binary: str) -> bool:
    """Return True if a binary is available in PATH or is an executable path."""
    if os.sep in binary:
        return os.access(binary, os.X_OK)
    return shutil.which(binary) is not None


def normalize_member_name(member_name: str) -> str:
    """Normalize archive member paths without stripping significant dots."""
    cleaned = member_name.lstrip("/")
    while cleaned.startswith("./"):
        cleaned = cleaned[2:]
    return cleaned


def list_archive_members(archive_path: Path) -> list[ArchiveMember]:
    """Return the archive listing in member order, like ``tar tvf``."""
    try:
        with tarfile.open(archive_path, mode="r:*") as tar:
            members = []
            for member in tar.getmembers():
                path = normalize_member_name(member.name)
                if not path or path == ".":
                    continue
                members.append(
                    ArchiveMember(
                        mode=stat.filemode(_tar_type_bits(member) | (member.mode & 0o7777)),
                        path=path,
                        is_file=member.isfile(),
                    )
                )
            return members
    except (tarfile.TarError, OSError) as exc:
        raise ConversionError(f"Failed to list archive {archive_path}: {exc}") from exc


def _tar_type_bits(member: TarInfo) -> int:
    if member.isdir():
        return stat.S_IFDIR
    if member.issym():
        return stat.S_IFLNK
    if member.ischr():
        return stat.S_IFCHR
    if member.isblk():
        return stat.S_IFBLK
    if member.isfifo():
        return stat.S_IFIFO
    return stat.S_IFREG


def extract_member(archive_path: Path, member_path: str) -> Optional[bytes]:
    """Read one regular member from an archive; None when it is absent."""
    wanted = normalize_member_name(member_path)
    try:
        with tarfile.open(archive_path, mode="r:*") as tar:
            for member in tar.getmembers():
                if normalize_member_name(member.name) != wanted or not member.isfile():
                    continue
                extracted = tar.extractfile(member)
                if extracted is None:
                    return None
                with extracted:
                    return extracted.read()
    except (tarfile.TarError, OSError) as exc:
        raise ConversionError(f"Failed to read {member_path} from {archive_path}: {exc}") from exc
    return None


def write_file(
    path: Path,
    data: bytes,
    mode: int = 0o644,
    logger: Optional[logging.Logger] = None,
) -> None:
    """Atomically write ``data`` to ``path`` and apply ``mode``.

    The content goes to a temporary sibling first and is renamed into place,
    so a failed write never leaves a truncated file behind. Failing to apply
    the permissions is only reported as a warning.
    """
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=str(path.parent))
    except OSError as exc:
        raise ConversionError(f"Unable to write {path}: {exc}") from exc

    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "wb") as output:
            output.write(data)
            output.flush()
            os.fsync(output.fileno())
        os.replace(tmp_path, path)
    except OSError as exc:
        tmp_path.unlink(missing_ok=True)
        raise ConversionError(f"Unable to write {path}: {exc}") from exc

    try:
        path.chmod(mode)
    except OSError as exc:
        if logger:
            logger.warning("Could not chmod %s: %s", path, exc)


def _member_target(destination: Path, member_name: str) -> Path:
    """Map an archive member name into ``destination``.

    Rejects names that climb out of the tree and names whose parent path
    runs through a symlink extracted earlier.
    """
    relative = os.path.normpath(member_name.lstrip("/"))
    if relative == ".":
        return destination
    if relative == os.pardir or relative.startswith(os.pardir + os.sep):
        raise ConversionError(f"Unsafe archive path detected: {member_name}")

    target = destination / relative
    for parent in Path(relative).parents:
        if parent != Path(".") and (destination / parent).is_symlink():
            raise ConversionError(f"Unsafe archive path through symlink: {member_name}")
    return target


def _clear_target(target: Path) -> None:
    if target.is_symlink() or (target.exists() and not target.is_dir()):
        target.unlink()


def _extract_regular_file(
    tar: TarFile,
    member: TarInfo,
    target: Path,
) -> None:
    """Extract a single regular file from a tar archive safely."""
    target.parent.mkdir(parents=True, exist_ok=True)
    _clear_target(target)

    extracted = tar.extractfile(member)
    if extracted is None:
        raise ConversionError(f"Unable to read tar member: {member.name}")

    with extracted, target.open("wb") as output:
        shutil.copyfileobj(extracted, output)

    target.chmod(member.mode & 0o7777)


def safe_extract_tar(
    tar: TarFile,
    destination: Path,
    logger: Optional[logging.Logger] = None,
) -> None:
    """Safely extract a tar archive, keeping what ``tar xpf`` keeps.

    - Member paths may not leave ``destination`` or pass through a symlink
    - Symlinks are recreated verbatim, absolute ones included
    - Hard links are recreated when their source is inside the tree
    - Permission bits including setuid, setgid and sticky are preserved
    - Devices and FIFOs are skipped
    """
    destination.mkdir(parents=True, exist_ok=True)
    directory_modes: list[tuple[Path, int]] = []

    for member in tar.getmembers():
        target = _member_target(destination, member.name)

        if member.issym():
            target.parent.mkdir(parents=True, exist_ok=True)
            _clear_target(target)
            os.symlink(member.linkname, target)
            continue

        if member.islnk():
            source = _member_target(destination, member.linkname)
            if not source.exists() and not source.is_symlink():
                raise ConversionError(f"Hard link {member.name} points to missing {member.linkname}")
            target.parent.mkdir(parents=True, exist_ok=True)
            _clear_target(target)
            try:
                os.link(source, target, follow_symlinks=False)
            except OSError as exc:
                raise ConversionError(f"Unable to link {member.name} to {member.linkname}: {exc}") from exc
            continue

        if member.isdev() or member.isfifo():
            if logger:
                logger.warning("Skipping device or FIFO archive member: %s", member.name)
            continue

        if member.isdir():
            if target.is_symlink():
                raise ConversionError(f"Directory member replaces a symlink: {member.name}")
            target.mkdir(parents=True, exist_ok=True)
            directory_modes.append((target, member.mode & 0o7777))
            continue

        if member.isfile():
            _extract_regular_file(tar, member, target)
            continue

        if logger:
            logger.warning("Skipping unsupported archive member type: %s", member.name)

    # Directory modes last, so read-only directories can still be filled.
    for directory, mode in reversed(directory_modes):
        directory.chmod(mode)


def strip_ansi_escapes(text: str) -> str:
    """Remove ANSI terminal escape codes from a log line."""
    return ANSI_ESCAPE_RE.sub("", text)


def run_command(
    cmd: list[str],
    logger: logging.Logger,
    cwd: Optional[Path] = None,
    env: Optional[dict[str, str]] = None,
    log_callback: LogCallback = None,
    check: bool = True,
    verbose: int = 0,
) -> tuple[int, list[str]]:
    """Run a command and collect combined stdout/stderr line-by-line.

    ``verbose`` controls how loudly the command is reported:
    0 logs everything at debug level, 1 announces the command at info level,
    2 also streams every output line at info level and to ``log_callback``.
    """
    command_line = " ".join(cmd)
    if verbose >= 1:
        logger.info("Running command: %s", command_line)
        if log_callback:
            log_callback(command_line)
    else:
        logger.debug("Running command: %s", command_line)

    process_env = os.environ.copy()
    if env:
        process_env.update(env)

    try:
        process = subprocess.Popen(
            cmd,
            cwd=str(cwd) if cwd else None,
            env=process_env,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            bufsize=1,
        )
    except OSError as exc:
        raise CommandExecutionError(f"Unable to run {command_line}: {exc}") from exc

    output_lines: list[str] = []
    assert process.stdout is not None

    for line in iter(process.stdout.readline, ""):
        raw = line.rstrip("\n")
        stripped = strip_ansi_escapes(raw).strip()
        output_lines.append(stripped)
        if not stripped:
            continue
        if verbose >= 2:
            logger.info(stripped)
            if log_callback:
                log_callback(stripped)
        else:
            logger.debug(stripped)

    process.wait()

    if check and process.returncode != 0:
        joined = "\n".join(output_lines)
        raise CommandExecutionError(
            f"Command failed with exit code {process.returncode}: {command_line}\n{joined}"
        )

    return process.returncode, output_lines
