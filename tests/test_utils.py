"""Tests for archive, file and command helpers."""

from __future__ import annotations

import io
import logging
import os
import stat
import sys
import tarfile

import pytest

from tgz2slack.utils import (
    CommandExecutionError,
    ConversionError,
    extract_member,
    list_archive_members,
    normalize_member_name,
    run_command,
    safe_extract_tar,
    write_file,
)


def test_normalize_member_name():
    assert normalize_member_name("./etc/foo.conf") == "etc/foo.conf"
    assert normalize_member_name("/usr/bin/x") == "usr/bin/x"
    assert normalize_member_name(".hidden/file") == ".hidden/file"


def test_list_archive_members_reports_modes(make_tarball):
    archive = make_tarball(
        "pkg-1.tgz",
        {"./etc/": None, "./etc/pkg.conf": "a=b\n", "./usr/bin/pkg": "bin"},
        modes={"./usr/bin/pkg": 0o755},
    )
    members = list_archive_members(archive)
    assert [(member.mode, member.path, member.is_file) for member in members] == [
        ("drwxr-xr-x", "etc", False),
        ("-rw-r--r--", "etc/pkg.conf", True),
        ("-rwxr-xr-x", "usr/bin/pkg", True),
    ]


def test_extract_member(make_tarball):
    archive = make_tarball("pkg-1.tgz", {"./install/slack-desc": "pkg: pkg (x)\n"})
    assert extract_member(archive, "install/slack-desc") == b"pkg: pkg (x)\n"
    assert extract_member(archive, "install/doinst.sh") is None


def test_archive_helpers_reject_garbage(tmp_path):
    garbage = tmp_path / "garbage.tgz"
    garbage.write_bytes(b"nope")
    with pytest.raises(ConversionError):
        list_archive_members(garbage)
    with pytest.raises(ConversionError):
        extract_member(garbage, "install/slack-desc")


def test_write_file_replaces_atomically(tmp_path):
    target = tmp_path / "install" / "slack-desc"
    write_file(target, b"first\n", 0o644)
    write_file(target, b"second\n", 0o755)
    assert target.read_bytes() == b"second\n"
    assert stat.S_IMODE(target.stat().st_mode) == 0o755
    assert [path.name for path in target.parent.iterdir()] == ["slack-desc"]


def test_write_file_failure_is_a_conversion_error(tmp_path):
    blocker = tmp_path / "install"
    blocker.write_text("a file where a directory should be")
    with pytest.raises(ConversionError):
        write_file(blocker / "slack-desc", b"data")


def test_safe_extract_rejects_traversal(tmp_path):
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w") as tar:
        info = tarfile.TarInfo("../escape.txt")
        info.size = 1
        tar.addfile(info, io.BytesIO(b"x"))
    buffer.seek(0)

    with tarfile.open(fileobj=buffer, mode="r") as tar:
        with pytest.raises(ConversionError):
            safe_extract_tar(tar, tmp_path / "dest")


def _symlink_archive(entries):
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w") as tar:
        for name, target in entries:
            info = tarfile.TarInfo(name)
            if target is None:
                info.size = 1
                tar.addfile(info, io.BytesIO(b"x"))
                continue
            info.type = tarfile.SYMTYPE
            info.linkname = target
            tar.addfile(info)
    buffer.seek(0)
    return buffer


def test_safe_extract_recreates_symlinks_verbatim(tmp_path):
    buffer = _symlink_archive(
        [("lib/inside", "real"), ("lib/outside", "../../etc/passwd"), ("lib/abs.so", "/usr/lib/abs.so.1")]
    )
    dest = tmp_path / "dest"
    with tarfile.open(fileobj=buffer, mode="r") as tar:
        safe_extract_tar(tar, dest, logging.getLogger("test"))

    assert os.readlink(dest / "lib" / "inside") == "real"
    assert os.readlink(dest / "lib" / "outside") == "../../etc/passwd"
    assert os.readlink(dest / "lib" / "abs.so") == "/usr/lib/abs.so.1"


def test_safe_extract_rejects_writes_through_symlinks(tmp_path):
    outside = tmp_path / "outside"
    outside.mkdir()
    buffer = _symlink_archive([("escape", str(outside)), ("escape/owned.txt", None)])

    with tarfile.open(fileobj=buffer, mode="r") as tar:
        with pytest.raises(ConversionError, match="through symlink"):
            safe_extract_tar(tar, tmp_path / "dest")
    assert list(outside.iterdir()) == []


def test_run_command_collects_output():
    logger = logging.getLogger("test")
    seen: list[str] = []
    code, lines = run_command(
        [sys.executable, "-c", "print('hello'); print('world')"],
        logger,
        log_callback=seen.append,
        verbose=2,
    )
    assert code == 0
    assert lines == ["hello", "world"]
    assert seen[-2:] == ["hello", "world"]


def test_run_command_quiet_does_not_call_back():
    seen: list[str] = []
    run_command([sys.executable, "-c", "print('hidden')"], logging.getLogger("test"), log_callback=seen.append)
    assert seen == []


def test_run_command_failure_names_the_command():
    with pytest.raises(CommandExecutionError, match="exit code 3"):
        run_command([sys.executable, "-c", "import sys; sys.exit(3)"], logging.getLogger("test"))


def test_run_command_missing_binary():
    with pytest.raises(CommandExecutionError, match="no-such-tool-tgz2slack"):
        run_command(["no-such-tool-tgz2slack"], logging.getLogger("test"))
