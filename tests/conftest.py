"""Shared pytest fixtures for tgz2slack tests."""

from __future__ import annotations

import io
import tarfile
from pathlib import Path
from typing import Callable, Optional

import pytest

PLY_SLACK_DESC = """\
# HOW TO EDIT THIS FILE:
# The "handy ruler" below makes it easier to edit a package description.

   |-----handy-ruler------------------------------------------------------|
ply: ply (Light-weight dynamic tracer for Linux)
ply:
ply: ply dynamically instruments the running kernel to aggregate and
ply: extract user-defined data.
ply:
ply: Homepage: https://wkz.github.io/ply
ply:
"""


@pytest.fixture
def ply_slack_desc() -> str:
    return PLY_SLACK_DESC


@pytest.fixture
def make_tarball(tmp_path: Path) -> Callable[..., Path]:
    """Build a gzip'd tarball from ``{member: content}``; ``None`` content means a directory."""

    def _make(
        filename: str,
        members: dict[str, Optional[str]],
        modes: Optional[dict[str, int]] = None,
    ) -> Path:
        modes = modes or {}
        archive_path = tmp_path / filename
        with tarfile.open(archive_path, mode="w:gz") as tar:
            for name, content in members.items():
                info = tarfile.TarInfo(name)
                if content is None:
                    info.type = tarfile.DIRTYPE
                    info.mode = modes.get(name, 0o755)
                    tar.addfile(info)
                    continue
                data = content.encode("utf-8")
                info.size = len(data)
                info.mode = modes.get(name, 0o644)
                tar.addfile(info, io.BytesIO(data))
        return archive_path

    return _make


@pytest.fixture
def ply_package(make_tarball: Callable[..., Path]) -> Path:
    return make_tarball(
        "ply-2.1.1-x86_64-1.tgz",
        {
            "./": None,
            "./etc/": None,
            "./etc/ply.conf": "mode=tracepoint\n",
            "./usr/": None,
            "./usr/bin/": None,
            "./usr/bin/ply": "#!/bin/sh\necho ply\n",
            "./install/": None,
            "./install/slack-desc": PLY_SLACK_DESC,
            "./install/doinst.sh": "( cd usr/bin ; ln -sf ply ply-trace )\n",
            "./install/delete.sh": "   \n",
        },
        modes={"./usr/bin/ply": 0o755, "./install/doinst.sh": 0o755},
    )
