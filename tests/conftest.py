"""
Shared fixtures: in-memory source archives and a fake Go toolchain.

The fake toolchain honours `-o` and `-ldflags "... -X main.version=V"` and
writes a shell script that prints `<name> V` for `--version`, so tests can run
the whole pipeline without Go installed.
"""

from __future__ import annotations

import gzip
import io
import subprocess
import tarfile
from pathlib import Path
from typing import Any

import pytest

from bottler.recipe import Recipe, recipe_from_mapping

GO_MAIN = 'package main\n\nvar version = "dev"\n'


def make_tarball(files: dict[str, str], *, top: str | None = "shinkansen-0.1.0") -> bytes:
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w") as tf:
        for rel, text in sorted(files.items()):
            name = f"{top}/{rel}" if top else rel
            data = text.encode("utf-8")
            info = tarfile.TarInfo(name)
            info.size = len(data)
            info.mode = 0o644
            tf.addfile(info, io.BytesIO(data))
    # Fixed gzip mtime keeps the bytes, and so the digest, stable across calls.
    return gzip.compress(buf.getvalue(), mtime=0)


def root_layout_archive() -> bytes:
    return make_tarball({"go.mod": "module shinkansen\n", "cmd/shinkansen/main.go": GO_MAIN})


def nested_layout_archive() -> bytes:
    return make_tarball(
        {
            "README.md": "monorepo\n",
            "shinkansen/go.mod": "module shinkansen\n",
            "shinkansen/cmd/shinkansen/main.go": GO_MAIN,
        }
    )


class FakeGo:
    """Stands in for `subprocess_runner`; records every call."""

    def __init__(self, *, returncode: int = 0, banner_version: str | None = None) -> None:
        self.returncode = returncode
        self.banner_version = banner_version
        self.calls: list[dict[str, Any]] = []

    def __call__(self, cmd: list[str], *, cwd: Path, env: dict[str, str] | None = None) -> subprocess.CompletedProcess:
        self.calls.append({"cmd": list(cmd), "cwd": Path(cwd), "env": dict(env or {})})
        if self.returncode != 0:
            return subprocess.CompletedProcess(cmd, self.returncode, stdout="compile error: undefined: foo\n")

        entry = Path(cwd) / cmd[-1]
        if not entry.is_dir():
            return subprocess.CompletedProcess(cmd, 1, stdout=f"stat {cmd[-1]}: directory not found\n")

        output = Path(cmd[cmd.index("-o") + 1])
        ldflags = cmd[cmd.index("-ldflags") + 1].split()
        injected = ldflags[ldflags.index("-X") + 1].split("=", 1)[1]
        version = self.banner_version or injected

        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(
            "#!/bin/sh\n"
            'if [ "$1" = "--version" ]; then\n'
            f'  echo "{output.name} {version}"\n'
            "  exit 0\n"
            "fi\n"
            "exit 1\n",
            encoding="utf-8",
        )
        output.chmod(0o755)
        return subprocess.CompletedProcess(cmd, 0, stdout="")

    @property
    def called(self) -> bool:
        return bool(self.calls)


def recipe_data(**overrides: Any) -> dict[str, Any]:
    data: dict[str, Any] = {
        "name": "shinkansen",
        "description": "Keyboard-driven TUI for Jira. Fast as a bullet train.",
        "homepage": "https://github.com/temujinlabs/shinkansen",
        "url": "https://github.com/temujinlabs/shinkansen/archive/refs/tags/v{{ version }}.tar.gz",
        "sha256": "",
        "license": "MIT",
        "toolchain": "go",
        "entry": "./cmd/shinkansen",
    }
    data.update(overrides)
    return data


def make_recipe(**overrides: Any) -> Recipe:
    return recipe_from_mapping(recipe_data(**overrides))


@pytest.fixture
def source_dir(tmp_path: Path) -> Path:
    d = tmp_path / "mirror"
    d.mkdir()
    return d


@pytest.fixture
def prefix(tmp_path: Path) -> Path:
    return tmp_path / "prefix"


def file_url_template(directory: Path) -> str:
    return f"file://{directory}/shinkansen-{{{{ version }}}}.tar.gz"
