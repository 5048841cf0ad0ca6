"""
build.py

Responsibility: Assemble and execute one reproducible toolchain invocation.

The flag set is fixed:
- `-s -w` strip symbol and debug information
- `-X <namespace>.<symbol>=<version>` injects the declared version, which the
  acceptance test later reads back through `--version`

Host-supplied build arguments are passed through untouched, before the entry
module path. The binary is written to a staging path, never to the install
location.
"""

from __future__ import annotations

import logging
import os
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Mapping, Sequence

from bottler.errors import BuildError

logger = logging.getLogger(__name__)

STRIP_FLAGS = ("-s", "-w")

Runner = Callable[..., "subprocess.CompletedProcess[str]"]


@dataclass(frozen=True)
class BuildInvocation:
    toolchain: str
    workdir: Path
    entry: str
    output: Path
    ldflags: tuple[str, ...]
    extra_args: tuple[str, ...] = ()

    @property
    def version_flag(self) -> str:
        """The `<namespace>.<symbol>=<version>` operand of `-X`."""
        return self.ldflags[self.ldflags.index("-X") + 1]

    def argv(self) -> list[str]:
        return [
            self.toolchain,
            "build",
            "-trimpath",
            "-o",
            str(self.output),
            "-ldflags",
            " ".join(self.ldflags),
            *self.extra_args,
            self.entry,
        ]


def assemble_invocation(
    *,
    toolchain: str,
    workdir: str | Path,
    entry: str,
    output: str | Path,
    version_symbol: str,
    version: str,
    extra_args: Sequence[str] = (),
) -> BuildInvocation:
    return BuildInvocation(
        toolchain=toolchain,
        workdir=Path(workdir),
        entry=entry,
        output=Path(output),
        ldflags=(*STRIP_FLAGS, "-X", f"{version_symbol}={version}"),
        extra_args=tuple(extra_args),
    )


def _toolchain_env_deterministic(base_env: Mapping[str, str]) -> dict[str, str]:
    """
    Fixed timestamps and locale so repeated builds of the same source agree.
    Values already set by the host win.
    """
    env = dict(base_env)
    env.setdefault("SOURCE_DATE_EPOCH", "0")
    env.setdefault("TZ", "UTC")
    env.setdefault("LC_ALL", "C")
    return env


def subprocess_runner(cmd: list[str], *, cwd: Path, env: dict[str, str] | None = None) -> "subprocess.CompletedProcess[str]":
    return subprocess.run(cmd, cwd=str(cwd), env=env, check=False, stdout=subprocess.PIPE, stderr=subprocess.STDOUT, text=True)


def run_build(invocation: BuildInvocation, *, runner: Runner = subprocess_runner) -> Path:
    """
    Execute `invocation` and return the path of the produced binary.

    Raises BuildError on a non-zero exit, a missing toolchain, or a missing output.
    """
    cmd = invocation.argv()
    logger.info("Building in %s: %s", invocation.workdir, " ".join(cmd))
    invocation.output.parent.mkdir(parents=True, exist_ok=True)

    env = _toolchain_env_deterministic(os.environ)
    try:
        proc = runner(cmd, cwd=invocation.workdir, env=env)
    except FileNotFoundError as e:
        raise BuildError(f"Toolchain not found: {invocation.toolchain}") from e
    except OSError as e:
        raise BuildError(f"Could not start toolchain {invocation.toolchain}: {e}") from e

    output = proc.stdout or ""
    if proc.returncode != 0:
        raise BuildError(f"Command failed (exit {proc.returncode}): {' '.join(cmd)}\n\n{output}", output=output)
    if not invocation.output.is_file():
        raise BuildError(f"Toolchain exited 0 but produced no binary at {invocation.output}", output=output)
    return invocation.output
