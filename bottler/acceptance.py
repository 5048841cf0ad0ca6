"""
acceptance.py

Responsibility: Black-box check of the installed binary.

Runs `<binary> --version` and requires stdout to contain `"<name> <version>"`,
the same version string the build injected.
"""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path

from bottler.errors import AcceptanceError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AcceptanceResult:
    expected: str
    stdout: str
    passed: bool


def expected_banner(name: str, version: str) -> str:
    return f"{name} {version}"


def run_acceptance(path: str | Path, name: str, version: str, *, timeout: float = 30.0) -> AcceptanceResult:
    expected = expected_banner(name, version)
    cmd = [str(path), "--version"]
    try:
        proc = subprocess.run(cmd, check=False, capture_output=True, text=True, timeout=timeout)
    except subprocess.TimeoutExpired as e:
        raise AcceptanceError(f"{' '.join(cmd)} timed out after {timeout}s") from e
    except OSError as e:
        raise AcceptanceError(f"Cannot run {path}: {e}") from e

    if proc.returncode != 0:
        raise AcceptanceError(f"{' '.join(cmd)} exited {proc.returncode}: {proc.stderr.strip()}")
    if expected not in proc.stdout:
        raise AcceptanceError(f"Expected {expected!r} in `--version` output, got {proc.stdout.strip()!r}")

    logger.info("Acceptance passed: %s", expected)
    return AcceptanceResult(expected=expected, stdout=proc.stdout, passed=True)
