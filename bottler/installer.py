"""
installer.py

Responsibility: Place a built binary into the output bin directory.

Installation is two-step. `stage_binary` copies the binary, under its own
name, into a hidden directory inside `bin_dir`; `StagedBinary.promote` moves
it onto the final path with `os.replace`. The final path therefore holds
either the previous file or the complete new one, and a staged binary that
is discarded never touches it.
"""

from __future__ import annotations

import logging
import os
import shutil
import stat
import tempfile
from dataclasses import dataclass
from pathlib import Path

from bottler.errors import InstallError

logger = logging.getLogger(__name__)

_EXEC_BITS = stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH


@dataclass(frozen=True)
class InstalledArtifact:
    path: Path

    @property
    def name(self) -> str:
        return self.path.name


@dataclass(frozen=True)
class StagedBinary:
    path: Path
    destination: Path

    def promote(self) -> InstalledArtifact:
        try:
            os.replace(self.path, self.destination)
        except OSError as e:
            raise InstallError(f"Failed promoting {self.path} to {self.destination}: {e}") from e
        finally:
            self.discard()
        logger.info("Installed %s", self.destination)
        return InstalledArtifact(path=self.destination)

    def discard(self) -> None:
        shutil.rmtree(self.path.parent, ignore_errors=True)


def stage_binary(built: str | Path, bin_dir: str | Path) -> StagedBinary:
    src = Path(built)
    dst_dir = Path(bin_dir)

    stage_dir: str | None = None
    try:
        dst_dir.mkdir(parents=True, exist_ok=True)
        stage_dir = tempfile.mkdtemp(prefix=f".{src.name}.", dir=dst_dir)
        staged = Path(stage_dir) / src.name
        shutil.copy2(src, staged)
        os.chmod(staged, os.stat(staged).st_mode | _EXEC_BITS)
    except OSError as e:
        if stage_dir is not None:
            shutil.rmtree(stage_dir, ignore_errors=True)
        raise InstallError(f"Failed installing {src} into {dst_dir}: {e}") from e

    logger.debug("Staged %s", staged)
    return StagedBinary(path=staged, destination=dst_dir / src.name)


def install_binary(built: str | Path, bin_dir: str | Path) -> InstalledArtifact:
    return stage_binary(built, bin_dir).promote()
