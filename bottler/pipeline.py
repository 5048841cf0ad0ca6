"""
pipeline.py

Responsibility: Run one recipe through its stages, in order, failing fast.

    RESOLVED -> FETCHED -> VERIFIED -> BUILT -> INSTALLED -> ACCEPTED

Each stage raises its own `PipelineError` subclass. Nothing is built from
bytes that failed verification. The binary is staged inside `<prefix>/bin` and
only replaces the final path once its `--version` check has passed. Scratch
files live in a temporary work directory that is removed when the run ends
(unless `keep_workdir` is set).
"""

from __future__ import annotations

import enum
import logging
import shutil
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Sequence

from bottler.acceptance import run_acceptance
from bottler.build import Runner, assemble_invocation, run_build, subprocess_runner
from bottler.errors import AcceptanceError
from bottler.fetcher import ArchiveFetcher, extract_archive
from bottler.installer import stage_binary
from bottler.recipe import Recipe
from bottler.resolver import resolve
from bottler.verifier import Trust, verify

logger = logging.getLogger(__name__)


class Stage(str, enum.Enum):
    RESOLVED = "resolved"
    FETCHED = "fetched"
    VERIFIED = "verified"
    BUILT = "built"
    INSTALLED = "installed"
    ACCEPTED = "accepted"


@dataclass
class PipelineResult:
    recipe: Recipe
    stage: Stage
    url: str = ""
    digest: str = ""
    trust: Trust | None = None
    installed_path: Path | None = None
    acceptance_output: str = ""
    warnings: list[str] = field(default_factory=list)

    @property
    def unverified(self) -> bool:
        return self.trust is Trust.UNVERIFIED


def run_pipeline(
    recipe: Recipe,
    *,
    prefix: str | Path,
    version: str | None = None,
    fetcher: ArchiveFetcher | None = None,
    runner: Runner = subprocess_runner,
    build_args: Sequence[str] = (),
    require_digest: bool = False,
    keep_workdir: bool = False,
) -> PipelineResult:
    source = resolve(recipe, version)
    recipe = recipe.with_version(source.version)
    result = PipelineResult(recipe=recipe, stage=Stage.RESOLVED, url=source.url)
    logger.info("Resolved %s %s -> %s (%s layout)", recipe.name, source.version, source.url, source.layout.value)

    archive = (fetcher or ArchiveFetcher()).fetch(source.url)
    result.stage = Stage.FETCHED

    verification = verify(archive.data, recipe.sha256, strict=require_digest)
    result.digest = verification.digest
    result.trust = verification.trust
    if not verification.verified:
        result.warnings.append(f"unverified source: no sha256 declared (computed {verification.digest})")
    result.stage = Stage.VERIFIED

    workdir = Path(tempfile.mkdtemp(prefix=f"bottler-{recipe.name}-"))
    try:
        extraction_root = extract_archive(archive, workdir / "src")
        build_root = source.build_root(extraction_root)

        invocation = assemble_invocation(
            toolchain=recipe.toolchain,
            workdir=build_root,
            entry=recipe.entry,
            output=workdir / "stage" / recipe.name,
            version_symbol=recipe.version_symbol,
            version=source.version,
            extra_args=build_args,
        )
        built = run_build(invocation, runner=runner)
        result.stage = Stage.BUILT

        staged = stage_binary(built, Path(prefix) / "bin")
        result.stage = Stage.INSTALLED
    finally:
        if keep_workdir:
            logger.info("Keeping work directory %s", workdir)
        else:
            shutil.rmtree(workdir, ignore_errors=True)

    # The staged copy is tested before it replaces whatever is at the final path.
    try:
        acceptance = run_acceptance(staged.path, recipe.name, source.version)
    except AcceptanceError:
        staged.discard()
        raise
    result.acceptance_output = acceptance.stdout
    result.installed_path = staged.promote().path
    result.stage = Stage.ACCEPTED
    return result
