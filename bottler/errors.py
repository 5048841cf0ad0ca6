"""
errors.py

Responsibility: the pipeline's error taxonomy.

Every stage raises exactly one error type. Each carries the stage name it
belongs to and the process exit code the CLI maps it to.
"""

from __future__ import annotations


class PipelineError(RuntimeError):
    stage = "pipeline"
    exit_code = 1


class ConfigurationError(PipelineError):
    """Malformed recipe, bad URL template, or invalid version."""

    stage = "resolve"
    exit_code = 2


class FetchError(PipelineError):
    stage = "fetch"
    exit_code = 3


class IntegrityError(PipelineError):
    """Digest mismatch. Never downgraded to a warning when a digest is declared."""

    stage = "verify"
    exit_code = 4


class BuildError(PipelineError):
    stage = "build"
    exit_code = 5

    def __init__(self, message: str, *, output: str = "") -> None:
        super().__init__(message)
        self.output = output


class InstallError(PipelineError):
    stage = "install"
    exit_code = 6


class AcceptanceError(PipelineError):
    stage = "accept"
    exit_code = 7
