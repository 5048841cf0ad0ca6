"""
bottler package

This package implements a recipe-driven build pipeline for a single CLI binary.

Key responsibilities are split across modules:
- `recipe.py`: parse a recipe file into an immutable `Recipe`
- `resolver.py`: render the versioned source URL and pick the build layout
- `fetcher.py`: fetch and unpack source archives (HTTP via requests, or file://)
- `verifier.py`: SHA-256 gate over the fetched bytes
- `build.py`: deterministic toolchain invocation with version injection
- `installer.py`: atomic placement of the built binary under `<prefix>/bin`
- `acceptance.py`: `--version` smoke test of the installed binary
- `pipeline.py`: the ordered, fail-fast state machine tying the stages together
- `renderer.py`: export a recipe back into its declarative formula form
- `cli.py`: CLI entrypoint
"""

from __future__ import annotations

__all__ = ["__version__"]

__version__ = "0.1.0"
