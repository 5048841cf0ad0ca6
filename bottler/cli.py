"""
cli.py

Responsibility: CLI entrypoint for bottler.

Commands:
1) `build`: resolve -> fetch -> verify -> build -> install -> accept
2) `digest`: resolve -> fetch, print the sha256 to pin in the recipe
3) `formula`: resolve -> fetch -> verify, print the Homebrew formula

This module orchestrates behavior and maps errors to exit codes; the stages
themselves live in their own modules:
- Recipe parsing: `recipe.py`
- Pipeline: `pipeline.py`
- Formula export: `renderer.py`
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path

from bottler.errors import PipelineError
from bottler.fetcher import ArchiveFetcher
from bottler.pipeline import run_pipeline
from bottler.recipe import Recipe, parse_recipe
from bottler.renderer import render_formula
from bottler.resolver import resolve
from bottler.verifier import compute_digest, verify

logger = logging.getLogger("bottler")

LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)s: %(message)s"


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(level=logging.DEBUG if verbose else logging.INFO, format=LOG_FORMAT)


def _load(args: argparse.Namespace) -> tuple[Recipe, str | None]:
    recipe = parse_recipe(args.recipe_path)
    version = args.pkg_version or os.environ.get("BOTTLER_PKG_VERSION") or None
    return recipe, version


def build_cmd(args: argparse.Namespace) -> int:
    recipe, version = _load(args)
    prefix = Path(args.prefix or os.environ.get("BOTTLER_PREFIX") or "prefix").resolve()

    result = run_pipeline(
        recipe,
        prefix=prefix,
        version=version,
        build_args=args.build_arg or (),
        require_digest=bool(args.require_digest),
        keep_workdir=bool(args.keep_workdir),
    )

    for warning in result.warnings:
        print(f"WARNING: {warning}", file=sys.stderr)
    status = "installed (UNVERIFIED)" if result.unverified else "installed (verified)"
    print(f"{result.recipe.name} {result.recipe.version}: {status} -> {result.installed_path}")
    return 0


def digest_cmd(args: argparse.Namespace) -> int:
    recipe, version = _load(args)
    source = resolve(recipe, version)
    archive = ArchiveFetcher().fetch(source.url)
    print(f"{compute_digest(archive.data)}  {source.url}")
    return 0


def formula_cmd(args: argparse.Namespace) -> int:
    recipe, version = _load(args)
    source = resolve(recipe, version)
    archive = ArchiveFetcher().fetch(source.url)
    verification = verify(archive.data, recipe.sha256, strict=bool(args.require_digest))
    if not verification.verified:
        print(f"WARNING: unverified source, publishing computed sha256 {verification.digest}", file=sys.stderr)

    text = render_formula(recipe, source.version, verification.digest)
    if args.output:
        Path(args.output).write_text(text, encoding="utf-8", newline="\n")
    else:
        sys.stdout.write(text)
    return 0


def _add_common(p: argparse.ArgumentParser) -> None:
    p.add_argument("recipe_path", help="Path to the recipe file (YAML, or markdown with YAML frontmatter)")
    p.add_argument("--pkg-version", default=None, help="Version to build (overrides recipe.version; env BOTTLER_PKG_VERSION)")
    p.add_argument("-v", "--verbose", action="store_true", help="Debug logging")


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="bottler", description="bottler - verified, reproducible single-binary package builds")
    sub = p.add_subparsers(dest="command", required=True)

    b = sub.add_parser("build", help="Fetch, verify, build, install and test a recipe")
    _add_common(b)
    b.add_argument("--prefix", default=None, help="Install prefix; binary goes to <prefix>/bin (env BOTTLER_PREFIX, default: ./prefix)")
    b.add_argument("--build-arg", action="append", default=None, help="Extra argument passed through to the toolchain (repeatable); use the --build-arg=VALUE form for values starting with '-', e.g. --build-arg=-tags --build-arg=netgo")
    b.add_argument("--require-digest", action="store_true", help="Fail instead of warning when the recipe has no sha256")
    b.add_argument("--keep-workdir", action="store_true", help="Do not delete the temporary source/build directory")
    b.set_defaults(func=build_cmd)

    d = sub.add_parser("digest", help="Fetch the source archive and print its sha256")
    _add_common(d)
    d.set_defaults(func=digest_cmd)

    f = sub.add_parser("formula", help="Fetch, verify and print the recipe as a Homebrew formula")
    _add_common(f)
    f.add_argument("--output", default=None, help="Write the formula to this file instead of stdout")
    f.add_argument("--require-digest", action="store_true", help="Fail instead of warning when the recipe has no sha256")
    f.set_defaults(func=formula_cmd)

    return p


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    _configure_logging(bool(args.verbose))
    try:
        return int(args.func(args))
    except PipelineError as e:
        logger.debug("Pipeline aborted", exc_info=True)
        print(f"error [{e.stage}]: {e}", file=sys.stderr)
        return e.exit_code


if __name__ == "__main__":
    raise SystemExit(main())
