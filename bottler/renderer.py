"""
renderer.py

Responsibility: Render a recipe back into its declarative Homebrew formula.

Rules:
- The template ships inside the package (`templates/formula.rb.j2`).
- Rendering uses StrictUndefined so a missing field fails loudly.
- Output uses '\n' newlines and ends with exactly one trailing newline.

This module intentionally does NOT fetch or verify anything; callers pass in
the digest they want published.
"""

from __future__ import annotations

import re
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, StrictUndefined, TemplateError

from bottler.errors import ConfigurationError
from bottler.recipe import Recipe
from bottler.resolver import render_url

TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"
FORMULA_TEMPLATE = "formula.rb.j2"


def formula_class_name(name: str) -> str:
    """`shinkansen` -> `Shinkansen`, `foo-bar_baz` -> `FooBarBaz`."""
    parts = [p for p in re.split(r"[^0-9A-Za-z]+", name) if p]
    if not parts:
        raise ConfigurationError(f"Cannot derive a formula class name from {name!r}")
    return "".join(p[:1].upper() + p[1:] for p in parts)


def render_formula(recipe: Recipe, version: str, digest: str | None = None) -> str:
    env = Environment(
        loader=FileSystemLoader(str(TEMPLATES_DIR)),
        autoescape=False,
        undefined=StrictUndefined,
        keep_trailing_newline=True,
    )
    context = {
        "class_name": formula_class_name(recipe.name),
        "name": recipe.name,
        "description": recipe.description,
        "homepage": recipe.homepage,
        "url": render_url(recipe.url, version),
        "sha256": recipe.sha256 if digest is None else digest,
        "license": recipe.license,
        "toolchain": recipe.toolchain,
        "entry": recipe.entry,
        "build_subdirectory": recipe.build_subdirectory,
        "version_symbol": recipe.version_symbol,
    }
    try:
        out = env.get_template(FORMULA_TEMPLATE).render(**context)
    except TemplateError as e:
        raise ConfigurationError(f"Failed rendering formula for {recipe.name}") from e
    return out.rstrip("\n") + "\n"
