"""
resolver.py

Responsibility: Map a recipe + version onto one concrete source location.

The recipe `url` is a Jinja2 template with `version` as its only variable, e.g.
`https://github.com/temujinlabs/shinkansen/archive/refs/tags/v{{ version }}.tar.gz`.

The resolver also decides the build layout: either the extracted archive root
is the build root, or a named subdirectory inside it is.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from pathlib import Path

from jinja2 import Environment, StrictUndefined, TemplateError, meta

from bottler.errors import ConfigurationError
from bottler.recipe import Recipe, validate_version

_env = Environment(autoescape=False, undefined=StrictUndefined)


class Layout(str, enum.Enum):
    ROOT = "root"
    SUBDIRECTORY = "subdirectory"


@dataclass(frozen=True)
class ResolvedSource:
    url: str
    version: str
    build_subdirectory: str | None = None

    @property
    def layout(self) -> Layout:
        return Layout.SUBDIRECTORY if self.build_subdirectory else Layout.ROOT

    def build_root(self, extraction_root: Path) -> Path:
        if self.build_subdirectory is None:
            return extraction_root
        root = extraction_root / self.build_subdirectory
        if not root.is_dir():
            raise ConfigurationError(
                f"build_subdirectory {self.build_subdirectory!r} not found in fetched archive"
            )
        return root


def render_url(template: str, version: str) -> str:
    """Render a URL template, requiring it to reference `version` and nothing else."""
    try:
        ast = _env.parse(template)
    except TemplateError as e:
        raise ConfigurationError(f"Invalid URL template {template!r}: {e}") from e

    names = meta.find_undeclared_variables(ast)
    if "version" not in names:
        raise ConfigurationError(f"URL template does not substitute `version`: {template!r}")
    unknown = sorted(names - {"version"})
    if unknown:
        raise ConfigurationError(f"URL template references unknown variables {unknown}: {template!r}")

    try:
        url = _env.from_string(template).render(version=version).strip()
    except TemplateError as e:
        raise ConfigurationError(f"Failed rendering URL template {template!r}: {e}") from e
    if not url:
        raise ConfigurationError("URL template rendered to an empty string")
    if version not in url:
        raise ConfigurationError(f"Rendered URL does not contain version {version!r}: {url}")
    return url


def resolve(recipe: Recipe, version: str | None = None) -> ResolvedSource:
    v = validate_version(version or recipe.version or "")
    return ResolvedSource(
        url=render_url(recipe.url, v),
        version=v,
        build_subdirectory=recipe.build_subdirectory,
    )
