"""
recipe.py

Responsibility: Load and parse a recipe file into a deterministic, typed model.

A recipe is either:
- a markdown file with YAML frontmatter at the top (delimited by '---'), or
- a plain YAML document.

The pipeline treats the parsed `Recipe` as the single source of truth.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, replace
from pathlib import Path, PurePosixPath
from typing import Any

import yaml

from bottler.errors import ConfigurationError

DEFAULT_VERSION_SYMBOL = "main.version"

_HEX_DIGEST = re.compile(r"^[0-9a-fA-F]{64}$")
_SYMBOL = re.compile(r"^[A-Za-z_][\w./-]*\.[A-Za-z_]\w*$")

_REQUIRED = ("name", "description", "homepage", "url", "license", "entry", "toolchain")


@dataclass(frozen=True)
class Recipe:
    """One package recipe. `version` is bound at invocation time."""

    name: str
    description: str
    homepage: str
    url: str
    license: str
    entry: str
    toolchain: str
    sha256: str = ""
    build_subdirectory: str | None = None
    version_symbol: str = DEFAULT_VERSION_SYMBOL
    version: str | None = None

    @property
    def unverified(self) -> bool:
        return not self.sha256

    def with_version(self, version: str) -> "Recipe":
        return replace(self, version=validate_version(version))


def validate_version(version: str) -> str:
    v = str(version or "").strip()
    if not v:
        raise ConfigurationError("Version is required (set `version` in the recipe or pass --pkg-version).")
    if any(ch.isspace() for ch in v):
        raise ConfigurationError(f"Version must not contain whitespace: {version!r}")
    return v


def _parse_yaml_frontmatter(text: str) -> tuple[dict[str, Any] | None, str]:
    """
    If the markdown begins with YAML frontmatter delimited by '---', parse it.
    Returns (frontmatter_dict_or_none, remaining_markdown_text).
    """
    if not text.startswith("---\n"):
        return None, text

    end = text.find("\n---\n", 4)
    if end == -1:
        # A plain YAML document may also start with '---'.
        return None, text

    fm_text = text[4:end]
    rest = text[end + len("\n---\n") :]
    data = _safe_load(fm_text)
    return data, rest


def _safe_load(text: str) -> dict[str, Any]:
    try:
        data = yaml.safe_load(text) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Recipe is not valid YAML: {e}") from e
    if not isinstance(data, dict):
        raise ConfigurationError("Recipe must be a mapping/object at the top level.")
    return data


def _string_field(data: dict[str, Any], key: str, *, required: bool, exact: bool = False) -> str:
    """
    Read a scalar field as a string.

    With `exact`, YAML numbers are refused: `1.10` loads as the float 1.1 and
    an all-digit digest may load as an int, so their text cannot be recovered.
    """
    value = data.get(key)
    if value is None:
        if required:
            raise ConfigurationError(f"Recipe must define `{key}`.")
        return ""
    if exact and not isinstance(value, str):
        raise ConfigurationError(f"`{key}` must be a string; quote it in the recipe (got {value!r}).")
    if not isinstance(value, (str, int, float)) or isinstance(value, bool):
        raise ConfigurationError(f"`{key}` must be a string.")
    out = str(value).strip()
    if required and not out:
        raise ConfigurationError(f"Recipe must define a non-empty `{key}`.")
    return out


def _normalize_subdirectory(raw: str) -> str | None:
    if not raw:
        return None
    p = PurePosixPath(raw)
    if p.is_absolute() or ".." in p.parts:
        raise ConfigurationError(f"`build_subdirectory` must be a relative path inside the archive: {raw!r}")
    normalized = str(p)
    return None if normalized == "." else normalized


def recipe_from_mapping(data: dict[str, Any]) -> Recipe:
    """
    Validate a mapping and build a `Recipe`.

    Required keys: name, description, homepage, url, license, entry, toolchain.
    Optional keys: sha256, build_subdirectory, version_symbol, version.
    """
    fields = {key: _string_field(data, key, required=True) for key in _REQUIRED}

    sha256 = _string_field(data, "sha256", required=False, exact=True).lower()
    if sha256 and not _HEX_DIGEST.match(sha256):
        raise ConfigurationError("`sha256` must be empty or a 64-character hex digest.")

    subdir = _normalize_subdirectory(_string_field(data, "build_subdirectory", required=False))

    symbol = _string_field(data, "version_symbol", required=False) or DEFAULT_VERSION_SYMBOL
    if not _SYMBOL.match(symbol):
        raise ConfigurationError(f"`version_symbol` must look like <namespace>.<symbol>: {symbol!r}")

    version_raw = _string_field(data, "version", required=False, exact=True)
    version = validate_version(version_raw) if version_raw else None

    return Recipe(
        sha256=sha256,
        build_subdirectory=subdir,
        version_symbol=symbol,
        version=version,
        **fields,
    )


def parse_recipe(recipe_path: str | Path) -> Recipe:
    """Parse a recipe file (markdown with frontmatter, or plain YAML) into a `Recipe`."""
    path = Path(recipe_path)
    if not path.exists():
        raise ConfigurationError(f"Recipe file does not exist: {path}")
    text = path.read_text(encoding="utf-8")

    frontmatter, _rest = _parse_yaml_frontmatter(text)
    data = frontmatter if frontmatter is not None else _safe_load(text)
    return recipe_from_mapping(data)
