"""Build configuration.

Settings come from three layers, later ones winning:

1. DEFAULT_CONFIG
2. ``.mirrordocs.toml`` (found by walking up from the source directory,
   or given explicitly)
3. Command line options

Example ``.mirrordocs.toml``::

    format = "html"
    resolve_docid = true
    duplicate_docid = "first"
    copy_asset_folders = "(^|/)images$"

    [git]
    branch_regex = "^main$|^release/"
    local_only = true
"""

from __future__ import annotations

import copy
import re
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

import tomlkit
from tomlkit.exceptions import TOMLKitError

from mirrordocs.docid import DuplicatePolicy
from mirrordocs.errors import ConfigError

CONFIG_FILENAME = ".mirrordocs.toml"

FORMATS = ("html", "pdf")

DEFAULT_CONFIG: dict[str, Any] = {
    "format": "html",
    "file_suffixes": [".md"],
    "resolve_docid": False,
    "duplicate_docid": DuplicatePolicy.FATAL.value,
    "make_index": True,
    "index_basename": "index",
    "graph_basename": "gibgraph",
    "abort_on_error": False,
    "stylesheet": "",
    "resource_dir": "",
    "copy_asset_folders": "",
    "log_level": "info",
    "git": {
        "branch_regex": "",
        "tag_regex": "",
        "local_only": False,
    },
    "pdf": {
        "engine": "xelatex",
    },
}


@dataclass
class GitSettings:
    """Which git refs to build.

    An empty regex selects nothing. When neither regex is set the working
    tree is built as is.
    """

    branch_regex: str = ""
    tag_regex: str = ""
    local_only: bool = False

    @property
    def enabled(self) -> bool:
        return bool(self.branch_regex or self.tag_regex)


@dataclass
class BuildConfig:
    """All settings for one ``run_build`` invocation."""

    srcdir: Path
    dstdir: Path
    format: str = "html"
    file_suffixes: list[str] = field(default_factory=lambda: [".md"])
    resolve_docid: bool = False
    duplicate_docid: DuplicatePolicy = DuplicatePolicy.FATAL
    make_index: bool = True
    index_basename: str = "index"
    graph_basename: str = "gibgraph"
    abort_on_error: bool = False
    stylesheet: str | None = None
    resource_dir: Path | None = None
    copy_asset_folders: str | None = None
    log_level: str = "info"
    pdf_engine: str = "xelatex"
    git: GitSettings = field(default_factory=GitSettings)

    @classmethod
    def from_mapping(
        cls,
        data: dict[str, Any],
        srcdir: Path | str,
        dstdir: Path | str,
    ) -> BuildConfig:
        """Create a config from a (partial) settings mapping.

        Raises:
            ConfigError: On unknown keys or invalid values.
        """
        merged = merge_configs(DEFAULT_CONFIG, data)
        _check_keys(merged, DEFAULT_CONFIG)

        fmt = merged["format"]
        if fmt not in FORMATS:
            raise ConfigError(f"Unknown format '{fmt}', expected one of {', '.join(FORMATS)}")

        try:
            policy = DuplicatePolicy(merged["duplicate_docid"])
        except ValueError as e:
            choices = ", ".join(p.value for p in DuplicatePolicy)
            raise ConfigError(
                f"Unknown duplicate_docid policy '{merged['duplicate_docid']}', expected one of {choices}"
            ) from e

        suffixes = merged["file_suffixes"]
        if not isinstance(suffixes, list) or not all(isinstance(s, str) for s in suffixes):
            raise ConfigError("file_suffixes must be a list of strings")

        asset_regex = str(merged["copy_asset_folders"])
        try:
            re.compile(asset_regex)
        except re.error as e:
            raise ConfigError(f"Invalid copy_asset_folders regex '{asset_regex}': {e}") from e

        git = merged["git"]
        return cls(
            srcdir=Path(srcdir),
            dstdir=Path(dstdir),
            format=fmt,
            file_suffixes=[s if s.startswith(".") else f".{s}" for s in suffixes],
            resolve_docid=bool(merged["resolve_docid"]),
            duplicate_docid=policy,
            make_index=bool(merged["make_index"]),
            index_basename=str(merged["index_basename"]),
            graph_basename=str(merged["graph_basename"]),
            abort_on_error=bool(merged["abort_on_error"]),
            stylesheet=merged["stylesheet"] or None,
            resource_dir=Path(merged["resource_dir"]) if merged["resource_dir"] else None,
            copy_asset_folders=asset_regex or None,
            log_level=str(merged["log_level"]),
            pdf_engine=str(merged["pdf"]["engine"]),
            git=GitSettings(
                branch_regex=str(git["branch_regex"]),
                tag_regex=str(git["tag_regex"]),
                local_only=bool(git["local_only"]),
            ),
        )

    def with_overrides(self, **overrides: Any) -> BuildConfig:
        """Return a copy with the given non-None fields replaced.

        ``branch_regex``, ``tag_regex`` and ``local_only`` update the git
        settings.
        """
        git_keys = {"branch_regex", "tag_regex", "local_only"}
        git_changes = {k: v for k, v in overrides.items() if k in git_keys and v is not None}
        changes = {k: v for k, v in overrides.items() if k not in git_keys and v is not None}
        if git_changes:
            changes["git"] = replace(self.git, **git_changes)
        return replace(self, **changes)


def _check_keys(data: dict[str, Any], reference: dict[str, Any], prefix: str = "") -> None:
    for key, value in data.items():
        if key not in reference:
            raise ConfigError(f"Unknown configuration key: {prefix}{key}")
        if isinstance(reference[key], dict):
            if not isinstance(value, dict):
                raise ConfigError(f"Configuration key {prefix}{key} must be a table")
            _check_keys(value, reference[key], prefix=f"{prefix}{key}.")


def merge_configs(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Deep-merge ``override`` into a copy of ``base``."""
    result = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(result.get(key), dict):
            result[key] = merge_configs(result[key], value)
        else:
            result[key] = value
    return result


def find_config_file(start: Path | str) -> Path | None:
    """Find ``.mirrordocs.toml`` in ``start`` or any parent directory."""
    start = Path(start).resolve()
    for directory in (start, *start.parents):
        candidate = directory / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
    return None


def load_config(path: Path | str) -> dict[str, Any]:
    """Read a TOML configuration file into plain Python values.

    Raises:
        ConfigError: If the file can not be read or parsed.
    """
    path = Path(path)
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Could not read config file {path}: {e}") from e

    try:
        return tomlkit.parse(content).unwrap()
    except TOMLKitError as e:
        raise ConfigError(f"Invalid TOML in {path}: {e}") from e


def build_config(
    srcdir: Path | str,
    dstdir: Path | str,
    config_path: Path | str | None = None,
) -> BuildConfig:
    """Create the config for a build from defaults and the config file.

    Uses ``config_path`` if given, else the nearest ``.mirrordocs.toml``
    above ``srcdir`` (if any).
    """
    path = Path(config_path) if config_path else find_config_file(srcdir)
    data = load_config(path) if path else {}
    return BuildConfig.from_mapping(data, srcdir, dstdir)


__all__ = [
    "BuildConfig",
    "GitSettings",
    "DEFAULT_CONFIG",
    "CONFIG_FILENAME",
    "build_config",
    "find_config_file",
    "load_config",
    "merge_configs",
]
