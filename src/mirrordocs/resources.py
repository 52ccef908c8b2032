"""Copy non-document files into the destination tree.

Two extensions:

- CopyResourcesPreBuilder copies a resource directory (stylesheets, fonts,
  images shared by all documents) into ``<dst>/web_assets`` before any
  document is rendered.
- CopyAssetDirsPostBuilder copies every source directory whose path
  matches a regex (e.g. ``images``) to the same relative location in the
  destination, so relative links from rendered documents keep working.
"""

from __future__ import annotations

import logging
import re
import shutil
from pathlib import Path
from typing import TYPE_CHECKING

from mirrordocs.errors import ConfigError, StructuralError
from mirrordocs.pathtree import PathTree

if TYPE_CHECKING:
    from mirrordocs.converter import TreeConverter

_log = logging.getLogger(__name__)

WEB_ASSETS_DIRNAME = "web_assets"


class CopyResourcesPreBuilder:
    """Pre-builder copying ``resource_dir`` into the web assets directory.

    Args:
        resource_dir: Directory whose contents are copied.
        dirname: Name of the target directory below the destination top.
        logger: Logger for diagnostics.
    """

    def __init__(
        self,
        resource_dir: Path | str,
        dirname: str = WEB_ASSETS_DIRNAME,
        logger: logging.Logger | None = None,
    ) -> None:
        self.resource_dir = Path(resource_dir)
        self.dirname = dirname
        self.logger = logger or _log

    def on_prebuild(
        self,
        src_tree: PathTree,
        dst_tree: PathTree,
        converter: TreeConverter,
    ) -> None:
        if not self.resource_dir.is_dir():
            raise StructuralError(f"Resource directory not found: {self.resource_dir}")

        target = Path(dst_tree.pathname) / self.dirname
        self.logger.info("Copy web assets from %s to %s", self.resource_dir, target)
        shutil.copytree(self.resource_dir, target, dirs_exist_ok=True)


class CopyAssetDirsPostBuilder:
    """Post-builder copying matching source directories to the destination.

    A directory is copied when ``asset_regex`` matches its path relative to
    the source top (searched, not anchored). Directories below an already
    copied directory are not visited again.

    Args:
        asset_regex: Pattern selecting asset directories.
        exclude: Directory never copied from, typically the destination
            when it lies below the source directory.
        logger: Logger for diagnostics.

    Raises:
        ConfigError: If ``asset_regex`` is not a valid regex.
    """

    def __init__(
        self,
        asset_regex: str | re.Pattern[str],
        exclude: Path | str | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        try:
            self.asset_regex = re.compile(asset_regex)
        except re.error as e:
            raise ConfigError(f"Invalid asset folder regex '{asset_regex}': {e}") from e
        self.exclude = Path(exclude).resolve() if exclude is not None else None
        self.logger = logger or _log

    def asset_dirs(self, srcdir: Path) -> list[Path]:
        """Directories below ``srcdir`` to copy, relative to ``srcdir``."""
        found: list[Path] = []
        pending = [srcdir]
        while pending:
            directory = pending.pop(0)
            for entry in sorted(directory.iterdir(), key=lambda p: p.name):
                if not entry.is_dir():
                    continue
                if self.exclude is not None and entry.resolve() == self.exclude:
                    continue
                rel = entry.relative_to(srcdir)
                if self.asset_regex.search(rel.as_posix()):
                    found.append(rel)
                else:
                    pending.append(entry)
        return found

    def on_postbuild(
        self,
        src_tree: PathTree,
        dst_tree: PathTree,
        converter: TreeConverter,
    ) -> None:
        srcdir = Path(src_tree.pathname)
        dstdir = Path(dst_tree.pathname)
        rel_dirs = self.asset_dirs(srcdir)
        if not rel_dirs:
            self.logger.debug("No asset directories matching '%s'", self.asset_regex.pattern)
            return

        self.logger.info("Copy asset directories from %s to %s", srcdir, dstdir)
        for rel in rel_dirs:
            self.logger.debug("Copying %s", rel)
            shutil.copytree(srcdir / rel, dstdir / rel, dirs_exist_ok=True)


__all__ = [
    "WEB_ASSETS_DIRNAME",
    "CopyAssetDirsPostBuilder",
    "CopyResourcesPreBuilder",
]
