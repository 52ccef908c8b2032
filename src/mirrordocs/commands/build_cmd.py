"""
mirrordocs.commands.build_cmd - Convert a document tree.
"""

from __future__ import annotations

import argparse
import sys

from mirrordocs.application import run_build
from mirrordocs.config import BuildConfig, build_config
from mirrordocs.docid import DuplicatePolicy
from mirrordocs.log import LoggingConfig, configure_logging


def config_from_args(args: argparse.Namespace) -> BuildConfig:
    """Combine the config file (if any) with the command line options."""
    config = build_config(args.srcdir, args.dstdir, getattr(args, "config", None))

    duplicate = getattr(args, "duplicate_docid", None)
    suffixes = getattr(args, "suffix", None)
    return config.with_overrides(
        format=getattr(args, "format", None),
        resolve_docid=True if getattr(args, "resolve_docid", False) else None,
        make_index=False if getattr(args, "no_index", False) else None,
        abort_on_error=True if getattr(args, "abort_on_error", False) else None,
        duplicate_docid=DuplicatePolicy(duplicate) if duplicate else None,
        file_suffixes=[s if s.startswith(".") else f".{s}" for s in suffixes] if suffixes else None,
        stylesheet=getattr(args, "stylesheet", None),
        resource_dir=getattr(args, "resource_dir", None),
        copy_asset_folders=getattr(args, "copy_asset_folders", None),
        branch_regex=getattr(args, "branches", None),
        tag_regex=getattr(args, "tags", None),
        local_only=True if getattr(args, "local_only", False) else None,
    )


def run(args: argparse.Namespace) -> int:
    """Run the build command.

    Returns:
        0 if every document (and every git ref) was built, else 1.
    """
    config = config_from_args(args)
    if not (getattr(args, "verbose", False) or getattr(args, "quiet", False)):
        configure_logging(LoggingConfig(level=config.log_level))
    outcome = run_build(config)

    if not getattr(args, "quiet", False):
        print(
            f"{outcome.succeeded} documents converted, {outcome.failed} failed.",
            file=sys.stderr,
        )
        if outcome.generated_failed:
            print(f"  {outcome.generated_failed} generated pages failed.", file=sys.stderr)
        for ref in outcome.failed_refs:
            print(f"  Failed to build '{ref}'", file=sys.stderr)

    return 0 if outcome.ok else 1
