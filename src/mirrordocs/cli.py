"""
mirrordocs.cli - Command-line interface.

Main entry point for the mirrordocs CLI tool.
"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional

import argcomplete

from mirrordocs import __version__
from mirrordocs.commands import build_cmd, completion, serve_cmd
from mirrordocs.commands.completion import SHELLS
from mirrordocs.docid import DuplicatePolicy
from mirrordocs.log import LoggingConfig, configure_logging


def _add_build_options(parser: argparse.ArgumentParser) -> None:
    """Options shared by the build and serve commands."""
    parser.add_argument("srcdir", type=Path, help="Directory with the source documents")
    parser.add_argument("dstdir", type=Path, help="Directory receiving the rendered documents")
    parser.add_argument(
        "-f",
        "--format",
        choices=["html", "pdf"],
        help="Output format (default: html)",
    )
    parser.add_argument(
        "-d",
        "--resolve-docid",
        action="store_true",
        help="Resolve <<:docid:ID>> references and generate a dependency graph",
    )
    parser.add_argument(
        "--duplicate-docid",
        choices=[p.value for p in DuplicatePolicy],
        help="What to do when two documents declare the same doc id (default: fatal)",
    )
    parser.add_argument(
        "--no-index",
        action="store_true",
        help="Do not generate index pages",
    )
    parser.add_argument(
        "--abort-on-error",
        action="store_true",
        help="Stop at the first document that fails to convert",
    )
    parser.add_argument(
        "--suffix",
        action="append",
        metavar="SUFFIX",
        help="File suffix of source documents (repeatable, default: .md)",
    )
    parser.add_argument(
        "-s",
        "--stylesheet",
        metavar="HREF",
        help="Link this stylesheet instead of embedding the default style",
    )
    parser.add_argument(
        "--resource-dir",
        type=Path,
        metavar="DIR",
        help="Copy the contents of DIR (stylesheets, fonts, images) to DST/web_assets",
    )
    parser.add_argument(
        "--copy-asset-folders",
        metavar="REGEX",
        help="Copy source directories whose relative path matches REGEX to the destination",
    )
    parser.add_argument(
        "-l",
        "--local-only",
        action="store_true",
        help="Use local git branches, never fetch or merge from origin",
    )


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="mirrordocs",
        description="Mirror a tree of Markdown documents into HTML or PDF",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  mirrordocs build docs/ out/                    # Convert docs/ into out/
  mirrordocs build -d docs/ out/                 # Also resolve doc id references
  mirrordocs build -f pdf docs/ out/             # Render PDF with pandoc
  mirrordocs build -b 'main|release/.*' docs/ out/   # One tree per matching branch
  mirrordocs serve -r main docs/ /var/www/docs   # Rebuild on GitHub pushes

Configuration:
  Settings are read from the nearest .mirrordocs.toml above the source
  directory (or --config PATH); command line options override them.

For detailed command help: mirrordocs <command> --help
        """,
    )

    # Global options
    parser.add_argument(
        "--version",
        action="version",
        version=f"mirrordocs {__version__}",
    )
    parser.add_argument(
        "--config",
        type=Path,
        help="Path to configuration file",
        metavar="PATH",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Verbose output",
    )
    parser.add_argument(
        "-q",
        "--quiet",
        action="store_true",
        help="Suppress non-error output",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # build command
    build_parser = subparsers.add_parser(
        "build",
        help="Convert a document tree",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Git mode:
  With --branches and/or --tags, each matching ref is checked out in turn
  and built into DSTDIR/<ref name with '/' replaced by '_'>. The branch
  checked out before the build is restored afterwards.
""",
    )
    _add_build_options(build_parser)
    build_parser.add_argument(
        "-b",
        "--branches",
        metavar="REGEX",
        help="Build every git branch matching REGEX",
    )
    build_parser.add_argument(
        "-t",
        "--tags",
        metavar="REGEX",
        help="Build every git tag matching REGEX",
    )

    # serve command
    serve_parser = subparsers.add_parser(
        "serve",
        help="Run a webhook server rebuilding documents on GitHub pushes",
    )
    _add_build_options(serve_parser)
    serve_parser.add_argument(
        "-r",
        "--ref-regex",
        required=True,
        metavar="REGEX",
        help="Branches whose pushes trigger a build",
    )
    serve_parser.add_argument("--host", default="127.0.0.1", help="Interface to listen on")
    serve_parser.add_argument("--port", type=int, default=8080, help="Port to listen on")

    # version command
    subparsers.add_parser("version", help="Show version information")

    # completion command
    completion_parser = subparsers.add_parser(
        "completion",
        help="Generate shell tab-completion scripts",
    )
    completion_parser.add_argument(
        "--shell",
        choices=SHELLS,
        help="Generate script for specific shell",
    )

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point for the CLI.

    Args:
        argv: Command line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code (0 for success, non-zero for failure)
    """
    parser = create_parser()
    argcomplete.autocomplete(parser)
    args = parser.parse_args(argv)

    # Handle no command
    if not args.command:
        parser.print_help()
        return 0

    if args.verbose:
        level = "DEBUG"
    elif args.quiet:
        level = "WARNING"
    else:
        level = "INFO"
    configure_logging(LoggingConfig(level=level))

    try:
        if args.command == "build":
            return build_cmd.run(args)
        elif args.command == "serve":
            return serve_cmd.run(args)
        elif args.command == "version":
            return version_command(args)
        elif args.command == "completion":
            return completion.run(args)
        else:
            parser.print_help()
            return 1

    except KeyboardInterrupt:
        print("\nOperation cancelled.", file=sys.stderr)
        return 130
    except Exception as e:
        if args.verbose:
            raise
        print(f"Error: {e}", file=sys.stderr)
        return 1


def version_command(args: argparse.Namespace) -> int:
    """Handle version command."""
    print(f"mirrordocs {__version__}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
