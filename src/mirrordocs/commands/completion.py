"""
mirrordocs.commands.completion - Shell tab-completion setup.

Prints argcomplete activation scripts for the supported shells.
"""

from __future__ import annotations

import argparse

import argcomplete

SHELLS = ("bash", "zsh", "fish", "tcsh")

SETUP_INSTRUCTIONS = """
Shell Completion Setup for mirrordocs
=====================================

Bash (add to ~/.bashrc):
  eval "$(register-python-argcomplete mirrordocs)"

Zsh (add to ~/.zshrc):
  autoload -U bashcompinit
  bashcompinit
  eval "$(register-python-argcomplete mirrordocs)"

Fish (add to ~/.config/fish/config.fish):
  register-python-argcomplete --shell fish mirrordocs | source

Tcsh (add to ~/.tcshrc):
  eval `register-python-argcomplete --shell tcsh mirrordocs`

Generate script for a specific shell:
  mirrordocs completion --shell bash

After adding the line, restart your shell or source the config file.
"""


def run(args: argparse.Namespace) -> int:
    """Handle completion command - print a completion script or setup help."""
    shell = getattr(args, "shell", None)
    if shell:
        print(argcomplete.shellcode(["mirrordocs"], shell=shell))
    else:
        print(SETUP_INSTRUCTIONS)
    return 0
