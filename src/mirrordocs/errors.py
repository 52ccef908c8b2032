"""Exception hierarchy for mirrordocs.

Errors fall into four families:

- StructuralError: the build as a whole is unreliable (bad tree paths,
  missing repo root, duplicate doc ids when configured as fatal). Always
  aborts the run.
- PerDocumentError: a single document failed (render failure). Recoverable,
  counted and logged by the converter unless the abort policy is active.
- ExternalToolUnavailable: an optional tool (graphviz, pandoc) is missing.
  Degrades a feature, never fatal on its own.
- RevisionSyncError: a git checkout/merge/fetch/log operation failed.
"""

from __future__ import annotations


class MirrordocsError(Exception):
    """Base class for all mirrordocs errors."""


class StructuralError(MirrordocsError):
    """The source or destination structure is inconsistent."""


class NodeNotFoundError(StructuralError, KeyError):
    """No node exists at the requested path."""

    def __init__(self, path: object) -> None:
        super().__init__(f"No node found at path: {path}")
        self.path = path

    def __str__(self) -> str:
        return self.args[0]


class DuplicateIdentifierError(StructuralError):
    """The same doc id is declared by more than one document."""

    def __init__(self, doc_id: str, first: object, second: object) -> None:
        super().__init__(
            f"Doc id '{doc_id}' is declared by both '{first}' and '{second}'"
        )
        self.doc_id = doc_id
        self.first = first
        self.second = second


class ConfigError(StructuralError):
    """Invalid configuration file or option."""


class PerDocumentError(MirrordocsError):
    """Conversion of a single document failed."""

    def __init__(self, message: str, src_path: object = None) -> None:
        super().__init__(message)
        self.src_path = src_path


class RenderError(PerDocumentError):
    """The rendering engine could not produce output for a document."""


class ExternalToolUnavailable(MirrordocsError):
    """An optional external tool could not be found on PATH."""

    def __init__(self, tool: str, hint: str = "") -> None:
        message = f"{tool} not found on PATH."
        if hint:
            message = f"{message} {hint}"
        super().__init__(message)
        self.tool = tool


class RevisionSyncError(MirrordocsError):
    """A version-control operation failed."""

    def __init__(self, message: str, ref: str | None = None, stderr: str = "") -> None:
        if stderr:
            message = f"{message}\n{stderr.strip()}"
        super().__init__(message)
        self.ref = ref


__all__ = [
    "MirrordocsError",
    "StructuralError",
    "NodeNotFoundError",
    "DuplicateIdentifierError",
    "ConfigError",
    "PerDocumentError",
    "RenderError",
    "ExternalToolUnavailable",
    "RevisionSyncError",
]
