"""
mirrordocs.commands - CLI command implementations
"""

__all__ = [
    "build_cmd",
    "completion",
    "serve_cmd",
]
