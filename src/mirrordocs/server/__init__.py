"""
mirrordocs.server - Web front-ends triggering document builds.
"""

from mirrordocs.server.webhook import GenerateFromRefs, create_app

__all__ = ["GenerateFromRefs", "create_app"]
