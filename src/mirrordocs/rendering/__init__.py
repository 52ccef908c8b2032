"""Rendering engines turning document source into output files."""

from mirrordocs.rendering.base import RenderContext, Renderer, RenderResult

__all__ = ["RenderContext", "Renderer", "RenderResult"]
