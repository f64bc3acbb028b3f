"""Discovery of nested repository boundaries inside a project tree."""

from .discoverer import MARKER_NAME, discover_units, is_boundary_marker

__all__ = ["MARKER_NAME", "discover_units", "is_boundary_marker"]
