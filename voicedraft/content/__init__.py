"""Content hierarchy for sectioned narration.

This package contains the immutable section/subsection tree and its
single-writer holder.
"""

from .tree import ContentTree, TreeHolder

__all__ = ["ContentTree", "TreeHolder"]
