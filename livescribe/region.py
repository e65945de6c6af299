"""
Region resolution for edits.

Priority: explicit selection, then the anchor, then the caller's fallback
start, then the beginning of the line holding the insertion point.
"""

from typing import TYPE_CHECKING, Optional

from .document import Document
from .types import EditRegion

if TYPE_CHECKING:
    from .session import DictationSession


class RegionResolver:
    def resolve(
        self,
        document: Document,
        point: int,
        session: "DictationSession",
        fallback_start: Optional[int] = None,
    ) -> EditRegion:
        """
        Compute the bounds of the content to correct.

        Args:
            document: Document to resolve against
            point: Insertion point; the region ends here unless a selection exists
            session: Supplies the anchor position
            fallback_start: Start used when no anchor is set (e.g. the
                previous utterance's insertion start)

        Returns:
            EditRegion, possibly empty
        """
        selection = document.selection()
        if selection is not None:
            start, end = selection
            return EditRegion(start, end)

        if session.anchor_position is not None:
            start = session.anchor_position
        elif fallback_start is not None:
            start = fallback_start
        else:
            start = document.line_start(point)

        start = max(0, min(start, point))
        return EditRegion(start, point)
