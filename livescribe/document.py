"""
Document collaborator: the text the engine dictates into.

Editors plug in by implementing the Document protocol. TextDocument is the
in-memory implementation used by the console app and the tests.
"""

from typing import List, Optional, Protocol, Tuple

from .types import EditRegion, TextSpan


class Document(Protocol):
    @property
    def point(self) -> int: ...

    def selection(self) -> Optional[Tuple[int, int]]: ...

    def text(self, start: Optional[int] = None, end: Optional[int] = None) -> str: ...

    def insert(self, pos: int, text: str) -> None: ...

    def delete(self, start: int, end: int) -> None: ...

    def replace(self, start: int, end: int, text: str) -> None: ...

    def line_start(self, pos: int) -> int: ...

    def __len__(self) -> int: ...


class TextDocument:
    """
    Plain string buffer with a movable point and an optional selection.

    The point behaves like an editor marker: inserting at or before it
    advances it, deleting before it pulls it back. Any mutation clears the
    selection.
    """

    def __init__(self, text: str = "", point: Optional[int] = None):
        self._text = text
        self._point = len(text) if point is None else self._clamp(point)
        self._selection: Optional[Tuple[int, int]] = None

    def __len__(self) -> int:
        return len(self._text)

    def __str__(self) -> str:
        return self._text

    @property
    def point(self) -> int:
        return self._point

    def goto(self, pos: int) -> None:
        self._point = self._clamp(pos)

    def selection(self) -> Optional[Tuple[int, int]]:
        return self._selection

    def select(self, start: int, end: int) -> None:
        start, end = sorted((self._clamp(start), self._clamp(end)))
        self._selection = (start, end)

    def deselect(self) -> None:
        self._selection = None

    def text(self, start: Optional[int] = None, end: Optional[int] = None) -> str:
        start = 0 if start is None else self._clamp(start)
        end = len(self._text) if end is None else self._clamp(end)
        return self._text[start:end]

    def insert(self, pos: int, text: str) -> None:
        self.replace(pos, pos, text)

    def delete(self, start: int, end: int) -> None:
        self.replace(start, end, "")

    def replace(self, start: int, end: int, text: str) -> None:
        start, end = sorted((self._clamp(start), self._clamp(end)))
        self._text = self._text[:start] + text + self._text[end:]

        delta = len(text) - (end - start)
        if self._point >= end:
            self._point += delta
        elif self._point > start:
            self._point = start + len(text)
        self._selection = None

    def line_start(self, pos: int) -> int:
        pos = self._clamp(pos)
        return self._text.rfind("\n", 0, pos) + 1

    def _clamp(self, pos: int) -> int:
        return max(0, min(pos, len(self._text)))


PROVISIONAL_MARKS = ("‹", "›")
COMMAND_MARKS = ("[", "]")
PENDING_MARKS = ("{", "}")


def render(
    document: Document,
    spans: List[TextSpan],
    pending: Optional[EditRegion] = None,
) -> str:
    """
    Render document text with span markers for console display.

    Provisional spans are wrapped in ‹ ›, command spans in [ ], and a region
    awaiting an edit response in { }.
    """
    text = document.text()
    inserts: List[Tuple[int, int, str]] = []  # (pos, order, mark)

    for span in spans:
        if span.is_command:
            opening, closing = COMMAND_MARKS
        elif span.is_provisional:
            opening, closing = PROVISIONAL_MARKS
        else:
            continue
        inserts.append((span.start, 1, opening))
        inserts.append((span.end, 0, closing))

    if pending is not None and not pending.is_empty:
        inserts.append((pending.start, 2, PENDING_MARKS[0]))
        inserts.append((pending.end, -1, PENDING_MARKS[1]))

    # Apply from the end so earlier offsets stay valid
    for pos, _, mark in sorted(inserts, reverse=True):
        text = text[:pos] + mark + text[pos:]
    return text
