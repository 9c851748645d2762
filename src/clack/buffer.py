"""Grapheme-indexed text buffer.

Every column in this module counts grapheme clusters (what a user sees
as one character), never code points or bytes.  ``"e\\u0301"`` is one
column, and so is a family emoji built from several code points joined
by zero-width joiners.

Rows are small (editor lines), so every edit that is not a plain append
rebuilds the row from its clusters.  That keeps the cached length
trivially correct.

Out-of-range positions are not errors.  The cursor can be briefly stale
after an edit, so operations addressed past the end of the document
simply do nothing.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Iterator, Optional

import regex

_GRAPHEME_RE = regex.compile(r"\X")
_WORD_CHAR_RE = regex.compile(r"\w")
# Single characters that keep a word together when they sit between two
# word characters: "don't", "3.14".
_MID_WORD = frozenset("'.’")


def graphemes(text: str) -> list[str]:
    """Split *text* into extended grapheme clusters."""
    return _GRAPHEME_RE.findall(text)


@dataclass(frozen=True)
class Position:
    """A (column, row) coordinate in grapheme units."""

    col: int = 0
    row: int = 0


class SearchDirection(enum.Enum):
    FORWARD = "forward"
    BACKWARD = "backward"


class Row:
    """One line of text plus its cached grapheme-cluster count."""

    __slots__ = ("_string", "_len")

    def __init__(self, text: str = "") -> None:
        self._string = text
        self._len = len(graphemes(text))

    def __len__(self) -> int:
        return self._len

    def __str__(self) -> str:
        return self._string

    def __repr__(self) -> str:
        return f"Row({self._string!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Row):
            return NotImplemented
        return self.graphemes() == other.graphemes()

    @property
    def text(self) -> str:
        return self._string

    def is_empty(self) -> bool:
        return self._len == 0

    def graphemes(self) -> list[str]:
        return graphemes(self._string)

    def _rebuild(self, clusters: list[str]) -> None:
        # Joining can fuse clusters (a combining mark after a letter),
        # so count the result instead of trusting len(clusters).
        self._string = "".join(clusters)
        self._len = len(graphemes(self._string))

    def render(self, start: int, end: int) -> str:
        """Return clusters ``start..end`` for display, tabs shown as a space."""
        end = min(end, self._len)
        start = min(start, end)
        return "".join(
            " " if g == "\t" else g
            for g in self.graphemes()[start:end]
        )

    def insert(self, at: int, text: str) -> None:
        """Insert *text* (normally one grapheme) before cluster *at*.

        The length is recounted afterwards.  Text that fuses with a
        neighbour (a combining mark after a letter) joins that cluster,
        so a following ``delete(at)`` removes the next cluster rather
        than undoing the insert.
        """
        if at >= self._len:
            self._string += text
            self._len = len(graphemes(self._string))
            return
        clusters = self.graphemes()
        clusters.insert(max(at, 0), text)
        self._rebuild(clusters)

    def delete(self, at: int) -> None:
        """Remove the cluster at *at*; no-op past the end."""
        if at < 0 or at >= self._len:
            return
        clusters = self.graphemes()
        del clusters[at]
        self._rebuild(clusters)

    def append(self, other: "Row") -> None:
        self._string += other._string
        self._len = len(graphemes(self._string))

    def split(self, at: int) -> "Row":
        """Keep clusters before *at*, return the rest as a new row."""
        clusters = self.graphemes()
        at = max(0, min(at, len(clusters)))
        tail = Row("".join(clusters[at:]))
        self._rebuild(clusters[:at])
        return tail

    # ─── Offset conversion ────────────────────────────────────────

    def _cluster_offsets(self) -> list[int]:
        """Code-point offset where each cluster starts, plus the end offset."""
        offsets = [0]
        for g in self.graphemes():
            offsets.append(offsets[-1] + len(g))
        return offsets

    def find(self, query: str, start: int = 0,
             direction: SearchDirection = SearchDirection.FORWARD) -> Optional[int]:
        """Grapheme index of a match of *query*, or None.

        Forward returns the first match starting at or after cluster
        *start*; backward returns the last match starting at or before it.
        ``str.find`` reports code-point offsets, so each hit is mapped
        back to a cluster index here.  A hit that begins inside a cluster
        (the accent of "e\\u0301" searched on its own) or ends inside one
        ("e" searched in "e\\u0301") is not a real match and is skipped.
        """
        if not query:
            return None
        offsets = self._cluster_offsets()
        index_of = {offset: i for i, offset in enumerate(offsets[:-1])}
        boundaries = set(offsets)
        size = len(query)
        if direction is SearchDirection.FORWARD:
            if start >= len(offsets):
                return None
            pos = self._string.find(query, offsets[max(start, 0)])
            while pos != -1:
                if pos in index_of and pos + size in boundaries:
                    return index_of[pos]
                pos = self._string.find(query, pos + 1)
            return None
        if start < 0:
            return None
        limit = offsets[min(start, len(offsets) - 1)]
        pos = self._string.rfind(query, 0, limit + len(query))
        while pos != -1:
            if pos in index_of and pos + size in boundaries:
                return index_of[pos]
            pos = self._string.rfind(query, 0, pos + len(query) - 1)
        return None

    # ─── Words ────────────────────────────────────────────────────

    def tokens(self) -> Iterator[tuple[int, str]]:
        """Yield ``(start_column, token)`` pairs covering the whole row.

        A token is a run of word clusters (letters, digits, marks,
        underscore; joined across one apostrophe or period), a run of
        horizontal whitespace, or any other single cluster.
        """
        clusters = self.graphemes()
        i = 0
        n = len(clusters)
        while i < n:
            g = clusters[i]
            j = i + 1
            if _is_word(g):
                while j < n:
                    if _is_word(clusters[j]):
                        j += 1
                    elif (clusters[j] in _MID_WORD and j + 1 < n
                          and _is_word(clusters[j + 1])):
                        j += 2
                    else:
                        break
            elif g in (" ", "\t"):
                while j < n and clusters[j] in (" ", "\t"):
                    j += 1
            yield i, "".join(clusters[i:j])
            i = j

    def word_at(self, at: int) -> Optional[str]:
        """The token overlapping cluster *at*, or None past the end."""
        if at < 0 or at >= self._len:
            return None
        for start, token in self.tokens():
            if start + len(graphemes(token)) > at:
                return token
        return None

    def indent_level(self, spaces_per_level: int = 4) -> int:
        """Leading tabs, or leading spaces per *spaces_per_level*."""
        tabs = len(self._string) - len(self._string.lstrip("\t"))
        spaces = len(self._string) - len(self._string.lstrip(" "))
        if spaces_per_level <= 0:
            return tabs
        return tabs + spaces // spaces_per_level


def _is_word(cluster: str) -> bool:
    return bool(_WORD_CHAR_RE.match(cluster))


class Document:
    """Ordered rows, an optional file name and a dirty flag."""

    def __init__(self, rows: Optional[list[Row]] = None,
                 file_name: Optional[str] = None) -> None:
        self._rows: list[Row] = list(rows) if rows else []
        self.file_name = file_name
        self._dirty = False

    @classmethod
    def from_lines(cls, lines: list[str], file_name: Optional[str] = None) -> "Document":
        return cls([Row(line) for line in lines], file_name=file_name)

    @classmethod
    def open(cls, file_name: str) -> "Document":
        """Load *file_name*; raises ``OSError`` if it cannot be read.

        A trailing newline does not create an extra empty row and an
        empty file has no rows, so open-then-save leaves the file
        unchanged.
        """
        with open(file_name, "r", encoding="utf-8") as f:
            content = f.read()
        lines = content.split("\n") if content else []
        if content.endswith("\n"):
            lines.pop()
        return cls.from_lines(lines, file_name=file_name)

    def save(self) -> None:
        """Write every row followed by a newline; clears the dirty flag.

        Raises ``OSError`` on write failure, ``ValueError`` if the
        document has no file name.
        """
        if not self.file_name:
            raise ValueError("document has no file name")
        with open(self.file_name, "w", encoding="utf-8") as f:
            for row in self._rows:
                f.write(row.text)
                f.write("\n")
        self._dirty = False

    @property
    def row_count(self) -> int:
        return len(self._rows)

    @property
    def is_dirty(self) -> bool:
        return self._dirty

    def rows(self) -> list[Row]:
        return list(self._rows)

    def lines(self) -> list[str]:
        return [row.text for row in self._rows]

    def get_row(self, index: int) -> Optional[Row]:
        if 0 <= index < len(self._rows):
            return self._rows[index]
        return None

    def insert(self, at: Position, text: str) -> None:
        """Insert one grapheme (or a line break) at *at*."""
        if at.row < 0 or at.row > self.row_count:
            return
        self._dirty = True
        if text == "\n":
            self._insert_newline(at)
            return
        if at.row == self.row_count:
            # New row: the column is meaningless, start at 0.
            self._rows.append(Row(text))
            return
        self._rows[at.row].insert(at.col, text)

    def _insert_newline(self, at: Position) -> None:
        if at.row == self.row_count:
            self._rows.append(Row())
            return
        tail = self._rows[at.row].split(at.col)
        self._rows.insert(at.row + 1, tail)

    def delete(self, at: Position) -> None:
        """Delete the grapheme at *at*, joining the next row at a row end."""
        if at.row < 0 or at.row >= self.row_count:
            return
        row = self._rows[at.row]
        if at.col == len(row) and at.row + 1 < self.row_count:
            row.append(self._rows.pop(at.row + 1))
            self._dirty = True
        elif 0 <= at.col < len(row):
            row.delete(at.col)
            self._dirty = True

    def find(self, query: str, start: Position = Position(),
             direction: SearchDirection = SearchDirection.FORWARD) -> Optional[Position]:
        """Find *query* scanning from *start*, wrapping around the document.

        On the starting row the match must begin at/after (forward) or
        at/before (backward) ``start.col``.  Every other row is searched
        whole.  When the scan wraps back to the starting row, the part
        not yet searched is checked last.
        """
        count = self.row_count
        if not query or count == 0:
            return None
        forward = direction is SearchDirection.FORWARD
        if start.row >= count:
            # From the append row: forward wraps to the top, backward
            # begins at the end of the last row.
            if forward:
                start = Position(0, 0)
            else:
                start = Position(len(self._rows[-1]), count - 1)
        row_index = max(start.row, 0)
        step = 1 if forward else -1

        col = self._rows[row_index].find(query, start.col, direction)
        if col is not None:
            return Position(col, row_index)

        for i in range(1, count):
            y = (row_index + step * i) % count
            row = self._rows[y]
            col = row.find(query, 0 if forward else len(row), direction)
            if col is not None:
                return Position(col, y)

        # Wrapped all the way round: the other side of the starting row.
        row = self._rows[row_index]
        if forward:
            col = row.find(query, 0, direction)
            if col is not None and col < start.col:
                return Position(col, row_index)
        else:
            col = row.find(query, len(row), direction)
            if col is not None and col > start.col:
                return Position(col, row_index)
        return None
