"""Editor controller: turns editing actions into buffer edits and audio.

The controller never touches the screen or reads keys.  The front-end
calls one method per action (``insert("a")``, ``move(Direction.UP)``,
``request_quit()``) and then drains the sound manager once.  Everything
spoken or sounded for that action is queued by the method, so tests can
drive an ``Editor`` with a fake ``SoundManager`` and inspect the queue.
"""

from __future__ import annotations

import dataclasses
import enum
from typing import Optional

from . import __version__
from .audio import (
    BLOCKED_TONE,
    STARTUP_CHIME,
    Tone,
    Utterance,
    indent_tones,
    resolve_speech_binary,
)
from .buffer import Document, Position, Row, SearchDirection
from .config import ClackConfig
from .logging import get_logger
from .scheduler import SoundManager
from .tokenizer import speakable, spell

_log = get_logger("clack.editor")

DEFAULT_PAGE_HEIGHT = 24


class QuitState(enum.Enum):
    DEFAULT = "default"
    CONFIRMING = "confirming"
    QUITTING = "quitting"


class Direction(enum.Enum):
    UP = "up"
    DOWN = "down"
    LEFT = "left"
    RIGHT = "right"
    PAGE_UP = "page_up"
    PAGE_DOWN = "page_down"
    HOME = "home"
    END = "end"


class Editor:
    """Cursor, scroll offset, quit state and status message for one document.

    The cursor may sit one row past the last row; typing there appends
    a new row.
    """

    def __init__(self, document: Document, sounds: SoundManager,
                 config: Optional[ClackConfig] = None) -> None:
        self.document = document
        self.sounds = sounds
        self.config = config or ClackConfig()
        self.cursor = Position()
        self.offset = Position()
        self.quit_state = QuitState.DEFAULT
        self.status_message = ""
        self.page_height = DEFAULT_PAGE_HEIGHT
        self.last_query = ""
        self._binary = resolve_speech_binary(self.config.speech_command)
        if sounds.on_error is None:
            sounds.on_error = self._on_sound_error

    # ─── Helpers ──────────────────────────────────────────────────

    @property
    def should_quit(self) -> bool:
        return self.quit_state is QuitState.QUITTING

    def _utterance(self, text: str) -> Utterance:
        return Utterance(text, rate_wpm=self.config.rate_wpm, binary=self._binary)

    def _tone(self, tone: Tone) -> Tone:
        return dataclasses.replace(tone, volume=self.config.tone_volume)

    def _say(self, text: str) -> None:
        self.sounds.enqueue(self._utterance(text))

    def _interrupt(self, text: str) -> None:
        self.sounds.enqueue_front(self._utterance(text))

    def _current_row(self) -> Row:
        return self.document.get_row(self.cursor.row) or Row()

    def _on_sound_error(self, exc: Exception) -> None:
        self.status_message = f"Speech unavailable: {exc}"

    def _blocked(self) -> None:
        self.sounds.enqueue(self._tone(BLOCKED_TONE))

    # ─── Narration ────────────────────────────────────────────────

    def start(self) -> None:
        """Queue the start-up chime."""
        for tone in STARTUP_CHIME:
            self.sounds.enqueue(self._tone(tone))

    def speak_row(self) -> None:
        """One tone per indent level, then the row text made speakable."""
        row = self._current_row()
        level = row.indent_level(self.config.spaces_per_indent)
        for tone in indent_tones(level, volume=self.config.tone_volume):
            self.sounds.enqueue(tone)
        text = speakable(row.text).strip()
        if text:
            self._say(text)

    def speak_word(self) -> None:
        """Speak the word just before the cursor."""
        word = self._current_row().word_at(max(self.cursor.col - 1, 0))
        if word and word.strip():
            self._say(speakable(word).strip())

    def spell_word(self) -> None:
        """Spell the word under the cursor, one character at a time."""
        word = self._current_row().word_at(self.cursor.col)
        if word and word.strip():
            self._say(spell(word))

    def speak_position(self) -> None:
        self._interrupt(f"Row {self.cursor.row + 1}, column {self.cursor.col + 1}")

    def stop_speech(self) -> None:
        self.sounds.clear()
        self.sounds.stop()

    # ─── Editing ──────────────────────────────────────────────────

    def insert(self, text: str) -> None:
        """Type one grapheme or a line break at the cursor.

        A line break reads out the row being finished; any other
        non-alphanumeric character reads out the word it ends.
        """
        if text == "\n":
            self.speak_row()
            self.document.insert(self.cursor, text)
            self.cursor = Position(0, self.cursor.row + 1)
            return
        if not text.isalnum():
            self.speak_word()
        self.document.insert(self.cursor, text)
        self.cursor = Position(self.cursor.col + 1, self.cursor.row)

    def delete(self) -> None:
        self.document.delete(self.cursor)

    def backspace(self) -> None:
        """Delete the grapheme before the cursor, joining rows at column 0."""
        col, row = self.cursor.col, self.cursor.row
        if col > 0:
            self.cursor = Position(col - 1, row)
        elif row > 0:
            previous = self.document.get_row(row - 1)
            self.cursor = Position(len(previous) if previous else 0, row - 1)
        else:
            return
        self.document.delete(self.cursor)

    # ─── Navigation ───────────────────────────────────────────────

    def move(self, direction: Direction) -> None:
        """Move the cursor; a blocked move sounds a tone, a new row is read."""
        x, y = self.cursor.col, self.cursor.row
        start_row = y
        height = self.document.row_count
        width = len(self._current_row())
        wrap = self.config.wrap_navigation

        if direction is Direction.UP:
            if y == 0:
                self._blocked()
            else:
                y -= 1
        elif direction is Direction.DOWN:
            if y < height:
                y += 1
            else:
                self._blocked()
        elif direction is Direction.LEFT:
            if x > 0:
                x -= 1
            elif y > 0 and wrap:
                y -= 1
                row = self.document.get_row(y)
                x = len(row) if row else 0
            else:
                self._blocked()
        elif direction is Direction.RIGHT:
            if x < width:
                x += 1
            elif y < height and wrap:
                y += 1
                x = 0
            else:
                self._blocked()
        elif direction is Direction.PAGE_UP:
            y = max(y - self.page_height, 0)
        elif direction is Direction.PAGE_DOWN:
            y = min(y + self.page_height, height)
        elif direction is Direction.HOME:
            x = 0
        elif direction is Direction.END:
            x = width

        row = self.document.get_row(y)
        x = min(x, len(row) if row else 0)
        self.cursor = Position(x, y)
        if y != start_row:
            self.speak_row()

    def scroll(self, width: int, height: int) -> None:
        """Shift the offset so the cursor stays inside a *width* x *height* view."""
        self.page_height = max(height, 1)
        x, y = self.cursor.col, self.cursor.row
        off_x, off_y = self.offset.col, self.offset.row
        if y < off_y:
            off_y = y
        elif y >= off_y + height:
            off_y = y - height + 1
        if x < off_x:
            off_x = x
        elif x >= off_x + width:
            off_x = x - width + 1
        self.offset = Position(max(off_x, 0), max(off_y, 0))

    def find(self, query: Optional[str] = None,
             direction: SearchDirection = SearchDirection.FORWARD) -> Optional[Position]:
        """Jump to the next match of *query* and read its row.

        With no *query*, repeats the last search starting just past the
        cursor, so repeated calls step through every match.
        """
        if query:
            self.last_query = query
            start = self.cursor
        elif self.last_query:
            step = 1 if direction is SearchDirection.FORWARD else -1
            start = Position(self.cursor.col + step, self.cursor.row)
        else:
            return None

        found = self.document.find(self.last_query, start, direction)
        if found is None:
            self.status_message = "Not found"
            self._interrupt("Not found")
            return None
        _log.debug("found %r at row %d col %d", self.last_query, found.row, found.col)
        self.cursor = found
        self.status_message = ""
        self.speak_row()
        return found

    # ─── Files and quitting ───────────────────────────────────────

    @property
    def needs_file_name(self) -> bool:
        return not self.document.file_name

    def prompt_save_as(self) -> None:
        self.status_message = "Save as: "
        self._interrupt("Save as")

    def save(self, file_name: Optional[str] = None) -> bool:
        """Write the document; on success say which file was written."""
        if file_name:
            self.document.file_name = file_name
        if not self.document.file_name:
            self.abort_save()
            return False
        try:
            self.document.save()
        except OSError as exc:
            _log.warning("save failed for %s: %s", self.document.file_name, exc)
            self.status_message = "Error writing file!"
            self._interrupt("Error writing file!")
            return False
        self.status_message = "File saved successfully."
        self._interrupt(f"Saved {self.document.file_name}.")
        return True

    def abort_save(self) -> None:
        self.status_message = "Save aborted."
        self._interrupt("Save aborted.")

    def request_quit(self) -> None:
        """Quit, asking once for confirmation when there are unsaved edits."""
        if self.document.is_dirty and self.quit_state is QuitState.DEFAULT:
            self.quit_state = QuitState.CONFIRMING
            self.status_message = "Unsaved changes. Quit again to discard them."
            self._interrupt("Quit without saving?")
        else:
            self.quit_state = QuitState.QUITTING
            self._interrupt("Goodbye!")

    # ─── Display ──────────────────────────────────────────────────

    def status_bar(self, width: int) -> str:
        """``name - N lines*`` on the left, ``row/count`` on the right."""
        name = (self.document.file_name or "[No Name]")[:20]
        modified = "*" if self.document.is_dirty else ""
        left = f"{name} - {self.document.row_count} lines{modified}"
        right = f"{self.cursor.row + 1}/{self.document.row_count}"
        padding = max(width - len(left) - len(right), 1)
        return f"{left}{' ' * padding}{right}"

    def visible_rows(self, width: int, height: int) -> list[str]:
        """The rows inside the viewport; ``~`` marks lines past the end."""
        lines = []
        for screen_row in range(height):
            row = self.document.get_row(self.offset.row + screen_row)
            if row is not None:
                lines.append(row.render(self.offset.col, self.offset.col + width))
            elif self.document.row_count == 0 and screen_row == height // 3:
                welcome = f"clack {__version__}"
                lines.append(("~" + welcome.center(max(width - 1, 0)))[:width])
            else:
                lines.append("~")
        return lines
