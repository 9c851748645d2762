"""Textual front-end for clack.

Thin on purpose: it draws the editor's state and turns key presses into
``Editor`` calls.  After every handled key the screen is refreshed and
the sound queue is drained once, after the refresh, so what is heard
always matches what is shown.  Draining blocks the event loop; keys
pressed meanwhile wait in the terminal and are handled afterwards.
"""

from __future__ import annotations

import time
from typing import Optional

from rich.text import Text
from textual import events, on
from textual.app import App, ComposeResult
from textual.widgets import Input, Static

from .buffer import SearchDirection, graphemes
from .editor import Direction, Editor
from .logging import get_logger

_log = get_logger("clack.tui")

STATUS_TIMEOUT = 5.0

STATUS_FG_COLOR = "rgb(63,63,63)"
STATUS_BG_COLOR = "rgb(239,239,239)"

CSS = f"""
Screen {{
    layout: vertical;
}}
#rows {{
    height: 1fr;
}}
#status-bar {{
    height: 1;
    color: {STATUS_FG_COLOR};
    background: {STATUS_BG_COLOR};
}}
#message-bar {{
    height: 1;
}}
#prompt {{
    height: 1;
    border: none;
    padding: 0;
}}
"""

_NAVIGATION_KEYS: dict[str, Direction] = {
    "up": Direction.UP,
    "down": Direction.DOWN,
    "left": Direction.LEFT,
    "right": Direction.RIGHT,
    "pageup": Direction.PAGE_UP,
    "pagedown": Direction.PAGE_DOWN,
    "home": Direction.HOME,
    "end": Direction.END,
}

# keyBindings action name -> ClackApp method
_ACTIONS: dict[str, str] = {
    "quit": "action_quit_editor",
    "save": "action_save",
    "find": "action_find",
    "findNext": "action_find_next",
    "findPrevious": "action_find_previous",
    "speakPosition": "action_speak_position",
    "speakRow": "action_speak_row",
    "spellWord": "action_spell_word",
    "stopSpeech": "action_stop_speech",
}


# Every key belongs to the editor, including Textual's default ctrl+q.
class ClackApp(App, inherit_bindings=False):
    """Full-screen editor: rows, a status bar, a message bar and a prompt."""

    CSS = CSS
    ENABLE_COMMAND_PALETTE = False
    AUTO_FOCUS = None

    def __init__(self, editor: Editor, **kwargs) -> None:
        super().__init__(**kwargs)
        self.editor = editor
        kb = editor.config.key_bindings
        self._key_actions = {kb[name]: method for name, method in _ACTIONS.items()}
        self._prompt_mode: Optional[str] = None
        self._status_shown_at = 0.0
        self._status_text = ""
        if not editor.status_message:
            editor.status_message = (
                f"{kb['save']} = save | {kb['quit']} = quit | {kb['find']} = find"
            )

    def compose(self) -> ComposeResult:
        yield Static("", id="rows")
        yield Static("", id="status-bar")
        yield Static("", id="message-bar")
        yield Input(id="prompt")

    def on_mount(self) -> None:
        self.query_one("#prompt", Input).display = False
        self.editor.start()
        self._after_action()

    # ─── Drawing ──────────────────────────────────────────────────

    def _view_size(self) -> tuple[int, int]:
        # Two lines are taken by the status and message bars.
        return max(self.size.width, 1), max(self.size.height - 2, 1)

    def _render_rows(self, width: int, height: int) -> Text:
        editor = self.editor
        text = Text(no_wrap=True)
        cursor_y = editor.cursor.row - editor.offset.row
        cursor_x = editor.cursor.col - editor.offset.col
        for y, line in enumerate(editor.visible_rows(width, height)):
            if y:
                text.append("\n")
            if y != cursor_y:
                text.append(line)
                continue
            if line == "~" and editor.document.get_row(editor.cursor.row) is None:
                line = ""
            clusters = graphemes(line)
            text.append("".join(clusters[:cursor_x]))
            text.append("".join(clusters[cursor_x:cursor_x + 1]) or " ", style="reverse")
            text.append("".join(clusters[cursor_x + 1:]))
        return text

    def _refresh_view(self) -> None:
        width, height = self._view_size()
        self.editor.scroll(width, height)
        self.query_one("#rows", Static).update(self._render_rows(width, height))
        self.query_one("#status-bar", Static).update(Text(self.editor.status_bar(width)))
        message = self.editor.status_message
        if message != self._status_text:
            self._status_text = message
            self._status_shown_at = time.monotonic()
            if message:
                self.set_timer(STATUS_TIMEOUT, self._expire_status)
        self.query_one("#message-bar", Static).update(Text(message[:width]))

    def _expire_status(self) -> None:
        if time.monotonic() - self._status_shown_at >= STATUS_TIMEOUT - 0.05:
            self.editor.status_message = ""
            self._refresh_view()

    def _after_action(self) -> None:
        self._refresh_view()
        self.call_after_refresh(self._drain)

    def _drain(self) -> None:
        self.editor.sounds.drain()
        # Playback may have reported an error into the status line.
        self._refresh_view()
        if self.editor.should_quit:
            self.exit()

    # ─── Input ────────────────────────────────────────────────────

    def on_key(self, event: events.Key) -> None:
        if self._prompt_mode is not None:
            if event.key == "escape":
                event.stop()
                self._close_prompt(None)
            return

        key = event.key
        method = self._key_actions.get(key)
        if method is not None:
            getattr(self, method)()
        elif key in _NAVIGATION_KEYS:
            self.editor.move(_NAVIGATION_KEYS[key])
        elif key == "enter":
            self.editor.insert("\n")
        elif key == "tab":
            self.editor.insert("\t")
        elif key == "backspace":
            self.editor.backspace()
        elif key == "delete":
            self.editor.delete()
        elif event.is_printable and event.character:
            self.editor.insert(event.character)
        else:
            return
        event.stop()
        event.prevent_default()
        if self._prompt_mode is None:
            self._after_action()

    def _open_prompt(self, mode: str, label: str) -> None:
        self._prompt_mode = mode
        prompt = self.query_one("#prompt", Input)
        prompt.value = ""
        prompt.placeholder = label
        prompt.display = True
        prompt.focus()
        self._after_action()

    def _close_prompt(self, value: Optional[str]) -> None:
        mode = self._prompt_mode
        self._prompt_mode = None
        _log.debug("prompt closed", extra={"context": {"mode": mode, "submitted": value is not None}})
        prompt = self.query_one("#prompt", Input)
        prompt.display = False
        self.set_focus(None)
        if mode == "save":
            if value:
                self.editor.save(value)
            else:
                self.editor.abort_save()
        elif mode == "find" and value:
            self.editor.find(value)
        self._after_action()

    @on(Input.Submitted, "#prompt")
    def _on_prompt_submitted(self, event: Input.Submitted) -> None:
        event.stop()
        self._close_prompt(event.value.strip())

    # ─── Actions ──────────────────────────────────────────────────

    def action_quit_editor(self) -> None:
        self.editor.request_quit()

    def action_save(self) -> None:
        if self.editor.needs_file_name:
            self.editor.prompt_save_as()
            self._open_prompt("save", "Save as")
        else:
            self.editor.save()

    def action_find(self) -> None:
        self.editor.status_message = "Search: "
        self._open_prompt("find", "Search")

    def action_find_next(self) -> None:
        self.editor.find(direction=SearchDirection.FORWARD)

    def action_find_previous(self) -> None:
        self.editor.find(direction=SearchDirection.BACKWARD)

    def action_speak_position(self) -> None:
        self.editor.speak_position()

    def action_speak_row(self) -> None:
        self.editor.speak_row()

    def action_spell_word(self) -> None:
        self.editor.spell_word()

    def action_stop_speech(self) -> None:
        self.editor.stop_speech()
