"""Textual pilot tests for the clack front-end.

Playback is replaced by a SoundManager that records each drain instead
of playing it, so the tests check key handling, drawing and the
once-per-key drain without audio hardware.
"""

from __future__ import annotations

import pytest
from textual.widgets import Input

from clack.audio import Tone, Utterance
from clack.buffer import Document, Position
from clack.config import ClackConfig
from clack.editor import Editor
from clack.scheduler import SoundManager
from clack.tui import ClackApp


class SilentSounds(SoundManager):
    """Records what each drain would have played."""

    def __init__(self) -> None:
        super().__init__()
        self.drained: list[list] = []

    def drain(self) -> None:
        self.drained.append(list(self._queue))
        self._queue.clear()

    def spoken(self) -> list[str]:
        return [item.text for batch in self.drained for item in batch
                if isinstance(item, Utterance)]


def make_app(lines=None, file_name=None, config=None) -> ClackApp:
    document = Document.from_lines(lines or [], file_name=file_name)
    editor = Editor(document, SilentSounds(), config or ClackConfig())
    return ClackApp(editor)


@pytest.mark.asyncio
async def test_app_starts_with_chime():
    """Mounting draws the empty document and plays the start-up chime."""
    app = make_app()
    async with app.run_test() as pilot:
        await pilot.pause()
        first = app.editor.sounds.drained[0]
        assert [t.frequency for t in first if isinstance(t, Tone)] == [440.0, 660.0]
        assert app.query_one("#prompt", Input).display is False


@pytest.mark.asyncio
async def test_typing_inserts_text():
    app = make_app()
    async with app.run_test() as pilot:
        await pilot.press("h", "i")
        await pilot.pause()
        assert app.editor.document.lines() == ["hi"]
        assert app.editor.cursor == Position(2, 0)


@pytest.mark.asyncio
async def test_each_key_drains_once():
    app = make_app()
    async with app.run_test() as pilot:
        await pilot.pause()
        before = len(app.editor.sounds.drained)
        await pilot.press("a", "b", "c")
        await pilot.pause()
        assert len(app.editor.sounds.drained) == before + 3


@pytest.mark.asyncio
async def test_enter_splits_and_speaks_row():
    app = make_app(["abcd"])
    async with app.run_test() as pilot:
        await pilot.press("right", "right", "enter")
        await pilot.pause()
        assert app.editor.document.lines() == ["ab", "cd"]
        # The finished row is read before it is split.
        assert "abcd" in app.editor.sounds.spoken()


@pytest.mark.asyncio
async def test_arrow_down_speaks_next_row():
    app = make_app(["one", "two"])
    async with app.run_test() as pilot:
        await pilot.press("down")
        await pilot.pause()
        assert app.editor.cursor.row == 1
        assert app.editor.sounds.spoken()[-1] == "two"


@pytest.mark.asyncio
async def test_backspace_joins_rows():
    app = make_app(["ab", "cd"])
    async with app.run_test() as pilot:
        await pilot.press("down", "backspace")
        await pilot.pause()
        assert app.editor.document.lines() == ["abcd"]


@pytest.mark.asyncio
async def test_quit_clean_document():
    app = make_app(["x"])
    async with app.run_test() as pilot:
        await pilot.press("ctrl+q")
        assert app.editor.should_quit


@pytest.mark.asyncio
async def test_quit_dirty_document_asks_first():
    app = make_app()
    async with app.run_test() as pilot:
        await pilot.press("x", "ctrl+q")
        await pilot.pause()
        assert not app.editor.should_quit
        assert "Quit without saving?" in app.editor.sounds.spoken()


@pytest.mark.asyncio
async def test_save_as_prompt(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    app = make_app()
    async with app.run_test() as pilot:
        await pilot.press("x", "ctrl+s")
        await pilot.pause()
        assert app.query_one("#prompt", Input).display is True
        await pilot.press("o", "u", "t", ".", "t", "x", "t", "enter")
        await pilot.pause()
        assert app.query_one("#prompt", Input).display is False
        assert (tmp_path / "out.txt").read_text() == "x\n"
        assert "Saved out.txt." in app.editor.sounds.spoken()


@pytest.mark.asyncio
async def test_escape_aborts_save_prompt():
    app = make_app(["x"])
    async with app.run_test() as pilot:
        await pilot.press("ctrl+s")
        await pilot.pause()
        await pilot.press("escape")
        await pilot.pause()
        assert app.query_one("#prompt", Input).display is False
        assert app.editor.status_message == "Save aborted."


@pytest.mark.asyncio
async def test_find_prompt_moves_cursor():
    app = make_app(["one", "two", "three"])
    async with app.run_test() as pilot:
        await pilot.press("ctrl+f")
        await pilot.pause()
        await pilot.press("t", "h", "r", "enter")
        await pilot.pause()
        assert app.editor.cursor == Position(0, 2)
        assert app.editor.sounds.spoken()[-1] == "three"


@pytest.mark.asyncio
async def test_key_bindings_from_config():
    config = ClackConfig()
    config.raw["keyBindings"]["speakPosition"] = "ctrl+t"
    app = make_app(["abc"], config=config)
    async with app.run_test() as pilot:
        await pilot.press("right", "ctrl+t")
        await pilot.pause()
        assert app.editor.sounds.spoken()[-1] == "Row 1, column 2"
