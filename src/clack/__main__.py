"""
clack — a terminal text editor narrated with tones and speech.

Usage:
    clack                         # Empty buffer
    clack notes.txt               # Open a file
    clack --rate 220 notes.txt    # Slower speech than the config says
    clack --say "hello world"     # Check the voice program and exit
    clack --reset-config          # Delete config.yml and regenerate with defaults
"""

from __future__ import annotations

import argparse
import sys
from typing import Optional

from . import __version__
from .buffer import Document
from .config import MAX_RATE_WPM, MIN_RATE_WPM, ClackConfig
from .logging import EDITOR_LOG, get_logger, set_log_file

_log = get_logger("clack.main")


def _rate(value: str) -> int:
    try:
        rate = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not a whole number: {value!r}")
    if not MIN_RATE_WPM <= rate <= MAX_RATE_WPM:
        raise argparse.ArgumentTypeError(
            f"rate must be between {MIN_RATE_WPM} and {MAX_RATE_WPM} words per minute"
        )
    return rate


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="clack",
        description="clack — a text editor you can hear",
    )
    parser.add_argument("file", nargs="?", default=None, help="File to open")
    parser.add_argument("--config-file", default=None, metavar="PATH")
    parser.add_argument("--rate", type=_rate, default=None, metavar="WPM",
                        help="Speech rate in words per minute (overrides config)")
    parser.add_argument("--log-file", default=EDITOR_LOG, metavar="PATH",
                        help=f"Where to write the JSON log (default: {EDITOR_LOG})")
    parser.add_argument("--reset-config", action="store_true",
                        help="Delete config.yml and regenerate with current defaults (clean slate)")
    parser.add_argument("--say", default=None, metavar="TEXT",
                        help="Speak TEXT with the configured voice and exit")
    parser.add_argument("--version", action="version", version=f"clack {__version__}")
    return parser


def _load_config(args: argparse.Namespace) -> ClackConfig:
    if args.reset_config:
        config = ClackConfig.reset(args.config_file)
    else:
        config = ClackConfig.load(args.config_file)
    if args.rate is not None:
        config.rate_override = args.rate
    return config


def _open_document(file_name: Optional[str]) -> tuple[Document, str]:
    """The document to edit and the initial status message."""
    if not file_name:
        return Document(), ""
    try:
        return Document.open(file_name), ""
    except FileNotFoundError:
        # A new file: saving creates it.
        return Document(file_name=file_name), ""
    except (OSError, UnicodeDecodeError) as e:
        _log.warning("could not open %s: %s", file_name, e)
        return Document(), f"Could not open file: {file_name}"


def say(text: str, config: ClackConfig) -> int:
    """Speak *text* once through the scheduler; exit status 1 on failure."""
    from .audio import Utterance, resolve_speech_binary
    from .scheduler import SoundManager

    failures: list[Exception] = []
    sounds = SoundManager(on_error=failures.append)
    sounds.enqueue(Utterance(
        text,
        rate_wpm=config.rate_wpm,
        binary=resolve_speech_binary(config.speech_command),
    ))
    sounds.drain()
    for exc in failures:
        print(f"clack: {exc}", file=sys.stderr)
    return 1 if failures else 0


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    set_log_file(args.log_file)
    config = _load_config(args)
    for warning in config.validation_warnings:
        print(f"  Config warning: {warning}", file=sys.stderr)

    if args.say is not None:
        return say(args.say, config)

    from .editor import Editor
    from .scheduler import SoundManager
    from .tui import ClackApp

    document, status = _open_document(args.file)
    editor = Editor(document, SoundManager(), config)
    if status:
        editor.status_message = status
    _log.info("starting editor", extra={"context": {"file": args.file or ""}})
    ClackApp(editor).run()
    editor.sounds.stop()
    return 0


if __name__ == "__main__":
    sys.exit(main())
