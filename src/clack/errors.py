"""Fault types raised by the playback backends.

Buffer operations never raise for out-of-range positions; those are
silent no-ops.  Only the audio side has faults worth reporting.
"""

from __future__ import annotations


class ClackError(Exception):
    """Base class for clack errors."""


class ProcessSpawnError(ClackError):
    """The speech synthesis process could not be started."""

    def __init__(self, command: list[str], reason: str) -> None:
        self.command = command
        self.reason = reason
        name = command[0] if command else "<none>"
        super().__init__(f"could not start speech command {name!r}: {reason}")


class AudioDeviceError(ClackError):
    """The audio output device could not be opened or written to."""
