"""The two things clack can play: synthesized tones and spoken utterances.

``Tone`` and ``Utterance`` are the only ``Audible`` kinds.  The scheduler
relies on that: an utterance runs in an external process it can
terminate, a tone is a buffer handed to the sound card that plays to the
end once started.

Tones are built with numpy (16-bit PCM, mono, 44.1 kHz) and played with
sounddevice.  Speech uses whatever voice program is installed: ``say``
on macOS, ``espeak-ng`` or ``espeak`` elsewhere.
"""

from __future__ import annotations

import abc
import contextlib
import functools
import os
from dataclasses import dataclass
from typing import ClassVar, Iterator, Optional

import numpy as np

from .errors import AudioDeviceError
from .process import TrackedProcess, find_binary, spawn

SAMPLE_RATE = 44100
FADE_FRACTION = 0.2

DEFAULT_RATE_WPM = 300

# Voice programs in preference order, with the flag that sets words/minute.
SPEECH_BINARIES: dict[str, str] = {
    "say": "-r",
    "espeak-ng": "-s",
    "espeak": "-s",
}

# D E F# A B, three octaves above the base pitches.
PENTATONIC_SCALE: tuple[float, ...] = (
    8.0 * 36.6666,
    8.0 * 41.15625,
    8.0 * 46.40625,
    8.0 * 55.0,
    8.0 * 61.875,
)


class Audible(abc.ABC):
    """Something the scheduler can play."""

    cancellable: ClassVar[bool] = False

    @abc.abstractmethod
    def play(self):
        """Start playback and return without waiting."""

    @abc.abstractmethod
    def play_and_wait(self):
        """Play to completion, blocking the caller."""

    @abc.abstractmethod
    def describe(self) -> str:
        """Short label for logs."""


# ─── Tones ────────────────────────────────────────────────────────────


def synthesize(frequency: float, duration: float, volume: float,
               sample_rate: int = SAMPLE_RATE) -> np.ndarray:
    """Render a sine wave as int16 samples.

    Volume is clamped to [0.0, 1.0].  The last ``FADE_FRACTION`` of the
    buffer ramps linearly to silence so the tone ends without a click.
    """
    volume = min(max(volume, 0.0), 1.0)
    num_samples = max(int(round(sample_rate * duration)), 0)
    t = np.arange(num_samples) / sample_rate
    wave = np.sin(2 * np.pi * frequency * t) * volume
    fade = min(num_samples, max(int(num_samples * FADE_FRACTION), 1)) if num_samples else 0
    if fade:
        wave[-fade:] *= np.linspace(1.0, 0.0, fade)
    return (wave * 32767).astype(np.int16)


def _output_device():
    """Import sounddevice, translating a missing PortAudio into AudioDeviceError."""
    try:
        import sounddevice
    except OSError as exc:
        raise AudioDeviceError(f"audio output unavailable: {exc}") from exc
    return sounddevice


def play_samples(samples: np.ndarray, blocking: bool,
                 sample_rate: int = SAMPLE_RATE) -> None:
    """Send *samples* to the default output device.

    Raises:
        AudioDeviceError: the device could not be opened or written to.
    """
    if samples.size == 0:
        return
    sd = _output_device()
    try:
        sd.play(samples, samplerate=sample_rate, blocking=blocking)
    except sd.PortAudioError as exc:
        raise AudioDeviceError(str(exc)) from exc


@dataclass(frozen=True)
class Tone(Audible):
    """A sine-wave cue: *frequency* Hz for *duration* seconds at *volume*."""

    frequency: float
    duration: float
    volume: float = 0.5

    def samples(self) -> np.ndarray:
        return synthesize(self.frequency, self.duration, self.volume)

    def play(self) -> None:
        # Nothing is kept: a started tone cannot be cancelled.
        play_samples(self.samples(), blocking=False)

    def play_and_wait(self) -> None:
        play_samples(self.samples(), blocking=True)

    def describe(self) -> str:
        return f"tone {self.frequency:.0f}Hz/{self.duration:.2f}s"


STARTUP_CHIME: tuple[Tone, ...] = (
    Tone(440.0, 0.06, 0.5),
    Tone(440.0 * 3.0 / 2.0, 0.1, 0.5),
)
BLOCKED_TONE = Tone(440.0, 0.2, 0.5)
ERROR_TONE = Tone(220.0, 0.15, 0.5)


def indent_tones(level: int, duration: float = 0.15, volume: float = 0.5) -> list[Tone]:
    """One rising pentatonic note per indent level, wrapping after five."""
    return [
        Tone(PENTATONIC_SCALE[i % len(PENTATONIC_SCALE)], duration, volume)
        for i in range(level)
    ]


# ─── Speech ───────────────────────────────────────────────────────────


@functools.lru_cache(maxsize=None)
def resolve_speech_binary(preference: str = "auto") -> Optional[str]:
    """Path of the voice program to use, or None if nothing is installed.

    *preference* is ``"auto"`` (first of ``SPEECH_BINARIES`` on PATH),
    one of the known program names, or a path to one of them.
    """
    if preference and preference != "auto":
        return find_binary(preference)
    for name in SPEECH_BINARIES:
        found = find_binary(name)
        if found:
            return found
    return None


def speech_command(binary: Optional[str], text: str, rate_wpm: int) -> list[str]:
    """Argument list for speaking *text* at *rate_wpm* with *binary*."""
    if not binary:
        return []
    rate_flag = SPEECH_BINARIES.get(os.path.basename(binary), "-s")
    # A leading dash would be parsed as an option.
    if text.startswith("-"):
        text = " " + text
    return [binary, rate_flag, str(rate_wpm), text]


@dataclass(frozen=True)
class Utterance(Audible):
    """A phrase spoken by the external voice program."""

    cancellable: ClassVar[bool] = True

    text: str
    rate_wpm: int = DEFAULT_RATE_WPM
    binary: Optional[str] = None

    def command(self) -> list[str]:
        binary = self.binary or resolve_speech_binary()
        return speech_command(binary, self.text, self.rate_wpm)

    def play(self) -> TrackedProcess:
        """Start speaking; the caller owns the returned process.

        Raises:
            ProcessSpawnError: the voice program could not be started.
        """
        return spawn(self.command(), tag="speech")

    @contextlib.contextmanager
    def spawned(self) -> Iterator[TrackedProcess]:
        """Speak for the duration of the ``with`` block.

        The process is terminated and reaped on every way out of the
        block, so an interrupted utterance never outlives its owner.
        """
        handle = self.play()
        try:
            yield handle
        finally:
            handle.close()

    def play_and_wait(self) -> bool:
        """Speak and block until the voice program exits; True on exit 0."""
        with self.spawned() as handle:
            return handle.wait() == 0

    def describe(self) -> str:
        preview = self.text[:40] + ("..." if len(self.text) > 40 else "")
        return f"utterance {preview!r}"
